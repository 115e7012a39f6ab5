"""
Delta Object — sparse, presence-tracked partial update of an entity type.

Built by: DeltaDeserializer (the only path that populates slots)
Applied by: patch() onto any target instance, steered by a MappingPolicy

Behavioral Contract:
- Holds a slot only for fields that exist on the entity type AND were supplied
- Absence of a slot means "unset"; querying an unset field never stores anything
- First write wins: a second payload key naming an already populated field
  (case-insensitively, or through its alias) is ignored
- patch() visits populated fields only, drops fields the policy drops, and
  silently skips fields the target type does not declare as writable
"""

import logging
import typing
from typing import Any, Dict, Generic, Iterator, Optional, Tuple, Type, TypeVar

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from delta_object.accessors import Accessor, field_name
from delta_object.delta.slot import FieldSlot
from delta_object.errors import (
    CoercionError,
    FieldTypeMismatchError,
    UnknownFieldError,
)
from delta_object.mapping.policy import MappingRegistry, mapping_registry
from delta_object.models.config import DeltaConfig
from delta_object.models.fields import FieldDescriptor
from delta_object.registry.fields import FieldRegistry, field_registry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DeltaObject(Generic[T]):
    """
    Partial update for entity type T.

    DeltaObject(Customer) is an empty delta; DeltaObject[Customer] is the
    annotation to use on pydantic models and FastAPI endpoints.
    """

    def __init__(
        self,
        entity_type: Type[T],
        config: Optional[DeltaConfig] = None,
        fields: Optional[FieldRegistry] = None,
    ):
        self._entity_type = entity_type
        self._config = config or DeltaConfig()
        self._fields = fields or field_registry
        self._slots: Dict[str, FieldSlot] = {}
        # Fail early on something that is not an entity class
        self._fields.get_fields(entity_type)

    @property
    def entity_type(self) -> Type[T]:
        return self._entity_type

    @property
    def config(self) -> DeltaConfig:
        return self._config

    @property
    def fields_set(self) -> Tuple[str, ...]:
        """Declared names of the populated fields, in payload order."""
        return tuple(self._slots)

    def _descriptor(self, name: str) -> FieldDescriptor:
        descriptor = self._fields.find(self._entity_type, name)
        if descriptor is None:
            raise UnknownFieldError(
                f"{self._entity_type.__name__} has no field '{name}'",
                entity_type=self._entity_type,
                field=name,
            )
        return descriptor

    def get_field(self, field: Accessor, expected_type: Any = None) -> FieldSlot:
        """
        Slot for a field, by name or accessor (lambda c: c.email).

        An unset field yields a fresh unset slot carrying the field default.
        expected_type, when given, must equal the registered field type.
        """
        descriptor = self._descriptor(field_name(field))
        if expected_type is not None and expected_type != descriptor.value_type:
            raise FieldTypeMismatchError(
                f"Field '{descriptor.name}' of {self._entity_type.__name__} is "
                f"{descriptor.value_type!r}, not {expected_type!r}",
                entity_type=self._entity_type,
                field=descriptor.name,
            )
        slot = self._slots.get(descriptor.name)
        if slot is None:
            return FieldSlot.for_field(descriptor, strict=self._config.strict_coercion)
        return slot

    def is_set(self, field: Accessor) -> bool:
        return self.get_field(field).is_set

    def populate(self, name: str, raw_value: Any, from_json: bool = False) -> None:
        """
        Assign a payload value to a field. Used by DeltaDeserializer only.

        Unknown names and already populated fields are ignored. A value that
        cannot be coerced raises CoercionError and nothing is stored.
        from_json marks a value parsed from JSON text.
        """
        descriptor = self._fields.find(self._entity_type, name)
        if descriptor is None:
            if self._config.log_skipped_fields:
                logger.debug(
                    "Ignoring unknown field '%s' for %s", name, self._entity_type.__name__
                )
            return
        if descriptor.name in self._slots:
            if self._config.log_skipped_fields:
                logger.debug(
                    "Ignoring duplicate key '%s' for already populated field '%s'",
                    name, descriptor.name,
                )
            return

        slot = FieldSlot.for_field(descriptor, strict=self._config.strict_coercion)
        try:
            slot.assign(raw_value, from_json=from_json)
        except CoercionError as e:
            e.entity_type = self._entity_type
            raise
        self._slots[descriptor.name] = slot

    def patch(self, target: Any, registry: Optional[MappingRegistry] = None) -> None:
        """
        Write every populated field onto target, in place.

        The (T, type(target)) mapping policy decides the target field name and
        transform; fields it drops and fields the target lacks are skipped.
        """
        registry = registry if registry is not None else mapping_registry
        target_type = type(target)
        policy = registry.get(self._entity_type, target_type)

        for name, slot in self._slots.items():
            mapping = policy.resolve(name)
            if mapping is None:
                if self._config.log_skipped_fields:
                    logger.debug(
                        "Field '%s' dropped by %s -> %s mapping",
                        name, self._entity_type.__name__, target_type.__name__,
                    )
                continue

            descriptor = self._fields.find_writable(target_type, mapping.target_field)
            if descriptor is None:
                if self._config.log_skipped_fields:
                    logger.debug(
                        "%s has no writable field '%s', skipping '%s'",
                        target_type.__name__, mapping.target_field, name,
                    )
                continue

            setattr(target, descriptor.name, mapping.apply(slot.value))

    def as_dict(self, by_alias: bool = False) -> Dict[str, Any]:
        """Populated fields and their coerced values."""
        result = {}
        for name, slot in self._slots.items():
            key = name
            if by_alias:
                key = self._fields.find(self._entity_type, name).alias or name
            result[key] = slot.value
        return result

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        descriptor = self._fields.find(self._entity_type, name)
        return descriptor is not None and descriptor.name in self._slots

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._slots))

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        values = ", ".join(f"{k}={s.value!r}" for k, s in self._slots.items())
        return f"DeltaObject[{self._entity_type.__name__}]({values})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Validate DeltaObject[T] fields from a payload object."""
        args = typing.get_args(source)
        if not args or not isinstance(args[0], type):
            raise TypeError("DeltaObject annotations need an entity type, e.g. DeltaObject[Customer]")
        entity_type = args[0]

        def validate(value: Any, from_json: bool = False) -> "DeltaObject":
            from delta_object.delta.deserializer import DeltaDeserializer

            if isinstance(value, DeltaObject):
                if value.entity_type is not entity_type:
                    raise ValueError(
                        f"Expected a delta for {entity_type.__name__}, "
                        f"got one for {value.entity_type.__name__}"
                    )
                return value
            # Plain ValueError: pydantic error contexts must stay serializable
            try:
                return DeltaDeserializer(entity_type).deserialize(value, from_json=from_json)
            except CoercionError as e:
                raise ValueError(str(e)) from e

        serializer = core_schema.plain_serializer_function_ser_schema(
            lambda delta: delta.as_dict(by_alias=True)
        )
        return core_schema.json_or_python_schema(
            json_schema=core_schema.no_info_after_validator_function(
                lambda value: validate(value, from_json=True),
                core_schema.dict_schema(keys_schema=core_schema.str_schema()),
            ),
            python_schema=core_schema.no_info_plain_validator_function(validate),
            serialization=serializer,
        )
