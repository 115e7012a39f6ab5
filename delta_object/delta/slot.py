"""Field slots — one optional, typed value cell per delta field."""

import json
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import ConfigDict, PydanticSchemaGenerationError, TypeAdapter, ValidationError

from delta_object.errors import CoercionError
from delta_object.models.fields import FieldDescriptor

V = TypeVar("V")

_ADAPTERS: Dict[Any, TypeAdapter] = {}


def _build_adapter(value_type: Any) -> TypeAdapter:
    try:
        return TypeAdapter(value_type)
    except PydanticSchemaGenerationError:
        # Plain classes: accept instances only
        return TypeAdapter(value_type, config=ConfigDict(arbitrary_types_allowed=True))


def type_adapter(value_type: Any) -> TypeAdapter:
    """Cached pydantic adapter for a field's declared type."""
    try:
        adapter = _ADAPTERS.get(value_type)
    except TypeError:
        # Unhashable annotation (e.g. Annotated with unhashable metadata)
        return _build_adapter(value_type)
    if adapter is None:
        adapter = _ADAPTERS.setdefault(value_type, _build_adapter(value_type))
    return adapter


def _type_name(value_type: Any) -> str:
    if getattr(value_type, "__args__", None):
        return repr(value_type)
    return getattr(value_type, "__name__", None) or repr(value_type)


def coerce_value(
    value_type: Any,
    raw_value: Any,
    strict: bool = False,
    field: Optional[str] = None,
    from_json: bool = False,
) -> Any:
    """
    Convert a raw payload value into value_type.

    Values whose class is exactly value_type are kept as is. Everything else
    (mappings, lists, strings for dates, ...) goes through pydantic,
    recursively for nested models and collections. from_json marks values
    parsed from JSON text; they are validated in pydantic's JSON mode, where
    strict mode still accepts ISO date strings.
    """
    if value_type is Any:
        return raw_value
    if type(raw_value) is value_type:
        return raw_value
    adapter = type_adapter(value_type)
    try:
        if from_json:
            return adapter.validate_json(json.dumps(raw_value), strict=strict)
        return adapter.validate_python(raw_value, strict=strict)
    except ValidationError as e:
        target = f"field '{field}'" if field else "value"
        errors = e.errors()
        detail = errors[0]["msg"] if errors else str(e)
        raise CoercionError(
            f"Cannot convert {target} to {_type_name(value_type)}: {detail}",
            field=field,
        ) from e


class FieldSlot(Generic[V]):
    """
    Optional value cell. Starts unset with the field's default value;
    assign() coerces a raw value and marks the slot set, permanently.
    """

    def __init__(
        self,
        value_type: Any = Any,
        default: Optional[V] = None,
        strict: bool = False,
        field: Optional[str] = None,
    ):
        self._value_type = value_type
        self._value = default
        self._is_set = False
        self._strict = strict
        self._field = field

    @classmethod
    def for_field(cls, descriptor: FieldDescriptor, strict: bool = False) -> "FieldSlot":
        """Unset slot typed and defaulted after a registered field."""
        return cls(
            value_type=descriptor.value_type,
            default=descriptor.default(),
            strict=strict,
            field=descriptor.name,
        )

    @property
    def is_set(self) -> bool:
        return self._is_set

    @property
    def value(self) -> V:
        return self._value

    @property
    def value_type(self) -> Any:
        return self._value_type

    def assign(self, raw_value: Any, from_json: bool = False) -> None:
        """Coerce raw_value to the slot type and mark the slot set. Re-assignment overwrites."""
        self._value = coerce_value(
            self._value_type,
            raw_value,
            strict=self._strict,
            field=self._field,
            from_json=from_json,
        )
        self._is_set = True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldSlot):
            return NotImplemented
        return (self._is_set, self._value) == (other._is_set, other._value)

    def __repr__(self) -> str:
        if not self._is_set:
            return f"FieldSlot(unset, default={self._value!r})"
        return f"FieldSlot(value={self._value!r})"
