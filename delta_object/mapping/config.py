"""
Mapping configuration — typed front end over MappingPolicy.

    (
        MappingConfig.global_config(CustomerUpdate, Customer)
        .map(lambda s: s.name, lambda t: t.display_name)
        .map(lambda s: s.age, lambda t: t.age, lambda v: v + 1)
        .ignore(lambda s: s.internal_note)
    )

Accessors are checked against the declared fields of the source and target
types, so a typo fails at configuration time instead of being skipped at
patch time.
"""

from typing import Any, Callable, Optional

from delta_object.accessors import Accessor, field_name
from delta_object.errors import UnknownFieldError
from delta_object.mapping.policy import MappingPolicy, MappingRegistry, mapping_registry
from delta_object.registry.fields import FieldRegistry, field_registry


class MappingConfig:
    """Configures the shared policy for one (source type, target type) pair."""

    def __init__(
        self,
        source_type: type,
        target_type: type,
        registry: Optional[MappingRegistry] = None,
        fields: Optional[FieldRegistry] = None,
    ):
        self.source_type = source_type
        self.target_type = target_type
        self._registry = registry if registry is not None else mapping_registry
        self._fields = fields or field_registry

    @classmethod
    def global_config(cls, source_type: type, target_type: type) -> "MappingConfig":
        """Configuration bound to the process-wide registry."""
        return cls(source_type, target_type)

    @staticmethod
    def clear_mappings(registry: Optional[MappingRegistry] = None) -> None:
        """Forget every configured pair."""
        (registry if registry is not None else mapping_registry).clear_all()

    @property
    def policy(self) -> MappingPolicy:
        return self._registry.get(self.source_type, self.target_type)

    def _declared(self, entity_type: type, accessor: Accessor) -> str:
        name = field_name(accessor)
        descriptor = self._fields.find(entity_type, name)
        if descriptor is None:
            raise UnknownFieldError(
                f"{entity_type.__name__} has no field '{name}'",
                entity_type=entity_type,
                field=name,
            )
        return descriptor.name

    def map(
        self,
        source: Accessor,
        target: Accessor,
        transform: Optional[Callable[[Any], Any]] = None,
    ) -> "MappingConfig":
        """Write source onto target, through transform when given."""
        source_name = self._declared(self.source_type, source)
        target_name = self._declared(self.target_type, target)
        self.policy.map_field(source_name, target_name, transform)
        return self

    def ignore(self, source: Accessor) -> "MappingConfig":
        self.policy.ignore_field(self._declared(self.source_type, source))
        return self

    def ignore_non_mapped(self) -> "MappingConfig":
        self.policy.ignore_unmapped()
        return self

    def remove(self) -> None:
        """Drop the pair's policy; later patches start from an empty one."""
        self._registry.remove(self.source_type, self.target_type)
