"""Field metadata — what the registry knows about one declared field."""

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict


class FieldDescriptor(BaseModel):
    """A single public field of an entity type, as discovered by introspection."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str                                       # Attribute name on the type
    value_type: Any                                 # Declared annotation, e.g. List[int]
    alias: Optional[str] = None                     # pydantic alias, if any
    default_factory: Optional[Callable[[], Any]] = None
    writable: bool = True                           # False for read-only properties / frozen types

    def default(self) -> Any:
        """Value an unset slot for this field reports."""
        if self.default_factory is None:
            return None
        return self.default_factory()
