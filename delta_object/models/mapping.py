"""Mapping policy data — how a source field lands on a target field."""

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict


class FieldMapping(BaseModel):
    """Result of resolving one source field against a mapping policy."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    target_field: str
    transform: Optional[Callable[[Any], Any]] = None

    def apply(self, value: Any) -> Any:
        """Run the configured transform, or pass the value through unchanged."""
        if self.transform is None:
            return value
        return self.transform(value)
