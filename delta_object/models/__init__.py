"""Delta object data models."""

from delta_object.models.config import DeltaConfig
from delta_object.models.fields import FieldDescriptor
from delta_object.models.mapping import FieldMapping

__all__ = [
    "DeltaConfig",
    "FieldDescriptor",
    "FieldMapping",
]
