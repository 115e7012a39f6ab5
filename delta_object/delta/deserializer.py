"""
Delta Deserializer — payload in, populated DeltaObject out.

A payload is any mapping of field name to raw value (a parsed JSON object);
JSON text is parsed first. Keys are visited in payload order, so for
duplicate keys differing only in case the first one wins. Unknown keys are
skipped. A value that cannot be coerced aborts the whole construction.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any, Generic, Optional, Type, TypeVar, Union

from delta_object.delta.delta import DeltaObject
from delta_object.errors import CoercionError
from delta_object.models.config import DeltaConfig
from delta_object.registry.fields import FieldRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DeltaDeserializer(Generic[T]):
    """Builds DeltaObject[T] instances from structured payloads."""

    def __init__(
        self,
        entity_type: Type[T],
        config: Optional[DeltaConfig] = None,
        fields: Optional[FieldRegistry] = None,
    ):
        self.entity_type = entity_type
        self.config = config or DeltaConfig()
        self._fields = fields

    def deserialize(self, payload: Any, from_json: bool = False) -> DeltaObject[T]:
        """
        Populate a delta from a mapping. from_json marks a payload parsed from
        JSON text, whose values are then validated as JSON.
        """
        if not isinstance(payload, Mapping):
            raise CoercionError(
                f"A {self.entity_type.__name__} delta must be built from an object, "
                f"got {type(payload).__name__}",
                entity_type=self.entity_type,
            )

        delta = DeltaObject(self.entity_type, config=self.config, fields=self._fields)
        for name, child in payload.items():
            if not isinstance(name, str):
                logger.debug("Ignoring non-string payload key %r", name)
                continue
            delta.populate(name, child, from_json=from_json)

        logger.debug("Built %r from %d payload keys", delta, len(payload))
        return delta

    def deserialize_json(self, data: Union[str, bytes, bytearray]) -> DeltaObject[T]:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            raise CoercionError(
                f"Invalid JSON for {self.entity_type.__name__} delta: {e.msg}",
                entity_type=self.entity_type,
            ) from e
        return self.deserialize(payload, from_json=True)


def load_delta(
    entity_type: Type[T],
    payload: Any,
    config: Optional[DeltaConfig] = None,
) -> DeltaObject[T]:
    """Shortcut for DeltaDeserializer(entity_type, config).deserialize(payload)."""
    return DeltaDeserializer(entity_type, config).deserialize(payload)


def loads_delta(
    entity_type: Type[T],
    data: Union[str, bytes, bytearray],
    config: Optional[DeltaConfig] = None,
) -> DeltaObject[T]:
    """Shortcut for DeltaDeserializer(entity_type, config).deserialize_json(data)."""
    return DeltaDeserializer(entity_type, config).deserialize_json(data)
