"""
Field Registry — per-type directory of declared fields.

Queried by: DeltaObject (validation, slot typing) + patch (target lookup)

Behavioral Contract:
- One descriptor per public instance field or property of a type, inherited
  fields included, computed once per type and cached for the process lifetime
- Lookup by name is case-insensitive and also matches a pydantic alias
- A type with no eligible fields yields an empty mapping, never an error
- Concurrent first-time population is safe: the computed value is pure, so
  a duplicate computation is discarded and the first cached entry wins
"""

import copy
import dataclasses
import logging
import threading
import typing
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel

from delta_object.models.fields import FieldDescriptor

logger = logging.getLogger(__name__)

_FRAMEWORK_BASES = frozenset(BaseModel.__mro__)


def _fold(name: str) -> str:
    return name.casefold()


def _is_public(name: str) -> bool:
    return not name.startswith("_")


def _is_class_var(annotation: Any) -> bool:
    return annotation is typing.ClassVar or typing.get_origin(annotation) is typing.ClassVar


def _copying_factory(value: Any) -> Callable[[], Any]:
    return lambda: copy.deepcopy(value)


def _type_hints(entity_type: type) -> Dict[str, Any]:
    """Annotations across the MRO, resolved where possible."""
    try:
        return typing.get_type_hints(entity_type)
    except NameError:
        # Unresolvable forward reference: keep the raw annotations
        hints: Dict[str, Any] = {}
        for klass in reversed(entity_type.__mro__):
            hints.update(getattr(klass, "__annotations__", {}))
        return hints


def _properties(entity_type: type, frozen: bool) -> List[FieldDescriptor]:
    """Public properties declared anywhere in the MRO, framework bases excluded."""
    seen = set()
    found = []
    for klass in entity_type.__mro__:
        if klass in _FRAMEWORK_BASES:
            continue
        for name, attr in vars(klass).items():
            if name in seen or not _is_public(name) or not isinstance(attr, property):
                continue
            seen.add(name)
            annotations = getattr(attr.fget, "__annotations__", {})
            value_type = annotations.get("return", Any)
            found.append(FieldDescriptor(
                name=name,
                value_type=value_type,
                writable=attr.fset is not None and not frozen,
            ))
    return found


def _describe_model(entity_type: type) -> List[FieldDescriptor]:
    frozen = bool(entity_type.model_config.get("frozen", False))
    descriptors = []
    for name, info in entity_type.model_fields.items():
        if not _is_public(name):
            continue
        factory = None
        if not info.is_required():
            factory = lambda info=info: info.get_default(call_default_factory=True)
        alias = info.alias if info.alias and info.alias != name else None
        descriptors.append(FieldDescriptor(
            name=name,
            value_type=info.annotation,
            alias=alias,
            default_factory=factory,
            writable=not frozen,
        ))
    return descriptors + _properties(entity_type, frozen)


def _describe_dataclass(entity_type: type) -> List[FieldDescriptor]:
    frozen = entity_type.__dataclass_params__.frozen
    hints = _type_hints(entity_type)
    descriptors = []
    for f in dataclasses.fields(entity_type):
        if not _is_public(f.name):
            continue
        factory = None
        if f.default_factory is not dataclasses.MISSING:
            factory = f.default_factory
        elif f.default is not dataclasses.MISSING:
            factory = _copying_factory(f.default)
        descriptors.append(FieldDescriptor(
            name=f.name,
            value_type=hints.get(f.name, f.type),
            default_factory=factory,
            writable=not frozen,
        ))
    return descriptors + _properties(entity_type, frozen)


def _describe_class(entity_type: type) -> List[FieldDescriptor]:
    descriptors = []
    for name, annotation in _type_hints(entity_type).items():
        if not _is_public(name) or _is_class_var(annotation):
            continue
        factory = None
        default = getattr(entity_type, name, dataclasses.MISSING)
        if default is not dataclasses.MISSING and not isinstance(default, property):
            factory = _copying_factory(default)
        descriptors.append(FieldDescriptor(
            name=name,
            value_type=annotation,
            default_factory=factory,
        ))
    annotated = {d.name for d in descriptors}
    return descriptors + [
        p for p in _properties(entity_type, frozen=False) if p.name not in annotated
    ]


def describe_fields(entity_type: type) -> List[FieldDescriptor]:
    """Introspect a pydantic model, dataclass or annotated plain class."""
    if not isinstance(entity_type, type):
        raise TypeError(f"Expected an entity class, got {entity_type!r}")
    if issubclass(entity_type, BaseModel):
        return _describe_model(entity_type)
    if dataclasses.is_dataclass(entity_type):
        return _describe_dataclass(entity_type)
    return _describe_class(entity_type)


class _EntityFields:
    """Cached view over one type's descriptors."""

    def __init__(self, descriptors: Iterable[FieldDescriptor]):
        self.by_name: Dict[str, FieldDescriptor] = {}
        self.lookup: Dict[str, FieldDescriptor] = {}
        for descriptor in descriptors:
            self.by_name.setdefault(descriptor.name, descriptor)
            self.lookup.setdefault(_fold(descriptor.name), descriptor)
        # Aliases never shadow a real field name
        for descriptor in self.by_name.values():
            if descriptor.alias:
                self.lookup.setdefault(_fold(descriptor.alias), descriptor)


class FieldRegistry:
    """
    Process-wide cache of entity field descriptors.
    Reads are lock-free once a type has been described.
    """

    def __init__(self):
        self._entities: Dict[type, _EntityFields] = {}
        self._lock = threading.Lock()

    def _entry(self, entity_type: type) -> _EntityFields:
        entry = self._entities.get(entity_type)
        if entry is not None:
            return entry
        computed = _EntityFields(describe_fields(entity_type))
        with self._lock:
            entry = self._entities.setdefault(entity_type, computed)
        if entry is computed:
            logger.debug(
                "Registered %d fields for %s", len(entry.by_name), entity_type.__name__
            )
        return entry

    def get_fields(self, entity_type: type) -> Dict[str, FieldDescriptor]:
        """All fields of a type, keyed by declared name."""
        return dict(self._entry(entity_type).by_name)

    def find(self, entity_type: type, name: str) -> Optional[FieldDescriptor]:
        """Case-insensitive, alias-aware lookup. None when the type has no such field."""
        return self._entry(entity_type).lookup.get(_fold(name))

    def find_writable(self, entity_type: type, name: str) -> Optional[FieldDescriptor]:
        """Like find(), but only returns fields that accept assignment."""
        descriptor = self.find(entity_type, name)
        if descriptor is None or not descriptor.writable:
            return None
        return descriptor

    def is_registered(self, entity_type: type) -> bool:
        return entity_type in self._entities

    def clear(self) -> None:
        """Drop every cached type."""
        with self._lock:
            self._entities.clear()


field_registry = FieldRegistry()


def get_fields(entity_type: type) -> Dict[str, FieldDescriptor]:
    """Fields of a type from the process-wide registry."""
    return field_registry.get_fields(entity_type)
