"""
Mapping Policy — how fields of a source type land on a target type.

Resolution precedence for a source field (patch time):
  1. ignored                             -> dropped, even if explicitly mapped
  2. not mapped and ignore_unmapped set  -> dropped
  3. explicitly mapped                   -> (target field, transform)
  4. otherwise                           -> same name, no transform

Conflicting configuration (a field both mapped and ignored) is accepted;
step 1 settles it when patching.
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional, Set, Tuple

from delta_object.models.mapping import FieldMapping

logger = logging.getLogger(__name__)


def _fold(name: str) -> str:
    return name.casefold()


class MappingPolicy:
    """
    Per (source type, target type) rules. Builder methods return the policy.

    Mutation is serialized; configure before patching; readers are not
    blocked and may observe a half-applied configuration change.
    """

    def __init__(self, source_type: type, target_type: type):
        self.source_type = source_type
        self.target_type = target_type
        self._ignored: Set[str] = set()
        self._mapped: Dict[str, FieldMapping] = {}
        self._ignore_non_mapped = False
        self._lock = threading.Lock()

    @property
    def ignored(self) -> Set[str]:
        return set(self._ignored)

    @property
    def mapped(self) -> Dict[str, FieldMapping]:
        return dict(self._mapped)

    @property
    def ignore_non_mapped(self) -> bool:
        return self._ignore_non_mapped

    def map_field(
        self,
        source_field: str,
        target_field: str,
        transform: Optional[Callable[[Any], Any]] = None,
    ) -> "MappingPolicy":
        """Route source_field to target_field, replacing any earlier mapping for it."""
        with self._lock:
            self._mapped[_fold(source_field)] = FieldMapping(
                target_field=target_field, transform=transform
            )
        return self

    def ignore_field(self, source_field: str) -> "MappingPolicy":
        """Never write source_field. Idempotent."""
        with self._lock:
            self._ignored.add(_fold(source_field))
        return self

    def ignore_unmapped(self) -> "MappingPolicy":
        """Drop every source field without an explicit mapping."""
        with self._lock:
            self._ignore_non_mapped = True
        return self

    def resolve(self, source_field: str) -> Optional[FieldMapping]:
        """Target field and transform for source_field, or None if it is dropped."""
        key = _fold(source_field)
        if key in self._ignored:
            return None
        mapping = self._mapped.get(key)
        if mapping is None:
            if self._ignore_non_mapped:
                return None
            return FieldMapping(target_field=source_field)
        return mapping

    def __repr__(self) -> str:
        return (
            f"MappingPolicy({self.source_type.__name__} -> {self.target_type.__name__}, "
            f"mapped={sorted(self._mapped)}, ignored={sorted(self._ignored)}, "
            f"ignore_non_mapped={self._ignore_non_mapped})"
        )


class MappingRegistry:
    """
    Shared MappingPolicy instances keyed by (source type, target type).

    get() creates a policy on first request and hands every later caller the
    same instance. All operations are total.
    """

    def __init__(self):
        self._policies: Dict[Tuple[type, type], MappingPolicy] = {}
        self._lock = threading.Lock()

    def get(self, source_type: type, target_type: type) -> MappingPolicy:
        key = (source_type, target_type)
        policy = self._policies.get(key)
        if policy is not None:
            return policy
        with self._lock:
            policy = self._policies.get(key)
            if policy is None:
                policy = MappingPolicy(source_type, target_type)
                self._policies[key] = policy
                logger.debug(
                    "Created mapping policy %s -> %s",
                    source_type.__name__, target_type.__name__,
                )
        return policy

    def find(self, source_type: type, target_type: type) -> Optional[MappingPolicy]:
        """Existing policy for the pair, without creating one."""
        return self._policies.get((source_type, target_type))

    def remove(self, source_type: type, target_type: type) -> None:
        with self._lock:
            self._policies.pop((source_type, target_type), None)

    def clear_all(self) -> None:
        with self._lock:
            self._policies.clear()

    def __contains__(self, pair: object) -> bool:
        return pair in self._policies

    def __len__(self) -> int:
        return len(self._policies)


mapping_registry = MappingRegistry()
