"""
Accessor resolution — which field does `lambda c: c.email` read?

An accessor is either a field name or a one-argument callable. Callables are
run against a recorder that remembers attribute reads, so nothing about the
entity itself is touched. The result must be exactly one attribute read off
the argument; computed expressions, chained reads and constants are rejected.
"""

from typing import Any, Callable, Tuple, Union

from delta_object.errors import InvalidAccessorError

Accessor = Union[str, Callable[[Any], Any]]


class _AttributeRecorder:
    """Stand-in entity that records the attribute path read from it."""

    __slots__ = ("_path",)

    def __init__(self, path: Tuple[str, ...] = ()):
        object.__setattr__(self, "_path", path)

    def __getattr__(self, name: str) -> "_AttributeRecorder":
        if name.startswith("__"):
            raise AttributeError(name)
        return _AttributeRecorder(self._path + (name,))

    def __setattr__(self, name: str, value: Any) -> None:
        raise InvalidAccessorError(f"Accessor assigns to '{name}' instead of reading it")

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        raise InvalidAccessorError(
            f"Accessor calls '{'.'.join(self._path)}' instead of reading a field"
        )

    def _computed(self, *args: Any) -> Any:
        raise InvalidAccessorError(
            f"Accessor computes with '{'.'.join(self._path) or '<entity>'}' instead of reading a field"
        )

    # Conditionals, indexing and unpacking are computations, not reads
    __bool__ = _computed
    __index__ = _computed
    __iter__ = _computed
    __len__ = _computed


def field_name(accessor: Accessor) -> str:
    """Name of the single field an accessor denotes."""
    if isinstance(accessor, str):
        if not accessor:
            raise InvalidAccessorError("Field name must not be empty")
        return accessor
    if not callable(accessor):
        raise InvalidAccessorError(f"Not a field accessor: {accessor!r}")

    try:
        result = accessor(_AttributeRecorder())
    except InvalidAccessorError:
        raise
    except (TypeError, AttributeError, ArithmeticError, LookupError, ValueError) as e:
        raise InvalidAccessorError(
            f"Accessor is not a direct field read: {e}"
        ) from e

    if not isinstance(result, _AttributeRecorder):
        raise InvalidAccessorError(
            f"Accessor is not a direct field read, it returned {result!r}"
        )
    path = object.__getattribute__(result, "_path")
    if len(path) != 1:
        raise InvalidAccessorError(
            f"Accessor must read exactly one field, got '{'.'.join(path) or '<entity>'}'"
        )
    return path[0]
