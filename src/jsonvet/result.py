"""Shared value types for the validation engine.

Provides the constants used when rendering property paths, the ``Some``
wrapper used for optional defaults, and the result types returned by nodes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, NamedTuple, TypeVar, Union

if TYPE_CHECKING:
    from jsonvet.errors import ErrorDetail

T = TypeVar("T")

JsonPrimitive = Union[None, bool, int, float, str]
JsonLike = Any

# Name of an unnamed root node in property paths
ROOT_NAME = "<root>"
UNKNOWN_PROPERTY_NAME = "<unknown_property_name>"
UNKNOWN_VALUE = "<unknown_value>"

# None is the root, int is an array/tuple index, str is an object property
PropertyName = Union[None, int, str]

# Marks an omitted default argument, None being a valid default
MISSING: Any = object()


@dataclass(frozen=True)
class Some(Generic[T]):
    """A present value, including a present ``None``.

    Attributes:
        value: The wrapped value.
    """

    value: T


class Outcome(NamedTuple):
    """Intermediate result of a single node while walking the tree."""

    ok: bool
    value: Any


@dataclass
class Result(Generic[T]):
    """Result of ``Node.validate()``.

    Attributes:
        ok: True if the value was accepted.
        value: The validated (possibly transformed) value, None on failure.
        error: Error detail, always present when ``ok`` is False.
        warning: Combined warnings, only present when ``ok`` is True.
    """

    ok: bool
    value: T | None
    error: ErrorDetail | None = None
    warning: ErrorDetail | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        result: dict[str, Any] = {"ok": self.ok, "value": self.value}
        if self.error is not None:
            result["error"] = self.error.to_dict()
        if self.warning is not None:
            result["warning"] = self.warning.to_dict()
        return result


def property_name_to_string(key: Any) -> str:
    """Render a single path segment.

    ``None`` is the root, strings are kept as is and non-negative integers
    become ``[i]``. Anything else is reported as an unknown property name.
    """
    if key is None:
        return ROOT_NAME
    if isinstance(key, str):
        return key
    if isinstance(key, int) and not isinstance(key, bool) and key >= 0:
        return f"[{key}]"
    return UNKNOWN_PROPERTY_NAME


def property_path_to_string(path: Any) -> str:
    """Render a list of path segments as ``<root>.items.[0]``."""
    if not isinstance(path, (list, tuple)):
        return UNKNOWN_PROPERTY_NAME
    return ".".join(property_name_to_string(name) for name in path)
