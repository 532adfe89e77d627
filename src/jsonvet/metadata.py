"""Per-node type-specific configuration payload."""

from __future__ import annotations

import copy
import math
from enum import Enum
from typing import TYPE_CHECKING, Any

from jsonvet.errors import ErrorDetail

if TYPE_CHECKING:
    from jsonvet.models import Node


class NodeKind(str, Enum):
    """Discriminant of a node. Each kind has exactly one validation algorithm."""

    NONE = "none"
    RAW = "raw"
    BOOL = "bool"
    NUM = "num"
    STR = "str"
    LITERAL = "literal"
    ENUM = "enum"
    OBJ = "obj"
    ARR = "arr"
    TUPLE = "tuple"
    UNION = "union"
    CUSTOM = "custom"
    PIPE = "pipe"


# Kinds whose expected_type is an ordered list of child nodes
NESTING_KINDS = frozenset({NodeKind.OBJ, NodeKind.TUPLE, NodeKind.UNION, NodeKind.PIPE})
# Kinds that support min/max/exclusive
RANGE_KINDS = frozenset({NodeKind.NUM, NodeKind.STR, NodeKind.ARR})


def literal_key(value: Any) -> tuple[str, Any] | None:
    """Key under which a JSON primitive is stored in an enum set.

    Booleans never collide with numbers, while ``1`` and ``1.0`` share a key.
    Returns None for values that are not finite JSON primitives.
    """
    if value is None:
        return ("null", None)
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return ("num", value)
    if isinstance(value, str):
        return ("str", value)
    return None


class Metadata:
    """Type-specific configuration of a node.

    The owner never mutates a published instance; modifiers call ``copy()``
    and change the copy. ``expected_type`` depends on the kind:

    - none/raw/bool: None
    - num: True for integers only, False otherwise
    - str: list of compiled regex alternatives, or None
    - literal: the expected primitive
    - enum: set of ``literal_key()`` keys
    - obj/tuple/union/pipe: list of child nodes
    - arr: matcher node (a union) or None
    - custom: the user callable
    """

    def __init__(self, kind: NodeKind, expected_type: Any = None) -> None:
        self._kind = kind
        self.expected_type = expected_type
        self.min: float | None = None
        self.max: float | None = None
        self.exclusive = False
        # Configuration errors, consumed by get_errors()
        self._errors: list[ErrorDetail] | None = None

    @property
    def kind(self) -> NodeKind:
        return self._kind

    def add_config_error(self, *details: ErrorDetail) -> None:
        """Record configuration errors, skipping ones already recorded."""
        if self._errors is None:
            self._errors = []
        for detail in details:
            if not any(item is detail for item in self._errors):
                self._errors.append(detail)

    def get_errors(self) -> list[ErrorDetail] | None:
        """Return recorded configuration errors and clear them."""
        errors = self._errors
        self._errors = None
        return errors or None

    def get_child_nodes(self) -> list[Node]:
        """Shallow copy of the contained nodes for nesting kinds, else []."""
        if self._kind in NESTING_KINDS:
            return list(self.expected_type)
        return []

    def copy(self) -> Metadata:
        """Copy for modifiers.

        Child node lists are shallow-copied (nodes are immutable), sets and
        regex lists are rebuilt, everything else is shared.
        """
        meta = type(self).__new__(type(self))
        meta.__dict__.update(self.__dict__)
        meta._errors = copy.copy(self._errors)
        expected = self.expected_type
        if isinstance(expected, set):
            meta.expected_type = set(expected)
        elif isinstance(expected, list):
            meta.expected_type = list(expected)
        return meta
