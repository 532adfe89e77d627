"""Builder that turns Python literals into schema nodes.

Example:
    >>> from jsonvet import Factory
    >>> v = Factory()
    >>> user = v.obj({"id": v.positive(), "name": "", "tags": [v.enum("a", "b")]})
    >>> user.validate({"id": 1, "name": "x", "tags": ["a"]}).ok
    True

Shorthand: ``None`` is the null literal, a bool/number/string stands for its
type, a compiled regex for a matching string, a callable for a custom
validator, a list for an array whose items match any of the elements and a
dict for an object.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from jsonvet.config import Config
from jsonvet.errors import ConfigureError, ErrorDetail, configure_error, value_to_string
from jsonvet.metadata import Metadata, NodeKind, literal_key
from jsonvet.models import (
    ArrNode,
    BoolNode,
    CustomNode,
    CustomValidator,
    EnumNode,
    LiteralNode,
    Node,
    NoneNode,
    NumNode,
    ObjNode,
    PipeNode,
    RawNode,
    StrNode,
    TupleNode,
    UnionNode,
    is_number,
)
from jsonvet.patterns import RegexCache
from jsonvet.result import MISSING, PropertyName, Some
from jsonvet.settings import Settings


class RootFactory:
    """Builds nodes sharing one ``Config`` and one regex cache."""

    def __init__(
        self,
        config: Config | None = None,
        regex_cache: RegexCache | None = None,
        **options: Any,
    ) -> None:
        """Create a factory.

        Args:
            config: Global policy. Defaults to ``Config()``.
            regex_cache: Cache shared with derived scopes.
            **options: Config fields overriding ``config``.

        Raises:
            ValueError: If an option is unknown or invalid.
        """
        base = config if config is not None else Config()
        self._config = base.extend(**options) if options else base
        self._default_settings = Settings.from_config(self._config)
        self._regex_cache = regex_cache if regex_cache is not None else RegexCache()

    @property
    def config(self) -> Config:
        return self._config

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _error(self, name: PropertyName, message: str) -> ErrorDetail:
        detail = configure_error(name, message)
        if self._config.throw_if_configure_error:
            raise ConfigureError(detail)
        return detail

    def _placeholder(self, name: PropertyName, message: str) -> NoneNode:
        """Node returned in place of a declaration that could not be built."""
        meta = Metadata(NodeKind.NONE)
        meta.add_config_error(self._error(name, message))
        return NoneNode(self._config, meta, self._default_settings, name)

    def _settings_for(self, default: Any) -> Settings:
        if default is MISSING:
            return self._default_settings
        return self._default_settings.extend(optional=True, default=Some(default))

    def _num(self, name: PropertyName, meta: Metadata, default: Any = MISSING) -> NumNode:
        return NumNode(self._config, meta, self._settings_for(default), name)

    def _re(self, name: PropertyName, patterns: tuple[Any, ...]) -> Node:
        compiled: list[re.Pattern[str]] = []
        errors: list[ErrorDetail] = []
        for pattern in patterns:
            if isinstance(pattern, (str, re.Pattern)) and not isinstance(getattr(pattern, "pattern", ""), bytes):
                try:
                    item = self._regex_cache.get(pattern)
                except re.error as e:
                    errors.append(self._error(name, f"Invalid pattern {pattern!r}: {e}."))
                    continue
                if not any(existing is item for existing in compiled):
                    compiled.append(item)
            else:
                errors.append(self._error(name, f"Invalid pattern type: {value_to_string(pattern)}."))
        if not compiled:
            node = self._placeholder(name, "re() requires at least one pattern.")
            node.metadata.add_config_error(*errors)
            return node
        meta = Metadata(NodeKind.STR, compiled)
        if errors:
            meta.add_config_error(*errors)
        return StrNode(self._config, meta, self._default_settings, name)

    def _obj(self, name: PropertyName, value: Any) -> Node:
        if not isinstance(value, Mapping):
            return self._placeholder(name, f"obj() expects a mapping, got {value_to_string(value)}.")
        meta = Metadata(NodeKind.OBJ, [])
        for key, item in value.items():
            if not isinstance(key, str):
                meta.add_config_error(self._error(name, f"Object keys must be strings, got {key!r}."))
                continue
            meta.expected_type.append(self._node_of(key, item))
        return ObjNode(self._config, meta, self._default_settings, name)

    def _arr(self, name: PropertyName, values: Any) -> Node:
        if not isinstance(values, (list, tuple)):
            return self._placeholder(name, f"arr() expects a list, got {value_to_string(values)}.")
        matcher: Node | None = None
        if len(values) == 1 and isinstance(values[0], UnionNode):
            matcher = values[0]._with_key(0)
        elif values:
            # Indexes only name the alternatives, they are not validated
            children = [self._node_of(index, item) for index, item in enumerate(values)]
            matcher = UnionNode(self._config, Metadata(NodeKind.UNION, children), self._default_settings, 0)
        return ArrNode(self._config, Metadata(NodeKind.ARR, matcher), self._default_settings, name)

    def _custom(self, name: PropertyName, fn: Any) -> Node:
        if not callable(fn):
            return self._placeholder(name, f"custom() expects a callable, got {value_to_string(fn)}.")
        return CustomNode(self._config, Metadata(NodeKind.CUSTOM, fn), self._default_settings, name)

    def _node_of(self, name: PropertyName, value: Any) -> Node:
        if isinstance(value, Node):
            return value._with_key(name)
        if isinstance(value, re.Pattern):
            return self._re(name, (value,))
        if value is None:
            return LiteralNode(self._config, Metadata(NodeKind.LITERAL, None), self._default_settings, name)
        if isinstance(value, bool):
            return BoolNode(self._config, Metadata(NodeKind.BOOL), self._default_settings, name)
        if isinstance(value, (int, float)):
            return self._num(name, Metadata(NodeKind.NUM, False))
        if isinstance(value, str):
            return StrNode(self._config, Metadata(NodeKind.STR), self._default_settings, name)
        if callable(value):
            return self._custom(name, value)
        if isinstance(value, list):
            return self._arr(name, value)
        if isinstance(value, Mapping):
            return self._obj(name, value)
        return self._placeholder(name, f"Unsupported schema value: {value_to_string(value)}.")

    # -------------------------------------------------------------------------
    # Builders
    # -------------------------------------------------------------------------

    def of(self, value: Any) -> Node:
        """Compile any shorthand (or an existing node) into a root node."""
        return self._node_of(None, value)

    def raw(self) -> RawNode:
        """Accept any value unchanged."""
        return RawNode(self._config, Metadata(NodeKind.RAW), self._default_settings, None)

    def null(self) -> LiteralNode:
        return LiteralNode(self._config, Metadata(NodeKind.LITERAL, None), self._default_settings, None)

    def bool(self, default: Any = MISSING) -> BoolNode:
        """A boolean. A given ``default`` makes the node optional."""
        return BoolNode(self._config, Metadata(NodeKind.BOOL), self._settings_for(default), None)

    def num(self, default: Any = MISSING) -> NumNode:
        """Any finite number (booleans are not numbers)."""
        return self._num(None, Metadata(NodeKind.NUM, False), default)

    def int(self, default: Any = MISSING) -> NumNode:
        return self._num(None, Metadata(NodeKind.NUM, True), default)

    def nonnegative(self, default: Any = MISSING) -> NumNode:
        """Number >= 0."""
        meta = Metadata(NodeKind.NUM, False)
        meta.min = 0
        return self._num(None, meta, default)

    def positive(self, default: Any = MISSING) -> NumNode:
        """Integer >= 1, e.g. for ids."""
        meta = Metadata(NodeKind.NUM, True)
        meta.min = 1
        return self._num(None, meta, default)

    def range(self, min: Any, max: Any, exclusive: bool | None = None, default: Any = MISSING) -> Node:
        """Number within ``[min, max]`` (or ``(min, max)`` when exclusive)."""
        if not is_number(min) or not is_number(max) or max < min:
            return self._placeholder(
                None, f"Invalid arguments range(min={value_to_string(min)}, max={value_to_string(max)})."
            )
        meta = Metadata(NodeKind.NUM, False)
        meta.min = min
        meta.max = max
        meta.exclusive = bool(exclusive)
        return self._num(None, meta, default)

    def str(self, default: Any = MISSING) -> StrNode:
        return StrNode(self._config, Metadata(NodeKind.STR), self._settings_for(default), None)

    def nonempty(self, default: Any = MISSING) -> StrNode:
        """String of at least one character."""
        meta = Metadata(NodeKind.STR)
        meta.min = 1
        return StrNode(self._config, meta, self._settings_for(default), None)

    def re(self, pattern: Any, *patterns: Any) -> Node:
        """String matching at least one of the patterns (``re.search``).

        Args:
            pattern: Compiled pattern or pattern source.
            *patterns: Further alternatives.
        """
        return self._re(None, (pattern, *patterns))

    def literal(self, value: Any) -> Node:
        """Exactly ``value``, which must be a JSON primitive."""
        if literal_key(value) is None:
            return self._placeholder(None, f"Invalid arguments literal(value={value_to_string(value)}).")
        return LiteralNode(self._config, Metadata(NodeKind.LITERAL, value), self._default_settings, None)

    def enum(self, *values: Any) -> Node:
        """One of several primitives.

        Primitives, literal nodes and enum nodes are merged into one set.
        """
        keys: set[tuple[str, Any]] = set()
        errors: list[ErrorDetail] = []
        for item in values:
            if isinstance(item, LiteralNode):
                keys.add(literal_key(item.metadata.expected_type))
            elif isinstance(item, EnumNode):
                keys.update(item.metadata.expected_type)
            else:
                key = literal_key(item)
                if key is None:
                    errors.append(self._error(None, f"Invalid enum value: {value_to_string(item)}."))
                else:
                    keys.add(key)
        if not keys:
            node = self._placeholder(None, "enum() requires at least one value.")
            node.metadata.add_config_error(*errors)
            return node
        meta = Metadata(NodeKind.ENUM, keys)
        if errors:
            meta.add_config_error(*errors)
        return EnumNode(self._config, meta, self._default_settings, None)

    def obj(self, value: Mapping[str, Any]) -> Node:
        """Object with the declared properties. Undeclared ones are dropped."""
        return self._obj(None, value)

    def arr(self, values: list[Any] | None = None) -> Node:
        """Array whose items match any element of ``values``.

        An empty or missing ``values`` accepts any items.
        """
        return self._arr(None, [] if values is None else values)

    def tuple(self, values: list[Any]) -> Node:
        """Array of fixed length, validated position by position."""
        if not isinstance(values, (list, tuple)) or not values:
            return self._placeholder(None, f"tuple() expects a non-empty list, got {value_to_string(values)}.")
        children = [self._node_of(index, item) for index, item in enumerate(values)]
        return TupleNode(self._config, Metadata(NodeKind.TUPLE, children), self._default_settings, None)

    def union(self, *values: Any) -> Node:
        """First matching alternative wins, in declaration order."""
        if not values:
            return self._placeholder(None, "union() requires at least one alternative.")
        if len(values) == 1 and isinstance(values[0], UnionNode):
            return values[0]._with_key(None)
        children = [self._node_of(index, item) for index, item in enumerate(values)]
        return UnionNode(self._config, Metadata(NodeKind.UNION, children), self._default_settings, None)

    def custom(self, fn: CustomValidator) -> Node:
        """Validate with ``fn(path, value)`` returning a ``Result`` or a mapping."""
        return self._custom(None, fn)

    def pipe(self, first: Any, *rest: Any) -> PipeNode:
        """Chain validators; each stage receives the previous stage's output."""
        return self.of(first).pipe(*(self.of(item) for item in rest))


class Factory(RootFactory):
    """Entry point of the library. Can derive named scopes."""

    def __init__(self, config: Config | None = None, **options: Any) -> None:
        super().__init__(config, None, **options)
        self._scope_names: set[str] = set()

    def _unique_scope_name(self, name: str) -> str:
        candidate = name
        counter = 0
        while candidate in self._scope_names:
            counter += 1
            candidate = f"{name}({counter})"
        self._scope_names.add(candidate)
        return candidate

    def scope(self, name: str, **options: Any) -> RootFactory:
        """Derive a builder with a named scope and extended config.

        Args:
            name: Scope name. Repeated names get a ``(n)`` suffix.
            **options: Config fields overriding this factory's config.

        Returns:
            A RootFactory sharing this factory's regex cache.
        """
        if not isinstance(name, str):
            name = ""
        config = self._config.extend(scope_name=self._unique_scope_name(name), **options)
        return RootFactory(config, self._regex_cache)
