"""Schema nodes and their validation algorithms.

A node is immutable once published. Modifiers never touch the receiver's
``Metadata`` or ``Settings``: they return a new node owning a fresh copy of
whatever changed and sharing everything else by reference.

All per-kind algorithms live in ``Node._validate``, which dispatches on the
``NodeKind`` carried by the metadata. Subclasses only add the modifiers that
make sense for their kind.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from typing import Any

from jsonvet.config import Config
from jsonvet.context import Context
from jsonvet.errors import (
    ConfigureError,
    ErrorDetail,
    ErrorKind,
    JsonVetError,
    ModelFrozenError,
    UnknownError,
    combined_error,
    configure_error,
    ensure_error_detail,
    faulty_value_error,
    message_from_exception,
    model_frozen_error,
    unknown_error,
    value_to_string,
)
from jsonvet.metadata import Metadata, NodeKind, literal_key
from jsonvet.result import MISSING, Outcome, PropertyName, Result, Some, property_path_to_string
from jsonvet.settings import Settings

logger = logging.getLogger(__name__)

# Signature of a custom validator: (path, value) -> Result or mapping
CustomValidator = Callable[[list[PropertyName], Any], Any]


def is_number(value: Any) -> bool:
    """True for finite int/float values, False for bool."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and not math.isfinite(value))


def _is_integer(value: Any) -> bool:
    return is_number(value) and (isinstance(value, int) or value.is_integer())


class Node:
    """A validator for one position of a schema.

    Nodes are built by ``jsonvet.factory.Factory`` and can be reused and
    shared between threads without limit.
    """

    def __init__(
        self,
        config: Config,
        meta: Metadata,
        settings: Settings,
        key: PropertyName = None,
    ) -> None:
        self._config = config
        self._meta = meta
        self._settings = settings
        self._key = key

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self._key!r})"

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def key(self) -> PropertyName:
        """Property name, array index, or None for a root node."""
        return self._key

    @property
    def kind(self) -> NodeKind:
        return self._meta.kind

    @property
    def config(self) -> Config:
        return self._config

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def metadata(self) -> Metadata:
        return self._meta

    @property
    def scope_name(self) -> str | None:
        """Name of the factory scope the node was built in."""
        return self._config.scope_name

    def is_frozen(self) -> bool:
        return self._settings.frozen

    def get_configure_error(self) -> ErrorDetail | None:
        """Collect and consume configuration errors of the whole subtree.

        Returns:
            A CombinedError detail whose entries carry the path of the node
            that recorded them, or None when the schema is clean.
        """
        errors: list[ErrorDetail] = []
        self._collect_configure_errors([], errors)
        if not errors:
            return None
        return combined_error("error", errors, message=f"Schema has {len(errors)} configuration error(s).")

    def _collect_configure_errors(self, path: list[PropertyName], errors: list[ErrorDetail]) -> None:
        path = [*path, self._key]
        details = self._meta.get_errors()
        if details:
            path_str = property_path_to_string(path)
            for detail in details:
                detail.property_path = path_str
                errors.append(detail)
        for child in self._child_nodes():
            child._collect_configure_errors(path, errors)

    def _child_nodes(self) -> list[Node]:
        children = self._meta.get_child_nodes()
        if self._meta.kind is NodeKind.ARR and self._meta.expected_type is not None:
            children.append(self._meta.expected_type)
        return children

    # -------------------------------------------------------------------------
    # Copy-on-write helpers
    # -------------------------------------------------------------------------

    def _copy_with(
        self,
        config: Config | None = None,
        meta: Metadata | None = None,
        settings: Settings | None = None,
    ) -> Node:
        return type(self)(
            self._config if config is None else config,
            self._meta if meta is None else meta,
            self._settings if settings is None else settings,
            self._key,
        )

    def _with_key(self, key: PropertyName) -> Node:
        """Same node under another property name, sharing all state."""
        return type(self)(self._config, self._meta, self._settings, key)

    def _frozen_copy(self) -> Node | None:
        """Handle a modification attempt on a frozen node.

        Returns None when the node is not frozen. Otherwise raises
        ``ModelFrozenError`` or returns an unfrozen copy carrying the error.
        """
        if not self._settings.frozen:
            return None
        detail = model_frozen_error(self._key)
        if self._config.throw_if_configure_error:
            raise ModelFrozenError(detail)
        meta = self._meta.copy()
        meta.add_config_error(detail)
        return self._copy_with(meta=meta, settings=self._settings.unfreeze())

    def _configure_error(self, message: str) -> Node:
        """Raise ``ConfigureError`` or return a copy carrying the error."""
        detail = configure_error(self._key, message)
        if self._config.throw_if_configure_error:
            raise ConfigureError(detail)
        meta = self._meta.copy()
        meta.add_config_error(detail)
        return self._copy_with(meta=meta)

    # -------------------------------------------------------------------------
    # Modifiers
    # -------------------------------------------------------------------------

    def optional(self, default: Any = MISSING) -> Node:
        """Allow the property to be absent, optionally with a default."""
        settings = self._settings
        if settings.optional and (default is MISSING or settings.is_equal_default(default)):
            return self
        frozen = self._frozen_copy()
        if frozen is not None:
            return frozen
        return self._copy_with(
            settings=settings.extend(optional=True, default=None if default is MISSING else Some(default))
        )

    def with_default(self, default: Any) -> Node:
        """Set or replace the default value."""
        if self._settings.is_equal_default(default):
            return self
        frozen = self._frozen_copy()
        if frozen is not None:
            return frozen
        return self._copy_with(settings=self._settings.extend(default=Some(default)))

    def stop_on_error(self) -> Node:
        """Resolve failures of this node to its default and report them as warnings."""
        if self._settings.stop_on_error:
            return self
        frozen = self._frozen_copy()
        if frozen is not None:
            return frozen
        return self._copy_with(settings=self._settings.extend(stop_on_error=True))

    def freeze(self, name: str | None = None) -> Node:
        """Forbid further modification.

        Args:
            name: Optional model name reported on errors raised inside this node.
        """
        if self._settings.frozen and self._settings.frozen_name == name:
            return self
        return self._copy_with(settings=self._settings.freeze(name))

    def unfreeze(self) -> Node:
        if not self._settings.frozen:
            return self
        return self._copy_with(settings=self._settings.unfreeze())

    def copy(self) -> Node:
        """Unfrozen copy owning its own metadata."""
        return self._copy_with(meta=self._meta.copy(), settings=self._settings.unfreeze())

    def pipe(self, *nodes: Node) -> PipeNode:
        """Chain this node with ``nodes``; each stage gets the previous output."""
        meta = Metadata(NodeKind.PIPE, [self._with_key(None)])
        for node in nodes:
            if isinstance(node, Node):
                meta.expected_type.append(node._with_key(None))
                continue
            detail = configure_error(self._key, f"pipe() expects nodes, got {value_to_string(node)}.")
            if self._config.throw_if_configure_error:
                raise ConfigureError(detail)
            meta.add_config_error(detail)
        return PipeNode(self._config, meta, self._settings.extend(), self._key)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self, value: Any) -> Result[Any]:
        """Validate and transform ``value``.

        Returns:
            Result with ``ok=True`` and the produced value, or ``ok=False``
            and an error detail.

        Raises:
            JsonVetError: If ``throw_if_error`` is set and the failure was
                not suppressed by a stop-on-error node.
        """
        ctx = Context(self._config, self._settings)
        ctx.enter_key(self._key)
        try:
            return ctx.return_result(self._run(ctx, value))
        except Exception as e:
            if isinstance(e, JsonVetError):
                if ctx.is_throw_enabled():
                    raise
                detail = e.detail
            else:
                logger.debug("Unexpected exception during validation", exc_info=True)
                detail = unknown_error(ctx.get_path_str(), message_from_exception(e), e)
                if ctx.is_throw_enabled():
                    ctx.attach_errors(detail)
                    raise UnknownError(detail) from e
            ctx.add_error(detail)
            return ctx.return_result(Outcome(False, None))

    def _run(self, ctx: Context, value: Any) -> Outcome:
        with ctx.enter_model(self._settings):
            return self._validate(ctx, value)

    def _validate(self, ctx: Context, value: Any) -> Outcome:
        kind = self._meta.kind
        match kind:
            case NodeKind.NONE:
                return ctx.not_configured(value)
            case NodeKind.RAW:
                return Outcome(True, value)
            case NodeKind.BOOL:
                if isinstance(value, bool):
                    return Outcome(True, value)
                return ctx.faulty_value(value, "Expected a boolean.")
            case NodeKind.NUM:
                return self._validate_num(ctx, value)
            case NodeKind.STR:
                return self._validate_str(ctx, value)
            case NodeKind.LITERAL:
                if literal_key(value) == literal_key(self._meta.expected_type):
                    return Outcome(True, value)
                return ctx.faulty_value(value, f"Expected {value_to_string(self._meta.expected_type)}.")
            case NodeKind.ENUM:
                key = literal_key(value)
                if key is not None and key in self._meta.expected_type:
                    return Outcome(True, value)
                return ctx.faulty_value(value, "Value is not one of the allowed values.")
            case NodeKind.OBJ:
                return self._validate_obj(ctx, value)
            case NodeKind.ARR:
                return self._validate_arr(ctx, value)
            case NodeKind.TUPLE:
                return self._validate_tuple(ctx, value)
            case NodeKind.UNION:
                return self._validate_union(ctx, value)
            case NodeKind.CUSTOM:
                return self._validate_custom(ctx, value)
            case NodeKind.PIPE:
                return self._validate_pipe(ctx, value)
            case _:
                raise TypeError(f"Unhandled node kind: {kind!r}")

    def _check_range(self, ctx: Context, measured: float, value: Any, subject: str) -> Outcome | None:
        """Check ``measured`` against min/max. Returns the failure outcome, or None."""
        meta = self._meta
        if meta.min is not None and (measured <= meta.min if meta.exclusive else measured < meta.min):
            return ctx.faulty_value(value, f"{subject} {measured} is out of range, min: {meta.min}.")
        if meta.max is not None and (measured >= meta.max if meta.exclusive else measured > meta.max):
            return ctx.faulty_value(value, f"{subject} {measured} is out of range, max: {meta.max}.")
        return None

    def _validate_num(self, ctx: Context, value: Any) -> Outcome:
        if self._meta.expected_type:
            if not _is_integer(value):
                return ctx.faulty_value(value, "Expected an integer.")
        elif not is_number(value):
            return ctx.faulty_value(value, "Expected a number.")
        failure = self._check_range(ctx, value, value, "Value")
        if failure is not None:
            return failure
        return Outcome(True, value)

    def _validate_str(self, ctx: Context, value: Any) -> Outcome:
        if not isinstance(value, str):
            return ctx.faulty_value(value, "Expected a string.")
        failure = self._check_range(ctx, len(value), value, "String length")
        if failure is not None:
            return failure
        patterns = self._meta.expected_type
        if not patterns or any(pattern.search(value) for pattern in patterns):
            return Outcome(True, value)
        return ctx.faulty_value(value, "String does not match any of the patterns.")

    def _validate_obj(self, ctx: Context, value: Any) -> Outcome:
        if not isinstance(value, dict):
            return ctx.faulty_value(value, "Expected an object.")
        target = {} if self._config.copy_objects else value
        for child in self._meta.expected_type:
            key = child.key
            with ctx.enter_key(key):
                if key in value:
                    item = value[key]
                    outcome = child._run(ctx, item)
                    if not outcome.ok:
                        return ctx.faulty_value(item, "Invalid object property.")
                    target[key] = outcome.value
                elif child.settings.optional:
                    if child.settings.has_default():
                        target[key] = child.settings.get_default()
                else:
                    return ctx.required_property(key)
        return Outcome(True, target)

    def _store_items(self, source: list[Any], items: list[Any]) -> list[Any]:
        if self._config.copy_arrays:
            return items
        source[:] = items
        return source

    def _validate_arr(self, ctx: Context, value: Any) -> Outcome:
        if not isinstance(value, list):
            return ctx.faulty_value(value, "Expected an array.")
        failure = self._check_range(ctx, len(value), value, "Array length")
        if failure is not None:
            return failure

        matcher: Node | None = self._meta.expected_type
        if matcher is None:
            return Outcome(True, list(value) if self._config.copy_arrays else value)

        # stop-on-error wins over remove-faulty
        if self._settings.remove_faulty and not self._settings.stop_on_error:
            return self._validate_arr_filtered(ctx, value, matcher)

        items: list[Any] = []
        for index, item in enumerate(value):
            with ctx.enter_key(index):
                outcome = matcher._run(ctx, item)
                if not outcome.ok:
                    return ctx.faulty_value(item, "Invalid array item.")
            items.append(outcome.value)
        return Outcome(True, self._store_items(value, items))

    def _validate_arr_filtered(self, ctx: Context, value: list[Any], matcher: Node) -> Outcome:
        items: list[Any] = []
        with ctx.only_warnings():
            for index, item in enumerate(value):
                with ctx.enter_key(index):
                    with ctx.type_matching():
                        outcome = matcher._run(ctx, item)
                    if outcome.ok:
                        items.append(outcome.value)
                    else:
                        ctx.dropped_item(item, index)
        failure = self._check_range(ctx, len(items), items, "Filtered array length")
        if failure is not None:
            return failure
        return Outcome(True, self._store_items(value, items))

    def _validate_tuple(self, ctx: Context, value: Any) -> Outcome:
        if not isinstance(value, list):
            return ctx.faulty_value(value, "Expected an array (tuple).")
        children: list[Node] = self._meta.expected_type
        if len(children) != len(value):
            return ctx.faulty_value(value, f"Expected {len(children)} items, got {len(value)}.")
        items: list[Any] = []
        for index, (child, item) in enumerate(zip(children, value)):
            with ctx.enter_key(index):
                outcome = child._run(ctx, item)
                if not outcome.ok:
                    return ctx.faulty_value(item, "Invalid tuple item.")
            items.append(outcome.value)
        return Outcome(True, self._store_items(value, items))

    def _validate_union(self, ctx: Context, value: Any) -> Outcome:
        with ctx.type_matching():
            for child in self._meta.expected_type:
                outcome = child._run(ctx, value)
                if outcome.ok:
                    return outcome
        return ctx.faulty_value(value, "No alternative matched.")

    def _validate_pipe(self, ctx: Context, value: Any) -> Outcome:
        for stage in self._meta.expected_type:
            outcome = stage._run(ctx, value)
            if not outcome.ok:
                return ctx.faulty_value(value, "Pipe stage failed.")
            value = outcome.value
        return Outcome(True, value)

    def _validate_custom(self, ctx: Context, value: Any) -> Outcome:
        path = ctx.get_path_str()
        try:
            result = self._meta.expected_type(ctx.get_path(), value)
        except JsonVetError as e:
            return ctx.fail_with(e.detail)
        except Exception as e:
            logger.debug("Custom validator raised at %s", path, exc_info=True)
            return ctx.fail_with(unknown_error(path, message_from_exception(e), e))

        if isinstance(result, Result):
            ok, produced, error, warning = result.ok, result.value, result.error, result.warning
        elif isinstance(result, Mapping):
            ok = bool(result.get("ok"))
            produced = result.get("value")
            error = result.get("error")
            warning = result.get("warning", result.get("warnings"))
        else:
            return ctx.fail_with(
                unknown_error(path, f"Custom validator returned {type(result).__name__}, expected a result.")
            )

        for item in _as_list(warning):
            detail = ensure_error_detail(item, path)
            if detail.kind is ErrorKind.COMBINED and detail.warnings:
                for nested in detail.warnings:
                    ctx.add_warning(nested)
            else:
                ctx.add_warning(detail)

        if error is not None:
            return ctx.fail_with(ensure_error_detail(error, path))
        if not ok:
            return ctx.fail_with(faulty_value_error(path, value, "Custom validation failed."))
        return Outcome(True, produced)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


# -----------------------------------------------------------------------------
# Kinds
# -----------------------------------------------------------------------------


class NoneNode(Node):
    """Placeholder left by a failed schema declaration. Always fails."""


class RawNode(Node):
    """Accepts any value unchanged."""


class BoolNode(Node):
    pass


class LiteralNode(Node):
    pass


class EnumNode(Node):
    pass


class TupleNode(Node):
    pass


class UnionNode(Node):
    pass


class CustomNode(Node):
    pass


class PipeNode(Node):
    pass


class RangeNode(Node):
    """Node with a min/max range: a number's value, a string's or array's length."""

    def _has_length(self) -> bool:
        return self._meta.kind in (NodeKind.STR, NodeKind.ARR)

    def _bad_bound(self, bound: Any) -> bool:
        return not is_number(bound) or (self._has_length() and bound < 0)

    def _resolve_exclusive(self, exclusive: bool | None) -> bool:
        return exclusive if isinstance(exclusive, bool) else self._meta.exclusive

    def min(self, min: float, exclusive: bool | None = None) -> RangeNode:
        """Set the minimum value (num) or length (str, arr)."""
        meta = self._meta
        excl = self._resolve_exclusive(exclusive)
        if meta.min == min and meta.exclusive == excl:
            return self
        frozen = self._frozen_copy()
        if frozen is not None:
            return frozen
        if self._bad_bound(min) or (meta.max is not None and min > meta.max):
            return self._configure_error(f"Invalid arguments min(min={value_to_string(min)}).")
        copy = meta.copy()
        copy.min = min
        copy.exclusive = excl
        return self._copy_with(meta=copy)

    def max(self, max: float, exclusive: bool | None = None) -> RangeNode:
        """Set the maximum value (num) or length (str, arr)."""
        meta = self._meta
        excl = self._resolve_exclusive(exclusive)
        if meta.max == max and meta.exclusive == excl:
            return self
        frozen = self._frozen_copy()
        if frozen is not None:
            return frozen
        if self._bad_bound(max) or (meta.min is not None and max < meta.min):
            return self._configure_error(f"Invalid arguments max(max={value_to_string(max)}).")
        copy = meta.copy()
        copy.max = max
        copy.exclusive = excl
        return self._copy_with(meta=copy)

    def range(self, min: float, max: float, exclusive: bool | None = None) -> RangeNode:
        """Set both bounds at once."""
        meta = self._meta
        excl = self._resolve_exclusive(exclusive)
        if meta.min == min and meta.max == max and meta.exclusive == excl:
            return self
        frozen = self._frozen_copy()
        if frozen is not None:
            return frozen
        if self._bad_bound(min) or self._bad_bound(max) or max < min:
            return self._configure_error(
                f"Invalid arguments range(min={value_to_string(min)}, max={value_to_string(max)})."
            )
        copy = meta.copy()
        copy.min = min
        copy.max = max
        copy.exclusive = excl
        return self._copy_with(meta=copy)

    def _set_min_one(self) -> RangeNode:
        """min=1 inclusive with no max; numbers also become integers."""
        meta = self._meta
        is_num = meta.kind is NodeKind.NUM
        if meta.min == 1 and meta.max is None and not meta.exclusive and (not is_num or meta.expected_type):
            return self
        frozen = self._frozen_copy()
        if frozen is not None:
            return frozen
        copy = meta.copy()
        copy.min = 1
        copy.max = None
        copy.exclusive = False
        if is_num:
            copy.expected_type = True
        return self._copy_with(meta=copy)


class NumNode(RangeNode):
    def int(self) -> NumNode:
        """Accept integers only (``2.0`` counts as an integer)."""
        if self._meta.expected_type:
            return self
        frozen = self._frozen_copy()
        if frozen is not None:
            return frozen
        copy = self._meta.copy()
        copy.expected_type = True
        return self._copy_with(meta=copy)

    def positive(self) -> NumNode:
        """Integer >= 1, e.g. for ids."""
        return self._set_min_one()


class StrNode(RangeNode):
    def nonempty(self) -> StrNode:
        return self._set_min_one()


class ArrNode(RangeNode):
    def nonempty(self) -> ArrNode:
        return self._set_min_one()

    def remove_faulty(self) -> ArrNode:
        """Drop invalid items with a warning instead of failing the array."""
        if self._settings.remove_faulty:
            return self
        frozen = self._frozen_copy()
        if frozen is not None:
            return frozen
        return self._copy_with(settings=self._settings.extend(remove_faulty=True))


class ObjNode(Node):
    def decompose(self) -> dict[str, Node]:
        """Mapping of declared property names to their nodes."""
        return {child.key: child for child in self._meta.expected_type}
