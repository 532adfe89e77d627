"""Tests for schema nodes and their validation algorithms."""

from __future__ import annotations

import re
from typing import Any

import pytest

from jsonvet.errors import (
    ErrorKind,
    FaultyValueError,
    ModelFrozenError,
    RequiredPropertyError,
    UnknownError,
    faulty_value_result,
)
from jsonvet.factory import Factory
from jsonvet.result import Result


class TestPrimitives:
    """Tests for bool, num, str, literal and enum nodes."""

    def test_bool(self, v: Factory) -> None:
        """Test that only booleans pass."""
        node = v.bool()
        assert node.validate(True).ok
        assert not node.validate(1).ok

    def test_num_rejects_bool(self, v: Factory) -> None:
        """Test that booleans are not numbers."""
        node = v.num()
        assert node.validate(1.5).value == 1.5
        assert not node.validate(True).ok
        assert not node.validate("1").ok
        assert not node.validate(float("nan")).ok

    def test_int(self, v: Factory) -> None:
        """Test integer mode."""
        node = v.int()
        assert node.validate(3).ok
        assert node.validate(2.0).ok
        assert not node.validate(2.5).ok

    def test_num_range(self, v: Factory) -> None:
        """Test inclusive and exclusive bounds."""
        inclusive = v.num().range(1, 3)
        assert inclusive.validate(1).ok
        assert inclusive.validate(3).ok
        assert not inclusive.validate(4).ok

        exclusive = v.num().range(1, 3, exclusive=True)
        assert not exclusive.validate(1).ok
        assert exclusive.validate(2).ok
        assert not exclusive.validate(3).ok

    def test_nonnegative_and_positive(self, v: Factory) -> None:
        """Test nonnegative() includes zero and positive() requires an integer >= 1."""
        assert v.nonnegative().validate(0).ok
        assert not v.nonnegative().validate(-0.5).ok
        assert v.positive().validate(1).ok
        assert not v.positive().validate(0).ok
        assert not v.positive().validate(1.5).ok

    def test_str_length(self, v: Factory) -> None:
        """Test string length bounds."""
        node = v.str().min(2).max(3)
        assert node.validate("ab").ok
        assert not node.validate("a").ok
        assert not node.validate("abcd").ok
        assert not v.nonempty().validate("").ok

    def test_regex_alternatives(self, v: Factory) -> None:
        """Test that any of the patterns may match (search semantics)."""
        node = v.re(re.compile(r"^\d+$"), r"^[a-z]+$")
        assert node.validate("123").ok
        assert node.validate("abc").ok
        assert not node.validate("ABC").ok
        assert v.re("b").validate("abc").ok

    def test_literal_is_strict(self, v: Factory) -> None:
        """Test that True never equals 1 while 1 equals 1.0."""
        assert v.literal(1).validate(1.0).ok
        assert not v.literal(1).validate(True).ok
        assert not v.literal(True).validate(1).ok
        assert v.null().validate(None).ok
        assert not v.null().validate(0).ok

    def test_enum(self, v: Factory) -> None:
        """Test membership and merging of literal and enum nodes."""
        node = v.enum("on", "off", v.literal(1), v.enum(None))
        assert node.validate("on").ok
        assert node.validate(1).ok
        assert node.validate(None).ok
        assert not node.validate(True).ok
        assert not node.validate("maybe").ok

    def test_raw(self, v: Factory) -> None:
        """Test that raw accepts anything unchanged."""
        marker = object()
        assert v.raw().validate(marker).value is marker

    def test_error_detail(self, v: Factory) -> None:
        """Test the detail of a leaf failure at the root."""
        result = v.str().validate(5)
        assert result.ok is False
        assert result.value is None
        assert result.error is not None
        assert result.error.kind is ErrorKind.FAULTY_VALUE
        assert result.error.property_path == "<root>"
        assert result.error.value == "5"


class TestObjects:
    """Tests for object nodes."""

    def test_copies_declared_properties(self, v: Factory) -> None:
        """Test that undeclared properties are dropped and the input is untouched."""
        node = v.obj({"a": 0, "b": ""})
        data = {"a": 1, "b": "x", "extra": True}
        result = node.validate(data)
        assert result.ok
        assert result.value == {"a": 1, "b": "x"}
        assert result.value is not data
        assert "extra" in data

    def test_required_property_path(self, v: Factory) -> None:
        """Test that a missing required property reports <root>.id."""
        result = v.obj({"id": v.int()}).validate({})
        assert result.error is not None
        assert result.error.kind is ErrorKind.REQUIRED_PROPERTY
        assert result.error.property_path == "<root>.id"
        assert result.error.property_name == "id"

    def test_optional_default(self, v: Factory) -> None:
        """Test that absent optional properties get their default."""
        node = v.obj({"a": v.num(5), "b": v.str().optional(), "c": v.bool().optional(None)})
        result = node.validate({})
        assert result.ok
        assert result.value == {"a": 5, "c": None}

    def test_child_failure_path(self, v: Factory) -> None:
        """Test that nested failures report the full path."""
        node = v.obj({"user": {"tags": [v.str()]}})
        result = node.validate({"user": {"tags": ["a", 2]}})
        assert not result.ok
        assert result.error is not None
        assert result.error.kind is ErrorKind.COMBINED
        paths = {detail.property_path for detail in result.error.errors or []}
        assert "<root>.user.tags.[1]" in paths

    def test_not_an_object(self, v: Factory) -> None:
        """Test that lists are not objects."""
        assert not v.obj({}).validate([]).ok

    def test_decompose(self, v: Factory) -> None:
        """Test decompose() returns the declared children."""
        parts = v.obj({"a": 1, "b": "x"}).decompose()
        assert set(parts) == {"a", "b"}
        assert parts["a"].key == "a"


class TestArrays:
    """Tests for array and tuple nodes."""

    def test_items_any_of(self, v: Factory) -> None:
        """Test that items may match any element of the declaration."""
        node = v.arr([1, "x"])
        assert node.validate([1, "a", 2]).ok
        assert not node.validate([1, None]).ok

    def test_no_matcher_accepts_anything(self, v: Factory) -> None:
        """Test that an empty declaration accepts any items."""
        data = [1, "a", None]
        result = v.arr().validate(data)
        assert result.value == data
        assert result.value is not data

    def test_length_range(self, v: Factory) -> None:
        """Test array length bounds and nonempty()."""
        assert not v.arr([0]).nonempty().validate([]).ok
        assert not v.arr([0]).max(1).validate([1, 2]).ok

    def test_remove_faulty_with_post_filter_range(self, v: Factory) -> None:
        """Test that invalid items are dropped and the filtered length is checked."""
        node = v.arr([v.enum(1, 2)]).remove_faulty().range(2, 4)
        result = node.validate([1, 99, 2])
        assert result.ok
        assert result.value == [1, 2]
        assert result.warning is not None
        assert len(result.warning.warnings or []) == 1
        assert result.warning.warnings[0].property_path == "<root>.[1]"

        too_short = node.validate([1, 99, 98])
        assert not too_short.ok

    def test_remove_faulty_never_raises(self) -> None:
        """Test that dropped items do not raise in throw mode."""
        v = Factory(throw_if_error=True)
        result = v.arr([0]).remove_faulty().validate([1, "x"])
        assert result.value == [1]

    def test_stop_on_error_wins_over_remove_faulty(self, v: Factory) -> None:
        """Test that the array resolves to its default when both flags are set."""
        node = v.arr([0]).remove_faulty().stop_on_error().with_default([])
        result = node.validate([1, "x"])
        assert result.ok
        assert result.value == []

    def test_tuple(self, v: Factory) -> None:
        """Test exact length and positional validation."""
        node = v.tuple([0, "", True])
        assert node.validate([1, "a", False]).ok
        short = node.validate([1, "a"])
        assert not short.ok
        assert short.error is not None
        assert short.error.kind is ErrorKind.FAULTY_VALUE
        long = node.validate([1, "a", False, "extra"])
        assert not long.ok
        assert long.error is not None
        assert long.error.kind is ErrorKind.FAULTY_VALUE
        assert long.error.message == "Expected 3 items, got 4."
        assert not node.validate([1, 2, False]).ok

    def test_create_mode_none_overwrites_input(self) -> None:
        """Test that create_mode none writes into the input containers."""
        v = Factory(create_mode="none")
        data: dict[str, Any] = {"items": [1, 2], "extra": 1}
        result = v.obj({"items": [0], "name": v.str("n/a")}).validate(data)
        assert result.value is data
        assert data == {"items": [1, 2], "extra": 1, "name": "n/a"}

    def test_create_mode_arr_copies_only_arrays(self) -> None:
        """Test that create_mode arr copies arrays but not objects."""
        v = Factory(create_mode="arr")
        items = [1]
        data = {"items": items}
        result = v.obj({"items": [0]}).validate(data)
        assert result.value is data
        assert result.value["items"] is not items


class TestUnionAndPipe:
    """Tests for union, pipe and custom nodes."""

    def test_union_first_match_wins(self, v: Factory) -> None:
        """Test that alternatives are tried in declaration order."""
        first = v.custom(lambda path, value: Result(True, "first"))
        second = v.custom(lambda path, value: Result(True, "second"))
        assert v.union(first, second).validate(1).value == "first"

    def test_union_literal_before_custom(self, v: Factory) -> None:
        """Test that an earlier literal match wins over a later transforming custom."""
        node = v.union(v.literal(1), v.custom(lambda path, value: {"ok": True, "value": "X"}))
        assert node.validate(1).value == 1
        assert node.validate(2).value == "X"

    def test_union_no_match(self, v: Factory) -> None:
        """Test that one error is reported when nothing matches."""
        result = v.union(0, "").validate(None)
        assert result.error is not None
        assert result.error.kind is ErrorKind.FAULTY_VALUE
        assert result.error.errors is None

    def test_union_trials_never_raise(self) -> None:
        """Test that failing alternatives do not raise in throw mode."""
        v = Factory(throw_if_error=True)
        assert v.union(0, "").validate("x").ok

    def test_pipe(self, v: Factory) -> None:
        """Test that each stage receives the previous output."""
        to_int = v.custom(lambda path, value: {"ok": True, "value": int(value)})
        node = v.str().pipe(to_int, v.int().min(10))
        assert node.validate("12").value == 12
        assert not node.validate("5").ok
        assert not node.validate(12).ok

    def test_custom_receives_path(self, v: Factory) -> None:
        """Test that custom validators get the current path."""
        seen: list[Any] = []

        def check(path: list[Any], value: Any) -> Result[Any]:
            seen.append(path)
            return Result(True, value)

        v.obj({"a": [v.custom(check)]}).validate({"a": [1]})
        assert seen == [[None, "a", 0]]

    def test_custom_error_and_warning(self, v: Factory) -> None:
        """Test custom results carrying errors and warnings."""
        warn = v.custom(lambda path, value: {"ok": True, "value": value, "warning": "deprecated"})
        result = warn.validate(1)
        assert result.ok
        assert result.warning is not None
        assert result.warning.warnings[0].message == "deprecated"

        fail = v.custom(lambda path, value: faulty_value_result("<root>", value, "nope"))
        failed = fail.validate(1)
        assert failed.error is not None
        assert failed.error.message == "nope"

    def test_custom_exception(self, v: Factory) -> None:
        """Test that exceptions in custom validators become UnknownError."""

        def boom(path: list[Any], value: Any) -> Any:
            raise KeyError("missing")

        result = v.custom(boom).validate(1)
        assert result.error is not None
        assert result.error.kind is ErrorKind.UNKNOWN
        assert isinstance(result.error.cause, KeyError)

        with pytest.raises(UnknownError):
            Factory(throw_if_error=True).custom(boom).validate(1)

    def test_none_node_not_configured(self, v: Factory) -> None:
        """Test that placeholder nodes always fail."""
        result = v.tuple([]).validate([])
        assert result.error is not None
        assert result.error.kind is ErrorKind.NOT_CONFIGURED


class TestErrorPolicy:
    """Tests for throw, stop-on-error and result assembly."""

    def test_throw_if_error(self) -> None:
        """Test that failures raise with throw_if_error."""
        v = Factory(throw_if_error=True)
        with pytest.raises(RequiredPropertyError) as exc_info:
            v.obj({"id": 0}).validate({})
        assert exc_info.value.detail.property_path == "<root>.id"

    def test_stop_on_error_containment(self, v: Factory) -> None:
        """Test that a stop-on-error subtree resolves to its default."""
        node = v.obj({"a": v.num(), "b": v.obj({"c": v.num()}).stop_on_error()})
        result = node.validate({"a": 1, "b": {"c": "bad"}})
        assert result.ok
        assert result.value == {"a": 1, "b": None}
        assert result.warning is not None
        assert all(w.level == "warning" for w in result.warning.warnings or [])

    def test_stop_on_error_uses_default(self, v: Factory) -> None:
        """Test that the default replaces a failing value."""
        node = v.obj({"n": v.num().stop_on_error().with_default(0)})
        assert node.validate({"n": "x"}).value == {"n": 0}

    def test_stop_on_error_suppresses_throw(self) -> None:
        """Test that errors inside a stop-on-error subtree never raise."""
        v = Factory(throw_if_error=True)
        node = v.obj({"b": v.obj({"c": 0}).stop_on_error()})
        assert node.validate({"b": {"c": "x"}}).ok

    def test_global_stop_if_error(self) -> None:
        """Test that stop_if_error applies to every node."""
        v = Factory(stop_if_error=True)
        result = v.obj({"a": 0}).validate({"a": "x"})
        assert result.ok
        assert result.value == {"a": None}

    def test_several_errors_combined(self, v: Factory) -> None:
        """Test that several errors are combined at the root."""
        result = v.obj({"a": 0}).validate({"a": "x"})
        assert result.error is not None
        assert result.error.kind is ErrorKind.COMBINED
        assert len(result.error.errors or []) == 2

    def test_model_name(self, v: Factory) -> None:
        """Test that errors inside a named node carry the name."""
        node = v.obj({"a": v.obj({"b": 0}).freeze("Inner")})
        result = node.validate({"a": {"b": "x"}})
        assert result.error is not None
        models = {d.model for d in result.error.errors or []}
        assert "Inner" in models

    def test_validate_does_not_mutate_node(self, v: Factory) -> None:
        """Test that nodes can be reused across calls."""
        node = v.obj({"a": v.num(1)})
        assert node.validate({}).value == {"a": 1}
        assert node.validate({"a": 2}).value == {"a": 2}
        assert node.validate({}).value == {"a": 1}


class TestModifiers:
    """Tests for copy-on-write modifiers."""

    def test_copy_on_write_isolation(self, v: Factory) -> None:
        """Test that derived nodes do not affect each other."""
        base = v.num()
        five = base.min(5)
        ten = base.min(10)
        assert five.validate(7).ok
        assert not ten.validate(7).ok
        assert base.validate(0).ok

    def test_idempotent_modifiers(self, v: Factory) -> None:
        """Test that modifiers return self when the state already holds."""
        node = v.num().min(1)
        assert node.min(1) is node
        optional = node.optional()
        assert optional.optional() is optional
        stopped = node.stop_on_error()
        assert stopped.stop_on_error() is stopped
        integer = v.int()
        assert integer.int() is integer
        frozen = node.freeze()
        assert frozen.freeze() is frozen

    def test_freeze_records_error(self, v: Factory) -> None:
        """Test that modifying a frozen node returns an unfrozen copy with an error."""
        frozen = v.num().freeze()
        changed = frozen.min(5)
        assert changed is not frozen
        assert not changed.is_frozen()
        # The change itself is not applied
        assert changed.validate(1).ok
        combined = changed.get_configure_error()
        assert combined is not None
        assert combined.errors[0].kind is ErrorKind.MODEL_FROZEN
        assert frozen.is_frozen()
        assert frozen.validate(1).ok
        assert not frozen.validate("1").ok
        assert frozen.get_configure_error() is None

    def test_freeze_raises(self) -> None:
        """Test that modifying a frozen node raises with throw_if_configure_error."""
        v = Factory(throw_if_configure_error=True)
        with pytest.raises(ModelFrozenError):
            v.str().freeze().nonempty()

    def test_copy_unfreezes(self, v: Factory) -> None:
        """Test that copy() returns an unfrozen node."""
        frozen = v.str().freeze("S")
        assert not frozen.copy().is_frozen()
        assert frozen.unfreeze().min(1).validate("a").ok

    def test_invalid_range_arguments(self, v: Factory) -> None:
        """Test that bad bounds are recorded as configuration errors."""
        node = v.str().min(-1)
        combined = node.get_configure_error()
        assert combined is not None
        assert combined.errors[0].kind is ErrorKind.CONFIGURE
        # Errors are consumed on first read
        assert node.get_configure_error() is None
        assert v.num().max(1).min(2).get_configure_error() is not None

    def test_configure_error_paths(self, v: Factory) -> None:
        """Test that collected configuration errors carry their node path."""
        node = v.obj({"a": {"b": v.enum()}})
        combined = node.get_configure_error()
        assert combined is not None
        assert combined.errors[0].property_path == "<root>.a.b"

    def test_pipe_keeps_failure(self, v: Factory) -> None:
        """Test that a failing stage fails the pipe with FaultyValueError in throw mode."""
        node = Factory(throw_if_error=True).str().pipe(Factory().int())
        with pytest.raises(FaultyValueError):
            node.validate("x")
