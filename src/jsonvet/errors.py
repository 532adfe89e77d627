"""Error taxonomy for the validation engine.

Every problem reported by jsonvet is an ``ErrorDetail`` with one of the
``ErrorKind`` values. Details are returned inside ``Result`` objects or
raised wrapped in the matching ``JsonVetError`` subclass.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from jsonvet.result import (
    ROOT_NAME,
    UNKNOWN_VALUE,
    PropertyName,
    Result,
    property_name_to_string,
)

ErrorLevel = Literal["error", "warning"]


class ErrorKind(str, Enum):
    """Kinds of errors reported by jsonvet."""

    UNKNOWN = "UnknownError"
    CONFIGURE = "ConfigureError"
    MODEL_FROZEN = "ModelFrozenError"
    REQUIRED_PROPERTY = "RequiredPropertyError"
    FAULTY_VALUE = "FaultyValueError"
    NOT_CONFIGURED = "NotConfiguredError"
    COMBINED = "CombinedError"

    @classmethod
    def parse(cls, value: Any) -> ErrorKind:
        """Return the kind named by ``value``, or UNKNOWN."""
        if isinstance(value, ErrorKind):
            return value
        for kind in cls:
            if value == kind.value or value == kind.name:
                return kind
        return cls.UNKNOWN


@dataclass(eq=False)
class ErrorDetail:
    """A single reported problem.

    Details compare by identity, which is how the context deduplicates
    registrations of the same detail.

    Attributes:
        kind: Error kind.
        property_path: Dot-joined path from the root (e.g. "<root>.items.[0]").
        property_name: Name of the offending property, if known.
        message: Human-readable description.
        value: JSON rendering of the offending value.
        cause: Original exception or object that caused the error.
        errors: Nested errors (combined details, root failures).
        warnings: Nested warnings collected during validation.
        model: Name given to the enclosing frozen node, if any.
        level: "error" or "warning" (errors demoted by a scope become warnings).
    """

    kind: ErrorKind
    property_path: str | None = None
    property_name: str | None = None
    message: str | None = None
    value: str | None = None
    cause: Any = None
    errors: list[ErrorDetail] | None = None
    warnings: list[ErrorDetail] | None = None
    model: str | None = None
    level: ErrorLevel = "error"

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape with camelCase keys."""
        result: dict[str, Any] = {
            "kind": self.kind.value,
            "propertyPath": self.property_path,
            "level": self.level,
        }
        if self.property_name is not None:
            result["propertyName"] = self.property_name
        if self.message is not None:
            result["message"] = self.message
        if self.value is not None:
            result["value"] = self.value
        if self.cause is not None:
            result["cause"] = repr(self.cause)
        if self.model is not None:
            result["model"] = self.model
        if self.errors:
            result["errors"] = [item.to_dict() for item in self.errors]
        if self.warnings:
            result["warnings"] = [item.to_dict() for item in self.warnings]
        return result

    def __str__(self) -> str:
        path = f" at {self.property_path}" if self.property_path else ""
        message = f": {self.message}" if self.message else ""
        return f"{self.kind.value}{path}{message}"


class JsonVetError(Exception):
    """Base exception carrying an ``ErrorDetail``."""

    kind = ErrorKind.UNKNOWN

    def __init__(self, detail: ErrorDetail) -> None:
        self.detail = detail
        super().__init__(str(detail))


class UnknownError(JsonVetError):
    """Failure not covered by the taxonomy, e.g. raised by a custom validator."""

    kind = ErrorKind.UNKNOWN


class ConfigureError(JsonVetError):
    """Invalid schema declaration."""

    kind = ErrorKind.CONFIGURE


class ModelFrozenError(JsonVetError):
    """Modification attempted on a frozen node."""

    kind = ErrorKind.MODEL_FROZEN


class RequiredPropertyError(JsonVetError):
    """Required object property is missing."""

    kind = ErrorKind.REQUIRED_PROPERTY


class FaultyValueError(JsonVetError):
    """Value, type or range mismatch."""

    kind = ErrorKind.FAULTY_VALUE


class NotConfiguredError(JsonVetError):
    """Value reached a placeholder node left by a failed schema declaration."""

    kind = ErrorKind.NOT_CONFIGURED


class CombinedError(JsonVetError):
    """Several errors or warnings reported together."""

    kind = ErrorKind.COMBINED


_ERROR_CLASSES: dict[ErrorKind, type[JsonVetError]] = {
    cls.kind: cls
    for cls in (
        UnknownError,
        ConfigureError,
        ModelFrozenError,
        RequiredPropertyError,
        FaultyValueError,
        NotConfiguredError,
        CombinedError,
    )
}


def error_class_for(kind: ErrorKind) -> type[JsonVetError]:
    """Return the exception class raised for details of ``kind``."""
    return _ERROR_CLASSES.get(kind, UnknownError)


def value_to_string(value: Any) -> str:
    """Render a value as JSON for error reports."""
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        return UNKNOWN_VALUE


def message_from_exception(exc: BaseException) -> str:
    """Return a readable message for an arbitrary exception."""
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


# -----------------------------------------------------------------------------
# Detail factories
# -----------------------------------------------------------------------------


def configure_error(property_name: PropertyName, message: str | None = None) -> ErrorDetail:
    return ErrorDetail(
        kind=ErrorKind.CONFIGURE,
        property_name=property_name_to_string(property_name),
        message=message or "Invalid schema declaration.",
    )


def model_frozen_error(property_name: PropertyName, message: str | None = None) -> ErrorDetail:
    return ErrorDetail(
        kind=ErrorKind.MODEL_FROZEN,
        property_name=property_name_to_string(property_name),
        message=message or "The node is frozen and cannot be modified.",
    )


def required_property_error(
    property_path: str, property_name: PropertyName, message: str | None = None
) -> ErrorDetail:
    name = property_name_to_string(property_name)
    return ErrorDetail(
        kind=ErrorKind.REQUIRED_PROPERTY,
        property_path=property_path,
        property_name=name,
        message=message or f"Required property '{name}' is missing.",
    )


def faulty_value_error(property_path: str, value: Any, message: str | None = None) -> ErrorDetail:
    return ErrorDetail(
        kind=ErrorKind.FAULTY_VALUE,
        property_path=property_path,
        value=value_to_string(value),
        message=message or "Invalid value.",
    )


def not_configured_error(property_path: str, value: Any, message: str | None = None) -> ErrorDetail:
    return ErrorDetail(
        kind=ErrorKind.NOT_CONFIGURED,
        property_path=property_path,
        value=value_to_string(value),
        message=message or "The schema for this value was not configured.",
    )


def unknown_error(property_path: str, message: str | None = None, cause: Any = None) -> ErrorDetail:
    return ErrorDetail(
        kind=ErrorKind.UNKNOWN,
        property_path=property_path,
        message=message or "Unknown error.",
        cause=cause,
    )


def combined_error(
    level: ErrorLevel,
    errors: list[ErrorDetail] | None = None,
    warnings: list[ErrorDetail] | None = None,
    message: str | None = None,
) -> ErrorDetail:
    """Aggregate several details under one ``CombinedError`` detail."""
    if message is None:
        count = len(errors or []) if level == "error" else len(warnings or [])
        noun = "error" if level == "error" else "warning"
        message = f"{count} {noun}{'' if count == 1 else 's'} reported."
    return ErrorDetail(
        kind=ErrorKind.COMBINED,
        property_path=ROOT_NAME,
        message=message,
        errors=list(errors) if errors else None,
        warnings=list(warnings) if warnings else None,
        level=level,
    )


# -----------------------------------------------------------------------------
# Results for custom validators
# -----------------------------------------------------------------------------


def faulty_value_result(property_path: str, value: Any, message: str | None = None) -> Result[Any]:
    """Failing result for a custom validator."""
    return Result(ok=False, value=None, error=faulty_value_error(property_path, value, message))


def required_property_result(
    property_path: str, property_name: PropertyName, message: str | None = None
) -> Result[Any]:
    """Failing result for a custom validator."""
    return Result(
        ok=False, value=None, error=required_property_error(property_path, property_name, message)
    )


def unknown_error_result(property_path: str, message: str | None = None) -> Result[Any]:
    """Failing result for a custom validator."""
    return Result(ok=False, value=None, error=unknown_error(property_path, message))


def ensure_error_detail(error: Any, property_path: str | None = None) -> ErrorDetail:
    """Normalise anything a custom validator may report into an ``ErrorDetail``.

    Accepts an ``ErrorDetail``, a ``JsonVetError``, a mapping in the wire
    shape (``kind``, ``message``, ``propertyPath``...), an exception or a
    plain string. Unknown kinds become ``UnknownError``. ``property_path`` is
    filled in when the source does not carry one.

    Args:
        error: The reported error.
        property_path: Path of the value being validated.

    Returns:
        An ErrorDetail (the same instance when ``error`` already is one).
    """
    if isinstance(error, JsonVetError):
        detail = error.detail
    elif isinstance(error, ErrorDetail):
        detail = error
    elif isinstance(error, Mapping):
        name = error.get("propertyName", error.get("property_name"))
        value = error.get("value")
        detail = ErrorDetail(
            kind=ErrorKind.parse(error.get("kind", error.get("name"))),
            property_path=error.get("propertyPath", error.get("property_path")),
            property_name=None if name is None else str(name),
            message=None if error.get("message") is None else str(error.get("message")),
            value=None if value is None else (value if isinstance(value, str) else value_to_string(value)),
            cause=error.get("cause"),
        )
    elif isinstance(error, BaseException):
        detail = unknown_error(property_path or ROOT_NAME, message_from_exception(error), error)
    elif isinstance(error, str):
        detail = unknown_error(property_path or ROOT_NAME, error)
    else:
        detail = unknown_error(property_path or ROOT_NAME, "Unrecognised error report.", error)

    if detail.property_path is None and property_path is not None:
        detail.property_path = property_path
    return detail
