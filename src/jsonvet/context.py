"""Per-call validation context.

A ``Context`` is created by ``Node.validate()`` and passed through the whole
recursive descent. It tracks the current path, the settings of the nodes
being validated, three suppression scopes, and the collected errors and
warnings.

Scopes:

- type matching: nothing is registered (union and array item trials)
- warning only: errors are registered as warnings (array remove-faulty)
- stop on error: entered by nodes with ``stop_on_error``; errors become
  warnings and the owning node resolves to its default
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from jsonvet.config import Config
from jsonvet.errors import (
    ErrorDetail,
    FaultyValueError,
    JsonVetError,
    NotConfiguredError,
    RequiredPropertyError,
    combined_error,
    error_class_for,
    faulty_value_error,
    not_configured_error,
    required_property_error,
)
from jsonvet.result import ROOT_NAME, Outcome, PropertyName, Result
from jsonvet.settings import Settings
from jsonvet.stack import PathTracker, SafeStack, ScopeGuard


def _contains(details: list[ErrorDetail], detail: ErrorDetail) -> bool:
    return any(item is detail for item in details)


class Context:
    """Mutable traversal state of a single ``validate()`` call."""

    def __init__(self, config: Config, settings: Settings) -> None:
        self._config = config
        self._settings = settings
        self._errors: list[ErrorDetail] = []
        self._warnings: list[ErrorDetail] = []
        self._type_matching: SafeStack[None] = SafeStack()
        self._warning_only: SafeStack[None] = SafeStack()
        self._stop_error: SafeStack[None] = SafeStack()
        self._path = PathTracker()
        self._models: SafeStack[Settings] = SafeStack()

    @property
    def config(self) -> Config:
        return self._config

    @property
    def errors(self) -> list[ErrorDetail]:
        return list(self._errors)

    @property
    def warnings(self) -> list[ErrorDetail]:
        return list(self._warnings)

    # -------------------------------------------------------------------------
    # Scopes
    # -------------------------------------------------------------------------

    def type_matching(self) -> ScopeGuard:
        """Suppress all registration while alternatives are tried."""
        return self._type_matching.enter(None)

    def only_warnings(self) -> ScopeGuard:
        """Register errors as warnings (used while filtering array items)."""
        return self._warning_only.enter(None)

    def enter_key(self, key: PropertyName) -> ScopeGuard:
        """Append a path segment."""
        return self._path.enter(key)

    @contextmanager
    def enter_model(self, settings: Settings) -> Iterator[None]:
        """Bracket the validation of one node."""
        release_model = self._models.enter(settings)
        release_stop = self._stop_error.enter(None) if settings.stop_on_error else None
        try:
            yield
        finally:
            release_model()
            if release_stop is not None:
                release_stop()

    def is_throw_enabled(self) -> bool:
        """True if a failure at this point should be raised."""
        if (
            self._type_matching.is_any()
            or self._warning_only.is_any()
            or self._stop_error.is_any()
            or self._settings.stop_on_error
        ):
            return False
        return self._config.throw_if_error

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    def get_path(self) -> list[PropertyName]:
        return self._path.get_path()

    def get_path_str(self) -> str:
        return str(self._path)

    def get_model_name(self) -> str | None:
        """Name of the nearest enclosing node frozen with ``freeze(name)``."""
        for settings in self._models.values():
            if settings.frozen_name:
                return settings.frozen_name
        return self._settings.frozen_name

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def _attribute(self, detail: ErrorDetail) -> None:
        model = self.get_model_name()
        if model:
            detail.model = model

    def add_warning(self, detail: ErrorDetail) -> None:
        """Register a warning unless a type-matching scope is active."""
        if self._type_matching.is_any() or _contains(self._warnings, detail):
            return
        self._attribute(detail)
        detail.level = "warning"
        self._warnings.append(detail)

    def add_error(self, detail: ErrorDetail) -> None:
        """Register an error, demoted to a warning inside a suppressing scope."""
        if self._type_matching.is_any():
            return
        if self._stop_error.is_any() or self._warning_only.is_any():
            self.add_warning(detail)
            return
        if not _contains(self._errors, detail):
            self._attribute(detail)
            self._errors.append(detail)

    def attach_errors(self, detail: ErrorDetail) -> None:
        """Attach collected errors and warnings to ``detail``."""
        if self._errors:
            merged = list(detail.errors or [])
            merged.extend(item for item in self._errors if item is not detail and not _contains(merged, item))
            detail.errors = merged or None
        self.attach_warnings(detail)

    def attach_warnings(self, detail: ErrorDetail) -> None:
        if self._warnings:
            merged = list(detail.warnings or [])
            merged.extend(item for item in self._warnings if not _contains(merged, item))
            detail.warnings = merged

    # -------------------------------------------------------------------------
    # Failures
    # -------------------------------------------------------------------------

    def _fail(self, detail: ErrorDetail, error_class: type[JsonVetError]) -> Outcome:
        """Raise the failure or register it and return the node's outcome.

        Only the settings of the failing node decide whether it resolves to
        its default. Errors of descendants rise up to the nearest node whose
        stop-on-error scope swallows them.
        """
        settings = self._models.top() or self._settings
        self._attribute(detail)
        if self.is_throw_enabled():
            self.attach_errors(detail)
            raise error_class(detail)
        self.add_error(detail)
        if settings.stop_on_error:
            return Outcome(True, settings.get_default())
        return Outcome(False, None)

    def faulty_value(self, value: Any, message: str | None = None) -> Outcome:
        """Report a value, type or range mismatch at the current path."""
        detail = faulty_value_error(self.get_path_str(), value, message)
        return self._fail(detail, FaultyValueError)

    def required_property(self, name: PropertyName) -> Outcome:
        """Report a missing required property. The key must already be on the path."""
        detail = required_property_error(self.get_path_str(), name)
        return self._fail(detail, RequiredPropertyError)

    def not_configured(self, value: Any, message: str | None = None) -> Outcome:
        detail = not_configured_error(self.get_path_str(), value, message)
        return self._fail(detail, NotConfiguredError)

    def fail_with(self, detail: ErrorDetail) -> Outcome:
        """Report an arbitrary detail, e.g. one returned by a custom validator."""
        if detail.property_path is None:
            detail.property_path = self.get_path_str()
        return self._fail(detail, error_class_for(detail.kind))

    def dropped_item(self, value: Any, index: int) -> None:
        """Warn that an invalid array item was removed."""
        detail = faulty_value_error(
            self.get_path_str(), value, f"Array item '[{index}]' was removed."
        )
        self.add_warning(detail)

    # -------------------------------------------------------------------------
    # Root result
    # -------------------------------------------------------------------------

    def return_result(self, outcome: Outcome) -> Result[Any]:
        """Turn the root outcome into the public ``Result``."""
        if self._errors:
            if len(self._errors) == 1:
                error = self._errors[0]
                self.attach_warnings(error)
            else:
                error = combined_error(
                    "error",
                    self._errors,
                    self._warnings,
                    message=f"Validation failed with {len(self._errors)} errors.",
                )
            return Result(ok=False, value=None, error=error)

        if not outcome.ok:
            error = faulty_value_error(ROOT_NAME, outcome.value, "Validation failed without a reported cause.")
            self.attach_warnings(error)
            return Result(ok=False, value=None, error=error)

        if self._warnings:
            return Result(ok=True, value=outcome.value, warning=combined_error("warning", warnings=self._warnings))
        return Result(ok=True, value=outcome.value)
