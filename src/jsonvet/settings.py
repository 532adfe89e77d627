"""Per-node behavioural flags."""

from __future__ import annotations

import copy
import dataclasses
from dataclasses import dataclass
from typing import Any

from jsonvet.config import Config
from jsonvet.result import Some


@dataclass(frozen=True)
class Settings:
    """Behavioural flags of a node.

    Settings are immutable. Every change produces a new instance through
    ``extend()``, ``freeze()`` or ``unfreeze()``.

    Attributes:
        optional: The property may be absent from its parent object.
        stop_on_error: A failure of this node resolves to its default and a warning.
        remove_faulty: Arrays drop invalid items instead of failing.
        frozen: The node refuses further modification.
        frozen_name: Name given by ``freeze(name)``, reported on errors.
        default: Default value wrapped in ``Some``, or None if there is none.
    """

    optional: bool = False
    stop_on_error: bool = False
    remove_faulty: bool = False
    frozen: bool = False
    frozen_name: str | None = None
    default: Some[Any] | None = None

    @classmethod
    def from_config(cls, config: Config) -> Settings:
        """Default settings mirroring the global policy."""
        return cls(stop_on_error=config.stop_if_error, remove_faulty=config.remove_faulty)

    def extend(
        self,
        *,
        optional: bool | None = None,
        stop_on_error: bool | None = None,
        remove_faulty: bool | None = None,
        default: Some[Any] | None = None,
    ) -> Settings:
        """Return unfrozen settings with the given flags merged in.

        Flags left as None keep their current value. A given ``default`` is
        deep-copied so later changes to the caller's object do not leak in.
        """
        changes: dict[str, Any] = {"frozen": False, "frozen_name": None}
        if optional is not None:
            changes["optional"] = optional
        if stop_on_error is not None:
            changes["stop_on_error"] = stop_on_error
        if remove_faulty is not None:
            changes["remove_faulty"] = remove_faulty
        if default is not None:
            changes["default"] = Some(copy.deepcopy(default.value))
        return dataclasses.replace(self, **changes)

    def freeze(self, name: str | None = None) -> Settings:
        return dataclasses.replace(self, frozen=True, frozen_name=name)

    def unfreeze(self) -> Settings:
        return dataclasses.replace(self, frozen=False, frozen_name=None)

    def has_default(self) -> bool:
        return self.default is not None

    def is_equal_default(self, value: Any) -> bool:
        """Identity check against the current default."""
        return self.default is not None and self.default.value is value

    def get_default(self) -> Any:
        """Deep copy of the default, or None when no default is set."""
        if self.default is None:
            return None
        return copy.deepcopy(self.default.value)
