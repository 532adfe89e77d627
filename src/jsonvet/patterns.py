"""Cache of compiled regular expressions shared by a factory and its scopes."""

from __future__ import annotations

import re


class RegexCache:
    """Reuses compiled patterns with the same source and flags."""

    def __init__(self) -> None:
        self._cache: dict[tuple[str, int], re.Pattern[str]] = {}

    def get(self, pattern: str | re.Pattern[str], flags: int = 0) -> re.Pattern[str]:
        """Return the cached pattern equal to ``pattern``.

        Args:
            pattern: Source string or an already compiled pattern.
            flags: Flags used when ``pattern`` is a string.

        Raises:
            re.error: If the pattern source is invalid.
        """
        compiled = pattern if isinstance(pattern, re.Pattern) else re.compile(pattern, flags)
        return self._cache.setdefault((compiled.pattern, compiled.flags), compiled)

    def __len__(self) -> int:
        return len(self._cache)
