"""Global validation policy and its loader.

``Config`` is shared by reference by every node built from the same factory.
Configuration can be loaded from multiple sources with precedence:
CLI args > environment variables > .jsonvetrc > pyproject.toml > defaults
"""

from __future__ import annotations

import dataclasses
import logging
import os
import sys
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any

# tomllib is only available in Python 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)


class CreateMode(str, Enum):
    """How validated containers are produced.

    ALL: new objects and arrays are created.
    OBJ: only objects are created, arrays are overwritten in place.
    ARR: only arrays are created, objects are overwritten in place and keep
        properties the schema does not declare.
    NONE: objects and arrays are overwritten in place.
    """

    ALL = "all"
    OBJ = "obj"
    ARR = "arr"
    NONE = "none"

    @classmethod
    def parse(cls, value: Any) -> CreateMode:
        """Accept a CreateMode, its name/value, or the numeric flags 0..3.

        Raises:
            ValueError: If the value does not name a mode.
        """
        if value is None:
            return cls.ALL
        if isinstance(value, CreateMode):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            modes = list(cls)
            if 0 <= value < len(modes):
                return modes[value]
        if isinstance(value, str):
            text = value.strip().lower()
            if text.isdigit():
                return cls.parse(int(text))
            for mode in cls:
                if text in (mode.value, mode.name.lower()):
                    return mode
        raise ValueError(f"create_mode must be one of all, obj, arr, none (got {value!r})")


@dataclass(frozen=True)
class Config:
    """Global validation policy.

    Attributes:
        throw_if_configure_error: Raise on schema declaration mistakes instead
            of recording them on the node (default: False).
        throw_if_error: Raise a JsonVetError instead of returning
            ``ok=False`` (default: False).
        stop_if_error: Default for every node's stop-on-error flag.
        remove_faulty: Default for every array's remove-faulty flag.
        create_mode: Container copy policy (default: CreateMode.ALL).
        scope_name: Name of the factory scope the nodes were built in.
    """

    throw_if_configure_error: bool = False
    throw_if_error: bool = False
    stop_if_error: bool = False
    remove_faulty: bool = False
    create_mode: CreateMode = CreateMode.ALL
    scope_name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "create_mode", CreateMode.parse(self.create_mode))
        self._check_types()

    def _check_types(self) -> None:
        """Reject non-boolean flags and a non-string scope name.

        Raises:
            ValueError: On the first offending field.
        """
        for name in ("throw_if_configure_error", "throw_if_error", "stop_if_error", "remove_faulty"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be a boolean")

        if self.scope_name is not None and not isinstance(self.scope_name, str):
            raise ValueError("scope_name must be a string")

    @property
    def copy_objects(self) -> bool:
        return self.create_mode in (CreateMode.ALL, CreateMode.OBJ)

    @property
    def copy_arrays(self) -> bool:
        return self.create_mode in (CreateMode.ALL, CreateMode.ARR)

    def extend(self, scope_name: str | None = None, **options: Any) -> Config:
        """Return a new Config with the given options replaced.

        Args:
            scope_name: Scope name for the new config. Keeps the current one if None.
            **options: Any Config field except scope_name. None values are ignored.

        Raises:
            ValueError: If an option is unknown or invalid.
        """
        unknown = set(options) - _loadable_field_names()
        if unknown:
            raise ValueError(f"Unknown configuration options: {', '.join(sorted(unknown))}")
        changes = {k: v for k, v in options.items() if v is not None}
        if scope_name is not None:
            changes["scope_name"] = scope_name
        return dataclasses.replace(self, **changes)


def _loadable_field_names() -> set[str]:
    """Config fields that files, the environment and the CLI may set."""
    return {f.name for f in fields(Config)} - {"scope_name"}


def find_config_file(filename: str = ".jsonvetrc", start_dir: Path | None = None) -> Path | None:
    """Look for ``filename`` in ``start_dir`` (default: cwd) and its parents.

    Returns:
        The nearest match, or None if no directory up to the root has one.
    """
    directory = (start_dir or Path.cwd()).resolve()
    for candidate in (directory, *directory.parents):
        config_path = candidate / filename
        if config_path.is_file():
            return config_path
    return None


def _read_toml(path: Path) -> dict[str, Any] | None:
    """Parsed TOML document, or None when it cannot be read."""
    try:
        with open(path, "rb") as f:
            data: dict[str, Any] = tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        logger.debug("Ignoring unreadable %s: %s", path, e)
        return None
    return data


def _known_options(data: dict[str, Any]) -> dict[str, Any]:
    valid_fields = _loadable_field_names()
    return {k: v for k, v in data.items() if k in valid_fields}


def _load_from_rc(start_dir: Path | None = None) -> dict[str, Any]:
    """Options from the nearest .jsonvetrc, or {} if there is none."""
    config_path = find_config_file(".jsonvetrc", start_dir)
    data = _read_toml(config_path) if config_path is not None else None
    if data is None:
        return {}
    logger.debug("Loaded configuration from %s", config_path)
    return _known_options(data)


def _load_from_pyproject(start_dir: Path | None = None) -> dict[str, Any]:
    """Options from the [tool.jsonvet] table of the nearest pyproject.toml."""
    config_path = find_config_file("pyproject.toml", start_dir)
    data = _read_toml(config_path) if config_path is not None else None
    if data is None:
        return {}
    section = data.get("tool", {}).get("jsonvet", {})
    if section:
        logger.debug("Loaded [tool.jsonvet] from %s", config_path)
    return _known_options(section)


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    text = value.strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (got {value!r})")


_ENV_PREFIX = "JSONVET_"
_BOOL_OPTIONS = ("throw_if_configure_error", "throw_if_error", "stop_if_error", "remove_faulty")


def _load_from_env() -> dict[str, Any]:
    """Options from JSONVET_* variables, e.g. JSONVET_THROW_IF_ERROR=1.

    Raises:
        ValueError: If a boolean variable has an unrecognised value.
    """
    result: dict[str, Any] = {}
    for option in _BOOL_OPTIONS:
        env_var = _ENV_PREFIX + option.upper()
        value = os.environ.get(env_var)
        if value is not None:
            result[option] = _parse_bool(env_var, value)

    create_mode = os.environ.get(_ENV_PREFIX + "CREATE_MODE")
    if create_mode is not None:
        result["create_mode"] = create_mode
    return result


def _merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge option dicts left to right, skipping None values."""
    result: dict[str, Any] = {}
    for config in configs:
        result.update((k, v) for k, v in config.items() if v is not None)
    return result


def load_config(
    cli_overrides: dict[str, Any] | None = None,
    start_dir: Path | None = None,
) -> Config:
    """Resolve the Config for a CLI run or an application.

    Sources, highest precedence first: ``cli_overrides``, JSONVET_*
    environment variables, .jsonvetrc, pyproject.toml [tool.jsonvet], then
    the dataclass defaults. ``scope_name`` is never loaded.

    Args:
        cli_overrides: Options given on the command line; None values are skipped.
        start_dir: Where the search for config files starts (default: cwd).

    Raises:
        ValueError: If a source holds an invalid value.
    """
    merged = _merge_configs(
        _load_from_pyproject(start_dir),
        _load_from_rc(start_dir),
        _load_from_env(),
        _known_options(cli_overrides or {}),
    )
    return Config(**merged)
