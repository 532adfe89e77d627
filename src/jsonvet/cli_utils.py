"""CLI utility functions for jsonvet.

Provides helper functions for:
- Config wiring: Passing CLI flags to load_config
- Schema loading: Resolving ``module:attribute`` targets into nodes
- Document loading: Reading JSON/YAML input files or stdin
- Error formatting: Consistent user-friendly messages with exit codes
"""

from __future__ import annotations

import importlib
import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import typer
import yaml

from jsonvet.config import Config, load_config
from jsonvet.errors import ErrorDetail, ErrorKind
from jsonvet.factory import RootFactory
from jsonvet.models import Node

# Exit code conventions
EXIT_USER_ERROR = 1  # Bad input, missing file, unknown schema
EXIT_VALIDATION_ERROR = 2  # Data or schema did not validate

YAML_SUFFIXES = {".yaml", ".yml"}


class SchemaLoadError(Exception):
    """Raised when a schema target cannot be resolved."""


class DocumentLoadError(Exception):
    """Raised when an input document cannot be read or parsed."""


# -----------------------------------------------------------------------------
# Error Formatting Helpers
# -----------------------------------------------------------------------------


def error(msg: str, *, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Print an error message and exit with the given exit code.

    Raises:
        typer.Exit: Always raises to exit the program.
    """
    styled_prefix = typer.style("Error:", fg=typer.colors.RED, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)
    raise typer.Exit(code=exit_code)


def warning(msg: str) -> None:
    """Print a warning message to stderr."""
    styled_prefix = typer.style("Warning:", fg=typer.colors.YELLOW, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)


def flatten_details(detail: ErrorDetail | None) -> list[ErrorDetail]:
    """List the individual details behind a result detail.

    A CombinedError is replaced by its errors followed by its warnings. Any
    other detail comes first, followed by the warnings attached to it.
    """
    if detail is None:
        return []
    if detail.kind is ErrorKind.COMBINED:
        return [*(detail.errors or []), *(detail.warnings or [])]
    return [detail, *(detail.warnings or [])]


def format_error_details(details: list[ErrorDetail]) -> str:
    """Format details as bullet points.

    Returns:
        Formatted string, empty when there are no details.
    """
    if not details:
        return ""
    return "\n".join(f"  - {d}" for d in details)


# -----------------------------------------------------------------------------
# Config Wiring Helper
# -----------------------------------------------------------------------------


def wire_config(
    throw_if_error: bool | None = None,
    stop_if_error: bool | None = None,
    remove_faulty: bool | None = None,
    create_mode: str | None = None,
    start_dir: Path | None = None,
) -> Config:
    """Wire CLI options to load_config with appropriate overrides.

    Flags left as None fall through to the environment and config files.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    cli_overrides: dict[str, Any] = {}

    if throw_if_error is not None:
        cli_overrides["throw_if_error"] = throw_if_error
    if stop_if_error is not None:
        cli_overrides["stop_if_error"] = stop_if_error
    if remove_faulty is not None:
        cli_overrides["remove_faulty"] = remove_faulty
    if create_mode is not None:
        cli_overrides["create_mode"] = create_mode

    try:
        return load_config(cli_overrides=cli_overrides, start_dir=start_dir)
    except ValueError as e:
        error(f"Invalid configuration: {e}", exit_code=EXIT_USER_ERROR)


# -----------------------------------------------------------------------------
# Schema and Document Loading
# -----------------------------------------------------------------------------


def load_schema(target: str, factory: RootFactory, search_path: Path | None = None) -> Node:
    """Resolve a ``module:attribute`` target into a node.

    The attribute may be a node, a callable taking the factory and returning
    a node, or a shorthand literal compiled with ``factory.of()``.

    Args:
        target: Import target, e.g. ``"myapp.schemas:user"``.
        factory: Factory used for callables and shorthand literals.
        search_path: Directory prepended to ``sys.path`` before importing.

    Raises:
        SchemaLoadError: If the target is malformed or cannot be resolved, or
            if importing the module or building the node raised.
    """
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise SchemaLoadError(f"Schema must be given as 'module:attribute', got '{target}'")

    if search_path is not None and str(search_path) not in sys.path:
        sys.path.insert(0, str(search_path))

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise SchemaLoadError(f"Cannot import module '{module_name}': {e}") from e
    except Exception as e:
        raise SchemaLoadError(f"Importing module '{module_name}' failed: {e}") from e

    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise SchemaLoadError(f"Module '{module_name}' has no attribute '{attr_path}'") from e

    if isinstance(obj, Node):
        return obj
    try:
        node = obj(factory) if callable(obj) else factory.of(obj)
    except Exception as e:
        raise SchemaLoadError(f"Building schema '{target}' failed: {e}") from e
    if not isinstance(node, Node):
        raise SchemaLoadError(f"'{target}' returned {type(node).__name__}, expected a schema node")
    return node


def load_document(path: str) -> Any:
    """Load the value to validate.

    Args:
        path: A ``.json``/``.yaml``/``.yml`` file, or ``-`` for JSON on stdin.

    Raises:
        DocumentLoadError: If the file is missing or cannot be parsed.
    """
    if path == "-":
        try:
            return json.loads(sys.stdin.read())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DocumentLoadError(f"Invalid JSON on stdin: {e}") from e

    file_path = Path(path)
    if not file_path.is_file():
        raise DocumentLoadError(f"File not found: {file_path}")

    try:
        text = file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise DocumentLoadError(f"{file_path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise DocumentLoadError(f"Cannot read {file_path}: {e}") from e

    if file_path.suffix.lower() in YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise DocumentLoadError(f"Invalid YAML in {file_path}: {e}") from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentLoadError(f"Invalid JSON in {file_path}: {e}") from e
