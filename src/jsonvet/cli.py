"""jsonvet CLI - validate JSON and YAML documents against Python schemas."""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from jsonvet import __version__
from jsonvet.cli_utils import (
    EXIT_USER_ERROR,
    EXIT_VALIDATION_ERROR,
    DocumentLoadError,
    SchemaLoadError,
    flatten_details,
    format_error_details,
    load_document,
    load_schema,
    warning,
    wire_config,
)
from jsonvet.errors import ErrorDetail, JsonVetError
from jsonvet.factory import Factory
from jsonvet.models import Node
from jsonvet.result import Result

app = typer.Typer(
    name="jsonvet",
    help="jsonvet - validate JSON-like documents against composable schemas.",
    add_completion=False,
)

# Rich consoles for output
console = Console()
err_console = Console(stderr=True)


# -----------------------------------------------------------------------------
# Output Helpers
# -----------------------------------------------------------------------------


def _output_success(message: str, quiet: bool = False) -> None:
    """Print a success message."""
    if not quiet:
        console.print(f"[green]Success:[/green] {message}")


def _output_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[red]Error:[/red] {message}")


def _exit_error(message: str, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Print error and exit."""
    _output_error(message)
    raise typer.Exit(code=exit_code)


def _print_json(payload: dict[str, Any]) -> None:
    console.print_json(json.dumps(payload, default=str))


def _details_table(title: str, details: list[ErrorDetail]) -> Table:
    table = Table(title=title)
    table.add_column("Level")
    table.add_column("Kind", style="cyan")
    table.add_column("Path", style="green")
    table.add_column("Message")
    for detail in details:
        level = "[red]error[/red]" if detail.level == "error" else "[yellow]warning[/yellow]"
        table.add_row(level, detail.kind.value, detail.property_path or "-", detail.message or "-")
    return table


def _resolve_schema(schema: str, factory: Factory) -> Node:
    try:
        return load_schema(schema, factory, search_path=Path.cwd())
    except SchemaLoadError as e:
        _exit_error(str(e))


# -----------------------------------------------------------------------------
# Version and Main Callbacks
# -----------------------------------------------------------------------------


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"jsonvet version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable debug logging.",
    ),
) -> None:
    """jsonvet - validate JSON-like documents against composable schemas."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")


# -----------------------------------------------------------------------------
# Check Command
# -----------------------------------------------------------------------------


@app.command()
def check(
    schema: str = typer.Argument(
        ...,
        help="Schema as 'module:attribute' (a node, a factory callable or a literal).",
    ),
    data: str = typer.Argument(
        ...,
        help="JSON or YAML file to validate, or '-' for JSON on stdin.",
    ),
    throw_if_error: bool = typer.Option(
        False,
        "--throw-if-error",
        help="Stop at the first error instead of collecting results.",
    ),
    stop_if_error: bool = typer.Option(
        False,
        "--stop-if-error",
        help="Replace failing values with their defaults and report warnings.",
    ),
    remove_faulty: bool = typer.Option(
        False,
        "--remove-faulty",
        help="Drop invalid array items and report warnings.",
    ),
    create_mode: str | None = typer.Option(
        None,
        "--create-mode",
        help="Container copy policy: all, obj, arr or none.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Minimal output for CI.",
    ),
) -> None:
    """Validate a document against a schema.

    Config flags apply to schemas built by the CLI: factory callables and
    shorthand literals. Prebuilt nodes keep the config of their factory.

    Exits with code 2 if validation fails. Warnings do not cause failure.
    """
    config = wire_config(
        throw_if_error=throw_if_error or None,
        stop_if_error=stop_if_error or None,
        remove_faulty=remove_faulty or None,
        create_mode=create_mode,
    )
    node = _resolve_schema(schema, Factory(config))

    try:
        value = load_document(data)
    except DocumentLoadError as e:
        _exit_error(str(e))

    try:
        result = node.validate(value)
    except JsonVetError as e:
        result = Result(ok=False, value=None, error=e.detail)

    if json_output:
        _print_json(result.to_dict())
    else:
        if result.ok:
            _output_success("Document is valid", quiet)
        else:
            _output_error("Validation failed")

        details = flatten_details(result.error if not result.ok else result.warning)
        if details and not quiet:
            title = "Errors" if not result.ok else "Warnings"
            err_console.print(_details_table(title, details))
        elif details and result.ok:
            warning(f"{len(details)} warning(s)")
        elif details:
            typer.echo(format_error_details(details), err=True)

    if not result.ok:
        raise typer.Exit(code=EXIT_VALIDATION_ERROR)


# -----------------------------------------------------------------------------
# Lint Command
# -----------------------------------------------------------------------------


@app.command()
def lint(
    schema: str = typer.Argument(
        ...,
        help="Schema as 'module:attribute'.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Minimal output for CI.",
    ),
) -> None:
    """Report schema declaration mistakes.

    Exits with code 2 if the schema recorded configuration errors.
    """
    config = wire_config()
    node = _resolve_schema(schema, Factory(config))
    combined = node.get_configure_error()
    details = flatten_details(combined)

    if json_output:
        _print_json({"valid": combined is None, "errors": [d.to_dict() for d in details]})
    elif combined is None:
        _output_success("Schema has no configuration errors", quiet)
    else:
        _output_error(combined.message or "Schema has configuration errors")
        if not quiet:
            err_console.print(_details_table("Configuration errors", details))

    if combined is not None:
        raise typer.Exit(code=EXIT_VALIDATION_ERROR)


# -----------------------------------------------------------------------------
# Config Command
# -----------------------------------------------------------------------------


@app.command("config")
def show_config(
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
) -> None:
    """Show the resolved configuration."""
    config = wire_config()
    values = dataclasses.asdict(config)
    values["create_mode"] = config.create_mode.value

    if json_output:
        _print_json(values)
        return

    table = Table(title="jsonvet configuration")
    table.add_column("Option", style="cyan")
    table.add_column("Value", style="green")
    for name, value in values.items():
        table.add_row(name, "-" if value is None else str(value))
    console.print(table)
