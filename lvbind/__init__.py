import json
import sys
from importlib.metadata import (
    version as get_version,
)
from pathlib import (
    Path,
)
from typing import (
    IO,
)

import click

from .backends import (
    backend_for_path,
    get_backend,
    get_backend_info,
    get_default_backend,
    is_backend_available,
)
from .ir import (
    IngestResult,
)
from .ir_writer import (
    write_json,
)
from .nodes import (
    SchemaError,
)

__version__ = get_version("lvbind")


def _debug_print(msg: str) -> None:
    """Print debug message to stderr."""
    print(f"[lvbind] {msg}", file=sys.stderr)


def ingest(
    code: str,
    filename: str,
    backend: str = "auto",
    elide_void: bool = False,
    transparent_kinds: tuple[str, ...] | None = None,
    debug: bool = False,
) -> IngestResult:
    """Normalize one API description into the canonical model.

    Args:
        code: JSON API map or C header source.
        filename: Input name, used to pick the backend in auto mode and in
            diagnostics.
        backend: Backend name ("auto", "schema", "tree-sitter").
        elide_void: [tree-sitter] Drop a lone unnamed ``void`` parameter.
        transparent_kinds: [tree-sitter] Node kinds to descend into instead
            of the default conditional/linkage/declaration-list blocks.
        debug: Print debug info to stderr.

    Returns:
        The canonical model with per-entity errors and warnings.

    Raises:
        SchemaError: If a JSON API map cannot be parsed at all.
        ValueError: If the backend is unknown or unavailable.
    """
    backend_name = backend_for_path(filename) if backend == "auto" else backend

    options = {}
    if backend_name == "tree-sitter":
        options["elide_void"] = elide_void
        if transparent_kinds:
            options["transparent_kinds"] = transparent_kinds

    if debug:
        _debug_print(f"Backend: {backend_name}")
        _debug_print(f"Parsing: {filename}")

    result = get_backend(backend_name, **options).parse(code, filename)

    if debug:
        _debug_print(f"Result: {len(result.functions)} functions, {len(result.errors)} errors")
    return result


def ingest_files(
    paths: list[str],
    backend: str = "auto",
    elide_void: bool = False,
    transparent_kinds: tuple[str, ...] | None = None,
    debug: bool = False,
) -> IngestResult:
    """Normalize several inputs and concatenate the results in order.

    Nothing is deduplicated across files. See :func:`ingest` for the
    arguments.

    Raises:
        OSError: If a file cannot be read.
    """
    result = IngestResult()
    for path in paths:
        code = Path(path).read_text(encoding="utf-8")
        result = result.merge(
            ingest(
                code,
                str(path),
                backend=backend,
                elide_void=elide_void,
                transparent_kinds=transparent_kinds,
                debug=debug,
            )
        )
    return result


CONTEXT_SETTINGS: dict[str, list[str]] = dict(help_option_names=["-h", "--help"])


def _print_backends_human() -> None:
    """Print backend info in human-readable format."""
    info = get_backend_info()
    print("Available backends:")
    for backend in info:
        status = "[available]" if backend["available"] else "[not available]"
        default_marker = " (default)" if backend["default"] else ""
        print(f"  {backend['name']:12} {backend['description']} {status}{default_marker}")

    print(f"\nDefault: {get_default_backend()}")


def _print_backends_json() -> None:
    """Print backend info in JSON format."""
    info = get_backend_info()
    output = {"backends": info}
    print(json.dumps(output))


def validate_backend_options(
    backend: str,
    infiles: tuple[str, ...],
    elide_void: bool,
    transparent_kinds: tuple[str, ...],
) -> None:
    """Check backend availability and reject tree-sitter options for schema input.

    :raises SystemExit: If validation fails.
    """
    names = {backend_for_path(path) for path in infiles} if backend == "auto" else {backend}

    if "tree-sitter" in names and not is_backend_available("tree-sitter"):
        click.echo(
            "Error: tree-sitter backend required but not available.\n"
            "Install with: pip install tree-sitter tree-sitter-cpp",
            err=True,
        )
        raise SystemExit(1)

    if names == {"schema"}:
        if elide_void:
            click.echo(
                "Error: --elide-void requires the tree-sitter backend "
                "(the schema backend always elides (void)).",
                err=True,
            )
            raise SystemExit(1)
        if transparent_kinds:
            click.echo("Error: --transparent-kind requires the tree-sitter backend.", err=True)
            raise SystemExit(1)


@click.command(
    context_settings=CONTEXT_SETTINGS,
    help="""Normalize a C library API (JSON API map or headers) into the canonical model.

\b
Options marked [tree-sitter] only apply to header input.
""",
)
@click.option("--version", "-v", is_flag=True, help="Print version and exit.")
@click.option(
    "--backend",
    "-b",
    type=click.Choice(["auto", "schema", "tree-sitter"], case_sensitive=False),
    default="auto",
    help="Ingestion backend (default: auto, picked per file suffix).",
)
@click.option(
    "--list-backends",
    is_flag=True,
    help="List available backends and exit.",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="JSON output (with --list-backends).",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress warnings.",
)
@click.option(
    "--debug/--no-debug",
    default=False,
    help="Print debug info to stderr.",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Exit with status 1 if any entity had to be skipped.",
)
@click.option(
    "--output",
    "-o",
    "outfile",
    type=click.File("w"),
    default="-",
    help="Write the model to this file (default: stdout).",
)
@click.option(
    "--indent",
    type=int,
    default=2,
    metavar="<n>",
    help="JSON indentation (default: 2).",
)
# === tree-sitter-only options ===
@click.option(
    "--elide-void",
    is_flag=True,
    help="[tree-sitter] Drop a lone unnamed void parameter, like the schema backend.",
)
@click.option(
    "--transparent-kind",
    "transparent_kinds",
    multiple=True,
    metavar="<kind>",
    help="[tree-sitter] Syntax node kind to descend into. Can be specified multiple times.",
)
@click.argument(
    "infiles",
    nargs=-1,
    type=click.Path(exists=True, dir_okay=False),
)
def cli(
    version: bool,
    infiles: tuple[str, ...],
    outfile: IO[str],
    backend: str,
    list_backends: bool,
    json_output: bool,
    quiet: bool,
    debug: bool,
    strict: bool,
    indent: int,
    elide_void: bool,
    transparent_kinds: tuple[str, ...],
) -> None:
    if version:
        print(__version__)
        return

    if json_output and not list_backends:
        click.echo("Error: --json requires --list-backends", err=True)
        raise SystemExit(1)

    if list_backends:
        if json_output:
            _print_backends_json()
        else:
            _print_backends_human()
        return

    if not infiles:
        click.echo("Error: Missing argument 'INFILES...'.", err=True)
        raise SystemExit(2)

    backend = backend.lower()
    validate_backend_options(backend, infiles, elide_void, transparent_kinds)

    try:
        result = ingest_files(
            list(infiles),
            backend=backend,
            elide_void=elide_void,
            transparent_kinds=transparent_kinds or None,
            debug=debug,
        )
    except SchemaError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from e
    except UnicodeDecodeError as e:
        click.echo(f"Error: input is not valid UTF-8: {e}", err=True)
        raise SystemExit(1) from e

    if not quiet:
        for warning in result.warnings:
            click.echo(f"Warning: {warning}", err=True)
        for error in result.errors:
            click.echo(f"Warning: skipped {error}", err=True)

    if debug:
        _debug_print(f"Enums: {len(result.api_map.enums)}")
        _debug_print(f"Functions: {len(result.api_map.functions)}")
        _debug_print(f"Structs: {len(result.api_map.structs)}")

    outfile.write(write_json(result, indent=indent))

    if strict and not result.ok:
        click.echo(f"Error: {len(result.errors)} entities could not be normalized.", err=True)
        raise SystemExit(1)
