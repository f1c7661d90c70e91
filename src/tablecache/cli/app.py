"""
Root Typer application for the tablecache CLI.

Every command builds a cache from ``TABLECACHE_*`` settings, with
``--target`` / ``--table`` / ``--schema`` overriding them, runs one
operation and closes the cache.
"""

from __future__ import annotations

import sys

import typer
from typer import Typer

from tablecache.cli.utils import err_console, load_settings, open_cache, output, render_value
from tablecache.logging import configure_logging
from tablecache.models import CacheEntryOptions

app = Typer(
    name="tablecache",
    help="tablecache — shared persistent cache backed by a database table.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

TargetOption = typer.Option(None, "--target", "-t", help="Connection target (overrides TABLECACHE_CONNECTION_TARGET)")
TableOption = typer.Option(None, "--table", help="Cache table name")
SchemaOption = typer.Option(None, "--schema", help="Schema name")
JsonOption = typer.Option(False, "--json", help="JSON output")


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from tablecache import __version__

        typer.echo(f"tablecache {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at INFO instead of WARNING."),
) -> None:
    """tablecache CLI — create the table, inspect and edit entries, sweep expired rows."""
    settings = load_settings()
    level = settings.log_level if verbose else "WARNING"
    configure_logging(level=level, json_format=settings.log_format == "json", stream=sys.stderr)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def init(
    target: str | None = TargetOption,
    table: str | None = TableOption,
    schema: str | None = SchemaOption,
    json_out: bool = JsonOption,
) -> None:
    """Create the cache table and its expiry index."""
    settings = load_settings(target, table=table, schema=schema, create_table=True)
    with open_cache(settings) as cache:
        table_name = getattr(cache.store, "qualified_table", None)
        output({"created": True, "store": cache.store.name, "table": table_name}, as_json=json_out, title="Cache Init")


@app.command()
def sweep(
    target: str | None = TargetOption,
    table: str | None = TableOption,
    schema: str | None = SchemaOption,
    json_out: bool = JsonOption,
) -> None:
    """Delete expired rows now."""
    settings = load_settings(target, table=table, schema=schema)
    with open_cache(settings) as cache:
        deleted = cache.delete_expired()
        output({"deleted": deleted}, as_json=json_out, title="Sweep")


@app.command()
def get(
    key: str = typer.Argument(..., help="Cache key"),
    target: str | None = TargetOption,
    table: str | None = TableOption,
    schema: str | None = SchemaOption,
    json_out: bool = JsonOption,
) -> None:
    """Print the value for KEY (renews sliding expiration). Exit 1 if absent."""
    settings = load_settings(target, table=table, schema=schema)
    with open_cache(settings) as cache:
        entry = cache.get_entry(key)
        if entry is None:
            if json_out:
                output({"key": key, "found": False}, as_json=True)
            else:
                err_console.print(f"[yellow]Not found:[/yellow] {key}")
            raise typer.Exit(code=1)
        if json_out:
            data = entry.to_dict()
            data["found"] = True
            data["value"] = render_value(entry.value)
            output(data, as_json=True)
        else:
            typer.echo(render_value(entry.value))


@app.command("set")
def set_(
    key: str = typer.Argument(..., help="Cache key"),
    value: str = typer.Argument(..., help="Value (stored as UTF-8)"),
    sliding: float | None = typer.Option(None, "--sliding", help="Sliding expiration in seconds"),
    absolute_in: float | None = typer.Option(None, "--absolute-in", help="Absolute expiration, seconds from now"),
    target: str | None = TargetOption,
    table: str | None = TableOption,
    schema: str | None = SchemaOption,
    json_out: bool = JsonOption,
) -> None:
    """Store VALUE under KEY."""
    if absolute_in is not None:
        options = CacheEntryOptions.expire_in(absolute_in, sliding=sliding)
    elif sliding is not None:
        options = CacheEntryOptions.sliding(sliding)
    else:
        options = None

    settings = load_settings(target, table=table, schema=schema)
    with open_cache(settings) as cache:
        entry = cache.set(key, value.encode("utf-8"), options)
        output(entry.to_dict(), as_json=json_out, title="Stored")


@app.command()
def refresh(
    key: str = typer.Argument(..., help="Cache key"),
    target: str | None = TargetOption,
    table: str | None = TableOption,
    schema: str | None = SchemaOption,
    json_out: bool = JsonOption,
) -> None:
    """Renew KEY's sliding expiration. Exit 1 if absent."""
    settings = load_settings(target, table=table, schema=schema)
    with open_cache(settings) as cache:
        found = cache.refresh(key)
        output({"key": key, "found": found}, as_json=json_out, title="Refresh")
        if not found:
            raise typer.Exit(code=1)


@app.command()
def remove(
    key: str = typer.Argument(..., help="Cache key"),
    target: str | None = TargetOption,
    table: str | None = TableOption,
    schema: str | None = SchemaOption,
    json_out: bool = JsonOption,
) -> None:
    """Delete KEY if present."""
    settings = load_settings(target, table=table, schema=schema)
    with open_cache(settings) as cache:
        cache.remove(key)
        output({"key": key, "removed": True}, as_json=json_out, title="Remove")


@app.command()
def stats(
    target: str | None = TargetOption,
    table: str | None = TableOption,
    schema: str | None = SchemaOption,
    json_out: bool = JsonOption,
) -> None:
    """Show live and expired row counts."""
    settings = load_settings(target, table=table, schema=schema)
    with open_cache(settings) as cache:
        output(cache.stats(), as_json=json_out, title="Cache Stats")
