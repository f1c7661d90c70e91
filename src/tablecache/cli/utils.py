"""
CLI utility helpers — output formatting and cache construction.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from rich.console import Console

from tablecache.cache import TableCache
from tablecache.config.settings import CacheSettings, get_settings
from tablecache.errors import CacheError
from tablecache.factory import create_cache

console = Console()
err_console = Console(stderr=True)


# ── Cache helper ─────────────────────────────────────────────────────────


def load_settings(
    target: str | None = None,
    *,
    table: str | None = None,
    schema: str | None = None,
    create_table: bool | None = None,
) -> CacheSettings:
    """Settings from env / ``.env`` with command-line overrides applied."""
    overrides: dict[str, Any] = {}
    if target:
        overrides["connection_target"] = target
    if table:
        overrides["table_name"] = table
    if schema:
        overrides["schema_name"] = schema
    if create_table is not None:
        overrides["create_table"] = create_table
    settings = get_settings()
    return settings.model_copy(update=overrides) if overrides else settings


@contextmanager
def open_cache(settings: CacheSettings) -> Iterator[TableCache]:
    """Build a cache for one command; errors become exit code 2."""
    with handle_errors():
        cache = create_cache(settings)
    with cache, handle_errors():
        yield cache


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print a :class:`CacheError` and exit with status 2."""
    try:
        yield
    except CacheError as exc:
        err_console.print(
            f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}"
        )
        raise typer.Exit(code=2) from exc


# ── Output helpers ───────────────────────────────────────────────────────


def render_value(value: bytes) -> str:
    """UTF-8 text when decodable, hex otherwise."""
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value.hex()


def output(data: dict[str, Any], *, as_json: bool = False, title: str = "") -> None:
    """Render a result dict as JSON or key-value pairs."""
    if as_json:
        console.print_json(json.dumps(data, default=str))
        return
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        if isinstance(v, dict):
            console.print(f"  [cyan]{k}[/cyan]:")
            for sub_k, sub_v in v.items():
                console.print(f"    [cyan]{sub_k}[/cyan]: {sub_v}")
        else:
            console.print(f"  [cyan]{k}[/cyan]: {v}")
