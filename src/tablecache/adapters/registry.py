"""Database adapter registry and factory.

Manifesto:
    Callers should never hard-code adapter class names. The registry maps
    ``DatabaseType`` strings to adapter classes, and ``adapter_from_url()``
    builds a configured adapter straight from a connection target.

Features:
    - ``AdapterRegistry`` singleton with pre-registered defaults
    - ``register()`` for custom adapters
    - ``get_adapter()`` factory: type + kwargs → adapter
    - ``adapter_from_url()`` factory: connection target → adapter

Tags:
    tablecache, database, registry, factory, singleton

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Any

from tablecache.errors import InvalidConfigError

from .base import DatabaseAdapter
from .postgresql import PostgreSQLAdapter
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType


class AdapterRegistry:
    """
    Registry for database adapter factories.

    Pre-registered adapters:
    - ``sqlite`` — :class:`SQLiteAdapter`
    - ``postgresql`` / ``postgres`` — :class:`PostgreSQLAdapter`
    """

    def __init__(self):
        self._factories: dict[str, type[DatabaseAdapter]] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        self._factories["sqlite"] = SQLiteAdapter
        self._factories["postgresql"] = PostgreSQLAdapter
        self._factories["postgres"] = PostgreSQLAdapter  # Alias

    def register(self, name: str, adapter_class: type[DatabaseAdapter]) -> None:
        """Register an adapter factory."""
        self._factories[name.lower()] = adapter_class

    def get(self, name: str) -> type[DatabaseAdapter]:
        name = name.lower()
        if name not in self._factories:
            raise InvalidConfigError("db_type", name, f"Unknown database adapter: {name}")
        return self._factories[name]

    def create(self, name: str, **kwargs: Any) -> DatabaseAdapter:
        """Create an adapter by name."""
        return self.get(name)(**kwargs)

    def list_adapters(self) -> list[str]:
        """List registered adapter names."""
        return sorted(self._factories.keys())


# Global registry
adapter_registry = AdapterRegistry()


def get_adapter(
    db_type: DatabaseType | str,
    **kwargs: Any,
) -> DatabaseAdapter:
    """
    Get a database adapter by type.

    Usage:
        adapter = get_adapter(DatabaseType.SQLITE, path="cache.db")
        adapter = get_adapter("postgresql", host="localhost", database="app")
    """
    if isinstance(db_type, DatabaseType):
        name = db_type.value
    else:
        name = db_type

    return adapter_registry.create(name, **kwargs)


def adapter_from_url(
    url: str,
    *,
    pool_size: int | None = None,
    connect_timeout: int | None = None,
) -> DatabaseAdapter:
    """
    Build an (unconnected) adapter from a connection target.

    Usage:
        adapter = adapter_from_url("sqlite:///cache.db")
        adapter = adapter_from_url("postgresql://app@db/app", pool_size=10)
    """
    config = DatabaseConfig.from_url(url)
    if pool_size is not None:
        config.pool_size = pool_size
    if connect_timeout is not None:
        config.connect_timeout = connect_timeout
    adapter_class = adapter_registry.get(config.db_type.value)
    return adapter_class.from_config(config)


__all__ = [
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
    "adapter_from_url",
]
