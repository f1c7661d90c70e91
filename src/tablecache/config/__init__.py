"""Configuration for tablecache.

Quick start::

    from tablecache.config import get_settings
    from tablecache.factory import create_cache

    settings = get_settings()          # reads TABLECACHE_* / .env
    cache = create_cache(settings)

Guardrails:
    ❌ Reading ``os.environ`` in library code
    ✅ ``get_settings().connection_target`` from the cached singleton
"""

from .settings import CacheSettings, clear_settings_cache, get_settings

__all__ = [
    "CacheSettings",
    "clear_settings_cache",
    "get_settings",
]
