"""tablecache command-line interface (``tablecache`` console script)."""

from tablecache.cli.app import app

__all__ = ["app"]
