"""An asyncio HTTP client core: request targets, pool keys, idle connection reuse."""

__version__ = "0.1.0"
__all__ = ["client", "config", "errors", "messages", "pool", "uri"]