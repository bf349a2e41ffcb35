"""Error kinds raised by the link registry, resolver and their adapters.

Only :class:`NotFoundError` is reported distinctly at the HTTP edge; every
other kind collapses to a generic internal error response there.
"""

__all__ = [
    "ShortenerError",
    "NotFoundError",
    "StoreError",
    "CodeCollisionError",
    "CacheError",
    "CodeGenerationError",
    "InternalError",
]


class ShortenerError(Exception):
    """Base class for all URL shortener errors."""


class NotFoundError(ShortenerError):
    """The slug is absent from the store, or a delete matched no rows."""


class StoreError(ShortenerError):
    """Any persistence failure against the link store."""


class CodeCollisionError(StoreError):
    """The generated short code violated the store's uniqueness constraint."""

    def __init__(self, short_code: str):
        super().__init__(f"Short code '{short_code}' collision detected")
        self.short_code = short_code


class CacheError(ShortenerError):
    """Lookup, set or delete failure against the cache layer."""


class CodeGenerationError(ShortenerError):
    """Random code generation produced a degenerate result."""


class InternalError(ShortenerError):
    """Catch-all for failures that are fatal to an otherwise successful operation."""
