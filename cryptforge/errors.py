"""Exception types raised by level generation.

Only configuration problems are fatal. Routing failures, missing tilesets and
unplaceable locks are recovered locally and never surface as exceptions.
"""
from __future__ import annotations


class CryptforgeError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(CryptforgeError, ValueError):
    """An option value or override table is unusable."""


class CatalogError(ConfigError):
    """The room template catalog does not have the expected shape."""

    def __init__(self, message: str, *, role: str | None = None):
        super().__init__(message)
        self.role = role
