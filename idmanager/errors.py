"""
Exception hierarchy for the identity management tool.
"""

from __future__ import annotations


class IdManagerError(Exception):
    """Base class for all idmanager errors."""


class InvalidArgument(IdManagerError, ValueError):
    """A caller-supplied argument is out of range or malformed."""


class EntropySourceUnavailable(IdManagerError, RuntimeError):
    """The operating system's secure random source cannot be used."""


class InvalidRole(InvalidArgument):
    """Empty or unknown role name."""


class UnsupportedDatabase(IdManagerError):
    """Unknown database type or incomplete connection settings."""


class MigrationError(IdManagerError):
    """A schema migration step failed and was rolled back."""
