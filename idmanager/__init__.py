"""
Identity database administration tool and secure password generator.
"""

from .config import DEFAULT_ALPHABET, DEFAULT_IDENTITY_OPTIONS, DatabaseConfig, IdentityOptions
from .errors import EntropySourceUnavailable, IdManagerError, InvalidArgument
from .generator import generate_compliant_password, generate_password, normalize_character_set

__all__ = [
    "DEFAULT_ALPHABET",
    "DEFAULT_IDENTITY_OPTIONS",
    "DatabaseConfig",
    "IdentityOptions",
    "EntropySourceUnavailable",
    "IdManagerError",
    "InvalidArgument",
    "generate_password",
    "generate_compliant_password",
    "normalize_character_set",
]
