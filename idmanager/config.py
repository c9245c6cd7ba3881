"""
Configuration for the identity management tool.

Everything is a plain dataclass so callers can build and tweak settings in
code; `DatabaseConfig.from_env` and `load_environment` add the optional
environment / `.env` layer used by the command line.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from sqlalchemy.engine import URL

from .errors import InvalidArgument, UnsupportedDatabase

ENV_PREFIX = "IDMANAGER_"

# Default password length in characters.
DEFAULT_PASSWORD_LENGTH = 16

# 70 symbols: A-Z, a-z, 0-9 and a small punctuation subset.
DEFAULT_ALPHABET = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789"
    "!$%&#+-"
)

SUPPORTED_DB_TYPES = ("sqlite", "mysql")


@dataclass
class PasswordOptions:
    # Minimum length accepted for a stored password.
    required_length: int = 12
    require_digit: bool = True
    require_lowercase: bool = True
    require_uppercase: bool = True
    require_non_alphanumeric: bool = False
    # Minimum number of distinct characters.
    required_unique_chars: int = 1


@dataclass
class UserOptions:
    allowed_user_name_characters: str = (
        "abcdefghijklmnopqrstuvwxyz"
        "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
        "0123456789-._@+"
    )
    require_unique_email: bool = True


@dataclass
class IdentityOptions:
    password: PasswordOptions = field(default_factory=PasswordOptions)
    user: UserOptions = field(default_factory=UserOptions)
    # How long a password reset token stays valid, in seconds.
    reset_token_lifespan: int = 24 * 60 * 60


DEFAULT_IDENTITY_OPTIONS = IdentityOptions()


@dataclass
class DatabaseConfig:
    """
    Connection settings for one of the supported backends.

    - sqlite: only `file` is used.
    - mysql: `server`, `name`, `user`, `password` and optionally `port`.
    """

    db_type: str
    server: str = "localhost"
    name: str | None = None
    user: str | None = None
    password: str | None = None
    file: str | None = None
    port: int | None = None
    echo: bool = False

    def validate(self) -> None:
        if self.db_type not in SUPPORTED_DB_TYPES:
            raise UnsupportedDatabase(
                f"The database type {self.db_type} is not supported!"
            )
        if self.db_type == "sqlite" and not self.file:
            raise UnsupportedDatabase("sqlite needs a database file (--dbfile).")
        if self.db_type == "mysql" and not self.name:
            raise UnsupportedDatabase("mysql needs a database name (--dbname).")

    def url(self) -> URL:
        """Build the SQLAlchemy URL; credentials are escaped by URL.create."""
        self.validate()
        if self.db_type == "sqlite":
            return URL.create("sqlite", database=self.file)

        return URL.create(
            "mysql+pymysql",
            username=self.user or None,
            password=self.password or None,
            host=self.server or "localhost",
            port=self.port,
            database=self.name,
        )

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "DatabaseConfig | None":
        """
        Build a config from IDMANAGER_DB* variables.

        Returns None when no database type is configured.
        """
        db_type = os.getenv(prefix + "DBTYPE")
        if not db_type:
            return None

        port = os.getenv(prefix + "DBPORT")
        try:
            port_number = int(port) if port else None
        except ValueError as exc:
            raise UnsupportedDatabase(f"Invalid database port {port!r}.") from exc

        return cls(
            db_type=db_type.lower(),
            server=os.getenv(prefix + "DBSERVER", "localhost"),
            name=os.getenv(prefix + "DBNAME"),
            user=os.getenv(prefix + "DBUSER"),
            password=os.getenv(prefix + "DBPASSWORD"),
            file=os.getenv(prefix + "DBFILE"),
            port=port_number,
        )


def load_environment(path: str | Path | None = None) -> bool:
    """
    Load a `.env` file into os.environ without overriding set variables.

    Returns True if a file was found and loaded.
    """
    if path is None:
        return load_dotenv(find_dotenv(usecwd=True), override=False)
    return load_dotenv(Path(path), override=False)


def token_key_from_env(prefix: str = ENV_PREFIX) -> bytes | None:
    key = os.getenv(prefix + "TOKEN_KEY")
    if not key:
        return None
    try:
        return key.encode("ascii")
    except UnicodeEncodeError as exc:
        raise InvalidArgument("Reset token key must be a Fernet key.") from exc
