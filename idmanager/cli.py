"""
Command-line interface.

Sub-commands:
- create-user  create a user with a generated password and add it to a role
- reset-user   reset a user's password to a generated one
- db           apply migrations (--migrate) or seed the roles table (--init)
- generate     print generated passwords

Database options can also come from IDMANAGER_DB* environment variables
or a `.env` file.
"""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import (
    DEFAULT_IDENTITY_OPTIONS,
    DEFAULT_PASSWORD_LENGTH,
    SUPPORTED_DB_TYPES,
    DatabaseConfig,
    load_environment,
    token_key_from_env,
)
from .database import create_engine_for, make_session_factory, session_scope
from .errors import IdManagerError, UnsupportedDatabase
from .generator import generate_compliant_password, generate_password
from .logging_config import setup_logging
from .manager import RoleManager, UserManager
from .migrations import apply_pending_migrations
from .roles import USER, check_role
from .tokens import ResetTokenProvider
from .validators import IdentityError

logger = logging.getLogger(__name__)


# ---------- argument parsing ----------

def _database_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    group = common.add_argument_group("database")
    group.add_argument("--dbtype", choices=SUPPORTED_DB_TYPES, help="Database type (mysql or sqlite)")
    group.add_argument("--dbserver", help="Database server (default: localhost)")
    group.add_argument("--dbport", type=int, help="Database server port")
    group.add_argument("--dbname", help="Database name")
    group.add_argument("--dbuser", help="Database user")
    group.add_argument("--dbpassword", help="Database user password")
    group.add_argument("--dbfile", help="Database file (sqlite)")
    return common


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="idmanager",
        description="Manage users, roles and schema of an identity database.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--env-file", help="Load settings from this .env file")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True
    common = _database_options()

    p = sub.add_parser("create-user", parents=[common], help="Create a user with a generated password")
    p.add_argument("--email", required=True, help="Email address of the new user")
    p.add_argument("--role", default=USER, help="The name of the role the user is added to")
    p.set_defaults(func=cmd_create_user)

    p = sub.add_parser("reset-user", parents=[common], help="Reset a user's password")
    p.add_argument("--email", "--user", dest="email", required=True, help="Email address of the user")
    p.set_defaults(func=cmd_reset_user)

    p = sub.add_parser("db", parents=[common], help="Migrate or initialize the database")
    action = p.add_mutually_exclusive_group(required=True)
    action.add_argument("--migrate", action="store_true", help="Perform database migrations")
    action.add_argument("--init", action="store_true", help="Initialize the roles table")
    p.set_defaults(func=cmd_db)

    p = sub.add_parser("generate", help="Print generated passwords")
    p.add_argument("-l", "--length", type=int, default=DEFAULT_PASSWORD_LENGTH, help="Password length")
    p.add_argument("-c", "--charset", help="Characters to draw from (default: built-in alphabet)")
    p.add_argument("-n", "--count", type=int, default=1, help="Number of passwords")
    p.set_defaults(func=cmd_generate)

    return parser


def database_config(args: argparse.Namespace) -> DatabaseConfig:
    """
    Merge command-line options over environment settings.
    """
    env = DatabaseConfig.from_env()
    db_type = args.dbtype or (env.db_type if env else None)
    if not db_type:
        raise UnsupportedDatabase("No database type given (--dbtype sqlite|mysql).")

    def pick(option: str, env_attr: str):
        value = getattr(args, option)
        if value is None and env is not None:
            value = getattr(env, env_attr)
        return value

    config = DatabaseConfig(
        db_type=db_type,
        server=pick("dbserver", "server") or "localhost",
        name=pick("dbname", "name"),
        user=pick("dbuser", "user"),
        password=pick("dbpassword", "password"),
        file=pick("dbfile", "file"),
        port=pick("dbport", "port"),
    )
    config.validate()
    return config


# ---------- helpers ----------

@contextmanager
def _open_session(args: argparse.Namespace) -> Iterator[Session]:
    engine = create_engine_for(database_config(args))
    try:
        with session_scope(make_session_factory(engine)) as session:
            yield session
    finally:
        engine.dispose()


def _user_manager(session: Session) -> UserManager:
    options = DEFAULT_IDENTITY_OPTIONS
    tokens = ResetTokenProvider(token_key_from_env(), lifespan=options.reset_token_lifespan)
    return UserManager(session, options=options, tokens=tokens)


def _print_errors(title: str, errors: list[IdentityError]) -> None:
    print(f"Errors occurred ({title})!")
    for error in errors:
        print(error.description)


# ---------- commands ----------

def cmd_create_user(args: argparse.Namespace) -> int:
    role = check_role(args.role)
    password = generate_compliant_password(DEFAULT_IDENTITY_OPTIONS.password)

    with _open_session(args) as session:
        manager = _user_manager(session)
        # The user is only created when it can also be put in the role.
        if manager.find_role(role) is None:
            print(f"Role {role} does not exist; run `idmanager db --init` first.")
            return 1

        result, user = manager.create(args.email, args.email, password)
        if not result:
            _print_errors("create user", result.errors)
            return 1

        print("New user created!")
        print(f"User name: {args.email}")
        print(f"Password:  {password}")

        role_result = manager.add_to_role(user, role)
        if not role_result:
            _print_errors("add to role", role_result.errors)
            session.rollback()
            return 1
        print(f"User added to role {role}!")
    return 0


def cmd_reset_user(args: argparse.Namespace) -> int:
    with _open_session(args) as session:
        manager = _user_manager(session)
        user = manager.find_by_name(args.email)
        if user is None:
            print(f"User {args.email} not found!")
            return 1

        token = manager.generate_password_reset_token(user)
        new_password = generate_compliant_password(DEFAULT_IDENTITY_OPTIONS.password)
        result = manager.reset_password(user, token, new_password)
        if not result:
            _print_errors("reset password", result.errors)
            return 1

        print(f"Password for {args.email} reset!")
        print(f"New password: {new_password}")
    return 0


def cmd_db(args: argparse.Namespace) -> int:
    if args.migrate:
        engine = create_engine_for(database_config(args))
        try:
            applied = apply_pending_migrations(engine)
        finally:
            engine.dispose()

        if not applied:
            print("Database is up to date")
        for migration in applied:
            print(f"Applied migration {migration.version:03d} {migration.name}")
        return 0

    with _open_session(args) as session:
        if RoleManager(session).seed_roles():
            print("Initialized roles table")
        else:
            print("Roles table already initialized")
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    if args.count < 1:
        print("--count must be at least 1", file=sys.stderr)
        return 2
    for _ in range(args.count):
        print(generate_password(args.length, args.charset))
    return 0


# ---------- entry point ----------

def main(argv: Sequence[str] | None = None) -> int:
    """
    Entry point for `idmanager`, `python -m idmanager` and run_idmanager.py.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    load_environment(args.env_file)
    setup_logging(args.verbose)

    try:
        return args.func(args)
    except IdManagerError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(str(exc), file=sys.stderr)
        return 1
    except SQLAlchemyError as exc:
        logger.error("Database error: %s", exc)
        print(f"Database error: {exc}", file=sys.stderr)
        return 1
