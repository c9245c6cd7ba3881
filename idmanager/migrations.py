"""
Versioned schema migrations.

Applied versions are recorded in the schema_migrations table. Each step
runs in its own transaction together with its bookkeeping row, so a
failing step leaves every earlier step applied and itself not recorded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy import func, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import MigrationError
from .models import Base, Role, SchemaMigration, User, user_roles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    upgrade: Callable[[Connection], None]


def _create_identity_tables(conn: Connection) -> None:
    Base.metadata.create_all(
        conn,
        tables=[User.__table__, Role.__table__, user_roles],
        checkfirst=True,
    )


def _backfill_normalized_email(conn: Connection) -> None:
    # Rows inserted by other tools may lack the normalized e-mail key.
    users = User.__table__
    conn.execute(
        update(users)
        .where(users.c.normalized_email.is_(None), users.c.email.is_not(None))
        .values(normalized_email=func.upper(func.trim(users.c.email)))
    )


MIGRATIONS: list[Migration] = [
    Migration(1, "create_identity_tables", _create_identity_tables),
    Migration(2, "backfill_normalized_email", _backfill_normalized_email),
]


def _ensure_history_table(engine: Engine) -> None:
    with engine.begin() as conn:
        SchemaMigration.__table__.create(conn, checkfirst=True)


def _applied_versions(engine: Engine) -> set[int]:
    _ensure_history_table(engine)
    history = SchemaMigration.__table__
    with engine.connect() as conn:
        return set(conn.execute(select(history.c.version)).scalars())


def current_version(engine: Engine) -> int:
    """Highest applied version, 0 on a fresh database."""
    return max(_applied_versions(engine), default=0)


def pending_migrations(
    engine: Engine,
    migrations: list[Migration] | None = None,
) -> list[Migration]:
    steps = MIGRATIONS if migrations is None else migrations
    applied = _applied_versions(engine)
    return sorted(
        (m for m in steps if m.version not in applied),
        key=lambda m: m.version,
    )


def apply_pending_migrations(
    engine: Engine,
    migrations: list[Migration] | None = None,
) -> list[Migration]:
    """
    Apply every pending migration in version order.

    Returns the migrations that were applied (empty when up to date).
    Raises MigrationError on the first failing step.
    """
    history = SchemaMigration.__table__
    applied: list[Migration] = []

    for migration in pending_migrations(engine, migrations):
        logger.info("Applying migration %03d %s", migration.version, migration.name)
        try:
            with engine.begin() as conn:
                migration.upgrade(conn)
                conn.execute(
                    insert(history).values(
                        version=migration.version,
                        name=migration.name,
                    )
                )
        except SQLAlchemyError as exc:
            raise MigrationError(
                f"Migration {migration.version} ({migration.name}) failed: {exc}"
            ) from exc
        applied.append(migration)

    if not applied:
        logger.info("Database schema is up to date")
    return applied
