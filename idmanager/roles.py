"""
Built-in role names.
"""

from __future__ import annotations

from .errors import InvalidRole

ADMINISTRATOR = "Administrator"
USER = "User"

ALL_ROLES = (ADMINISTRATOR, USER)


def normalize_name(name: str) -> str:
    """Upper-cased form stored in the normalized_* columns."""
    return name.strip().upper()


def check_role(role: str | None) -> str:
    """
    Check that `role` names a built-in role (case-insensitive) and return
    its normalized name.
    """
    if not role or not role.strip():
        raise InvalidRole("No role name given")

    normalized = normalize_name(role)
    if normalized not in {normalize_name(r) for r in ALL_ROLES}:
        raise InvalidRole("Invalid role name")

    return normalized
