"""
User and role services on top of the ORM models.

These play the part an identity framework's UserManager / RoleManager
would: expected failures (weak password, duplicate user, bad token) come
back as an IdentityResult with a list of errors, while programming and
database errors propagate as exceptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import DEFAULT_IDENTITY_OPTIONS, IdentityOptions
from .hashing import PasswordHasher
from .models import Role, User, new_id
from .roles import ALL_ROLES, normalize_name
from .tokens import ResetTokenProvider
from .validators import IdentityError, PasswordValidator, UserNameValidator

logger = logging.getLogger(__name__)


@dataclass
class IdentityResult:
    succeeded: bool
    errors: list[IdentityError] = field(default_factory=list)

    @classmethod
    def success(cls) -> "IdentityResult":
        return cls(True)

    @classmethod
    def failed(cls, *errors: IdentityError) -> "IdentityResult":
        return cls(False, list(errors))

    def __bool__(self) -> bool:
        return self.succeeded


class UserManager:
    """
    Create users, check and reset passwords, manage role membership.

    Changes are flushed to the session but not committed; the caller owns
    the transaction (see database.session_scope).
    """

    def __init__(
        self,
        session: Session,
        options: IdentityOptions | None = None,
        hasher: PasswordHasher | None = None,
        tokens: ResetTokenProvider | None = None,
    ) -> None:
        self.session = session
        self.options = options or DEFAULT_IDENTITY_OPTIONS
        self.hasher = hasher or PasswordHasher()
        self.tokens = tokens or ResetTokenProvider(
            lifespan=self.options.reset_token_lifespan
        )
        self.password_validator = PasswordValidator(self.options.password)
        self.user_validator = UserNameValidator(self.options.user)

    # ---------- look-ups ----------

    def find_by_name(self, user_name: str) -> User | None:
        if not user_name:
            return None
        stmt = select(User).where(User.normalized_user_name == normalize_name(user_name))
        return self.session.scalars(stmt).first()

    def find_by_email(self, email: str) -> User | None:
        if not email:
            return None
        stmt = select(User).where(User.normalized_email == normalize_name(email))
        return self.session.scalars(stmt).first()

    def get_roles(self, user: User) -> list[str]:
        return sorted(role.name for role in user.roles)

    def check_password(self, user: User, password: str) -> bool:
        return self.hasher.verify_password(user.password_hash, password)

    # ---------- users ----------

    def create(self, user_name: str, email: str, password: str) -> tuple[IdentityResult, User | None]:
        """
        Validate and insert a new user with a hashed password.

        Returns the result and, on success, the new (flushed) user.
        """
        errors = self.user_validator.validate(user_name, email)
        errors.extend(self.password_validator.validate(password))

        if user_name and self.find_by_name(user_name) is not None:
            errors.append(
                IdentityError(
                    "DuplicateUserName",
                    f"Username '{user_name}' is already taken.",
                )
            )
        if (
            self.options.user.require_unique_email
            and email
            and self.find_by_email(email) is not None
        ):
            errors.append(
                IdentityError("DuplicateEmail", f"Email '{email}' is already taken.")
            )

        if errors:
            return IdentityResult.failed(*errors), None

        user = User(
            user_name=user_name,
            normalized_user_name=normalize_name(user_name),
            email=email,
            normalized_email=normalize_name(email),
            password_hash=self.hasher.hash_password(password),
        )
        self.session.add(user)
        self.session.flush()
        logger.info("Created user %s", user_name)
        return IdentityResult.success(), user

    def generate_password_reset_token(self, user: User) -> str:
        return self.tokens.generate(user)

    def reset_password(self, user: User, token: str, new_password: str) -> IdentityResult:
        if not self.tokens.validate(user, token):
            return IdentityResult.failed(IdentityError("InvalidToken", "Invalid token."))

        errors = self.password_validator.validate(new_password)
        if errors:
            return IdentityResult.failed(*errors)

        user.password_hash = self.hasher.hash_password(new_password)
        # New stamp: every token issued so far stops validating.
        user.security_stamp = new_id()
        self.session.flush()
        logger.info("Password reset for user %s", user.user_name)
        return IdentityResult.success()

    # ---------- roles ----------

    def find_role(self, role_name: str) -> Role | None:
        normalized = normalize_name(role_name or "")
        return self.session.scalars(
            select(Role).where(Role.normalized_name == normalized)
        ).first()

    def add_to_role(self, user: User, role_name: str) -> IdentityResult:
        role = self.find_role(role_name)
        if role is None:
            return IdentityResult.failed(
                IdentityError("InvalidRoleName", f"Role name '{role_name}' is invalid.")
            )

        if role in user.roles:
            return IdentityResult.failed(
                IdentityError(
                    "UserAlreadyInRole",
                    f"User already in role '{role.name}'.",
                )
            )

        user.roles.append(role)
        self.session.flush()
        logger.info("Added user %s to role %s", user.user_name, role.name)
        return IdentityResult.success()


class RoleManager:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_roles(self) -> list[Role]:
        return list(self.session.scalars(select(Role).order_by(Role.name)))

    def add_role(self, name: str) -> Role:
        role = Role(name=name, normalized_name=normalize_name(name))
        self.session.add(role)
        return role

    def commit(self) -> None:
        self.session.commit()

    def seed_roles(self) -> bool:
        """
        Insert the built-in roles if the roles table is empty.

        Returns True if roles were added.
        """
        if self.list_roles():
            return False

        for name in ALL_ROLES:
            self.add_role(name)
        self.commit()
        logger.info("Seeded roles: %s", ", ".join(ALL_ROLES))
        return True
