"""
Password and user-name validation against IdentityOptions.

Validators return a list of IdentityError values; an empty list means the
input is acceptable.
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import PasswordOptions, UserOptions


@dataclass(frozen=True)
class IdentityError:
    code: str
    description: str


class PasswordValidator:
    def __init__(self, options: PasswordOptions | None = None) -> None:
        self.options = options or PasswordOptions()

    def validate(self, password: str) -> list[IdentityError]:
        opts = self.options
        errors: list[IdentityError] = []

        if password is None or len(password) < opts.required_length:
            errors.append(
                IdentityError(
                    "PasswordTooShort",
                    f"Passwords must be at least {opts.required_length} characters.",
                )
            )
            if password is None:
                return errors

        if opts.require_non_alphanumeric and all(c.isalnum() for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresNonAlphanumeric",
                    "Passwords must have at least one non alphanumeric character.",
                )
            )
        if opts.require_digit and not any(c.isdigit() for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresDigit",
                    "Passwords must have at least one digit ('0'-'9').",
                )
            )
        if opts.require_lowercase and not any(c.islower() for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresLower",
                    "Passwords must have at least one lowercase ('a'-'z').",
                )
            )
        if opts.require_uppercase and not any(c.isupper() for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresUpper",
                    "Passwords must have at least one uppercase ('A'-'Z').",
                )
            )
        if len(set(password)) < opts.required_unique_chars:
            errors.append(
                IdentityError(
                    "PasswordRequiresUniqueChars",
                    f"Passwords must use at least {opts.required_unique_chars} "
                    "different characters.",
                )
            )
        return errors


class UserNameValidator:
    """
    Format checks only; uniqueness needs the database and lives in
    UserManager.
    """

    def __init__(self, options: UserOptions | None = None) -> None:
        self.options = options or UserOptions()

    def validate(self, user_name: str, email: str) -> list[IdentityError]:
        errors: list[IdentityError] = []
        allowed = self.options.allowed_user_name_characters

        if not user_name or (allowed and any(c not in allowed for c in user_name)):
            errors.append(
                IdentityError(
                    "InvalidUserName",
                    f"Username '{user_name}' is invalid, can only contain "
                    "letters or digits.",
                )
            )

        if not _looks_like_email(email):
            errors.append(
                IdentityError("InvalidEmail", f"Email '{email}' is invalid.")
            )
        return errors


def _looks_like_email(email: str | None) -> bool:
    # Same rule of thumb as most identity frameworks: one '@' that is
    # neither first nor last.
    if not email:
        return False
    at = email.find("@")
    return 0 < at < len(email) - 1 and email.count("@") == 1
