"""
Password reset tokens.

A token is a Fernet message carrying the user id and the user's current
security stamp. Fernet authenticates and timestamps the payload, so:

- tampered or foreign tokens fail to decrypt,
- tokens older than the configured lifespan are rejected (ttl),
- a successful reset rotates the security stamp, which invalidates every
  token issued before it.
"""

from __future__ import annotations

import json

from cryptography.fernet import Fernet, InvalidToken

from .errors import InvalidArgument
from .models import User

PURPOSE = "ResetPassword"


class ResetTokenProvider:
    """
    Issue and check reset tokens.

    Without an explicit key the provider generates its own, so tokens only
    validate within the same provider instance.
    """

    def __init__(self, key: bytes | None = None, lifespan: int = 24 * 60 * 60) -> None:
        try:
            self._fernet = Fernet(key or Fernet.generate_key())
        except ValueError as exc:
            raise InvalidArgument("Reset token key must be a Fernet key.") from exc
        self.lifespan = lifespan

    def generate(self, user: User) -> str:
        payload = {"uid": user.id, "stamp": user.security_stamp, "purpose": PURPOSE}
        return self._fernet.encrypt(json.dumps(payload).encode("utf-8")).decode("ascii")

    def validate(self, user: User, token: str) -> bool:
        if not token:
            return False
        try:
            raw = self._fernet.decrypt(token.encode("ascii"), ttl=self.lifespan)
            payload = json.loads(raw.decode("utf-8"))
        except (InvalidToken, UnicodeError, ValueError):
            return False

        return (
            isinstance(payload, dict)
            and payload.get("purpose") == PURPOSE
            and payload.get("uid") == user.id
            and payload.get("stamp") == user.security_stamp
        )
