"""
Password hashing with PBKDF2-HMAC-SHA256.

Stored format: pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>
"""

from __future__ import annotations

import hashlib
import hmac

from .entropy import get_source

ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 210_000
SALT_BYTES = 16


class PasswordHasher:
    def __init__(self, iterations: int = DEFAULT_ITERATIONS) -> None:
        self.iterations = iterations

    @staticmethod
    def _derive(password: str, salt: bytes, iterations: int) -> bytes:
        return hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            salt,
            iterations,
            dklen=32,
        )

    def hash_password(self, password: str) -> str:
        salt = get_source().random_bytes(SALT_BYTES)
        dk = self._derive(password, salt, self.iterations)
        return f"{ALGORITHM}${self.iterations}${salt.hex()}${dk.hex()}"

    def verify_password(self, stored_hash: str | None, password: str) -> bool:
        """Constant-time check; malformed hashes never verify."""
        parsed = _parse(stored_hash)
        if parsed is None:
            return False
        iterations, salt, expected = parsed
        dk = self._derive(password, salt, iterations)
        return hmac.compare_digest(dk, expected)

    def needs_rehash(self, stored_hash: str | None) -> bool:
        parsed = _parse(stored_hash)
        return parsed is None or parsed[0] < self.iterations


def _parse(stored_hash: str | None) -> tuple[int, bytes, bytes] | None:
    if not stored_hash:
        return None
    parts = stored_hash.split("$")
    if len(parts) != 4 or parts[0] != ALGORITHM:
        return None
    try:
        iterations = int(parts[1])
        salt = bytes.fromhex(parts[2])
        expected = bytes.fromhex(parts[3])
    except ValueError:
        return None
    if iterations <= 0:
        return None
    return iterations, salt, expected
