"""
Entropy source:
A single process-wide handle on the operating system's CSPRNG.

Every random value the tool needs (password characters, salts) comes from
here. There is no fallback to the `random` module: if the OS
cannot provide secure randomness the call fails with
EntropySourceUnavailable.
"""

from __future__ import annotations

import os
import threading

from .errors import EntropySourceUnavailable, InvalidArgument

UINT64_RANGE = 1 << 64


class SecureRandomSource:
    """
    Thin wrapper around os.urandom.

    os.urandom is thread-safe, so one instance is shared by all callers.
    """

    def __init__(self) -> None:
        # Probe once so a missing source is reported up front.
        self.random_bytes(8)

    def random_bytes(self, n: int) -> bytes:
        try:
            return os.urandom(n)
        except (NotImplementedError, OSError) as exc:
            raise EntropySourceUnavailable(
                "Secure random source is not available on this system."
            ) from exc

    def random_uint64(self) -> int:
        """Uniform integer in [0, 2**64)."""
        return int.from_bytes(self.random_bytes(8), "big")

    def randbelow(self, n: int) -> int:
        """
        Uniform integer in [0, n) for 1 <= n <= 2**64.

        Draws above the largest multiple of n that fits in 64 bits are
        rejected, so `value % n` is exactly uniform.
        """
        if n < 1 or n > UINT64_RANGE:
            raise InvalidArgument(f"randbelow bound out of range: {n}")

        limit = UINT64_RANGE - (UINT64_RANGE % n)
        while True:
            value = self.random_uint64()
            if value < limit:
                return value % n


_source: SecureRandomSource | None = None
_source_lock = threading.Lock()


def get_source() -> SecureRandomSource:
    """Return the shared source, creating it on first use."""
    global _source
    if _source is None:
        with _source_lock:
            if _source is None:
                _source = SecureRandomSource()
    return _source


def reset_source() -> None:
    """Forget the shared source (used by tests)."""
    global _source
    with _source_lock:
        _source = None
