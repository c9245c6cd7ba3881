"""
Password generation: map secure random draws onto a character set.

We:
- De-duplicate the character set, keeping first-occurrence order.
- Draw one 64-bit value per output character from the shared CSPRNG.
- Reject draws at the top of the 64-bit range that would make some
  characters more likely, then reduce the rest modulo the alphabet size.

Rejection sampling is used instead of the plain `value % n` reduction.
For an alphabet of n symbols the chance of a rejected draw is below
n / 2**64, so it costs nothing in practice and removes the modulo bias
entirely instead of merely making it small.
"""

from __future__ import annotations

from typing import Iterable

from .config import DEFAULT_ALPHABET, DEFAULT_PASSWORD_LENGTH, PasswordOptions
from .entropy import get_source
from .errors import InvalidArgument
from .validators import PasswordValidator

MIN_ALPHABET_SIZE = 2


def normalize_character_set(character_set: Iterable[str] | None = None) -> str:
    """
    Return the effective alphabet: duplicates removed, order preserved.

    Raises InvalidArgument when an element is not a single character or
    fewer than two distinct characters remain.
    """
    if character_set is None:
        character_set = DEFAULT_ALPHABET

    seen: dict[str, None] = {}
    for ch in character_set:
        if not isinstance(ch, str) or len(ch) != 1:
            raise InvalidArgument(
                f"Character set elements must be single characters, got {ch!r}."
            )
        seen.setdefault(ch, None)

    alphabet = "".join(seen)
    if len(alphabet) < MIN_ALPHABET_SIZE:
        raise InvalidArgument(
            f"Character set needs at least {MIN_ALPHABET_SIZE} distinct "
            f"characters, got {len(alphabet)}."
        )
    return alphabet


def _check_length(length: int) -> None:
    # bool is an int subclass; True is not a length.
    if isinstance(length, bool) or not isinstance(length, int):
        raise InvalidArgument(f"Password length must be an integer, got {length!r}.")
    if length <= 0:
        raise InvalidArgument(f"Password length must be positive, got {length}.")


def generate_password(
    length: int = DEFAULT_PASSWORD_LENGTH,
    character_set: Iterable[str] | None = None,
) -> str:
    """
    Generate `length` characters, each drawn uniformly and independently
    from the de-duplicated `character_set` (DEFAULT_ALPHABET if omitted).
    """
    _check_length(length)
    alphabet = normalize_character_set(character_set)

    source = get_source()
    size = len(alphabet)
    return "".join(alphabet[source.randbelow(size)] for _ in range(length))


def generate_compliant_password(
    options: PasswordOptions | None = None,
    length: int | None = None,
    character_set: Iterable[str] | None = None,
    max_attempts: int = 100,
) -> str:
    """
    Generate passwords until one satisfies the password policy.

    Each attempt is an unmodified generate_password draw, so the result is
    uniform over the compliant passwords of that length.
    """
    opts = options or PasswordOptions()
    if length is None:
        length = max(DEFAULT_PASSWORD_LENGTH, opts.required_length)
    _check_length(length)

    if max_attempts < 1:
        raise InvalidArgument(f"max_attempts must be positive, got {max_attempts}.")
    if length < opts.required_length:
        raise InvalidArgument(
            f"Length {length} is below the required password length "
            f"{opts.required_length}."
        )

    # Normalize once so a string or a one-shot iterator both work.
    alphabet = normalize_character_set(character_set)
    validator = PasswordValidator(opts)

    for _ in range(max_attempts):
        candidate = generate_password(length, alphabet)
        if not validator.validate(candidate):
            return candidate

    raise InvalidArgument(
        f"No password satisfying the policy after {max_attempts} attempts; "
        "check that the character set covers the required character classes."
    )
