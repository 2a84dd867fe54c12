"""
Base62 short-code codec.

Bijective mapping between non-negative integer ids and short codes of at
most 8 characters. The alphabet order (0-9, a-z, A-Z) is part of every code
ever issued and must never change.
"""

from shortlink_app.exceptions import InvalidArgumentError

BASE62_CHARS = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE = len(BASE62_CHARS)
MAX_LENGTH = 8
MAX_ID = BASE ** MAX_LENGTH  # exclusive upper bound

_INDEX = {char: index for index, char in enumerate(BASE62_CHARS)}


def encode(number: int) -> str:
    """
    Convert a non-negative integer to a Base62 string.

    Raises:
        InvalidArgumentError: if number is negative or needs more than 8 chars
    """
    if number < 0:
        raise InvalidArgumentError("Number must be non-negative")
    if number >= MAX_ID:
        raise InvalidArgumentError(f"Encoded value exceeds maximum length of {MAX_LENGTH}")

    if number == 0:
        return BASE62_CHARS[0]

    digits = []
    while number > 0:
        digits.append(BASE62_CHARS[number % BASE])
        number //= BASE

    # Remainders come out least-significant first
    return "".join(reversed(digits))


def decode(code: str) -> int:
    """
    Convert a Base62 string back to its integer.

    Raises:
        InvalidArgumentError: if code is None, empty, longer than 8 chars
            or contains a character outside the alphabet
    """
    if not code:
        raise InvalidArgumentError("Short code must not be null or empty")
    if len(code) > MAX_LENGTH:
        raise InvalidArgumentError(f"Short code exceeds maximum length of {MAX_LENGTH}")

    number = 0
    for char in code:
        value = _INDEX.get(char)
        if value is None:
            raise InvalidArgumentError(f"Invalid character in short code: {char!r}")
        number = number * BASE + value
    return number


def is_valid(code: str) -> bool:
    """True iff decode(code) would succeed."""
    if not isinstance(code, str) or not code or len(code) > MAX_LENGTH:
        return False
    return all(char in _INDEX for char in code)
