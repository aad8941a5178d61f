"""
Random identifiers for frames.

Used by both the server (authoritative frame IDs) and the client helpers,
so the length comes from a single setting.
"""

import secrets
from typing import Container

from pixelgrid.config import FRAME_ID_LENGTH
from pixelgrid.errors import InvalidArgument

HEX_ALPHABET = "0123456789abcdef"


def generate(length: int = FRAME_ID_LENGTH, alphabet: str = HEX_ALPHABET) -> str:
    """
    Generate `length` characters drawn uniformly from `alphabet`.

    Uniqueness is not guaranteed; callers using the result as a key must
    check it against the keys already in use (see generate_unique).
    """
    if length < 1:
        raise InvalidArgument(
            "Length must be at least 1", details={"length": length}
        )
    if not alphabet:
        raise InvalidArgument("Alphabet must not be empty")

    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_unique(
    taken: Container[str],
    length: int = FRAME_ID_LENGTH,
    alphabet: str = HEX_ALPHABET,
) -> str:
    """Generate an identifier that is not in `taken`."""
    while True:
        candidate = generate(length, alphabet)
        if candidate not in taken:
            return candidate
