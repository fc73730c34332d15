"""
Prefixed identifier generation.

Ids look like ``trx_lq2v9k3a_4f8z0qp``: a resource prefix, the creation time
in base 36 milliseconds, and a random suffix.
"""

import secrets
import string
import time
from typing import Callable

IdSupplier = Callable[[str], str]

_ALPHABET = string.digits + string.ascii_lowercase
_RANDOM_LENGTH = 7


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def new_id(prefix: str) -> str:
    """
    Generate a unique id with a resource prefix.

    Args:
        prefix: Resource type prefix (e.g. "trx", "cat", "rule", "usr")

    Returns:
        A unique id string
    """
    timestamp = _to_base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_RANDOM_LENGTH))
    return f"{prefix}_{timestamp}_{suffix}"


def get_prefix(identifier: str) -> str:
    """Return the resource prefix of an id."""
    return identifier.split("_")[0]


def has_prefix(identifier: str, prefix: str) -> bool:
    """Check whether an id carries the given resource prefix."""
    return get_prefix(identifier) == prefix
