"""Random sampling, SHA-256 hashing of curve points and integers, and hash commitments."""

from __future__ import annotations

import hashlib
import secrets
from typing import Iterable

from .curve import Point


def _int_bytes(value: int) -> bytes:
    if value < 0:
        raise ValueError("only non-negative integers can be hashed")
    return value.to_bytes(max(1, (value.bit_length() + 7) // 8), "big")


def sample(bits: int) -> int:
    """A uniformly random integer below ``2 ** bits``."""
    if bits < 0:
        raise ValueError("bit count must not be negative")
    return secrets.randbits(bits)


def hash_points(points: Iterable[Point]) -> int:
    """SHA-256 over the compressed encodings of the points, as an integer."""
    digest = hashlib.sha256()
    for point in points:
        digest.update(point.to_bytes(True))
    return int.from_bytes(digest.digest(), "big")


def hash_ints(values: Iterable[int]) -> int:
    """SHA-256 over the minimal big-endian encodings of the integers, as an integer."""
    digest = hashlib.sha256()
    for value in values:
        digest.update(_int_bytes(value))
    return int.from_bytes(digest.digest(), "big")


def create_commitment(message: int, blind_factor: int) -> int:
    """Hash commitment to ``message`` under the given blinding factor."""
    return hash_ints((message, blind_factor))