"""Paillier additively homomorphic encryption."""

from __future__ import annotations

import math
import secrets
from dataclasses import dataclass
from typing import Any, Dict, Tuple

DEFAULT_MODULUS_BITS = 2048

_SMALL_PRIMES = tuple(
    p for p in range(3, 2000, 2) if all(p % d for d in range(3, math.isqrt(p) + 1, 2))
)


def _is_probable_prime(candidate: int, rounds: int = 40) -> bool:
    if candidate < 2:
        return False
    if candidate in (2, 3):
        return True
    if candidate % 2 == 0:
        return False
    for small in _SMALL_PRIMES:
        if candidate == small:
            return True
        if candidate % small == 0:
            return False
    d = candidate - 1
    s = 0
    while d % 2 == 0:
        d //= 2
        s += 1
    for _ in range(rounds):
        a = secrets.randbelow(candidate - 3) + 2
        x = pow(a, d, candidate)
        if x in (1, candidate - 1):
            continue
        for _ in range(s - 1):
            x = x * x % candidate
            if x == candidate - 1:
                break
        else:
            return False
    return True


def _candidate(bits: int) -> int:
    return secrets.randbits(bits) | (0b11 << (bits - 2)) | 1


def _random_prime(bits: int) -> int:
    while True:
        candidate = _candidate(bits)
        if _is_probable_prime(candidate):
            return candidate


def _random_safe_prime(bits: int) -> int:
    while True:
        half = _candidate(bits - 1)
        prime = 2 * half + 1
        if any(half % p == 0 or prime % p == 0 for p in _SMALL_PRIMES if p < half):
            continue
        if _is_probable_prime(half) and _is_probable_prime(prime):
            return prime


def _random_unit(n: int) -> int:
    while True:
        r = secrets.randbelow(n)
        if r > 0 and math.gcd(r, n) == 1:
            return r


@dataclass(frozen=True)
class EncryptionKey:
    """Public Paillier key with modulus ``n`` and generator ``n + 1``."""

    n: int

    @property
    def nn(self) -> int:
        return self.n * self.n

    def encrypt(self, plaintext: int) -> int:
        """Encrypt with fresh randomness."""
        return self.encrypt_with_randomness(plaintext, _random_unit(self.n))

    def encrypt_with_randomness(self, plaintext: int, randomness: int) -> int:
        """Encrypt deterministically under the given randomness."""
        nn = self.nn
        gm = (1 + (plaintext % self.n) * self.n) % nn
        return gm * pow(randomness, self.n, nn) % nn

    def to_dict(self) -> Dict[str, Any]:
        return {"n": self.n}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EncryptionKey":
        return cls(int(data["n"]))


@dataclass(frozen=True)
class DecryptionKey:
    """Private Paillier key: the two prime factors of the modulus."""

    p: int
    q: int

    def __post_init__(self) -> None:
        if self.p < 3 or self.q < 3 or self.p == self.q:
            raise ValueError("decryption key needs two distinct odd primes")

    @property
    def n(self) -> int:
        return self.p * self.q

    @property
    def phi(self) -> int:
        return (self.p - 1) * (self.q - 1)

    @property
    def encryption_key(self) -> EncryptionKey:
        return EncryptionKey(self.n)

    def decrypt(self, ciphertext: int) -> int:
        n = self.n
        nn = n * n
        phi = self.phi
        u = pow(ciphertext % nn, phi, nn)
        return (u - 1) // n * pow(phi, -1, n) % n

    def open(self, ciphertext: int) -> Tuple[int, int]:
        """Recover both the plaintext and the randomness used to encrypt it."""
        n = self.n
        plaintext = self.decrypt(ciphertext)
        randomness = pow(ciphertext % n, pow(n, -1, self.phi), n)
        return plaintext, randomness

    def to_dict(self) -> Dict[str, Any]:
        return {"p": self.p, "q": self.q}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DecryptionKey":
        return cls(int(data["p"]), int(data["q"]))


def _check_bits(bits: int) -> int:
    if bits < 16 or bits % 2:
        raise ValueError("modulus size must be an even number of bits, at least 16")
    return bits // 2


def generate_keypair(bits: int = DEFAULT_MODULUS_BITS) -> Tuple[EncryptionKey, DecryptionKey]:
    """A fresh key pair whose modulus has exactly ``bits`` bits."""
    half = _check_bits(bits)
    p = _random_prime(half)
    q = _random_prime(half)
    while q == p:
        q = _random_prime(half)
    dk = DecryptionKey(p, q)
    return dk.encryption_key, dk


def generate_keypair_safe_primes(
    bits: int = DEFAULT_MODULUS_BITS,
) -> Tuple[EncryptionKey, DecryptionKey]:
    """A fresh key pair built from safe primes."""
    half = _check_bits(bits)
    p = _random_safe_prime(half)
    q = _random_safe_prime(half)
    while q == p:
        q = _random_safe_prime(half)
    dk = DecryptionKey(p, q)
    return dk.encryption_key, dk