"""Zero-knowledge proofs used by the signing protocols."""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .curve import Point, Scalar
from .hashing import hash_points
from .paillier import DecryptionKey, EncryptionKey

_KEY_PROOF_ITERATIONS = 11
_KEY_PROOF_ALPHA = 6370
_KEY_PROOF_SALT = b"threshold-ecdsa/correct-key-proof"


def _challenge(*points: Point) -> Scalar:
    return Scalar(hash_points(points))


def _point_hex(point: Point) -> str:
    return point.to_bytes(True).hex()


def _point_from_hex(text: str) -> Point:
    return Point.from_bytes(bytes.fromhex(text))


def _small_primes(limit: int) -> Tuple[int, ...]:
    sieve = bytearray([1]) * limit
    sieve[0:2] = b"\x00\x00"
    for p in range(2, math.isqrt(limit - 1) + 1):
        if sieve[p]:
            sieve[p * p :: p] = bytearray(len(sieve[p * p :: p]))
    return tuple(i for i, is_prime in enumerate(sieve) if is_prime)


_PRIMES_BELOW_ALPHA = _small_primes(_KEY_PROOF_ALPHA)


@dataclass(frozen=True)
class DLogProof:
    """Schnorr proof of knowledge of the discrete log of ``pk``."""

    pk: Point
    pk_t_rand_commitment: Point
    challenge_response: Scalar

    @classmethod
    def prove(cls, secret: Scalar) -> "DLogProof":
        generator = Point.generator()
        nonce = Scalar.random()
        commitment = generator * nonce
        pk = generator * secret
        challenge = _challenge(commitment, generator, pk)
        return cls(pk, commitment, nonce - challenge * secret)

    def verify(self) -> bool:
        """True when the proof holds."""
        generator = Point.generator()
        challenge = _challenge(self.pk_t_rand_commitment, generator, self.pk)
        expected = generator * self.challenge_response + self.pk * challenge
        return expected == self.pk_t_rand_commitment

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pk": _point_hex(self.pk),
            "pk_t_rand_commitment": _point_hex(self.pk_t_rand_commitment),
            "challenge_response": format(self.challenge_response.value, "x"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DLogProof":
        return cls(
            _point_from_hex(data["pk"]),
            _point_from_hex(data["pk_t_rand_commitment"]),
            Scalar(int(data["challenge_response"], 16)),
        )


@dataclass(frozen=True)
class HomoElGamalWitness:
    r: Scalar
    x: Scalar


@dataclass(frozen=True)
class HomoElGamalStatement:
    """Claims D = x*H + r*Y and E = r*G."""

    G: Point
    H: Point
    Y: Point
    D: Point
    E: Point


@dataclass(frozen=True)
class HomoElGamalProof:
    """Proof of a correct homomorphic ElGamal encryption."""

    T: Point
    A3: Point
    z1: Scalar
    z2: Scalar

    @staticmethod
    def _challenge(T: Point, A3: Point, st: HomoElGamalStatement) -> Scalar:
        return _challenge(T, A3, st.G, st.H, st.Y, st.D, st.E)

    @classmethod
    def prove(
        cls, witness: HomoElGamalWitness, statement: HomoElGamalStatement
    ) -> "HomoElGamalProof":
        s1 = Scalar.random()
        s2 = Scalar.random()
        T = statement.H * s1 + statement.Y * s2
        A3 = statement.G * s2
        e = cls._challenge(T, A3, statement)
        return cls(T, A3, s1 + witness.x * e, s2 + witness.r * e)

    def verify(self, statement: HomoElGamalStatement) -> bool:
        """True when the proof holds for ``statement``."""
        e = self._challenge(self.T, self.A3, statement)
        left1 = statement.H * self.z1 + statement.Y * self.z2
        right1 = self.T + statement.D * e
        left2 = statement.G * self.z2
        right2 = self.A3 + statement.E * e
        return left1 == right1 and left2 == right2


@dataclass(frozen=True)
class ECDDHWitness:
    x: Scalar


@dataclass(frozen=True)
class ECDDHStatement:
    """Claims h1 = x*g1 and h2 = x*g2 for the same x."""

    g1: Point
    h1: Point
    g2: Point
    h2: Point


@dataclass(frozen=True)
class ECDDHProof:
    """Proof of equality of two discrete logarithms."""

    a1: Point
    a2: Point
    z: Scalar

    @staticmethod
    def _challenge(st: ECDDHStatement, a1: Point, a2: Point) -> Scalar:
        return _challenge(st.g1, st.h1, st.g2, st.h2, a1, a2)

    @classmethod
    def prove(cls, witness: ECDDHWitness, statement: ECDDHStatement) -> "ECDDHProof":
        s = Scalar.random()
        a1 = statement.g1 * s
        a2 = statement.g2 * s
        e = cls._challenge(statement, a1, a2)
        return cls(a1, a2, s + e * witness.x)

    def verify(self, statement: ECDDHStatement) -> bool:
        """True when the proof holds for ``statement``."""
        e = self._challenge(statement, self.a1, self.a2)
        return (
            statement.g1 * self.z == self.a1 + statement.h1 * e
            and statement.g2 * self.z == self.a2 + statement.h2 * e
        )


def _rho_values(n: int) -> Tuple[int, ...]:
    n_bytes = n.to_bytes((n.bit_length() + 7) // 8, "big")
    width = len(n_bytes)
    values = []
    for i in range(_KEY_PROOF_ITERATIONS):
        stream = b""
        counter = 0
        while len(stream) < width:
            block = hashlib.sha256(
                n_bytes + _KEY_PROOF_SALT + i.to_bytes(4, "big") + counter.to_bytes(4, "big")
            )
            stream += block.digest()
            counter += 1
        values.append(int.from_bytes(stream[:width], "big") % n)
    return tuple(values)


@dataclass(frozen=True)
class CorrectKeyProof:
    """Non-interactive proof that a Paillier modulus is coprime to its totient."""

    sigma_vec: Tuple[int, ...]

    @classmethod
    def prove(cls, dk: DecryptionKey) -> "CorrectKeyProof":
        n = dk.n
        phi = dk.phi
        if math.gcd(n, phi) != 1:
            raise ValueError("modulus is not coprime to its totient")
        exponent = pow(n, -1, phi)
        return cls(tuple(pow(rho, exponent, n) for rho in _rho_values(n)))

    def verify(self, ek: EncryptionKey) -> bool:
        """True when the proof holds for the modulus of ``ek``."""
        n = ek.n
        if n <= 0 or len(self.sigma_vec) != _KEY_PROOF_ITERATIONS:
            return False
        if any(n % p == 0 for p in _PRIMES_BELOW_ALPHA):
            return False
        for sigma, rho in zip(self.sigma_vec, _rho_values(n)):
            if not 0 < sigma < n or pow(sigma, n, n) != rho:
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"sigma_vec": [format(s, "x") for s in self.sigma_vec]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CorrectKeyProof":
        return cls(tuple(int(s, 16) for s in data["sigma_vec"]))