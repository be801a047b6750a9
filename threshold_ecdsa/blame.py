"""Blame checks that identify cheating signers after a failed signature."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NoReturn, Sequence

from .curve import Point, Scalar
from .errors import BlameError
from .paillier import DecryptionKey
from .proofs import ECDDHProof, ECDDHStatement, ECDDHWitness


def extract_paillier_randomness(ciphertext: int, dk: DecryptionKey) -> int:
    """The randomness that was used to produce ``ciphertext`` under the key of ``dk``."""
    _plaintext, randomness = dk.open(ciphertext)
    return randomness


def ecddh_proof(sigma_i: Scalar, R: Point, S: Point) -> ECDDHProof:
    """Prove that ``sigma_i * G`` and ``S = sigma_i * R`` share the same discrete log."""
    generator = Point.generator()
    statement = ECDDHStatement(g1=generator, h1=generator * sigma_i, g2=R, h2=S)
    return ECDDHProof.prove(ECDDHWitness(x=sigma_i), statement)


@dataclass(frozen=True)
class GlobalStatePhase7:
    """Everything the parties published that phase 7 blame is checked against."""

    s_vec: Sequence[Scalar]
    r: Scalar
    R_dash_vec: Sequence[Point]
    m: int
    R: Point
    S_vec: Sequence[Point]

    def phase7_blame(self) -> NoReturn:
        """Check ``s_i * R == m * R'_i + r * S_i`` for every party.

        Always raises :class:`BlameError`; its ``bad_actors`` holds the indices
        of the parties whose values fail the check.
        """
        count = len(self.s_vec)
        if len(self.R_dash_vec) < count or len(self.S_vec) < count:
            raise ValueError("every s_i needs an R'_i and an S_i")
        m = Scalar(self.m)
        bad_actors = [
            i
            for i, (s_i, r_dash, s_point) in enumerate(zip(self.s_vec, self.R_dash_vec, self.S_vec))
            if self.R * s_i != r_dash * m + s_point * self.r
        ]
        raise BlameError("phase7_blame", bad_actors)