"""Feldman verifiable secret sharing over secp256k1."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from .curve import Point, Scalar, sum_points


@dataclass(frozen=True)
class ShamirParameters:
    """A degree-``threshold`` sharing split among ``share_count`` parties."""

    threshold: int
    share_count: int

    def reconstruct_limit(self) -> int:
        """Number of shares needed to recover the secret."""
        return self.threshold + 1


def _evaluate(coefficients: Sequence[Scalar], x: Scalar) -> Scalar:
    result = Scalar.zero()
    for coefficient in reversed(coefficients):
        result = result * x + coefficient
    return result


@dataclass(frozen=True)
class VerifiableSS:
    """Public commitments to the coefficients of a sharing polynomial."""

    parameters: ShamirParameters
    commitments: Tuple[Point, ...]

    @classmethod
    def share(
        cls, threshold: int, share_count: int, secret: Scalar
    ) -> Tuple["VerifiableSS", List[Scalar]]:
        """Split ``secret`` into shares for parties 1..share_count."""
        if not 0 <= threshold < share_count:
            raise ValueError("threshold must be below the number of shares")
        coefficients = [secret] + [Scalar.random() for _ in range(threshold)]
        generator = Point.generator()
        commitments = tuple(generator * c for c in coefficients)
        shares = [_evaluate(coefficients, Scalar(i)) for i in range(1, share_count + 1)]
        return cls(ShamirParameters(threshold, share_count), commitments), shares

    def get_point_commitment(self, index: int) -> Point:
        """The public commitment to the share of party ``index`` (counted from 1)."""
        x = Scalar(index)
        power = Scalar(1)
        terms = []
        for commitment in self.commitments:
            terms.append(commitment * power)
            power = power * x
        return sum_points(terms)

    def validate_share(self, share: Scalar, index: int) -> bool:
        """True when ``share`` matches the commitments for party ``index`` (from 1)."""
        return Point.generator() * share == self.get_point_commitment(index)

    def reconstruct(self, indices: Sequence[int], shares: Sequence[Scalar]) -> Scalar:
        """Recover the secret from shares of the parties at zero-based ``indices``."""
        if len(indices) != len(shares):
            raise ValueError("every share needs exactly one index")
        if len(shares) < self.parameters.reconstruct_limit():
            raise ValueError("not enough shares to reconstruct the secret")
        if len(set(indices)) != len(indices):
            raise ValueError("share indices must be distinct")
        points = [Scalar(i + 1) for i in indices]
        secret = Scalar.zero()
        for xi, share in zip(points, shares):
            num = Scalar(1)
            denom = Scalar(1)
            for xj in points:
                if xj != xi:
                    num = num * xj
                    denom = denom * (xj - xi)
            secret = secret + share * num * denom.invert()
        return secret

    @staticmethod
    def map_share_to_new_params(params: ShamirParameters, index: int, s: Sequence[int]) -> Scalar:
        """Lagrange coefficient at zero of party ``index`` within the signer set ``s``.

        Both ``index`` and the members of ``s`` are counted from zero.
        """
        if not 0 <= index < params.share_count:
            raise ValueError("party index out of range")
        if any(not 0 <= j < params.share_count for j in s):
            raise ValueError("signer index out of range")
        xi = Scalar(index + 1)
        num = Scalar(1)
        denom = Scalar(1)
        for j in s:
            if j != index:
                xj = Scalar(j + 1)
                num = num * xj
                denom = denom * (xj - xi)
        return num * denom.invert()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameters": {
                "threshold": self.parameters.threshold,
                "share_count": self.parameters.share_count,
            },
            "commitments": [c.to_bytes(True).hex() for c in self.commitments],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VerifiableSS":
        params = data["parameters"]
        return cls(
            ShamirParameters(int(params["threshold"]), int(params["share_count"])),
            tuple(Point.from_bytes(bytes.fromhex(c)) for c in data["commitments"]),
        )