import hashlib

import pytest

from threshold_ecdsa.curve import Point, Scalar
from threshold_ecdsa.hashing import create_commitment, hash_ints, hash_points, sample


def test_sample_within_bound():
    values = [sample(16) for _ in range(200)]
    assert all(0 <= v < 2**16 for v in values)
    assert len(set(values)) > 1
    assert sample(0) == 0


def test_sample_rejects_negative_bits():
    with pytest.raises(ValueError):
        sample(-1)


def test_hash_of_nothing_is_empty_digest():
    expected = 0xE3B0C44298FC1C149AFBF4C8996FB92427AE41E4649B934CA495991B7852B855
    assert hash_ints([]) == expected
    assert hash_points([]) == expected


def test_hash_points_uses_compressed_encoding():
    g = Point.generator()
    digest = hashlib.sha256(g.to_bytes(True)).digest()
    assert hash_points([g]) == int.from_bytes(digest, "big")


def test_hash_points_order_matters():
    g = Point.generator()
    h = g * Scalar(5)
    assert hash_points([g, h]) != hash_points([h, g])
    assert hash_points([g, h]) == hash_points([g, h])


def test_hash_ints_fits_256_bits():
    assert hash_ints([sample(256), sample(256)]).bit_length() <= 256


def test_hash_ints_rejects_negative():
    with pytest.raises(ValueError):
        hash_ints([-5])


def test_commitment_is_binding_and_deterministic():
    message, blind = sample(256), sample(256)
    com = create_commitment(message, blind)
    assert com == create_commitment(message, blind)
    assert com == hash_ints([message, blind])
    assert com != create_commitment(message, blind + 1)
    assert com != create_commitment(message + 1, blind)