import pytest

from threshold_ecdsa.curve import Point, Scalar, sum_scalars
from threshold_ecdsa.vss import ShamirParameters, VerifiableSS


@pytest.mark.parametrize("t,n", [(1, 2), (2, 3), (2, 4)])
def test_share_and_reconstruct(t, n):
    secret = Scalar.random()
    vss, shares = VerifiableSS.share(t, n, secret)
    assert len(shares) == n
    assert vss.reconstruct(list(range(t + 1)), shares[: t + 1]) == secret
    assert vss.reconstruct(list(range(n - t - 1, n)), shares[n - t - 1 :]) == secret


def test_commitment_zero_is_public_secret():
    secret = Scalar(12345)
    vss, _ = VerifiableSS.share(2, 5, secret)
    assert vss.commitments[0] == Point.generator() * secret
    assert len(vss.commitments) == 3


def test_shares_validate():
    vss, shares = VerifiableSS.share(2, 4, Scalar.random())
    for i, share in enumerate(shares, start=1):
        assert vss.validate_share(share, i)
        assert vss.get_point_commitment(i) == Point.generator() * share


def test_wrong_share_rejected():
    vss, shares = VerifiableSS.share(1, 3, Scalar.random())
    assert not vss.validate_share(shares[0] + 1, 1)
    assert not vss.validate_share(shares[0], 2)


def test_map_share_to_new_params_recovers_secret():
    secret = Scalar.random()
    vss, shares = VerifiableSS.share(2, 5, secret)
    s = [0, 2, 4]
    total = sum_scalars(
        VerifiableSS.map_share_to_new_params(vss.parameters, i, s) * shares[i] for i in s
    )
    assert total == secret


def test_map_share_to_new_params_small_values():
    params = ShamirParameters(1, 2)
    assert VerifiableSS.map_share_to_new_params(params, 0, [0, 1]) == Scalar(2)
    assert VerifiableSS.map_share_to_new_params(params, 1, [0, 1]) == Scalar(-1)


def test_map_share_out_of_range():
    with pytest.raises(ValueError):
        VerifiableSS.map_share_to_new_params(ShamirParameters(1, 2), 2, [0, 2])


def test_share_rejects_bad_threshold():
    with pytest.raises(ValueError):
        VerifiableSS.share(3, 3, Scalar(1))


def test_reconstruct_needs_enough_shares():
    vss, shares = VerifiableSS.share(2, 4, Scalar.random())
    with pytest.raises(ValueError):
        vss.reconstruct([0, 1], shares[:2])


def test_reconstruct_rejects_mismatched_lengths():
    vss, shares = VerifiableSS.share(1, 3, Scalar.random())
    with pytest.raises(ValueError):
        vss.reconstruct([0, 1, 2], shares[:2])


def test_dict_round_trip():
    vss, shares = VerifiableSS.share(2, 3, Scalar.random())
    restored = VerifiableSS.from_dict(vss.to_dict())
    assert restored == vss
    assert restored.validate_share(shares[1], 2)