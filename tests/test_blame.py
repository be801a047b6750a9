import pytest

from threshold_ecdsa.blame import GlobalStatePhase7, ecddh_proof, extract_paillier_randomness
from threshold_ecdsa.curve import Point, Scalar
from threshold_ecdsa.errors import BlameError
from threshold_ecdsa.paillier import generate_keypair
from threshold_ecdsa.proofs import ECDDHStatement


def _honest_state(parties=3, message=123456789):
    R = Point.generator() * Scalar.random()
    r = Scalar(R.x_coord())
    m = Scalar(message)
    ks = [Scalar.random() for _ in range(parties)]
    sigmas = [Scalar.random() for _ in range(parties)]
    s_vec = [m * k + r * sigma for k, sigma in zip(ks, sigmas)]
    return GlobalStatePhase7(
        s_vec=s_vec,
        r=r,
        R_dash_vec=[R * k for k in ks],
        m=message,
        R=R,
        S_vec=[R * sigma for sigma in sigmas],
    )


def test_phase7_blame_honest_parties_have_no_bad_actors():
    state = _honest_state()
    with pytest.raises(BlameError) as info:
        state.phase7_blame()
    assert info.value.error_type == "phase7_blame"
    assert info.value.bad_actors == ()


def test_phase7_blame_names_the_cheater():
    state = _honest_state()
    s_vec = list(state.s_vec)
    s_vec[1] = s_vec[1] + Scalar(1)
    cheating = GlobalStatePhase7(s_vec, state.r, state.R_dash_vec, state.m, state.R, state.S_vec)
    with pytest.raises(BlameError) as info:
        cheating.phase7_blame()
    assert info.value.bad_actors == (1,)


def test_phase7_blame_rejects_missing_values():
    state = _honest_state()
    short = GlobalStatePhase7(
        state.s_vec, state.r, state.R_dash_vec[:1], state.m, state.R, state.S_vec
    )
    with pytest.raises(ValueError):
        short.phase7_blame()


def test_extract_paillier_randomness_recovers_randomness():
    ek, dk = generate_keypair(256)
    randomness = 0xC0FFEE
    ciphertext = ek.encrypt_with_randomness(42, randomness)
    assert extract_paillier_randomness(ciphertext, dk) == randomness


def test_ecddh_proof_verifies_for_matching_points():
    sigma = Scalar.random()
    R = Point.generator() * Scalar.random()
    S = R * sigma
    proof = ecddh_proof(sigma, R, S)
    statement = ECDDHStatement(
        g1=Point.generator(), h1=Point.generator() * sigma, g2=R, h2=S
    )
    assert proof.verify(statement) is True


def test_ecddh_proof_fails_for_other_point():
    sigma = Scalar.random()
    R = Point.generator() * Scalar.random()
    proof = ecddh_proof(sigma, R, R * sigma)
    wrong = ECDDHStatement(
        g1=Point.generator(), h1=Point.generator() * sigma, g2=R, h2=R * (sigma + Scalar(1))
    )
    assert proof.verify(wrong) is False