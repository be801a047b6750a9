import pytest

from threshold_ecdsa.paillier import (
    DecryptionKey,
    EncryptionKey,
    generate_keypair,
    generate_keypair_safe_primes,
)


@pytest.fixture(scope="module")
def keypair():
    return generate_keypair(512)


def test_modulus_size(keypair):
    ek, dk = keypair
    assert ek.n.bit_length() == 512
    assert ek.n == dk.p * dk.q
    assert dk.encryption_key == ek


def test_encrypt_decrypt_round_trip(keypair):
    ek, dk = keypair
    for message in (0, 1, 123456789, ek.n - 1):
        assert dk.decrypt(ek.encrypt(message)) == message


def test_encryption_is_randomised(keypair):
    ek, dk = keypair
    first = ek.encrypt(42)
    second = ek.encrypt(42)
    assert first != second
    assert dk.decrypt(first) == 42
    assert dk.decrypt(second) == 42
    assert 0 < first < ek.nn


def test_homomorphic_addition(keypair):
    ek, dk = keypair
    c = ek.encrypt(1000) * ek.encrypt(234) % ek.nn
    assert dk.decrypt(c) == 1234


def test_homomorphic_scalar_multiplication(keypair):
    ek, dk = keypair
    c = pow(ek.encrypt(11), 5, ek.nn)
    assert dk.decrypt(c) == 55


def test_chosen_randomness_is_deterministic(keypair):
    ek, dk = keypair
    first = ek.encrypt_with_randomness(7, 99)
    second = ek.encrypt_with_randomness(7, 99)
    assert first == second
    assert dk.open(first) == (7, 99)
    assert dk.decrypt(first) == 7


def test_open_recovers_randomness(keypair):
    ek, dk = keypair
    c = ek.encrypt_with_randomness(31337, 65537)
    assert dk.open(c) == (31337, 65537)


def test_negative_plaintext_wraps(keypair):
    ek, dk = keypair
    assert dk.decrypt(ek.encrypt(-1)) == ek.n - 1


def test_key_dict_round_trip(keypair):
    ek, dk = keypair
    assert EncryptionKey.from_dict(ek.to_dict()) == ek
    assert DecryptionKey.from_dict(dk.to_dict()) == dk


def test_safe_primes():
    ek, dk = generate_keypair_safe_primes(128)
    assert ek.n.bit_length() == 128
    for prime in (dk.p, dk.q):
        half = (prime - 1) // 2
        assert pow(2, prime - 1, prime) == 1
        assert pow(2, half - 1, half) == 1
    assert dk.decrypt(ek.encrypt(99)) == 99


@pytest.mark.parametrize("bits", [8, 15, 513])
def test_bad_sizes_rejected(bits):
    with pytest.raises(ValueError):
        generate_keypair(bits)


def test_decryption_key_needs_distinct_primes():
    with pytest.raises(ValueError):
        DecryptionKey(11, 11)