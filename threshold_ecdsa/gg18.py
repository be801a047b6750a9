"""Threshold key generation and signing in the GG18 protocol over secp256k1."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from .curve import CURVE_ORDER, Point, Scalar, sum_points, sum_scalars
from .errors import ErrorKind, ProtocolError
from .hashing import create_commitment, hash_points, sample
from .paillier import (
    DecryptionKey,
    EncryptionKey,
    generate_keypair,
    generate_keypair_safe_primes,
)
from .proofs import (
    CorrectKeyProof,
    DLogProof,
    HomoElGamalProof,
    HomoElGamalStatement,
    HomoElGamalWitness,
)
from .vss import VerifiableSS

SECURITY = 256
PAILLIER_MODULUS_BITS = 2048


def _point_int(point: Point) -> int:
    return int.from_bytes(point.to_bytes(True), "big")


def _point_hex(point: Point) -> str:
    return point.to_bytes(True).hex()


def _point_from_hex(text: str) -> Point:
    return Point.from_bytes(bytes.fromhex(text))


def _int_hex(value: int) -> str:
    return format(value, "x")


def _int_from_hex(text: str) -> int:
    return int(text, 16)


def _r_scalar(R: Point) -> Scalar:
    x = R.x_coord()
    if x is None:
        raise ProtocolError(ErrorKind.INVALID_SIG)
    return Scalar(x % CURVE_ORDER)


def _require_length(items: Sequence[Any], expected: int, what: str) -> None:
    if len(items) != expected:
        raise ValueError(f"{what} has {len(items)} entries, expected {expected}")


@dataclass(frozen=True)
class Parameters:
    """Threshold ``t`` and number of parties ``n``."""

    threshold: int
    share_count: int


@dataclass(frozen=True)
class KeyGenBroadcastMessage1:
    e: EncryptionKey
    com: int
    correct_key_proof: CorrectKeyProof

    def to_json(self) -> str:
        return json.dumps(
            {
                "e": self.e.to_dict(),
                "com": _int_hex(self.com),
                "correct_key_proof": self.correct_key_proof.to_dict(),
            }
        )

    @classmethod
    def from_json(cls, text: str) -> "KeyGenBroadcastMessage1":
        data = json.loads(text)
        return cls(
            EncryptionKey.from_dict(data["e"]),
            _int_from_hex(data["com"]),
            CorrectKeyProof.from_dict(data["correct_key_proof"]),
        )


@dataclass(frozen=True)
class KeyGenDecommitMessage1:
    blind_factor: int
    y_i: Point

    def to_json(self) -> str:
        return json.dumps(
            {"blind_factor": _int_hex(self.blind_factor), "y_i": _point_hex(self.y_i)}
        )

    @classmethod
    def from_json(cls, text: str) -> "KeyGenDecommitMessage1":
        data = json.loads(text)
        return cls(_int_from_hex(data["blind_factor"]), _point_from_hex(data["y_i"]))


@dataclass(frozen=True)
class SharedKeys:
    """The joint public key ``y`` and this party's share ``x_i`` of its secret."""

    y: Point
    x_i: Scalar

    def to_dict(self) -> Dict[str, Any]:
        return {"y": _point_hex(self.y), "x_i": _int_hex(self.x_i.value)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SharedKeys":
        return cls(_point_from_hex(data["y"]), Scalar(_int_from_hex(data["x_i"])))


@dataclass(frozen=True)
class Keys:
    """A party's secret ``u_i``, its public point and its Paillier key pair."""

    u_i: Scalar
    y_i: Point
    dk: DecryptionKey
    ek: EncryptionKey
    party_index: int

    @classmethod
    def create(cls, index: int) -> "Keys":
        return cls.create_from(Scalar.random(), index)

    @classmethod
    def create_safe_prime(cls, index: int) -> "Keys":
        """Like :meth:`create` but with a Paillier modulus built from safe primes."""
        u = Scalar.random()
        ek, dk = generate_keypair_safe_primes(PAILLIER_MODULUS_BITS)
        return cls(u, Point.generator() * u, dk, ek, index)

    @classmethod
    def create_from(cls, u: Scalar, index: int) -> "Keys":
        ek, dk = generate_keypair(PAILLIER_MODULUS_BITS)
        return cls(u, Point.generator() * u, dk, ek, index)

    def phase1_broadcast_phase3_proof_of_correct_key(
        self,
    ) -> Tuple[KeyGenBroadcastMessage1, KeyGenDecommitMessage1]:
        blind_factor = sample(SECURITY)
        correct_key_proof = CorrectKeyProof.prove(self.dk)
        com = create_commitment(_point_int(self.y_i), blind_factor)
        return (
            KeyGenBroadcastMessage1(self.ek, com, correct_key_proof),
            KeyGenDecommitMessage1(blind_factor, self.y_i),
        )

    def phase1_verify_com_phase3_verify_correct_key_phase2_distribute(
        self,
        params: Parameters,
        decom_vec: Sequence[KeyGenDecommitMessage1],
        bc1_vec: Sequence[KeyGenBroadcastMessage1],
    ) -> Tuple[VerifiableSS, List[Scalar], int]:
        """Check every commitment and Paillier key, then share ``u_i``."""
        _require_length(decom_vec, params.share_count, "decommitments")
        _require_length(bc1_vec, params.share_count, "broadcasts")
        all_correct = all(
            create_commitment(_point_int(decom.y_i), decom.blind_factor) == bc1.com
            and bc1.correct_key_proof.verify(bc1.e)
            for decom, bc1 in zip(decom_vec, bc1_vec)
        )
        vss_scheme, secret_shares = VerifiableSS.share(
            params.threshold, params.share_count, self.u_i
        )
        if not all_correct:
            raise ProtocolError(ErrorKind.INVALID_KEY)
        return vss_scheme, list(secret_shares), self.party_index

    def phase2_verify_vss_construct_keypair_phase3_pok_dlog(
        self,
        params: Parameters,
        y_vec: Sequence[Point],
        secret_shares_vec: Sequence[Scalar],
        vss_scheme_vec: Sequence[VerifiableSS],
        index: int,
    ) -> Tuple[SharedKeys, DLogProof]:
        """Check received shares for party ``index`` (from 1) and build the joint key."""
        _require_length(y_vec, params.share_count, "public points")
        _require_length(secret_shares_vec, params.share_count, "secret shares")
        _require_length(vss_scheme_vec, params.share_count, "VSS schemes")
        all_valid = all(
            vss.validate_share(share, index) and vss.commitments[0] == y
            for vss, share, y in zip(vss_scheme_vec, secret_shares_vec, y_vec)
        )
        if not all_valid:
            raise ProtocolError(ErrorKind.INVALID_SS)
        y = sum_points(y_vec)
        x_i = sum_scalars(secret_shares_vec)
        return SharedKeys(y, x_i), DLogProof.prove(x_i)

    @staticmethod
    def get_commitments_to_xi(vss_scheme_vec: Sequence[VerifiableSS]) -> List[Point]:
        """Public points ``x_i * G`` for every party, from all VSS commitments."""
        return [
            sum_points(vss.get_point_commitment(i) for vss in vss_scheme_vec)
            for i in range(1, len(vss_scheme_vec) + 1)
        ]

    @staticmethod
    def update_commitments_to_xi(
        comm: Point, vss_scheme: VerifiableSS, index: int, s: Sequence[int]
    ) -> Point:
        li = VerifiableSS.map_share_to_new_params(vss_scheme.parameters, index, s)
        return comm * li

    @staticmethod
    def verify_dlog_proofs(
        params: Parameters, dlog_proofs_vec: Sequence[DLogProof], y_vec: Sequence[Point]
    ) -> None:
        _require_length(y_vec, params.share_count, "public points")
        _require_length(dlog_proofs_vec, params.share_count, "dlog proofs")
        if not all(proof.verify() for proof in dlog_proofs_vec):
            raise ProtocolError(ErrorKind.INVALID_KEY)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "u_i": _int_hex(self.u_i.value),
            "y_i": _point_hex(self.y_i),
            "dk": self.dk.to_dict(),
            "ek": self.ek.to_dict(),
            "party_index": self.party_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Keys":
        return cls(
            Scalar(_int_from_hex(data["u_i"])),
            _point_from_hex(data["y_i"]),
            DecryptionKey.from_dict(data["dk"]),
            EncryptionKey.from_dict(data["ek"]),
            int(data["party_index"]),
        )


@dataclass(frozen=True)
class PartyPrivate:
    """The private material a party keeps for signing."""

    u_i: Scalar
    x_i: Scalar
    dk: DecryptionKey

    @classmethod
    def set_private(cls, key: Keys, shared_key: SharedKeys) -> "PartyPrivate":
        return cls(key.u_i, shared_key.x_i, key.dk)

    def y_i(self) -> Point:
        return Point.generator() * self.u_i

    def decrypt(self, ciphertext: int) -> int:
        return self.dk.decrypt(ciphertext)

    def refresh_private_key(self, factor: Scalar, index: int) -> Keys:
        return Keys.create_from(self.u_i + factor, index)

    def refresh_private_key_safe_prime(self, factor: Scalar, index: int) -> Keys:
        u = self.u_i + factor
        ek, dk = generate_keypair_safe_primes(PAILLIER_MODULUS_BITS)
        return Keys(u, Point.generator() * u, dk, ek, index)

    def update_private_key(self, factor_u_i: Scalar, factor_x_i: Scalar) -> "PartyPrivate":
        return PartyPrivate(self.u_i + factor_u_i, self.x_i + factor_x_i, self.dk)


@dataclass(frozen=True)
class SignBroadcastPhase1:
    com: int


@dataclass(frozen=True)
class SignDecommitPhase1:
    blind_factor: int
    g_gamma_i: Point


@dataclass(frozen=True)
class SignKeys:
    """Per-signature secrets of one signer."""

    w_i: Scalar
    g_w_i: Point
    k_i: Scalar
    gamma_i: Scalar
    g_gamma_i: Point

    @classmethod
    def create(
        cls, private: PartyPrivate, vss_scheme: VerifiableSS, index: int, s: Sequence[int]
    ) -> "SignKeys":
        """Signing keys for party ``index`` within the zero-based signer set ``s``."""
        li = VerifiableSS.map_share_to_new_params(vss_scheme.parameters, index, s)
        w_i = li * private.x_i
        g = Point.generator()
        gamma_i = Scalar.random()
        return cls(w_i, g * w_i, Scalar.random(), gamma_i, g * gamma_i)

    def phase1_broadcast(self) -> Tuple[SignBroadcastPhase1, SignDecommitPhase1]:
        blind_factor = sample(SECURITY)
        g_gamma_i = Point.generator() * self.gamma_i
        com = create_commitment(_point_int(g_gamma_i), blind_factor)
        return SignBroadcastPhase1(com), SignDecommitPhase1(blind_factor, self.g_gamma_i)

    def phase2_delta_i(
        self, alpha_vec: Sequence[Scalar], beta_vec: Sequence[Scalar]
    ) -> Scalar:
        _require_length(beta_vec, len(alpha_vec), "beta values")
        return self.k_i * self.gamma_i + sum_scalars([*alpha_vec, *beta_vec])

    def phase2_sigma_i(self, miu_vec: Sequence[Scalar], ni_vec: Sequence[Scalar]) -> Scalar:
        _require_length(ni_vec, len(miu_vec), "ni values")
        return self.k_i * self.w_i + sum_scalars([*miu_vec, *ni_vec])

    @staticmethod
    def phase3_reconstruct_delta(delta_vec: Sequence[Scalar]) -> Scalar:
        total = sum_scalars(delta_vec)
        if total.is_zero():
            raise ValueError("sum of deltas is zero")
        return total.invert()

    @staticmethod
    def phase4(
        delta_inv: Scalar,
        b_proof_vec: Sequence[DLogProof],
        phase1_decommit_vec: Sequence[SignDecommitPhase1],
        bc1_vec: Sequence[SignBroadcastPhase1],
    ) -> Point:
        """Open the ``gamma_i`` commitments, check them against the MtA proofs, return R."""
        if len(phase1_decommit_vec) < len(b_proof_vec) or len(bc1_vec) < len(b_proof_vec):
            raise ValueError("fewer decommitments or commitments than proofs")
        all_valid = all(
            proof.pk == decom.g_gamma_i
            and create_commitment(_point_int(decom.g_gamma_i), decom.blind_factor) == bc1.com
            for proof, decom, bc1 in zip(b_proof_vec, phase1_decommit_vec, bc1_vec)
        )
        if not all_valid:
            raise ProtocolError(ErrorKind.INVALID_KEY)
        gamma_sum = sum_points(decom.g_gamma_i for decom in phase1_decommit_vec)
        return gamma_sum * delta_inv


@dataclass(frozen=True)
class Phase5Com1:
    com: int


@dataclass(frozen=True)
class Phase5Com2:
    com: int


@dataclass(frozen=True)
class Phase5ADecom1:
    V_i: Point
    A_i: Point
    B_i: Point
    blind_factor: int


@dataclass(frozen=True)
class Phase5DDecom2:
    u_i: Point
    t_i: Point
    blind_factor: int


@dataclass(frozen=True)
class SignatureRecid:
    r: Scalar
    s: Scalar
    recid: int


@dataclass(frozen=True)
class LocalSignature:
    """One signer's share of the signature and the blinding values that guard it."""

    l_i: Scalar
    rho_i: Scalar
    R: Point
    s_i: Scalar
    m: int
    y: Point

    @classmethod
    def phase5_local_sig(
        cls, k_i: Scalar, message: int, R: Point, sigma_i: Scalar, pubkey: Point
    ) -> "LocalSignature":
        m_fe = Scalar(message)
        r = _r_scalar(R)
        s_i = m_fe * k_i + r * sigma_i
        return cls(Scalar.random(), Scalar.random(), R, s_i, message, pubkey)

    def phase5a_broadcast_5b_zkproof(
        self,
    ) -> Tuple[Phase5Com1, Phase5ADecom1, HomoElGamalProof, DLogProof]:
        blind_factor = sample(SECURITY)
        g = Point.generator()
        A_i = g * self.rho_i
        B_i = g * (self.l_i * self.rho_i)
        V_i = self.R * self.s_i + g * self.l_i
        com = create_commitment(hash_points([V_i, A_i, B_i]), blind_factor)
        witness = HomoElGamalWitness(r=self.l_i, x=self.s_i)
        statement = HomoElGamalStatement(G=A_i, H=self.R, Y=g, D=V_i, E=B_i)
        dlog_proof_rho = DLogProof.prove(self.rho_i)
        proof = HomoElGamalProof.prove(witness, statement)
        return (
            Phase5Com1(com),
            Phase5ADecom1(V_i, A_i, B_i, blind_factor),
            proof,
            dlog_proof_rho,
        )

    def phase5c(
        self,
        decom_vec: Sequence[Phase5ADecom1],
        com_vec: Sequence[Phase5Com1],
        elgamal_proofs: Sequence[HomoElGamalProof],
        dlog_proofs_rho: Sequence[DLogProof],
        v_i: Point,
        R: Point,
    ) -> Tuple[Phase5Com2, Phase5DDecom2]:
        """Check the other signers' phase 5A values and commit to ``u_i`` and ``t_i``."""
        _require_length(decom_vec, len(com_vec), "decommitments")
        if len(elgamal_proofs) < len(com_vec) or len(dlog_proofs_rho) < len(com_vec):
            raise ValueError("fewer proofs than commitments")
        g = Point.generator()

        def _valid(decom: Phase5ADecom1, com: Phase5Com1, elgamal, dlog) -> bool:
            statement = HomoElGamalStatement(G=decom.A_i, H=R, Y=g, D=decom.V_i, E=decom.B_i)
            input_hash = hash_points([decom.V_i, decom.A_i, decom.B_i])
            return (
                create_commitment(input_hash, decom.blind_factor) == com.com
                and elgamal.verify(statement)
                and dlog.verify()
            )

        all_valid = all(
            _valid(*entry) for entry in zip(decom_vec, com_vec, elgamal_proofs, dlog_proofs_rho)
        )

        v = v_i + sum_points(decom.V_i for decom in decom_vec)
        a = sum_points(decom.A_i for decom in decom_vec)
        r = _r_scalar(self.R)
        v = v - g * Scalar(self.m) - self.y * r
        u_i = v * self.rho_i
        t_i = a * self.l_i
        blind_factor = sample(SECURITY)
        com = create_commitment(hash_points([u_i, t_i]), blind_factor)
        if not all_valid:
            raise ProtocolError(ErrorKind.INVALID_COM)
        return Phase5Com2(com), Phase5DDecom2(u_i, t_i, blind_factor)

    def phase5d(
        self,
        decom_vec2: Sequence[Phase5DDecom2],
        com_vec2: Sequence[Phase5Com2],
        decom_vec1: Sequence[Phase5ADecom1],
    ) -> Scalar:
        """Check every signer's phase 5C values; release ``s_i`` if they add up."""
        _require_length(decom_vec1, len(decom_vec2), "phase 5A decommitments")
        _require_length(com_vec2, len(decom_vec2), "phase 5C commitments")
        commitments_valid = all(
            create_commitment(hash_points([decom.u_i, decom.t_i]), decom.blind_factor) == com.com
            for decom, com in zip(decom_vec2, com_vec2)
        )
        g = Point.generator()
        biased_sum_tb = g + sum_points(
            [*(d.t_i for d in decom_vec2), *(d.B_i for d in decom_vec1)]
        )
        biased_sum_tb_minus_u = biased_sum_tb - sum_points(d.u_i for d in decom_vec2)
        if not commitments_valid:
            raise ProtocolError(ErrorKind.INVALID_COM)
        if g != biased_sum_tb_minus_u:
            raise ProtocolError(ErrorKind.INVALID_KEY)
        return self.s_i

    def output_signature(self, s_vec: Sequence[Scalar]) -> SignatureRecid:
        """Combine the other signers' ``s_i`` into a low-s signature with recovery id."""
        s = self.s_i + sum_scalars(s_vec)
        s_bn = s.value
        r = _r_scalar(self.R)
        ry = self.R.y_coord()
        if ry is None:
            raise ProtocolError(ErrorKind.INVALID_SIG)
        recid = (ry % CURVE_ORDER) & 1
        s_tag_bn = CURVE_ORDER - s_bn
        if s_bn > s_tag_bn:
            s = Scalar(s_tag_bn)
            recid ^= 1
        sig = SignatureRecid(r, s, recid)
        verify(sig, self.y, self.m)
        return sig


def verify(sig: SignatureRecid, y: Point, message: int) -> None:
    """Check an ECDSA signature on an already hashed message; raise if it is invalid."""
    if sig.s.is_zero():
        raise ProtocolError(ErrorKind.INVALID_SIG)
    b = sig.s.invert()
    u1 = Scalar(message) * b
    u2 = sig.r * b
    point = Point.generator() * u1 + y * u2
    x = point.x_coord()
    if x is None or sig.r != Scalar(x % CURVE_ORDER):
        raise ProtocolError(ErrorKind.INVALID_SIG)