"""A GG18 key generation party that talks to the other parties through the key-value board."""

from __future__ import annotations

import argparse
import json
import os
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar, Union

from .curve import Point, Scalar, sum_points
from .errors import ErrorKind, ProtocolError
from .gg18 import (
    KeyGenBroadcastMessage1,
    KeyGenDecommitMessage1,
    Keys,
    Parameters,
    SharedKeys,
)
from .messaging import (
    AES_KEY_BYTES_LEN,
    Aead,
    BoardClient,
    Params,
    PartySignup,
    aes_decrypt,
    aes_encrypt,
    load_params,
)
from .paillier import EncryptionKey
from .proofs import DLogProof
from .vss import VerifiableSS

DEFAULT_DELAY = 0.025
SIGNUP_KEY = "signup-keygen"

KeygenOutput = Tuple[Keys, SharedKeys, int, List[VerifiableSS], List[EncryptionKey], Point]

_T = TypeVar("_T")


def signup(client: BoardClient) -> PartySignup:
    """Sign up for key generation; the board assigns a party number and a session id."""
    text = client.post("signupkeygen", SIGNUP_KEY)
    if text is None:
        raise ConnectionError("no response to the key generation signup")
    data = json.loads(text)
    if isinstance(data, dict) and "Ok" in data:
        data = data["Ok"]
    if not isinstance(data, dict) or "number" not in data or "uuid" not in data:
        raise RuntimeError("the board refused the key generation signup")
    return PartySignup(number=int(data["number"]), uuid=str(data["uuid"]))


def _int_bytes(value: int) -> bytes:
    return value.to_bytes(max(1, (value.bit_length() + 7) // 8), "big")


def _aes_key(shared_point: Point) -> bytes:
    x = shared_point.x_coord()
    if x is None:
        raise ProtocolError(ErrorKind.INVALID_KEY)
    return x.to_bytes(AES_KEY_BYTES_LEN, "big")


def _aead_to_json(pack: Aead) -> str:
    return json.dumps({"ciphertext": list(pack.ciphertext), "tag": list(pack.tag)})


def _aead_from_json(text: str) -> Aead:
    data = json.loads(text)
    return Aead(ciphertext=bytes(data["ciphertext"]), tag=bytes(data["tag"]))


def _with_own(
    answers: Sequence[str], party_num: int, own: _T, parse: Callable[[str], _T]
) -> List[_T]:
    """The other parties' answers in party order, with this party's value in its place."""
    values = [parse(answer) for answer in answers]
    values.insert(party_num - 1, own)
    return values


def _encode_output(output: KeygenOutput) -> str:
    keys, shared_keys, party_num, vss_scheme_vec, paillier_key_vec, y_sum = output
    return json.dumps(
        [
            keys.to_dict(),
            shared_keys.to_dict(),
            party_num,
            [vss.to_dict() for vss in vss_scheme_vec],
            [ek.to_dict() for ek in paillier_key_vec],
            y_sum.to_bytes(True).hex(),
        ]
    )


def run_keygen(
    client: BoardClient,
    params: Params,
    output_path: Union[str, os.PathLike],
    delay: float = DEFAULT_DELAY,
) -> KeygenOutput:
    """Take part in one key generation and save this party's key material to ``output_path``."""
    party = signup(client)
    party_num, session = party.number, party.uuid
    print(f"number: {party_num}, uuid: {json.dumps(session)}")

    n = params.parties
    protocol_params = Parameters(threshold=params.threshold, share_count=n)
    others = [i for i in range(1, n + 1) if i != party_num]

    party_keys = Keys.create(party_num)
    bc_i, decom_i = party_keys.phase1_broadcast_phase3_proof_of_correct_key()

    client.broadcast(party_num, "round1", bc_i.to_json(), session)
    round1 = client.poll_for_broadcasts(party_num, n, delay, "round1", session)
    bc1_vec = _with_own(round1, party_num, bc_i, KeyGenBroadcastMessage1.from_json)

    client.broadcast(party_num, "round2", decom_i.to_json(), session)
    round2 = client.poll_for_broadcasts(party_num, n, delay, "round2", session)
    decom_vec = _with_own(round2, party_num, decom_i, KeyGenDecommitMessage1.from_json)

    point_vec = [decom.y_i for decom in decom_vec]
    enc_keys: Dict[int, bytes] = {
        i: _aes_key(decom_vec[i - 1].y_i * party_keys.u_i) for i in others
    }
    y_sum = sum_points(point_vec)

    vss_scheme, secret_shares, _index = (
        party_keys.phase1_verify_com_phase3_verify_correct_key_phase2_distribute(
            protocol_params, decom_vec, bc1_vec
        )
    )

    for i in others:
        plaintext = _int_bytes(secret_shares[i - 1].value)
        pack = aes_encrypt(enc_keys[i], plaintext)
        client.sendp2p(party_num, i, "round3", _aead_to_json(pack), session)

    round3 = client.poll_for_p2p(party_num, n, delay, "round3", session)
    received: Dict[int, Scalar] = {
        i: Scalar(int.from_bytes(aes_decrypt(enc_keys[i], _aead_from_json(text)), "big"))
        for i, text in zip(others, round3)
    }
    party_shares = [
        secret_shares[i - 1] if i == party_num else received[i] for i in range(1, n + 1)
    ]

    client.broadcast(party_num, "round4", json.dumps(vss_scheme.to_dict()), session)
    round4 = client.poll_for_broadcasts(party_num, n, delay, "round4", session)
    vss_scheme_vec = _with_own(
        round4, party_num, vss_scheme, lambda text: VerifiableSS.from_dict(json.loads(text))
    )

    shared_keys, dlog_proof = party_keys.phase2_verify_vss_construct_keypair_phase3_pok_dlog(
        protocol_params, point_vec, party_shares, vss_scheme_vec, party_num
    )

    client.broadcast(party_num, "round5", json.dumps(dlog_proof.to_dict()), session)
    round5 = client.poll_for_broadcasts(party_num, n, delay, "round5", session)
    dlog_proof_vec = _with_own(
        round5, party_num, dlog_proof, lambda text: DLogProof.from_dict(json.loads(text))
    )
    Keys.verify_dlog_proofs(protocol_params, dlog_proof_vec, point_vec)

    paillier_key_vec = [bc1.e for bc1 in bc1_vec]
    output: KeygenOutput = (
        party_keys,
        shared_keys,
        party_num,
        vss_scheme_vec,
        paillier_key_vec,
        y_sum,
    )
    with open(output_path, "w", encoding="utf-8") as handle:
        handle.write(_encode_output(output))
    return output


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Join a GG18 key generation.")
    parser.add_argument("address", help="address of the key-value board")
    parser.add_argument("output", help="file to save the key material to")
    parser.add_argument("--params", default="params.json", help="path of the parameters file")
    args = parser.parse_args(argv)
    params = load_params(args.params)
    run_keygen(BoardClient(args.address), params, args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())