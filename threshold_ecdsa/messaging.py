"""Shared message types, AES-GCM helpers and the client of the key-value board."""

from __future__ import annotations

import json
import os
import time
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, List, Optional, Union

import requests
from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, encode_dss_signature
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .curve import CURVE_ORDER, Point, Scalar
from .errors import ErrorKind, ProtocolError

AES_KEY_BYTES_LEN = 32
NONCE_BYTES_LEN = 12
DEFAULT_ADDRESS = "http://127.0.0.1:8001"
RETRIES = 3
RETRY_DELAY = 0.25


@dataclass(frozen=True)
class Aead:
    """AES-GCM ciphertext together with the nonce it was sealed under."""

    ciphertext: bytes
    tag: bytes


@dataclass(frozen=True)
class PartySignup:
    number: int
    uuid: str


@dataclass(frozen=True)
class Entry:
    key: str
    value: str


@dataclass(frozen=True)
class Params:
    parties: int
    threshold: int


def load_params(path: Union[str, os.PathLike] = "params.json") -> Params:
    """Read the party count and threshold from a JSON file."""
    with open(path, encoding="utf-8") as handle:
        data = json.load(handle)
    return Params(parties=int(data["parties"]), threshold=int(data["threshold"]))


def _check_key(key: bytes) -> None:
    if len(key) != AES_KEY_BYTES_LEN:
        raise ValueError(f"AES key must be {AES_KEY_BYTES_LEN} bytes")


def aes_encrypt(key: bytes, plaintext: bytes) -> Aead:
    """Seal ``plaintext`` with AES-256-GCM under a fresh random nonce."""
    _check_key(key)
    nonce = os.urandom(NONCE_BYTES_LEN)
    ciphertext = AESGCM(bytes(key)).encrypt(nonce, bytes(plaintext), None)
    return Aead(ciphertext=ciphertext, tag=nonce)


def aes_decrypt(key: bytes, aead_pack: Aead) -> bytes:
    """Open a package made by :func:`aes_encrypt`; raise ValueError if it fails."""
    _check_key(key)
    try:
        return AESGCM(bytes(key)).decrypt(bytes(aead_pack.tag), bytes(aead_pack.ciphertext), None)
    except InvalidTag as exc:
        raise ValueError("decryption failed") from exc


def check_sig(r: Scalar, s: Scalar, msg: int, pk: Point) -> None:
    """Check a low-s ECDSA signature on a 32-byte prehashed message; raise if invalid."""
    if msg < 0 or msg.bit_length() > 256:
        raise ValueError("message must fit in 32 bytes")
    if pk.is_identity():
        raise ValueError("public key is the point at infinity")
    digest = msg.to_bytes(32, "big")
    public_key = ec.EllipticCurvePublicNumbers(
        pk.x_coord(), pk.y_coord(), ec.SECP256K1()
    ).public_key()
    r_value, s_value = r.value, s.value
    if r_value == 0 or s_value == 0 or s_value > CURVE_ORDER // 2:
        raise ProtocolError(ErrorKind.INVALID_SIG)
    try:
        public_key.verify(
            encode_dss_signature(r_value, s_value),
            digest,
            ec.ECDSA(Prehashed(hashes.SHA256())),
        )
    except InvalidSignature as exc:
        raise ProtocolError(ErrorKind.INVALID_SIG) from exc


def _payload(body: Any) -> Any:
    if is_dataclass(body) and not isinstance(body, type):
        return asdict(body)
    return body


class BoardClient:
    """Client of the key-value board that parties exchange messages through."""

    def __init__(
        self,
        address: str = DEFAULT_ADDRESS,
        session: Optional[Any] = None,
        retry_delay: float = RETRY_DELAY,
    ) -> None:
        self.address = address.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.retry_delay = retry_delay

    def post(self, path: str, body: Any) -> Optional[str]:
        """POST ``body`` as JSON; the response text, or None if every attempt failed."""
        url = f"{self.address}/{path}"
        payload = _payload(body)
        for _ in range(1, RETRIES):
            try:
                response = self.session.post(url, json=payload)
            except requests.RequestException:
                time.sleep(self.retry_delay)
                continue
            return response.text
        return None

    def _post_required(self, path: str, body: Any) -> Any:
        text = self.post(path, body)
        if text is None:
            raise ConnectionError(f"no response from {self.address}/{path}")
        return json.loads(text)

    def _set(self, key: str, data: str) -> None:
        result = self._post_required("set", Entry(key=key, value=data))
        if not (isinstance(result, dict) and "Ok" in result):
            raise RuntimeError(f"board refused to store {key!r}")

    def broadcast(
        self, party_num: int, round_name: str, data: str, sender_uuid: str
    ) -> None:
        """Publish ``data`` for every party in the round."""
        self._set(f"{party_num}-{round_name}-{sender_uuid}", data)

    def sendp2p(
        self, party_from: int, party_to: int, round_name: str, data: str, sender_uuid: str
    ) -> None:
        """Publish ``data`` addressed to a single party."""
        self._set(f"{party_from}-{party_to}-{round_name}-{sender_uuid}", data)

    def _poll(self, key: str, delay: float, round_name: str, sender: int, receiver: int) -> str:
        while True:
            time.sleep(delay)
            answer = self._post_required("get", {"key": key})
            if isinstance(answer, dict) and "Ok" in answer:
                print(f"[{json.dumps(round_name)}] party {sender} => party {receiver}")
                return answer["Ok"]["value"]

    def poll_for_broadcasts(
        self, party_num: int, n: int, delay: float, round_name: str, sender_uuid: str
    ) -> List[str]:
        """Wait for the broadcast of every other party, in party order."""
        return [
            self._poll(f"{i}-{round_name}-{sender_uuid}", delay, round_name, i, party_num)
            for i in range(1, n + 1)
            if i != party_num
        ]

    def poll_for_p2p(
        self, party_num: int, n: int, delay: float, round_name: str, sender_uuid: str
    ) -> List[str]:
        """Wait for the message every other party sent to this one, in party order."""
        return [
            self._poll(
                f"{i}-{party_num}-{round_name}-{sender_uuid}", delay, round_name, i, party_num
            )
            for i in range(1, n + 1)
            if i != party_num
        ]