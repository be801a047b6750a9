import json
from types import SimpleNamespace
from unittest import mock

import pytest
import requests
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, decode_dss_signature

from threshold_ecdsa.curve import CURVE_ORDER, Point, Scalar
from threshold_ecdsa.errors import ErrorKind, ProtocolError
from threshold_ecdsa.kv_board import SignupBoard
from threshold_ecdsa.messaging import (
    AES_KEY_BYTES_LEN,
    Aead,
    BoardClient,
    Params,
    aes_decrypt,
    aes_encrypt,
    check_sig,
    load_params,
)


class _BoardSession:
    def __init__(self, board):
        self.board = board
        self.urls = []

    def post(self, url, **kwargs):
        self.urls.append(url)
        body = kwargs["json"]
        path = url.rsplit("/", 1)[1]
        if path == "set":
            self.board.set(body["key"], body["value"])
            result = {"Ok": None}
        else:
            value = self.board.get(body["key"])
            result = {"Err": None} if value is None else {"Ok": {"key": body["key"], "value": value}}
        return SimpleNamespace(text=json.dumps(result))


class _FailingSession:
    def __init__(self):
        self.attempts = 0

    def post(self, url, **kwargs):
        self.attempts += 1
        raise requests.ConnectionError("down")


def test_aes_round_trip():
    key = bytes(range(AES_KEY_BYTES_LEN))
    pack = aes_encrypt(key, b"secret share")
    assert len(pack.tag) == 12
    assert pack.ciphertext != b"secret share"
    assert aes_decrypt(key, pack) == b"secret share"


def test_aes_wrong_key_fails():
    pack = aes_encrypt(bytes(32), b"payload")
    with pytest.raises(ValueError):
        aes_decrypt(bytes([1]) * 32, pack)


def test_aes_tampered_ciphertext_fails():
    key = bytes(32)
    pack = aes_encrypt(key, b"payload")
    tampered = Aead(bytes([pack.ciphertext[0] ^ 1]) + pack.ciphertext[1:], pack.tag)
    with pytest.raises(ValueError):
        aes_decrypt(key, tampered)


def test_aes_rejects_short_key():
    with pytest.raises(ValueError):
        aes_encrypt(bytes(16), b"payload")


def test_load_params_parses_strings(tmp_path):
    path = tmp_path / "params.json"
    path.write_text(json.dumps({"parties": "3", "threshold": "1"}))
    assert load_params(path) == Params(parties=3, threshold=1)


def _signature(message: int):
    private_key = ec.generate_private_key(ec.SECP256K1())
    der = private_key.sign(message.to_bytes(32, "big"), ec.ECDSA(Prehashed(hashes.SHA256())))
    r, s = decode_dss_signature(der)
    if s > CURVE_ORDER // 2:
        s = CURVE_ORDER - s
    d = private_key.private_numbers().private_value
    return Scalar(r), Scalar(s), Point.generator() * Scalar(d)


def test_check_sig_accepts_valid_signature():
    message = int.from_bytes(b"\x11" * 32, "big")
    r, s, pk = _signature(message)
    assert check_sig(r, s, message, pk) is None


def test_check_sig_rejects_wrong_message():
    message = int.from_bytes(b"\x11" * 32, "big")
    r, s, pk = _signature(message)
    with pytest.raises(ProtocolError) as info:
        check_sig(r, s, message + 1, pk)
    assert info.value.kind is ErrorKind.INVALID_SIG


def test_check_sig_rejects_high_s():
    message = int.from_bytes(b"\x22" * 32, "big")
    r, s, pk = _signature(message)
    with pytest.raises(ProtocolError):
        check_sig(r, Scalar(CURVE_ORDER - s.value), message, pk)


def test_check_sig_rejects_oversized_message():
    r, s, pk = _signature(5)
    with pytest.raises(ValueError):
        check_sig(r, s, 1 << 256, pk)


def test_broadcast_stores_under_round_key():
    board = SignupBoard()
    session = _BoardSession(board)
    client = BoardClient("http://board.example.com", session=session)
    client.broadcast(1, "round1", "hello", "room-id")
    assert board.get("1-round1-room-id") == "hello"
    assert session.urls == ["http://board.example.com/set"]


def test_sendp2p_stores_under_pair_key():
    board = SignupBoard()
    client = BoardClient(session=_BoardSession(board))
    client.sendp2p(2, 3, "round3", "share", "room-id")
    assert board.get("2-3-round3-room-id") == "share"


def test_poll_for_broadcasts_collects_others_in_order(capsys):
    board = SignupBoard()
    client = BoardClient(session=_BoardSession(board))
    for party in (1, 2, 3):
        client.broadcast(party, "round1", f"data-{party}", "room-id")
    answers = client.poll_for_broadcasts(2, 3, 0, "round1", "room-id")
    assert answers == ["data-1", "data-3"]
    assert "party 3 => party 2" in capsys.readouterr().out


def test_poll_for_p2p_collects_messages_to_me():
    board = SignupBoard()
    client = BoardClient(session=_BoardSession(board))
    client.sendp2p(2, 1, "round3", "from-2", "room-id")
    client.sendp2p(3, 1, "round3", "from-3", "room-id")
    client.sendp2p(3, 2, "round3", "not-mine", "room-id")
    assert client.poll_for_p2p(1, 3, 0, "round3", "room-id") == ["from-2", "from-3"]


def test_post_gives_up_after_retries():
    session = _FailingSession()
    client = BoardClient(session=session)
    with mock.patch("threshold_ecdsa.messaging.time.sleep") as sleep:
        assert client.post("get", {"key": "k"}) is None
    assert session.attempts == 2
    assert sleep.call_count == session.attempts


def test_broadcast_without_server_raises():
    client = BoardClient(session=_FailingSession(), retry_delay=0)
    with pytest.raises(ConnectionError):
        client.broadcast(1, "round1", "data", "room-id")