"""The key-value board that GG18 parties sign up at and exchange messages through."""

from __future__ import annotations

import argparse
import json
import os
import threading
import uuid
from dataclasses import asdict
from typing import Dict, Optional, Sequence, Union

from aiohttp import web

from .messaging import PartySignup, load_params

KEYGEN_KEY = "signup-keygen"
SIGN_KEY = "signup-sign"


class SignupBoard:
    """A thread-safe key-value store holding the current signup of each protocol."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._values: Dict[str, str] = {}
        for key in (KEYGEN_KEY, SIGN_KEY):
            self._store_signup(key, PartySignup(number=0, uuid=str(uuid.uuid4())))

    def _store_signup(self, key: str, signup: PartySignup) -> None:
        self._values[key] = json.dumps(asdict(signup))

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def _next_signup(self, key: str, limit: int) -> PartySignup:
        with self._lock:
            current = PartySignup(**json.loads(self._values[key]))
            if current.number < limit:
                signup = PartySignup(number=current.number + 1, uuid=current.uuid)
            else:
                signup = PartySignup(number=1, uuid=str(uuid.uuid4()))
            self._store_signup(key, signup)
            return signup

    def signup_keygen(self, parties: int) -> PartySignup:
        """Next party number for key generation; a new session after ``parties``."""
        return self._next_signup(KEYGEN_KEY, parties)

    def signup_sign(self, threshold: int) -> PartySignup:
        """Next party number for signing; a new session after ``threshold + 1``."""
        return self._next_signup(SIGN_KEY, threshold + 1)


def create_app(
    board: SignupBoard, params_path: Union[str, os.PathLike] = "params.json"
) -> web.Application:
    """An HTTP application serving ``board``; parameters are read on every signup."""

    async def get(request: web.Request) -> web.Response:
        data = await request.json()
        key = data["key"]
        value = board.get(key)
        if value is None:
            return web.json_response({"Err": None})
        return web.json_response({"Ok": {"key": key, "value": value}})

    async def set_(request: web.Request) -> web.Response:
        data = await request.json()
        board.set(data["key"], data["value"])
        return web.json_response({"Ok": None})

    async def signup_keygen(request: web.Request) -> web.Response:
        params = load_params(params_path)
        return web.json_response({"Ok": asdict(board.signup_keygen(params.parties))})

    async def signup_sign(request: web.Request) -> web.Response:
        params = load_params(params_path)
        return web.json_response({"Ok": asdict(board.signup_sign(params.threshold))})

    app = web.Application()
    app.add_routes(
        [
            web.post("/get", get),
            web.post("/set", set_),
            web.post("/signupkeygen", signup_keygen),
            web.post("/signupsign", signup_sign),
        ]
    )
    return app


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Key-value board for GG18 parties.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8001)
    parser.add_argument("--params", default="params.json", help="path of the parameters file")
    args = parser.parse_args(argv)
    web.run_app(create_app(SignupBoard(), args.params), host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())