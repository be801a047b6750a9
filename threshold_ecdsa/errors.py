"""Errors raised by the threshold ECDSA protocols."""

from __future__ import annotations

from enum import Enum
from typing import Iterable


class ErrorKind(Enum):
    """The ways a protocol step can fail its checks."""

    INVALID_KEY = "InvalidKey"
    INVALID_SS = "InvalidSS"
    INVALID_COM = "InvalidCom"
    INVALID_SIG = "InvalidSig"
    PHASE5_BAD_SUM = "Phase5BadSum"
    PHASE6_ERROR = "Phase6Error"

    def __str__(self) -> str:
        return self.value


class ProtocolError(Exception):
    """A protocol check failed; ``kind`` tells which one."""

    def __init__(self, kind: ErrorKind) -> None:
        super().__init__(str(kind))
        self.kind = kind


class BlameError(Exception):
    """A blame phase finished; ``bad_actors`` lists the indices of cheating parties."""

    def __init__(self, error_type: str, bad_actors: Iterable[int]) -> None:
        self.error_type = error_type
        self.bad_actors = tuple(bad_actors)
        super().__init__(f"{error_type}: bad actors {list(self.bad_actors)}")