"""Scalars and points on the secp256k1 elliptic curve."""

from __future__ import annotations

import secrets
from typing import Iterable, Optional, Tuple

FIELD_PRIME = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
CURVE_B = 7
GENERATOR_X = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798
GENERATOR_Y = 0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8

_Jacobian = Tuple[int, int, int]
_INFINITY: _Jacobian = (0, 1, 0)


class Scalar:
    """An element of the scalar field, an integer modulo the group order."""

    __slots__ = ("_value",)

    def __init__(self, value: int = 0) -> None:
        self._value = int(value) % CURVE_ORDER

    @property
    def value(self) -> int:
        return self._value

    @classmethod
    def random(cls) -> "Scalar":
        """A uniformly random non-zero scalar."""
        return cls(secrets.randbelow(CURVE_ORDER - 1) + 1)

    @classmethod
    def zero(cls) -> "Scalar":
        return cls(0)

    def invert(self) -> "Scalar":
        """The multiplicative inverse; zero has none."""
        if self._value == 0:
            raise ZeroDivisionError("zero scalar has no inverse")
        return Scalar(pow(self._value, -1, CURVE_ORDER))

    def to_bytes(self) -> bytes:
        """Big-endian encoding in 32 bytes."""
        return self._value.to_bytes(32, "big")

    def is_zero(self) -> bool:
        return self._value == 0

    @staticmethod
    def _coerce(other: object) -> Optional[int]:
        if isinstance(other, Scalar):
            return other._value
        if isinstance(other, int):
            return other
        return None

    def __add__(self, other: object) -> "Scalar":
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return Scalar(self._value + value)

    __radd__ = __add__

    def __sub__(self, other: object) -> "Scalar":
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return Scalar(self._value - value)

    def __rsub__(self, other: object) -> "Scalar":
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return Scalar(value - self._value)

    def __mul__(self, other: object) -> "Scalar":
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return Scalar(self._value * value)

    __rmul__ = __mul__

    def __neg__(self) -> "Scalar":
        return Scalar(-self._value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Scalar):
            return self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Scalar", self._value))

    def __int__(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"Scalar(0x{self._value:064x})"


def _jacobian_double(p: _Jacobian) -> _Jacobian:
    x, y, z = p
    if z == 0 or y == 0:
        return _INFINITY
    yy = y * y % FIELD_PRIME
    s = 4 * x * yy % FIELD_PRIME
    m = 3 * x * x % FIELD_PRIME
    x3 = (m * m - 2 * s) % FIELD_PRIME
    y3 = (m * (s - x3) - 8 * yy * yy) % FIELD_PRIME
    z3 = 2 * y * z % FIELD_PRIME
    return x3, y3, z3


def _jacobian_add(p: _Jacobian, q: _Jacobian) -> _Jacobian:
    if p[2] == 0:
        return q
    if q[2] == 0:
        return p
    x1, y1, z1 = p
    x2, y2, z2 = q
    z1z1 = z1 * z1 % FIELD_PRIME
    z2z2 = z2 * z2 % FIELD_PRIME
    u1 = x1 * z2z2 % FIELD_PRIME
    u2 = x2 * z1z1 % FIELD_PRIME
    s1 = y1 * z2 * z2z2 % FIELD_PRIME
    s2 = y2 * z1 * z1z1 % FIELD_PRIME
    if u1 == u2:
        if s1 != s2:
            return _INFINITY
        return _jacobian_double(p)
    h = (u2 - u1) % FIELD_PRIME
    r = (s2 - s1) % FIELD_PRIME
    hh = h * h % FIELD_PRIME
    hhh = h * hh % FIELD_PRIME
    v = u1 * hh % FIELD_PRIME
    x3 = (r * r - hhh - 2 * v) % FIELD_PRIME
    y3 = (r * (v - x3) - s1 * hhh) % FIELD_PRIME
    z3 = h * z1 * z2 % FIELD_PRIME
    return x3, y3, z3


def _on_curve(x: int, y: int) -> bool:
    return (y * y - x * x * x - CURVE_B) % FIELD_PRIME == 0


class Point:
    """A point on secp256k1; the identity has no coordinates."""

    __slots__ = ("_x", "_y")

    def __init__(self, x: Optional[int] = None, y: Optional[int] = None) -> None:
        if (x is None) != (y is None):
            raise ValueError("a point needs both coordinates or neither")
        if x is not None and y is not None:
            if not (0 <= x < FIELD_PRIME and 0 <= y < FIELD_PRIME) or not _on_curve(x, y):
                raise ValueError("coordinates are not on the curve")
        self._x = x
        self._y = y

    @classmethod
    def _trusted(cls, x: Optional[int], y: Optional[int]) -> "Point":
        point = object.__new__(cls)
        point._x = x
        point._y = y
        return point

    @classmethod
    def _from_jacobian(cls, p: _Jacobian) -> "Point":
        x, y, z = p
        if z == 0:
            return cls._trusted(None, None)
        zinv = pow(z, -1, FIELD_PRIME)
        zinv2 = zinv * zinv % FIELD_PRIME
        return cls._trusted(x * zinv2 % FIELD_PRIME, y * zinv2 * zinv % FIELD_PRIME)

    def _jacobian(self) -> _Jacobian:
        if self._x is None:
            return _INFINITY
        return self._x, self._y, 1

    @classmethod
    def generator(cls) -> "Point":
        return cls._trusted(GENERATOR_X, GENERATOR_Y)

    @classmethod
    def identity(cls) -> "Point":
        return cls._trusted(None, None)

    def is_identity(self) -> bool:
        return self._x is None

    def x_coord(self) -> Optional[int]:
        return self._x

    def y_coord(self) -> Optional[int]:
        return self._y

    def to_bytes(self, compressed: bool = True) -> bytes:
        """SEC1 encoding; the identity is a single zero byte."""
        if self._x is None:
            return b"\x00"
        x_bytes = self._x.to_bytes(32, "big")
        if compressed:
            return bytes([2 + (self._y & 1)]) + x_bytes
        return b"\x04" + x_bytes + self._y.to_bytes(32, "big")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Point":
        """Parse a SEC1 encoding as produced by :meth:`to_bytes`."""
        data = bytes(data)
        if data == b"\x00":
            return cls.identity()
        if len(data) == 33 and data[0] in (2, 3):
            x = int.from_bytes(data[1:], "big")
            if x >= FIELD_PRIME:
                raise ValueError("x coordinate out of range")
            rhs = (x * x * x + CURVE_B) % FIELD_PRIME
            y = pow(rhs, (FIELD_PRIME + 1) // 4, FIELD_PRIME)
            if y * y % FIELD_PRIME != rhs:
                raise ValueError("x coordinate is not on the curve")
            if (y & 1) != (data[0] & 1):
                y = FIELD_PRIME - y
            return cls._trusted(x, y)
        if len(data) == 65 and data[0] == 4:
            return cls(int.from_bytes(data[1:33], "big"), int.from_bytes(data[33:], "big"))
        raise ValueError("unrecognised point encoding")

    def _multiply(self, k: int) -> "Point":
        k %= CURVE_ORDER
        if k == 0 or self._x is None:
            return Point.identity()
        base = self._jacobian()
        result = _INFINITY
        for bit in bin(k)[2:]:
            result = _jacobian_double(result)
            if bit == "1":
                result = _jacobian_add(result, base)
        return Point._from_jacobian(result)

    def __add__(self, other: object) -> "Point":
        if isinstance(other, Point):
            return Point._from_jacobian(_jacobian_add(self._jacobian(), other._jacobian()))
        return NotImplemented

    def __radd__(self, other: object) -> "Point":
        if isinstance(other, int) and other == 0:
            return self
        return NotImplemented

    def __neg__(self) -> "Point":
        if self._x is None:
            return self
        return Point._trusted(self._x, (FIELD_PRIME - self._y) % FIELD_PRIME)

    def __sub__(self, other: object) -> "Point":
        if isinstance(other, Point):
            return self + (-other)
        return NotImplemented

    def __mul__(self, other: object) -> "Point":
        if isinstance(other, Scalar):
            return self._multiply(other.value)
        if isinstance(other, int):
            return self._multiply(other)
        return NotImplemented

    __rmul__ = __mul__

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Point):
            return self._x == other._x and self._y == other._y
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Point", self._x, self._y))

    def __repr__(self) -> str:
        if self._x is None:
            return "Point(identity)"
        return f"Point(0x{self._x:064x}, 0x{self._y:064x})"


def sum_points(points: Iterable[Point]) -> Point:
    """Sum of the points; the identity for none."""
    total = _INFINITY
    for point in points:
        total = _jacobian_add(total, point._jacobian())
    return Point._from_jacobian(total)


def sum_scalars(scalars: Iterable[Scalar]) -> Scalar:
    """Sum of the scalars; zero for none."""
    return Scalar(sum(s.value for s in scalars))