"""Checked integers for reserves, offers and LP share arithmetic.

Ledger amounts are uint128. A product of two amounts needs up to 256 bits,
so intermediates may grow to uint256 and are narrowed back with
to_uint128() when they return to the ledger. Every failure is a MathError:

    S(reserve) - offer        # Underflow instead of a negative reserve
    S(amount) // total_share  # DivisionByZero on an empty pool
    (S(a) * S(b)).isqrt()     # Uint256Overflow past 2**256 - 1

Typical use wraps inputs, computes, and unwraps at the boundary:

    share = S(deposit).multiply_ratio(total_share, reserve).to_uint128()
"""

from __future__ import annotations

from amm_engine.errors import MathError

UINT128_MAX = (1 << 128) - 1
UINT256_MAX = (1 << 256) - 1


class SafeIntError(MathError):
    """Checked integer arithmetic failed."""


class DivisionByZero(SafeIntError):
    pass


class Underflow(SafeIntError):
    """A subtraction would go below zero."""


class Uint128Overflow(SafeIntError):
    """A result does not fit a ledger amount."""


class Uint256Overflow(SafeIntError):
    """An intermediate left the 256-bit range."""


def _raw(x: SafeInt | int) -> int:
    return x._value if isinstance(x, SafeInt) else x


def _wide(value: int) -> SafeInt:
    if value > UINT256_MAX:
        raise Uint256Overflow(f"Intermediate exceeds 2**256 - 1: {value}")
    return SafeInt(value)


def _difference(left: int, right: int) -> SafeInt:
    if right > left:
        raise Underflow(f"Underflow: {left} - {right} < 0")
    return SafeInt(left - right)


def _quotient(left: int, right: int) -> SafeInt:
    if right == 0:
        raise DivisionByZero(f"Division by zero: {left} // 0")
    return SafeInt(left // right)


class SafeInt:
    """Non-negative integer whose operators check their result.

    Plain ints are accepted on either side of an operator.
    """

    __slots__ = ("_value",)

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            value = value._value
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")
        self._value = value

    @property
    def value(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"S({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __hash__(self) -> int:
        return hash(self._value)

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return _wide(self._value + _raw(other))

    __radd__ = __add__

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return _wide(self._value * _raw(other))

    __rmul__ = __mul__

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        return _difference(self._value, _raw(other))

    def __rsub__(self, other: int) -> SafeInt:
        return _difference(other, self._value)

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        return _quotient(self._value, _raw(other))

    def __rfloordiv__(self, other: int) -> SafeInt:
        return _quotient(other, self._value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (SafeInt, int)):
            return self._value == _raw(other)
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _raw(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _raw(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _raw(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _raw(other)

    def __int__(self) -> int:
        return self._value

    __index__ = __int__

    def __bool__(self) -> bool:
        return self._value != 0

    def multiply_ratio(self, numerator: SafeInt | int, denominator: SafeInt | int) -> SafeInt:
        """self * numerator / denominator, floored, with a uint256 intermediate."""
        return _quotient((self * numerator)._value, _raw(denominator))

    def isqrt(self) -> SafeInt:
        """Floor square root (Newton iteration on ints)."""
        n = self._value
        if n < 2:
            return SafeInt(n)
        x, y = n, (n + 1) // 2
        while y < x:
            x, y = y, (y + n // y) // 2
        return SafeInt(x)

    def abs_diff(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(abs(self._value - _raw(other)))

    def saturating_sub(self, other: SafeInt | int) -> SafeInt:
        """Subtract, clamping at zero."""
        return SafeInt(max(self._value - _raw(other), 0))

    def to_uint128(self) -> int:
        """Narrow to a ledger amount.

        Raises:
            Uint128Overflow: If the value is negative or above 2**128 - 1
        """
        if not 0 <= self._value <= UINT128_MAX:
            raise Uint128Overflow(f"Not a ledger amount: {self._value}")
        return self._value

    def to_uint256(self) -> int:
        if not 0 <= self._value <= UINT256_MAX:
            raise Uint256Overflow(f"Outside uint256: {self._value}")
        return self._value


S = SafeInt
