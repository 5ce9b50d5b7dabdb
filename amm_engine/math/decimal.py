"""18-decimal fixed-point numbers for pool math.

Decimal256 stores a non-negative value as an integer scaled by 10^18
("atomics"), bounded by uint256. Every operation rounds toward zero, which is
the rounding the ledger uses; swap results depend on it bit for bit, so do
not replace these helpers with float or stdlib Decimal arithmetic.

Intermediate products may use up to 512 bits; only results are range
checked.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Context, Decimal, localcontext
from typing import ClassVar

from amm_engine.errors import InvalidAmount, InvalidPrecision
from amm_engine.safe_int import UINT256_MAX, DivisionByZero, S, Uint256Overflow, Underflow

__all__ = [
    "Decimal256",
    "DECIMAL_PLACES",
    "ONE_18",
]

DECIMAL_PLACES = 18
ONE_18 = 10**DECIMAL_PLACES

# Holds any uint256 atomics exactly; truncates like the fixed-point ops
_WIDE_CONTEXT = Context(prec=80, rounding=ROUND_DOWN)


class Decimal256:
    """18-decimal fixed-point number stored as int.

    Example: 1.5 is stored as 1_500_000_000_000_000_000
    """

    ONE: ClassVar[int] = ONE_18

    __slots__ = ("atomics",)
    __hash__ = None  # type: ignore[assignment]  # Unhashable since we define __eq__

    def __init__(self, atomics: int) -> None:
        """Create from raw scaled value."""
        if atomics < 0:
            raise Underflow(f"Decimal256 cannot be negative: {atomics}")
        if atomics > UINT256_MAX:
            raise Uint256Overflow(f"Decimal256 range exceeded: {atomics}")
        self.atomics = atomics

    # --- Constructors ---

    @classmethod
    def zero(cls) -> Decimal256:
        return cls(0)

    @classmethod
    def one(cls) -> Decimal256:
        return cls(cls.ONE)

    @classmethod
    def from_int(cls, i: int) -> Decimal256:
        """Create from integer (will be scaled by 10^18)."""
        return cls((S(i) * cls.ONE).value)

    @classmethod
    def from_ratio(cls, numerator: int, denominator: int) -> Decimal256:
        """numerator / denominator, rounded down.

        Raises:
            DivisionByZero: If denominator is zero
        """
        if denominator == 0:
            raise DivisionByZero(f"Decimal256.from_ratio: {numerator} / 0")
        return cls(int(numerator) * cls.ONE // int(denominator))

    @classmethod
    def from_decimal(cls, d: Decimal) -> Decimal256:
        """Create from a stdlib Decimal, truncating past 18 places.

        Raises:
            InvalidAmount: If d is NaN or infinite
            Underflow: If d is negative
            Uint256Overflow: If d scaled by 10^18 leaves uint256
        """
        if not d.is_finite():
            raise InvalidAmount(f"Decimal256 requires a finite value, got {d}")
        if d < 0:
            raise Underflow(f"Decimal256 requires non-negative input, got {d}")
        with localcontext(_WIDE_CONTEXT):
            if d > Decimal(UINT256_MAX) / cls.ONE:
                raise Uint256Overflow(f"Decimal256 range exceeded: {d}")
            scaled = (d * cls.ONE).quantize(Decimal("1"), rounding=ROUND_DOWN)
        return cls(int(scaled))

    @classmethod
    def with_precision(cls, value: int, precision: int) -> Decimal256:
        """Interpret an integer amount that has `precision` decimal places.

        with_precision(1_500_000, 6) == 1.5

        Raises:
            InvalidPrecision: If precision exceeds 18
        """
        if not 0 <= precision <= DECIMAL_PLACES:
            raise InvalidPrecision(f"Precision must be within [0, 18], got {precision}")
        return cls((S(value) * 10 ** (DECIMAL_PLACES - precision)).value)

    # --- Conversions ---

    def to_decimal(self) -> Decimal:
        """Convert to Decimal for display, exact for any atomics value."""
        with localcontext(_WIDE_CONTEXT):
            return Decimal(self.atomics) / Decimal(self.ONE)

    def to_uint_floor(self) -> int:
        """Integer part."""
        return self.atomics // self.ONE

    def to_uint_with_precision(self, precision: int) -> int:
        """Integer amount with `precision` decimal places, rounded down."""
        if not 0 <= precision <= DECIMAL_PLACES:
            raise InvalidPrecision(f"Precision must be within [0, 18], got {precision}")
        return self.atomics // 10 ** (DECIMAL_PLACES - precision)

    # --- Arithmetic ---

    def add(self, other: Decimal256) -> Decimal256:
        return Decimal256(self.atomics + other.atomics)

    def sub(self, other: Decimal256) -> Decimal256:
        """Subtract other from self.

        Raises:
            Underflow: If other > self
        """
        return Decimal256((S(self.atomics) - other.atomics).value)

    def saturating_sub(self, other: Decimal256) -> Decimal256:
        return Decimal256(max(0, self.atomics - other.atomics))

    def abs_diff(self, other: Decimal256) -> Decimal256:
        return Decimal256(abs(self.atomics - other.atomics))

    def mul(self, other: Decimal256) -> Decimal256:
        """Multiply with floor rounding: (a * b) // 10^18"""
        return Decimal256(self.atomics * other.atomics // self.ONE)

    def div(self, other: Decimal256) -> Decimal256:
        """Divide with floor rounding: (a * 10^18) // b

        Raises:
            DivisionByZero: If other is zero
        """
        if other.atomics == 0:
            raise DivisionByZero("Decimal256 division by zero")
        return Decimal256(self.atomics * self.ONE // other.atomics)

    def inv(self) -> Decimal256:
        """1 / self, rounded down.

        Raises:
            DivisionByZero: If self is zero
        """
        return Decimal256.one().div(self)

    def mul_int(self, amount: int) -> int:
        """amount * self, rounded down to an integer.

        Raises:
            Uint256Overflow: If the result leaves uint256
        """
        return S(amount * self.atomics // self.ONE).to_uint256()

    def checked_multiply_ratio(self, numerator: Decimal256, denominator: Decimal256) -> Decimal256:
        """self * numerator / denominator on the raw atomics, rounded down.

        Raises:
            DivisionByZero: If denominator is zero
        """
        if denominator.atomics == 0:
            raise DivisionByZero("Decimal256.checked_multiply_ratio by zero")
        return Decimal256(self.atomics * numerator.atomics // denominator.atomics)

    def is_zero(self) -> bool:
        return self.atomics == 0

    # --- Comparison ---

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Decimal256):
            return NotImplemented
        return self.atomics == other.atomics

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Decimal256):
            return NotImplemented
        return self.atomics < other.atomics

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Decimal256):
            return NotImplemented
        return self.atomics <= other.atomics

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Decimal256):
            return NotImplemented
        return self.atomics > other.atomics

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Decimal256):
            return NotImplemented
        return self.atomics >= other.atomics

    def __repr__(self) -> str:
        return f"Decimal256({self.atomics})"

    def __str__(self) -> str:
        with localcontext(_WIDE_CONTEXT):
            return format(self.to_decimal().normalize(), "f")
