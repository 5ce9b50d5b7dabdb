"""Shared pydantic field types for engine messages and persisted state."""

from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from amm_engine.safe_int import UINT128_MAX


def validate_uint128(value: Any) -> int:
    """Validate that a value is a ledger amount.

    Args:
        value: Value to validate (int or decimal string)

    Returns:
        The amount as int

    Raises:
        ValueError: If value is not a non-negative integer within uint128 range
    """
    if isinstance(value, bool):
        raise ValueError("Uint128 must be an integer, got bool")

    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError as err:
            raise ValueError(f"Uint128 must be a decimal integer string: '{value}'") from err

    if not isinstance(value, int):
        raise ValueError(f"Uint128 must be string or int, got {type(value).__name__}")

    if value < 0:
        raise ValueError(f"Uint128 cannot be negative: {value}")
    if value > UINT128_MAX:
        raise ValueError(f"Uint128 overflow: {value} > 2^128-1")

    return value


# 128-bit unsigned ledger amount
Uint128 = Annotated[
    int,
    BeforeValidator(validate_uint128),
    Field(description="128-bit unsigned integer"),
]

# Asset decimals
Precision = Annotated[int, Field(ge=0, le=18)]
