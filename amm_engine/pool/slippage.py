"""Spread and slippage guards.

Both guards reject executions that are worse than the caller allowed.
Tolerances are fractions (0.005 == 0.5%); omitted tolerances fall back to
the engine default and anything above the configured cap is refused.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

import structlog

from amm_engine.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from amm_engine.errors import (
    AllowedSpreadAssertion,
    InvalidBeliefPrice,
    MaxSlippageAssertion,
    MaxSpreadAssertion,
)
from amm_engine.math.decimal import Decimal256

logger = structlog.get_logger()


def _resolve_tolerance(tolerance: Decimal | None, config: EngineConfig) -> Decimal256:
    value = config.default_slippage if tolerance is None else tolerance
    if value > config.max_allowed_slippage:
        raise AllowedSpreadAssertion(
            f"Allowed spread must be at most {config.max_allowed_slippage}, got {value}"
        )
    return Decimal256.from_decimal(value)


def assert_max_spread(
    belief_price: Decimal | None,
    max_spread: Decimal | None,
    offer_amount: int,
    return_amount: int,
    spread_amount: int,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> None:
    """Check a swap's spread against the caller's limit.

    With a belief price the expected return is offer_amount / belief_price
    and the shortfall of the actual return is measured against it.
    Without one, the curve spread is measured against return + spread.

    Args:
        belief_price: Price (offer per ask) the caller expects, if any
        max_spread: Largest acceptable spread fraction (default 0.5%)
        offer_amount: Amount offered
        return_amount: Return before commission is deducted
        spread_amount: Spread reported by the curve

    Raises:
        AllowedSpreadAssertion: If max_spread exceeds the cap
        InvalidBeliefPrice: If belief_price is zero
        MaxSpreadAssertion: If the spread is larger than max_spread
    """
    limit = _resolve_tolerance(max_spread, config)

    if belief_price is not None:
        price = Decimal256.from_decimal(belief_price)
        if price.is_zero():
            raise InvalidBeliefPrice("Invalid belief_price. Check the input values.")
        expected_return = price.inv().mul_int(offer_amount)
        shortfall = max(0, expected_return - return_amount)
        if return_amount < expected_return and Decimal256.from_ratio(shortfall, expected_return) > limit:
            logger.debug(
                "max_spread_exceeded",
                expected_return=expected_return,
                return_amount=return_amount,
                max_spread=str(limit),
            )
            raise MaxSpreadAssertion(
                f"Operation exceeds max spread limit: expected {expected_return}, got {return_amount}"
            )
        return

    # A swap too small to move any units has no measurable spread
    if return_amount + spread_amount == 0:
        return
    if Decimal256.from_ratio(spread_amount, return_amount + spread_amount) > limit:
        logger.debug(
            "max_spread_exceeded",
            spread_amount=spread_amount,
            return_amount=return_amount,
            max_spread=str(limit),
        )
        raise MaxSpreadAssertion(
            f"Operation exceeds max spread limit: spread {spread_amount} on return {return_amount}"
        )


def assert_slippage_tolerance(
    slippage_tolerance: Decimal | None,
    deposits: Sequence[int],
    pools: Sequence[int],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> None:
    """Reject a deposit whose asset ratio strays too far from the pool ratio.

    Raises:
        AllowedSpreadAssertion: If the tolerance exceeds the cap
        MaxSlippageAssertion: If either ratio, discounted by the tolerance,
            is still above the pool's
    """
    tolerance = _resolve_tolerance(slippage_tolerance, config)
    one_minus_tolerance = Decimal256.one().sub(tolerance)

    if Decimal256.from_ratio(deposits[0], deposits[1]).mul(one_minus_tolerance) > Decimal256.from_ratio(
        pools[0], pools[1]
    ) or Decimal256.from_ratio(deposits[1], deposits[0]).mul(one_minus_tolerance) > Decimal256.from_ratio(
        pools[1], pools[0]
    ):
        raise MaxSlippageAssertion(
            f"Operation exceeds max slippage tolerance: deposits {list(deposits)}, pools {list(pools)}"
        )
