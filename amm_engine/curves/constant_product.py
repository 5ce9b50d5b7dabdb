"""Constant product curve: x * y = k.

Swap math follows the ledger's 18-decimal fixed-point rounding exactly:

    cp         = offer_pool * ask_pool
    return     = floor(ask_pool - cp / (offer_pool + offer_amount))
    spread     = offer_amount * (ask_pool / offer_pool) - return   (>= 0)
    commission = floor(return * fee_rate)
    return    -= commission

Each division is truncated to 18 places before the next step, so results
can differ from exact rational arithmetic by a unit. compute_offer_amount is
not an exact inverse of compute_swap for the same reason; callers rely on
that bias staying as it is.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

import structlog

from amm_engine.assets import Asset
from amm_engine.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from amm_engine.curves.base import (
    ReverseOutcome,
    SwapOutcome,
    check_swap_parameters,
    share_in_assets,
)
from amm_engine.errors import InsufficientInitialLiquidity, InvalidFeeRate, InvalidZeroAmount
from amm_engine.math.decimal import Decimal256
from amm_engine.pool.slippage import assert_slippage_tolerance
from amm_engine.safe_int import S

logger = structlog.get_logger()


def compute_swap(offer_pool: int, ask_pool: int, offer_amount: int, fee_rate: Decimal256) -> SwapOutcome:
    """Return, spread and commission for offering `offer_amount`.

    Raises:
        InvalidSwapParameters: If a pool or the offer amount is zero
    """
    check_swap_parameters([offer_pool, ask_pool], offer_amount)

    cp = S(offer_pool) * S(ask_pool)
    return_amount = (
        Decimal256.from_int(ask_pool)
        .sub(Decimal256.from_ratio(cp.value, offer_pool + offer_amount))
        .to_uint_floor()
    )

    spread_amount = S(Decimal256.from_ratio(ask_pool, offer_pool).mul_int(offer_amount)).saturating_sub(
        return_amount
    )
    commission_amount = fee_rate.mul_int(return_amount)
    return_amount = (S(return_amount) - commission_amount).to_uint128()

    return SwapOutcome(
        return_amount=return_amount,
        spread_amount=spread_amount.to_uint128(),
        commission_amount=S(commission_amount).to_uint128(),
    )


def compute_offer_amount(
    offer_pool: int, ask_pool: int, ask_amount: int, fee_rate: Decimal256
) -> ReverseOutcome:
    """Offer needed to receive `ask_amount` after commission.

    The ask amount is grossed up by 1 / (1 - fee_rate) before solving
    cp / (ask_pool - gross) - offer_pool.

    Raises:
        InvalidSwapParameters: If a pool or the ask amount is zero
        InvalidFeeRate: If fee_rate is 100% or more
        Underflow: If the pool cannot pay out the grossed-up amount
    """
    check_swap_parameters([offer_pool, ask_pool], ask_amount)
    if fee_rate >= Decimal256.one():
        raise InvalidFeeRate(f"The pool must have less than 100% fee, got {fee_rate}")

    cp = S(offer_pool) * S(ask_pool)
    inv_one_minus_commission = Decimal256.one().div(Decimal256.one().sub(fee_rate))
    before_commission = inv_one_minus_commission.mul_int(ask_amount)

    remaining = S(ask_pool) - S(before_commission).to_uint128()
    offer_amount = (cp.multiply_ratio(1, remaining) - offer_pool).to_uint128()

    spread_amount = S(Decimal256.from_ratio(ask_pool, offer_pool).mul_int(offer_amount)).saturating_sub(
        before_commission
    )
    commission_amount = fee_rate.mul_int(before_commission)

    return ReverseOutcome(
        offer_amount=offer_amount,
        spread_amount=spread_amount.to_uint128(),
        commission_amount=S(commission_amount).to_uint128(),
    )


def initial_share(deposits: Sequence[int], minimum_liquidity: int) -> int:
    """LP units for the first deposit: isqrt(d0 * d1) - minimum_liquidity.

    Raises:
        InsufficientInitialLiquidity: If nothing is left after the floor
    """
    share = (S(deposits[0]) * S(deposits[1])).isqrt()
    if share <= minimum_liquidity:
        raise InsufficientInitialLiquidity(
            f"Initial liquidity must be more than {minimum_liquidity}, got {share.value}"
        )
    return (share - minimum_liquidity).to_uint128()


class ConstantProductCurve:
    """Curve implementation for x * y = k pools."""

    def __init__(self, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> None:
        self.config = config

    def compute_swap(
        self, offer_pool: Asset, ask_pool: Asset, offer_amount: int, fee_rate: Decimal256
    ) -> SwapOutcome:
        return compute_swap(offer_pool.amount, ask_pool.amount, offer_amount, fee_rate)

    def compute_offer_amount(
        self, offer_pool: Asset, ask_pool: Asset, ask_amount: int, fee_rate: Decimal256
    ) -> ReverseOutcome:
        return compute_offer_amount(offer_pool.amount, ask_pool.amount, ask_amount, fee_rate)

    def provision_share(
        self,
        deposits: Sequence[Asset],
        pools: Sequence[Asset],
        total_share: int,
        slippage_tolerance: Decimal | None = None,
    ) -> int:
        """LP units minted for a two-sided deposit.

        `deposits` and `pools` must be aligned (same asset at each index) and
        pools must already exclude the deposit.

        Raises:
            InvalidZeroAmount: If either deposit is zero
            InsufficientInitialLiquidity: If the first deposit is too small
            MaxSlippageAssertion: If the deposit ratio strays from the pool's
        """
        amounts = [d.amount for d in deposits]
        if any(a == 0 for a in amounts):
            raise InvalidZeroAmount("Both assets must be deposited into a constant product pool")

        if total_share == 0:
            return initial_share(amounts, self.config.minimum_liquidity_amount)

        reserves = [p.amount for p in pools]
        assert_slippage_tolerance(slippage_tolerance, amounts, reserves, self.config)

        share = min(
            S(amounts[0]).multiply_ratio(total_share, reserves[0]),
            S(amounts[1]).multiply_ratio(total_share, reserves[1]),
            key=lambda s: s.value,
        )
        logger.debug("xyk_share_computed", deposits=amounts, reserves=reserves, share=share.value)
        return share.to_uint128()

    def withdraw_share(self, pools: Sequence[Asset], amount: int, total_share: int) -> list[Asset]:
        return share_in_assets(pools, amount, total_share)
