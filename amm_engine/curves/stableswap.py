"""Stableswap (Curve-style) curve with a time-ramped amplification.

Balances are normalised to 18-decimal Decimal256 values before solving for
the invariant D. Amplification values are stored multiplied by
AMP_PRECISION (an amp of 85 is stored as 8500).

IMPORTANT: D is solved in fixed point, y is solved on integers at the ask
asset's precision. Both solvers stop when successive estimates differ by at
most one unit and raise ConvergenceFailure when they hit the iteration cap.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

import structlog
from pydantic import BaseModel, Field

from amm_engine.assets import Asset
from amm_engine.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from amm_engine.constants import (
    AMP_PRECISION,
    MAX_AMP,
    MAX_AMP_CHANGE,
    MIN_AMP_CHANGING_TIME,
    N_COINS,
    NEWTON_ITERATIONS,
)
from amm_engine.curves.base import (
    ReverseOutcome,
    SwapOutcome,
    check_swap_parameters,
    share_in_assets,
)
from amm_engine.errors import (
    ConvergenceFailure,
    IncorrectAmp,
    InsufficientInitialLiquidity,
    InvalidFeeRate,
    InvalidProvideLPsWithSingleToken,
    InvalidZeroAmount,
    LiquidityAmountTooSmall,
    MaxAmpChangeAssertion,
    MinAmpChangingTimeAssertion,
)
from amm_engine.math.decimal import Decimal256
from amm_engine.precision import PrecisionTable, adjust_precision
from amm_engine.safe_int import S

logger = structlog.get_logger()

# One unit in the last decimal place
_D_TOLERANCE = Decimal256(1)


def compute_d(amp: int, pools: Sequence[Decimal256], max_iterations: int = NEWTON_ITERATIONS) -> Decimal256:
    """Solve the stableswap invariant D with Newton-Raphson.

    Iteration, with Ann = amp * n / AMP_PRECISION and D starting at sum(x):

        D_P = D^(n+1) / (n^n * prod(x))       (built up one pool at a time)
        D   = (Ann * S + D_P * n) * D / ((Ann - 1) * D + (n + 1) * D_P)

    Args:
        amp: Amplification (scaled by AMP_PRECISION)
        pools: Balances normalised to 18 decimals
        max_iterations: Iteration cap

    Returns:
        D as Decimal256, or zero if any balance is zero

    Raises:
        ConvergenceFailure: If D does not settle within max_iterations
    """
    if any(p.is_zero() for p in pools):
        return Decimal256.zero()

    sum_x = Decimal256.zero()
    for p in pools:
        sum_x = sum_x.add(p)

    n_coins = len(pools)
    ann = Decimal256.from_ratio(amp * n_coins, AMP_PRECISION)
    n_dec = Decimal256.from_int(n_coins)
    n_plus_one = Decimal256.from_int(n_coins + 1)
    ann_sum_x = ann.mul(sum_x)
    ann_minus_one = ann.sub(Decimal256.one())

    d = sum_x
    for _ in range(max_iterations):
        d_p = d
        for pool in pools:
            d_p = d_p.checked_multiply_ratio(d, pool.mul(n_dec))

        d_prev = d
        numerator = ann_sum_x.add(d_p.mul(n_dec)).mul(d)
        denominator = ann_minus_one.mul(d).add(n_plus_one.mul(d_p))
        d = numerator.div(denominator)

        if d.abs_diff(d_prev) <= _D_TOLERANCE:
            return d

    raise ConvergenceFailure(f"D did not converge after {max_iterations} iterations")


def calc_y(
    amp: int,
    new_amount: Decimal256,
    xp: Sequence[Decimal256],
    target_precision: int,
    max_iterations: int = NEWTON_ITERATIONS,
) -> int:
    """Solve for the other balance after one side moves to `new_amount`.

    D is computed from the current balances `xp` and held fixed. The
    iteration runs on integers at `target_precision`:

        c = D^(n+1) / (n^n * x * Ann)
        b = x + D / Ann
        y = (y^2 + c) / (2y + b - D)

    Returns:
        The new balance at target_precision

    Raises:
        ConvergenceFailure: If y does not settle within max_iterations
    """
    n_coins = N_COINS
    ann = amp * n_coins // AMP_PRECISION
    new_amount_int = new_amount.to_uint_with_precision(target_precision)
    d = S(compute_d(amp, xp, max_iterations).to_uint_with_precision(target_precision))

    c = d.multiply_ratio(d, S(new_amount_int) * n_coins)
    c = c.multiply_ratio(d, S(ann) * n_coins)
    b = S(new_amount_int) + d // ann

    y = d
    for _ in range(max_iterations):
        y_prev = y
        y = (y * y + c) // (y * 2 + b - d)
        if y.abs_diff(y_prev) <= 1:
            return y.to_uint128()

    raise ConvergenceFailure(f"y did not converge after {max_iterations} iterations")


class AmpState(BaseModel):
    """Amplification ramp: linear from (init_amp_time, init_amp) to (next_amp_time, next_amp).

    Amps are stored scaled by AMP_PRECISION; times are block seconds.
    """

    init_amp: int = Field(ge=0)
    init_amp_time: int = Field(ge=0)
    next_amp: int = Field(ge=0)
    next_amp_time: int = Field(ge=0)

    @classmethod
    def fixed(cls, amp: int, now: int) -> AmpState:
        """A non-ramping state at `amp` (unscaled).

        Raises:
            IncorrectAmp: If amp is zero or above MAX_AMP
        """
        if amp <= 0 or amp > MAX_AMP:
            raise IncorrectAmp(f"Amp must be within (0, {MAX_AMP}], got {amp}")
        scaled = amp * AMP_PRECISION
        return cls(init_amp=scaled, init_amp_time=now, next_amp=scaled, next_amp_time=now)

    def current_amp(self, block_time: int) -> int:
        """Interpolated amp (scaled) at `block_time`."""
        if block_time >= self.next_amp_time:
            return self.next_amp

        elapsed = max(0, block_time - self.init_amp_time)
        time_range = self.next_amp_time - self.init_amp_time
        if self.next_amp > self.init_amp:
            return self.init_amp + (self.next_amp - self.init_amp) * elapsed // time_range
        return self.init_amp - (self.init_amp - self.next_amp) * elapsed // time_range

    def start_ramp(self, next_amp: int, next_amp_time: int, block_time: int) -> AmpState:
        """Start ramping toward `next_amp` (unscaled), reached at `next_amp_time`.

        Raises:
            IncorrectAmp: If next_amp is zero or above MAX_AMP
            MaxAmpChangeAssertion: If the target is more than MAX_AMP_CHANGE
                times above or below the current amp
            MinAmpChangingTimeAssertion: If the last ramp started less than
                MIN_AMP_CHANGING_TIME ago or the new one is shorter than that
        """
        if next_amp <= 0 or next_amp > MAX_AMP:
            raise IncorrectAmp(f"Amp must be within (0, {MAX_AMP}], got {next_amp}")

        current = self.current_amp(block_time)
        scaled_next = next_amp * AMP_PRECISION
        if scaled_next * MAX_AMP_CHANGE < current or scaled_next > current * MAX_AMP_CHANGE:
            raise MaxAmpChangeAssertion(
                f"Amp can change at most {MAX_AMP_CHANGE}x: current {current}, requested {scaled_next}"
            )

        if (
            block_time < self.init_amp_time + MIN_AMP_CHANGING_TIME
            or next_amp_time < block_time + MIN_AMP_CHANGING_TIME
        ):
            raise MinAmpChangingTimeAssertion(
                f"Amp changes need at least {MIN_AMP_CHANGING_TIME}s between and during ramps"
            )

        logger.debug(
            "amp_ramp_started",
            current_amp=current,
            next_amp=scaled_next,
            next_amp_time=next_amp_time,
        )
        return AmpState(
            init_amp=current,
            init_amp_time=block_time,
            next_amp=scaled_next,
            next_amp_time=next_amp_time,
        )

    def stop_ramp(self, block_time: int) -> AmpState:
        """Freeze the amp at its current interpolated value."""
        current = self.current_amp(block_time)
        logger.debug("amp_ramp_stopped", current_amp=current)
        return AmpState(
            init_amp=current,
            init_amp_time=block_time,
            next_amp=current,
            next_amp_time=block_time,
        )

    def amp_decimal(self, block_time: int) -> Decimal:
        """Current amp, unscaled, for display."""
        return Decimal(self.current_amp(block_time)) / AMP_PRECISION


class StableswapCurve:
    """Curve implementation for stableswap pools.

    Bound to one pool's amplification (already interpolated to the current
    block) and precision table.
    """

    def __init__(
        self,
        amp: int,
        precisions: PrecisionTable,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ) -> None:
        self.amp = amp
        self.precisions = precisions
        self.config = config

    def _xp(self, pools: Sequence[Asset]) -> list[Decimal256]:
        return [self.precisions.to_decimal(p) for p in pools]

    def compute_d(self, pools: Sequence[Asset]) -> Decimal256:
        return compute_d(self.amp, self._xp(pools), self.config.newton_iterations)

    def compute_swap(
        self, offer_pool: Asset, ask_pool: Asset, offer_amount: int, fee_rate: Decimal256
    ) -> SwapOutcome:
        """Swap at the curve price; any shortfall against 1:1 counts as spread.

        Raises:
            InvalidSwapParameters: If a pool or the offer amount is zero
        """
        check_swap_parameters([offer_pool.amount, ask_pool.amount], offer_amount)

        offer_precision = self.precisions.get(offer_pool.info)
        ask_precision = self.precisions.get(ask_pool.info)
        offer_dec = Decimal256.with_precision(offer_amount, offer_precision)
        offer_pool_dec = self.precisions.to_decimal(offer_pool)
        ask_pool_dec = self.precisions.to_decimal(ask_pool)

        new_ask_pool = calc_y(
            self.amp,
            offer_pool_dec.add(offer_dec),
            [offer_pool_dec, ask_pool_dec],
            ask_precision,
            self.config.newton_iterations,
        )
        return_amount = (S(ask_pool_dec.to_uint_with_precision(ask_precision)) - new_ask_pool).to_uint128()

        spread_amount = S(offer_dec.to_uint_with_precision(ask_precision)).saturating_sub(return_amount)
        commission_amount = fee_rate.mul_int(return_amount)
        return_amount = S(return_amount).saturating_sub(commission_amount).to_uint128()

        return SwapOutcome(
            return_amount=return_amount,
            spread_amount=spread_amount.to_uint128(),
            commission_amount=S(commission_amount).to_uint128(),
        )

    def compute_offer_amount(
        self, offer_pool: Asset, ask_pool: Asset, ask_amount: int, fee_rate: Decimal256
    ) -> ReverseOutcome:
        """Offer needed to receive `ask_amount` after commission.

        The new offer balance is solved at the pool's greatest precision and
        then rescaled to the offer asset's precision.

        Raises:
            InvalidSwapParameters: If a pool or the ask amount is zero
            InvalidFeeRate: If fee_rate is 100% or more
        """
        check_swap_parameters([offer_pool.amount, ask_pool.amount], ask_amount)
        if fee_rate >= Decimal256.one():
            raise InvalidFeeRate(f"The pool must have less than 100% fee, got {fee_rate}")

        greatest = self.precisions.greatest_precision
        offer_precision = self.precisions.get(offer_pool.info)
        ask_precision = self.precisions.get(ask_pool.info)
        offer_pool_dec = self.precisions.to_decimal(offer_pool)
        ask_pool_dec = self.precisions.to_decimal(ask_pool)

        before_commission = (
            Decimal256.one()
            .sub(fee_rate)
            .inv()
            .mul(Decimal256.with_precision(ask_amount, ask_precision))
        )

        new_offer_pool = calc_y(
            self.amp,
            ask_pool_dec.sub(before_commission),
            [offer_pool_dec, ask_pool_dec],
            greatest,
            self.config.newton_iterations,
        )
        offer_amount = (S(new_offer_pool) - offer_pool_dec.to_uint_with_precision(greatest)).to_uint128()
        offer_amount = adjust_precision(offer_amount, greatest, offer_precision)

        spread_amount = S(offer_amount).saturating_sub(
            before_commission.to_uint_with_precision(offer_precision)
        )
        commission_amount = fee_rate.mul_int(before_commission.to_uint_with_precision(ask_precision))

        return ReverseOutcome(
            offer_amount=offer_amount,
            spread_amount=spread_amount.to_uint128(),
            commission_amount=S(commission_amount).to_uint128(),
        )

    def provision_share(
        self,
        deposits: Sequence[Asset],
        pools: Sequence[Asset],
        total_share: int,
        slippage_tolerance: Decimal | None = None,
    ) -> int:
        """LP units minted for a (possibly one-sided) deposit.

        The share is proportional to the growth of D. Asymmetric deposits
        are penalised by the curve shape, so no ratio check is applied and
        `slippage_tolerance` is ignored.

        Raises:
            InvalidZeroAmount: If both deposits are zero
            InvalidProvideLPsWithSingleToken: If a zero deposit meets an
                empty pool side
            InsufficientInitialLiquidity: If the first deposit is too small
            LiquidityAmountTooSmall: If the deposit would mint nothing
        """
        if all(d.amount == 0 for d in deposits):
            raise InvalidZeroAmount("At least one asset must be deposited")
        for deposit, pool in zip(deposits, pools):
            if deposit.amount == 0 and pool.amount == 0:
                raise InvalidProvideLPsWithSingleToken(
                    f"Cannot provide a single token into an empty pool side ({pool.info})"
                )

        greatest = self.precisions.greatest_precision
        old_balances = self._xp(pools)
        new_balances = [
            balance.add(self.precisions.to_decimal(deposit))
            for balance, deposit in zip(old_balances, deposits)
        ]
        deposit_d = compute_d(self.amp, new_balances, self.config.newton_iterations)

        if total_share == 0:
            minimum = self.config.minimum_liquidity_amount
            share = deposit_d.to_uint_with_precision(greatest)
            if share <= minimum:
                raise InsufficientInitialLiquidity(
                    f"Initial liquidity must be more than {minimum}, got {share}"
                )
            return S(share - minimum).to_uint128()

        init_d = compute_d(self.amp, old_balances, self.config.newton_iterations)
        share = (
            Decimal256.with_precision(total_share, greatest)
            .checked_multiply_ratio(deposit_d.saturating_sub(init_d), init_d)
            .to_uint_with_precision(greatest)
        )
        logger.debug(
            "stable_share_computed",
            init_d=str(init_d),
            deposit_d=str(deposit_d),
            share=share,
        )
        if share == 0:
            raise LiquidityAmountTooSmall("Provided liquidity amount is too small")
        return S(share).to_uint128()

    def withdraw_share(self, pools: Sequence[Asset], amount: int, total_share: int) -> list[Asset]:
        return share_in_assets(pools, amount, total_share)
