"""Shared interface for invariant curves."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Protocol

from amm_engine.assets import Asset
from amm_engine.errors import InvalidSwapParameters
from amm_engine.math.decimal import Decimal256


class PoolType(str, Enum):
    """Curve family a pool is built on."""

    XYK = "xyk"
    STABLE = "stable"


@dataclass(frozen=True)
class SwapOutcome:
    """Result of a forward swap: what the trader receives for a given offer.

    return_amount is already net of commission.
    """

    return_amount: int
    spread_amount: int
    commission_amount: int

    @classmethod
    def zero(cls) -> SwapOutcome:
        return cls(0, 0, 0)


@dataclass(frozen=True)
class ReverseOutcome:
    """Result of a reverse swap: what the trader must offer for a given return."""

    offer_amount: int
    spread_amount: int
    commission_amount: int

    @classmethod
    def zero(cls) -> ReverseOutcome:
        return cls(0, 0, 0)


class Curve(Protocol):
    """Pricing and share accounting for one pool family.

    Pools are passed as assets with raw ledger amounts; curves that need a
    common precision normalise internally.
    """

    def compute_swap(
        self, offer_pool: Asset, ask_pool: Asset, offer_amount: int, fee_rate: Decimal256
    ) -> SwapOutcome: ...

    def compute_offer_amount(
        self, offer_pool: Asset, ask_pool: Asset, ask_amount: int, fee_rate: Decimal256
    ) -> ReverseOutcome: ...

    def provision_share(
        self,
        deposits: Sequence[Asset],
        pools: Sequence[Asset],
        total_share: int,
        slippage_tolerance: Decimal | None = None,
    ) -> int: ...

    def withdraw_share(
        self, pools: Sequence[Asset], amount: int, total_share: int
    ) -> list[Asset]: ...


def check_swap_parameters(pools: Sequence[int], swap_amount: int) -> None:
    """Reject swaps against an empty side or of a zero amount.

    Raises:
        InvalidSwapParameters: If any pool or the swap amount is zero
    """
    if any(p == 0 for p in pools):
        raise InvalidSwapParameters("One of the pools is empty")
    if swap_amount == 0:
        raise InvalidSwapParameters("Swap amount must be positive")


def share_in_assets(pools: Sequence[Asset], amount: int, total_share: int) -> list[Asset]:
    """Assets redeemable for `amount` LP units.

    The ratio amount/total_share is truncated to 18 places first, then each
    pool balance is multiplied by it and floored. A zero supply redeems
    nothing.
    """
    ratio = Decimal256.zero()
    if total_share != 0:
        ratio = Decimal256.from_ratio(amount, total_share)
    return [Asset(pool.info, ratio.mul_int(pool.amount)) for pool in pools]
