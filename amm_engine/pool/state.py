"""Durable pool state.

Everything a pool needs between two entries lives in PoolState, a pydantic
model the host can dump to JSON and reload. Balances and the LP supply are
not stored: they are queried from the host on every operation.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from amm_engine.assets import AssetInfo, AssetKind
from amm_engine.curves.base import PoolType
from amm_engine.curves.stableswap import AmpState
from amm_engine.errors import InvalidState
from amm_engine.precision import PrecisionTable
from amm_engine.types import Uint128


class LiquidityShareLedger(BaseModel):
    """provider -> cumulative LP units, as recorded by this pool.

    Read by the external rewards accumulator; LP units moved between
    accounts outside the pool are not tracked, so a debit never takes a
    balance below zero.
    """

    balances: dict[str, Uint128] = Field(default_factory=dict)

    def get(self, owner: str) -> int:
        return self.balances.get(owner, 0)

    def credit(self, owner: str, amount: int) -> int:
        """Add LP units; returns the balance before the update."""
        previous = self.balances.get(owner, 0)
        self.balances[owner] = previous + amount
        return previous

    def debit(self, owner: str, amount: int) -> int:
        """Remove LP units; returns the balance before the update."""
        previous = self.balances.get(owner, 0)
        self.balances[owner] = max(0, previous - amount)
        return previous


class PoolState(BaseModel):
    """Configuration and bookkeeping of one pool."""

    contract_address: str
    registry_address: str
    pool_type: PoolType
    asset_infos: list[AssetInfo]
    lp_kind: AssetKind
    # Set at instantiation for native LP units, on confirmation for token LP units
    liquidity_token: AssetInfo | None = None
    lp_token_name: str
    precisions: PrecisionTable
    amp: AmpState | None = None
    providers: LiquidityShareLedger = Field(default_factory=LiquidityShareLedger)

    def require_liquidity_token(self) -> AssetInfo:
        """The pool's LP unit.

        Raises:
            InvalidState: If the LP unit has not been confirmed yet
        """
        if self.liquidity_token is None:
            raise InvalidState(f"Liquidity token of pool {self.contract_address} is not confirmed")
        return self.liquidity_token

    def require_amp(self) -> AmpState:
        if self.amp is None:
            raise InvalidState(f"Pool {self.contract_address} has no amplification state")
        return self.amp
