"""Pydantic models for messages exchanged between registry, pools and hosts."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, model_validator

from amm_engine.assets import Asset, AssetInfo
from amm_engine.curves.base import PoolType
from amm_engine.types import Uint128


class PoolInstantiateMsg(BaseModel):
    """Message the registry asks the host to instantiate a pool with."""

    asset_infos: list[AssetInfo]
    registry_addr: str
    pool_type: PoolType
    init_params: dict[str, Any] | None = None
    # Set when the pool should issue its LP unit as a token contract
    token_code_id: int | None = None


class StablePoolParams(BaseModel):
    """Init params of a stableswap pool."""

    amp: int


class StartChangingAmp(BaseModel):
    next_amp: int
    next_amp_time: int


class StablePoolUpdateParams(BaseModel):
    """Update params of a stableswap pool: start or stop an amp ramp."""

    start_changing_amp: StartChangingAmp | None = None
    stop_changing_amp: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _exactly_one_action(self) -> StablePoolUpdateParams:
        if (self.start_changing_amp is None) == (self.stop_changing_amp is None):
            raise ValueError("Exactly one of start_changing_amp / stop_changing_amp is required")
        return self


class StablePoolConfig(BaseModel):
    """Stableswap parameters reported by config queries."""

    amp: Decimal


class SwapHook(BaseModel):
    """Token-hook payload: swap the received tokens."""

    belief_price: Decimal | None = None
    max_spread: Decimal | None = None
    ask_asset_info: AssetInfo | None = None
    to: str | None = None


class WithdrawLiquidityHook(BaseModel):
    """Token-hook payload: burn the received LP units and refund the assets."""


class AccumUserEmissions(BaseModel):
    """Notification to the rewards controller, sent before an LP balance changes."""

    address: str
    previous_amount: Uint128


class PairInfo(BaseModel):
    asset_infos: list[AssetInfo]
    contract_addr: str
    liquidity_token: AssetInfo | None
    pool_type: PoolType


class PoolResponse(BaseModel):
    assets: list[Asset]
    total_share: Uint128


class PoolConfigResponse(BaseModel):
    owner: str
    registry_addr: str
    params: StablePoolConfig | None = None


class FeeInfoResponse(BaseModel):
    fee_address: str | None
    total_fee_bps: int = Field(ge=0)
