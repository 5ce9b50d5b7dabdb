"""Swap and liquidity curves for constant product and stableswap pools."""

from amm_engine.curves.base import Curve, PoolType, ReverseOutcome, SwapOutcome
from amm_engine.curves.constant_product import ConstantProductCurve
from amm_engine.curves.stableswap import AmpState, StableswapCurve

__all__ = [
    "AmpState",
    "ConstantProductCurve",
    "Curve",
    "PoolType",
    "ReverseOutcome",
    "StableswapCurve",
    "SwapOutcome",
]
