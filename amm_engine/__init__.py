"""Two-asset AMM engine: constant product and stableswap pools with a registry."""

from amm_engine.assets import Asset, AssetInfo, AssetKind, Coin
from amm_engine.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from amm_engine.curves import PoolType
from amm_engine.host import Env, MessageInfo, Reply
from amm_engine.intents import Response
from amm_engine.pool.instance import PoolInstance
from amm_engine.registry import PoolRegistry, PoolTypeConfig

__version__ = "0.1.0"
__all__ = [
    "Asset",
    "AssetInfo",
    "AssetKind",
    "Coin",
    "DEFAULT_ENGINE_CONFIG",
    "EngineConfig",
    "Env",
    "MessageInfo",
    "PoolInstance",
    "PoolRegistry",
    "PoolType",
    "PoolTypeConfig",
    "Reply",
    "Response",
    "__version__",
]
