"""Engine configuration.

Protocol parameters that pools and the registry read at runtime. The
defaults are the production values; tests and hosts can build their own
EngineConfig (or read one from AMM_* environment variables) and pass it
into PoolInstance / PoolRegistry.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal

from amm_engine.constants import (
    DEFAULT_PAIRS_LIMIT,
    DEFAULT_SLIPPAGE,
    MAX_ALLOWED_SLIPPAGE,
    MAX_PAIRS_LIMIT,
    MINIMUM_LIQUIDITY_AMOUNT,
    NEWTON_ITERATIONS,
)


@dataclass(frozen=True)
class EngineConfig:
    """Centralized configuration for pool and registry behavior.

    Attributes:
        default_slippage: Spread / slippage tolerance used when the caller
            passes none (default: 0.5%)
        max_allowed_slippage: Upper bound for caller-supplied tolerances
            (default: 100%)
        minimum_liquidity_amount: LP units locked in the pool on the first
            deposit (default: 1000)
        newton_iterations: Iteration cap for stableswap D and y solvers
        default_pairs_limit: Page size of registry pair listings
        max_pairs_limit: Largest page a caller can request
    """

    default_slippage: Decimal = DEFAULT_SLIPPAGE
    max_allowed_slippage: Decimal = MAX_ALLOWED_SLIPPAGE
    minimum_liquidity_amount: int = MINIMUM_LIQUIDITY_AMOUNT
    newton_iterations: int = NEWTON_ITERATIONS
    default_pairs_limit: int = DEFAULT_PAIRS_LIMIT
    max_pairs_limit: int = MAX_PAIRS_LIMIT

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Build a config from environment variables.

        Reads AMM_DEFAULT_SLIPPAGE, AMM_MAX_ALLOWED_SLIPPAGE,
        AMM_MINIMUM_LIQUIDITY, AMM_NEWTON_ITERATIONS, AMM_DEFAULT_PAIRS_LIMIT
        and AMM_MAX_PAIRS_LIMIT; unset variables keep their defaults.
        """
        return cls(
            default_slippage=Decimal(os.environ.get("AMM_DEFAULT_SLIPPAGE", str(DEFAULT_SLIPPAGE))),
            max_allowed_slippage=Decimal(
                os.environ.get("AMM_MAX_ALLOWED_SLIPPAGE", str(MAX_ALLOWED_SLIPPAGE))
            ),
            minimum_liquidity_amount=int(
                os.environ.get("AMM_MINIMUM_LIQUIDITY", str(MINIMUM_LIQUIDITY_AMOUNT))
            ),
            newton_iterations=int(os.environ.get("AMM_NEWTON_ITERATIONS", str(NEWTON_ITERATIONS))),
            default_pairs_limit=int(
                os.environ.get("AMM_DEFAULT_PAIRS_LIMIT", str(DEFAULT_PAIRS_LIMIT))
            ),
            max_pairs_limit=int(os.environ.get("AMM_MAX_PAIRS_LIMIT", str(MAX_PAIRS_LIMIT))),
        )


# Default configuration instance
DEFAULT_ENGINE_CONFIG = EngineConfig()
