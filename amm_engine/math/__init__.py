"""Fixed-point math for pool calculations."""

from amm_engine.math.decimal import DECIMAL_PLACES, ONE_18, Decimal256

__all__ = ["Decimal256", "DECIMAL_PLACES", "ONE_18"]
