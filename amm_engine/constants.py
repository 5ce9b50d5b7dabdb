"""Protocol constants for the pool engine.

Centralizes fee, slippage, liquidity and amplification parameters.
"""

from decimal import Decimal

# Pools hold exactly two assets
N_COINS = 2

# Fees are expressed in basis points of the swap return
MAX_TOTAL_FEE_BPS = 10_000
FEE_BPS_DENOMINATOR = 10_000

# Default swap / provide slippage (0.5%) and the hard cap (100%)
DEFAULT_SLIPPAGE = Decimal("0.005")
MAX_ALLOWED_SLIPPAGE = Decimal("1")

# LP units minted to the pool itself on the first deposit and never withdrawn
MINIMUM_LIQUIDITY_AMOUNT = 1_000

# Stableswap amplification bounds
# Amp values are stored multiplied by AMP_PRECISION
AMP_PRECISION = 100
MAX_AMP = 1_000_000
MAX_AMP_CHANGE = 10
MIN_AMP_CHANGING_TIME = 86_400  # seconds

# Iteration cap for the Newton-Raphson solvers
NEWTON_ITERATIONS = 64

# Largest supported asset precision (Decimal256 places)
MAX_PRECISION = 18

# LP unit naming
LP_TOKEN_SYMBOL = "uLP"
LP_TOKEN_DECIMALS = 6
TOKEN_SYMBOL_MAX_LENGTH = 4
DENOM_MIN_LENGTH = 3
DENOM_MAX_LENGTH = 128

# Registry pair listing page sizes
DEFAULT_PAIRS_LIMIT = 10
MAX_PAIRS_LIMIT = 30

# Reply ids for deferred host commands
INSTANTIATE_POOL_REPLY_ID = 1
INSTANTIATE_NATIVE_LP_REPLY_ID = 1
INSTANTIATE_TOKEN_LP_REPLY_ID = 2
