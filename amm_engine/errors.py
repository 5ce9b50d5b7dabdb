"""Engine error classes.

Every failure raised by the engine derives from AmmError and belongs to one
of five categories. Callers can catch a category (e.g. InvariantViolation
to retry with a wider tolerance) or a specific condition.

- ValidationError: malformed input, rejected before any state change
- MathError: overflow, division by zero, Newton non-convergence
- AuthorizationError: caller is not allowed to perform the operation
- InvariantViolation: slippage, spread or minimum-liquidity breach
- ProtocolStateError: host and engine disagree about the creation protocol
"""


class AmmError(Exception):
    """Base error for all engine operations."""

    pass


# =============================================================================
# Categories
# =============================================================================


class ValidationError(AmmError):
    """Input rejected before any mutation."""

    pass


class MathError(AmmError, ArithmeticError):
    """Arithmetic failure; the current operation is aborted."""

    pass


class AuthorizationError(AmmError):
    """Caller lacks permission for the operation."""

    pass


class InvariantViolation(AmmError):
    """Execution would be worse than the caller allowed."""

    pass


class ProtocolStateError(AmmError):
    """Engine and host are out of sync; no automatic repair is attempted."""

    pass


# =============================================================================
# Validation errors
# =============================================================================


class InvalidAssetInfo(ValidationError):
    """Native denom or contract address is malformed."""

    pass


class InvalidAmount(ValidationError):
    """Amount is not a valid uint128."""

    pass


class DoublingAssets(ValidationError):
    """The same asset appears twice."""

    pass


class InvalidNumberOfAssets(ValidationError):
    """Pools hold exactly two assets."""

    def __init__(self, expected: int = 2) -> None:
        super().__init__(f"Invalid number of assets. This pool supports only {expected} assets")
        self.expected = expected


class InvalidAsset(ValidationError):
    """Asset does not belong to the pool."""

    pass


class AssetMismatch(ValidationError):
    """Offer/ask asset or attached native funds do not match the pool."""

    pass


class InvalidZeroAmount(ValidationError):
    """A deposit that must be positive is zero."""

    pass


class InvalidProvideLPsWithSingleToken(ValidationError):
    """Cannot deposit a single asset into an empty pool side."""

    pass


class InvalidSwapParameters(ValidationError):
    """A pool side or the swapped amount is zero."""

    pass


class InvalidBeliefPrice(ValidationError):
    """Belief price must be positive."""

    pass


class InvalidFeeRate(ValidationError):
    """Fee rate must be in range [0, 1)."""

    pass


class InvalidFeeBps(ValidationError):
    """Total fee bps exceeds 10000."""

    pass


class InvalidPrecision(ValidationError):
    """Asset decimals must be within [0, 18]."""

    pass


class InvalidLiquidityToken(ValidationError):
    """Withdrawal did not present the pool's own LP unit."""

    pass


class Cw20DirectSwap(ValidationError):
    """Contract tokens can only be swapped through the token hook."""

    pass


class NonSupported(ValidationError):
    """Operation not supported for this LP unit kind."""

    pass


class InitParamsNotFound(ValidationError):
    """Stableswap pools need init params."""

    pass


class InvalidParams(ValidationError):
    """Pool init or update params could not be decoded."""

    pass


class IncorrectAmp(ValidationError):
    """Amp must be in range (0, MAX_AMP]."""

    pass


class MaxAmpChangeAssertion(ValidationError):
    """Amp ramp changes the coefficient by more than the allowed ratio."""

    pass


class MinAmpChangingTimeAssertion(ValidationError):
    """Amp ramp started too early or ends too soon."""

    pass


class PoolTypeNotFound(ValidationError):
    """No configuration for the requested pool type."""

    pass


class PoolTypeDisabled(ValidationError):
    """Pool type is disabled for new pools."""

    pass


class PoolTypeConfigDuplicate(ValidationError):
    """The same pool type was configured twice."""

    pass


class PairAlreadyRegistered(ValidationError):
    """A pool is already registered for this pair."""

    pass


class PairNotFound(ValidationError):
    """No pool is registered for this pair."""

    pass


class PoolNotRegistered(ValidationError):
    """Address is not a pool created by this registry."""

    pass


# =============================================================================
# Math errors
# =============================================================================


class ConvergenceFailure(MathError):
    """Newton-Raphson iteration did not converge."""

    pass


# =============================================================================
# Authorization errors
# =============================================================================


class Unauthorized(AuthorizationError):
    """Sender is not allowed to perform the operation."""

    pass


# =============================================================================
# Invariant violations
# =============================================================================


class AllowedSpreadAssertion(InvariantViolation):
    """Requested spread or slippage tolerance exceeds 100%."""

    pass


class MaxSpreadAssertion(InvariantViolation):
    """Swap spread exceeds the caller's maximum."""

    pass


class MaxSlippageAssertion(InvariantViolation):
    """Deposit ratio diverges from the pool ratio beyond tolerance."""

    pass


class InsufficientInitialLiquidity(InvariantViolation):
    """First deposit does not exceed MINIMUM_LIQUIDITY_AMOUNT."""

    pass


class LiquidityAmountTooSmall(InvariantViolation):
    """Deposit would mint zero LP units."""

    pass


# =============================================================================
# Protocol state errors
# =============================================================================


class InvalidState(ProtocolStateError):
    """Confirmation kind does not match the expected LP unit kind."""

    pass


class FailedToParseReply(ProtocolStateError):
    """Confirmation payload is an error or cannot be decoded."""

    pass


class NoPendingCreation(ProtocolStateError):
    """Confirmation arrived with no creation in flight."""

    pass


class DuplicateConfirmation(PairAlreadyRegistered, ProtocolStateError):
    """Confirmation for a pair that is already bound."""

    pass
