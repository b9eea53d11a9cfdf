"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/Identity
  2xxx: Balance
  3xxx: Market
  4xxx: Commitment
  5xxx: Resolution
  9xxx: System

Every error carries a ``category`` so callers can decide between
retry, redirect and display without parsing codes:
  validation | not_found | invalid_state | storage | auth | internal
"""


class AppError(Exception):
    """Base application error."""

    category: str = "internal"

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


class ValidationError(AppError):
    """Malformed input. Raised before any mutation is attempted."""

    category = "validation"

    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 422)


class NotFoundError(AppError):
    category = "not_found"

    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 404)


class InvalidStateTransitionError(AppError):
    """Entity is in a state that forbids the requested operation."""

    category = "invalid_state"

    def __init__(
        self, message: str, code: int = 3003, http_status: int = 409
    ) -> None:
        super().__init__(code, message, http_status)


class StorageFailureError(AppError):
    """Transaction could not be committed. Safe to retry."""

    category = "storage"

    def __init__(self, detail: str = "Storage operation failed") -> None:
        super().__init__(9003, detail, 503)


# --- 1xxx: Auth/Identity ---

class InvalidCredentialsError(AppError):
    category = "auth"

    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class AdminRequiredError(AppError):
    category = "auth"

    def __init__(self) -> None:
        super().__init__(1006, "Admin privileges required", 403)


# --- 2xxx: Balance ---

class InsufficientBalanceError(ValidationError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required} tokens, available {available} tokens",
        )


class InvalidTokenAmountError(ValidationError):
    def __init__(self, amount: int) -> None:
        super().__init__(2003, f"Token amount must be positive, got {amount}")


# --- 3xxx: Market ---

class MarketNotFoundError(NotFoundError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}")


class MarketNotActiveError(InvalidStateTransitionError):
    def __init__(self, market_id: str, status: str) -> None:
        super().__init__(
            f"Market {market_id} is not active (status={status})", 3002, 422
        )


class AlreadyResolvedError(InvalidStateTransitionError):
    def __init__(self, market_id: str) -> None:
        super().__init__(f"Market is already resolved: {market_id}", 3004)


class OptionNotFoundError(InvalidStateTransitionError):
    def __init__(self, market_id: str, option_id: str) -> None:
        super().__init__(
            f"Option {option_id} does not belong to market {market_id}", 3005
        )


class InvalidMarketError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(3006, f"Invalid market: {detail}")


class InvalidCreatorFeeError(ValidationError):
    def __init__(self, fee_bps: float) -> None:
        super().__init__(
            3007,
            f"Creator fee must be between 1% and 5%, got {fee_bps / 100:g}%",
        )


# --- 4xxx: Commitment ---

class InvalidCommitmentError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Invalid commitment: {detail}")


# --- 5xxx: Resolution ---

class InvalidEvidenceError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(5001, f"Invalid evidence: {detail}")


class MissingWinningOptionError(ValidationError):
    def __init__(self) -> None:
        super().__init__(5002, "winning_option_id is required")


class CancellationReasonTooShortError(ValidationError):
    def __init__(self, min_length: int) -> None:
        super().__init__(
            5003, f"Cancellation reason must be at least {min_length} characters"
        )


class ResolutionNotFoundError(NotFoundError):
    def __init__(self, market_id: str) -> None:
        super().__init__(5004, f"No resolution recorded for market {market_id}")


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
