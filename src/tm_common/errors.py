"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/Identity
  2xxx: Ledger
  3xxx: Market
  4xxx: Betting
  5xxx: Payout
  6xxx: Oracle / external venue
  9xxx: System

Every error is raised either before a transaction starts (validation) or
from inside one, in which case the caller rolls back before re-raising.
"""


class AppError(Exception):
    """Base application error."""

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
    """Malformed input, detected before any transaction starts."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 422)


class StateConflictError(AppError):
    """Well-formed request that conflicts with current durable state."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 409)


# --- 1xxx: Auth/Identity ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin privileges required", 403)


# --- 2xxx: Ledger ---

class InsufficientFundsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient funds: required {required} tokens, available {available} tokens",
            422,
        )


class InvalidAmountError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(2002, f"Invalid amount: {detail}")


class UnknownPackageError(ValidationError):
    def __init__(self, package_id: str) -> None:
        super().__init__(2003, f"Unknown token package: {package_id}")


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: int | str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketClosedError(StateConflictError):
    def __init__(self, market_id: int | str, status: str) -> None:
        super().__init__(3002, f"Market {market_id} is not accepting bets (status={status})")


class AlreadyResolvedError(StateConflictError):
    def __init__(self, market_id: int | str) -> None:
        super().__init__(3003, f"Market {market_id} is already resolved")


class MarketNotResolvableError(StateConflictError):
    def __init__(self, market_id: int | str, status: str) -> None:
        super().__init__(3004, f"Market {market_id} cannot be resolved in status {status}")


class InvalidMarketSpecError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(3005, f"Invalid market definition: {detail}")


class InvalidOutcomeError(ValidationError):
    def __init__(self, outcome: object) -> None:
        super().__init__(3006, f"Outcome must be 'yes' or 'no', got {outcome!r}")


# --- 4xxx: Betting ---

class InvalidPositionError(ValidationError):
    def __init__(self, position: object) -> None:
        super().__init__(4001, f"Position must be 'yes' or 'no', got {position!r}")


class OutOfBoundsError(AppError):
    def __init__(self, amount: int, min_bet: int, max_bet: int) -> None:
        super().__init__(
            4002,
            f"Bet of {amount} tokens outside market bounds [{min_bet}, {max_bet}]",
            422,
        )


class DuplicateBetError(StateConflictError):
    def __init__(self, market_id: int | str) -> None:
        super().__init__(4003, f"A bet on market {market_id} already exists for this user")


class InvalidBetAmountError(ValidationError):
    def __init__(self, amount: object) -> None:
        super().__init__(4004, f"Bet amount must be a positive integer, got {amount!r}")


# --- 5xxx: Payout ---

class PayoutNotFoundError(AppError):
    def __init__(self, payout_id: int | str) -> None:
        super().__init__(5001, f"Payout request not found: {payout_id}", 404)


class PayoutBelowMinimumError(ValidationError):
    def __init__(self, amount: int, minimum: int) -> None:
        super().__init__(5002, f"Minimum payout is {minimum} tokens, got {amount}")


class InvalidPayoutMethodError(ValidationError):
    def __init__(self, method: object) -> None:
        super().__init__(5003, f"Unsupported payout method: {method!r}")


class PayoutNotReviewableError(StateConflictError):
    def __init__(self, payout_id: int | str, status: str, decision: str) -> None:
        super().__init__(
            5004, f"Payout {payout_id} in status {status} cannot move to {decision}"
        )


class InvalidPayoutDecisionError(ValidationError):
    def __init__(self, decision: object) -> None:
        super().__init__(5005, f"Unsupported review decision: {decision!r}")


class InvalidPayoutDestinationError(ValidationError):
    def __init__(self) -> None:
        super().__init__(5006, "Payout destination is required")


# --- 6xxx: Oracle / venue ---

class OracleUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6001, f"Oracle unavailable: {detail}", 503)


class VenueMarketNotFoundError(AppError):
    def __init__(self, ticker: str) -> None:
        super().__init__(6002, f"Venue market not found: {ticker}", 404)


class ManualResolutionRequiredError(AppError):
    def __init__(self, market_id: int | str, subcategory: str | None) -> None:
        super().__init__(
            6003,
            f"Market {market_id} (subcategory={subcategory}) requires manual resolution",
            422,
        )


class VenueMarketNotOpenError(StateConflictError):
    def __init__(self, ticker: str, status: str) -> None:
        super().__init__(6004, f"Venue market {ticker} is not open (status={status})")


class VenueUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6005, f"Market venue unavailable: {detail}", 503)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self, retry_after: int = 60) -> None:
        self.retry_after = retry_after
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class PersistenceFailureError(AppError):
    """Storage failure or lock timeout; the transaction was rolled back and may be retried."""

    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Persistence failure: {detail}", 503)
