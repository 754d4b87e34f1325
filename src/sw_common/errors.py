"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Gateway/Auth
  2xxx: Balance/Ledger
  3xxx: Wager
  4xxx: Settlement
  9xxx: System

Validation errors are raised before any write. Conflict errors are raised
after a consistent read under lock. Invariant violations (2004, 4004) mean the
store disagrees with itself: the transaction aborts and operators investigate.
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


# --- 1xxx: Gateway/Auth ---

class InvalidServiceTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or missing service token", 401)


# --- 2xxx: Balance/Ledger ---

class InsufficientFundsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient funds: required {required}, available {available}",
            422,
        )


class AccountNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Balance not found for user {user_id}", 404)


class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(2003, f"Amount must be a positive integer, got {amount}", 422)


class EscrowUnderflowError(AppError):
    def __init__(self, user_id: str, required: int, escrowed: int) -> None:
        super().__init__(
            2004,
            f"Escrow underflow for user {user_id}: release {required}, escrowed {escrowed}",
            500,
        )


# --- 3xxx: Wager ---

class WagerNotFoundError(AppError):
    def __init__(self, wager_id: str) -> None:
        super().__init__(3001, f"Wager not found: {wager_id}", 404)


class WagerClosedError(AppError):
    def __init__(self, wager_id: str) -> None:
        super().__init__(3002, f"Wager is no longer accepting participants: {wager_id}", 409)


class DuplicateParticipationError(AppError):
    def __init__(self, wager_id: str, side: str) -> None:
        super().__init__(3003, f"Already joined wager {wager_id} on side '{side}'", 409)


class InvalidOddsError(AppError):
    def __init__(self, odds: int, low: int, high: int) -> None:
        super().__init__(3004, f"Odds must be between {low} and {high}, got {odds}", 422)


class InvalidDurationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3005, f"Invalid wager duration: {detail}", 422)


class InvalidStatementError(AppError):
    def __init__(self, max_length: int) -> None:
        super().__init__(3006, f"Statement must be 1 to {max_length} characters", 422)


class InvalidSideError(AppError):
    def __init__(self, side: str) -> None:
        super().__init__(3007, f"Side must be 'for' or 'against', got '{side}'", 422)


# --- 4xxx: Settlement ---

class AlreadySettledError(AppError):
    def __init__(self, wager_id: str, status: str) -> None:
        super().__init__(4001, f"Wager {wager_id} already finalized (status={status})", 409)


class WagerNotClosedError(AppError):
    def __init__(self, wager_id: str) -> None:
        super().__init__(4002, f"Wager {wager_id} is still open", 409)


class NotWagerOpenerError(AppError):
    def __init__(self, wager_id: str) -> None:
        super().__init__(4003, f"Only the opener can resolve wager {wager_id}", 403)


class LedgerMismatchError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4004, f"Ledger mismatch: {detail}", 500)


class InvalidOutcomeError(AppError):
    def __init__(self, outcome: str) -> None:
        super().__init__(4005, f"Outcome must be 'for', 'against' or 'void', got '{outcome}'", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
