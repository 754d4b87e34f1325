"""Error code and HTTP status mapping."""

import pytest

from src.sw_common.errors import (
    AccountNotFoundError,
    AlreadySettledError,
    AppError,
    DuplicateParticipationError,
    EscrowUnderflowError,
    InsufficientFundsError,
    InternalError,
    InvalidAmountError,
    InvalidDurationError,
    InvalidOddsError,
    InvalidOutcomeError,
    InvalidServiceTokenError,
    InvalidSideError,
    InvalidStatementError,
    LedgerMismatchError,
    NotWagerOpenerError,
    WagerClosedError,
    WagerNotClosedError,
    WagerNotFoundError,
)


@pytest.mark.parametrize(
    "error,code,status",
    [
        (InvalidServiceTokenError(), 1001, 401),
        (InsufficientFundsError(40, 10), 2001, 422),
        (AccountNotFoundError("u"), 2002, 404),
        (InvalidAmountError(0), 2003, 422),
        (EscrowUnderflowError("u", 5, 1), 2004, 500),
        (WagerNotFoundError("w"), 3001, 404),
        (WagerClosedError("w"), 3002, 409),
        (DuplicateParticipationError("w", "for"), 3003, 409),
        (InvalidOddsError(11, 1, 10), 3004, 422),
        (InvalidDurationError("too short"), 3005, 422),
        (InvalidStatementError(200), 3006, 422),
        (InvalidSideError("maybe"), 3007, 422),
        (AlreadySettledError("w", "settled"), 4001, 409),
        (WagerNotClosedError("w"), 4002, 409),
        (NotWagerOpenerError("w"), 4003, 403),
        (LedgerMismatchError("x"), 4004, 500),
        (InvalidOutcomeError("maybe"), 4005, 422),
        (InternalError(), 9002, 500),
    ],
)
def test_code_and_status(error: AppError, code: int, status: int) -> None:
    assert isinstance(error, AppError)
    assert error.code == code
    assert error.http_status == status
    assert str(error) == error.message


def test_insufficient_funds_message_carries_amounts() -> None:
    assert "required 40, available 10" in InsufficientFundsError(40, 10).message
