"""Unit tests for AccountApplicationService using mocked collaborators."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

from src.sw_account.application.schemas import (
    BalanceResponse,
    LedgerResponse,
    cursor_decode,
    cursor_encode,
)
from src.sw_account.application.service import AccountApplicationService
from src.sw_account.domain.models import LedgerEntry, UserBalance
from src.sw_escrow.domain.models import EscrowResult


def _make_balance(current: int = 100, escrow: int = 0) -> UserBalance:
    return UserBalance(
        user_id="user-1",
        current_balance=current,
        escrow_balance=escrow,
        lifetime_earned=current + escrow,
        lifetime_spent=0,
        version=1,
    )


def _make_entry(entry_id: int = 1, entry_type: str = "earn", amount: int = 10) -> LedgerEntry:
    return LedgerEntry(
        id=entry_id,
        user_id="user-1",
        entry_type=entry_type,
        amount=amount,
        balance_after=100,
        escrow_after=0,
        reference_type="daily_reward",
        reference_id="d1",
        created_at=datetime.now(UTC),
    )


class TestCursor:
    def test_round_trip(self) -> None:
        assert cursor_decode(cursor_encode(42)) == 42

    def test_garbage_is_ignored(self) -> None:
        assert cursor_decode("not-base64!!") is None
        assert cursor_decode(None) is None


class TestGetBalance:
    async def test_creates_on_first_contact_inside_transaction(self) -> None:
        escrow = AsyncMock()
        escrow.ensure_account.return_value = _make_balance(60, 40)
        svc = AccountApplicationService(escrow=escrow, ledger=AsyncMock())
        db = MagicMock()

        result = await svc.get_balance(db, "user-1")

        assert isinstance(result, BalanceResponse)
        assert (result.current_balance, result.escrow_balance, result.total_balance) == (60, 40, 100)
        db.begin.assert_called_once()
        escrow.ensure_account.assert_awaited_once_with(db, "user-1")


class TestCreditDebit:
    async def test_credit_reports_entry_and_applied(self) -> None:
        escrow = AsyncMock()
        escrow.ensure_account.return_value = _make_balance()
        escrow.credit.return_value = EscrowResult(
            balance=_make_balance(110), entries=[_make_entry(9)]
        )
        svc = AccountApplicationService(escrow=escrow, ledger=AsyncMock())

        result = await svc.credit(MagicMock(), "user-1", 10, "daily_reward", "d1", None)

        assert result.applied is True
        assert result.ledger_entry_id == 9
        assert result.balance.current_balance == 110

    async def test_debit_replay_reports_not_applied(self) -> None:
        escrow = AsyncMock()
        escrow.ensure_account.return_value = _make_balance()
        escrow.debit.return_value = EscrowResult(
            balance=_make_balance(90), entries=[_make_entry(4, "spend")], applied=False
        )
        svc = AccountApplicationService(escrow=escrow, ledger=AsyncMock())

        result = await svc.debit(MagicMock(), "user-1", 10, "shop", "o1", "Hat")

        assert result.applied is False
        assert result.ledger_entry_id == 4


class TestListLedger:
    async def test_has_more_and_cursor(self) -> None:
        ledger = AsyncMock()
        ledger.list_entries.return_value = [_make_entry(i) for i in (5, 4, 3)]
        svc = AccountApplicationService(escrow=AsyncMock(), ledger=ledger)

        result = await svc.list_ledger(MagicMock(), "user-1", None, 2, None)

        assert isinstance(result, LedgerResponse)
        assert [i.id for i in result.items] == [5, 4]
        assert result.has_more is True
        assert cursor_decode(result.next_cursor) == 4
        assert ledger.list_entries.call_args.args[3] == 3  # limit + 1

    async def test_last_page(self) -> None:
        ledger = AsyncMock()
        ledger.list_entries.return_value = [_make_entry(1)]
        svc = AccountApplicationService(escrow=AsyncMock(), ledger=ledger)

        result = await svc.list_ledger(MagicMock(), "user-1", cursor_encode(2), 20, "earn")

        assert result.has_more is False
        assert result.next_cursor is None
        assert ledger.list_entries.call_args.args[2] == 2
