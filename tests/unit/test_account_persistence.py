"""Unit tests for BalanceRepository / LedgerRepository using a mocked AsyncSession."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.sw_account.infrastructure.persistence import BalanceRepository, LedgerRepository


def _balance_row(**kwargs):
    row = MagicMock()
    row.user_id = kwargs.get("user_id", "alice")
    row.current_balance = kwargs.get("current_balance", 100)
    row.escrow_balance = kwargs.get("escrow_balance", 0)
    row.lifetime_earned = kwargs.get("lifetime_earned", 100)
    row.lifetime_spent = kwargs.get("lifetime_spent", 0)
    row.version = kwargs.get("version", 0)
    row.created_at = datetime.now(UTC)
    row.updated_at = datetime.now(UTC)
    return row


def _ledger_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", 1)
    row.user_id = kwargs.get("user_id", "alice")
    row.entry_type = kwargs.get("entry_type", "earn")
    row.amount = kwargs.get("amount", 100)
    row.balance_after = kwargs.get("balance_after", 100)
    row.escrow_after = kwargs.get("escrow_after", 0)
    row.reference_type = kwargs.get("reference_type", "signup_bonus")
    row.reference_id = kwargs.get("reference_id", "alice")
    row.description = kwargs.get("description")
    row.created_at = datetime.now(UTC)
    return row


def _result(one=None, many=None):
    result = MagicMock()
    result.fetchone.return_value = one
    result.fetchall.return_value = many or []
    return result


@pytest.fixture
def db():
    session = MagicMock()
    session.execute = AsyncMock()
    return session


class TestBalanceRepository:
    async def test_get_balance_maps_row(self, db) -> None:
        db.execute.return_value = _result(_balance_row(current_balance=60, escrow_balance=40))
        balance = await BalanceRepository().get_balance(db, "alice")
        assert balance is not None
        assert balance.total_balance == 100
        assert db.execute.call_args.args[1] == {"user_id": "alice"}

    async def test_get_balance_missing(self, db) -> None:
        db.execute.return_value = _result(None)
        assert await BalanceRepository().get_balance(db, "ghost") is None

    async def test_create_account_existing_user_returns_none(self, db) -> None:
        db.execute.return_value = _result(None)
        assert await BalanceRepository().create_account(db, "alice", None, 100) is None
        assert db.execute.await_count == 1

    async def test_create_account_inserts_balance(self, db) -> None:
        user_row = MagicMock()
        db.execute.side_effect = [_result(user_row), _result(_balance_row())]
        balance = await BalanceRepository().create_account(db, "alice", "Alice", 100)
        assert balance is not None and balance.current_balance == 100
        assert db.execute.call_args_list[1].args[1] == {
            "user_id": "alice",
            "starting_balance": 100,
        }

    async def test_lock_balances_sorted_and_deduplicated(self, db) -> None:
        db.execute.return_value = _result(many=[_balance_row(user_id="a"), _balance_row(user_id="b")])
        locked = await BalanceRepository().lock_balances(db, ["b", "a", "b"])
        assert sorted(locked) == ["a", "b"]
        assert db.execute.call_args.args[1] == {"user_ids": ["a", "b"]}
        sql = str(db.execute.call_args.args[0])
        assert "FOR UPDATE" in sql and "ORDER BY user_id" in sql

    async def test_lock_balances_empty_skips_query(self, db) -> None:
        assert await BalanceRepository().lock_balances(db, []) == {}
        db.execute.assert_not_awaited()

    async def test_apply_delta_guard_rejects(self, db) -> None:
        db.execute.return_value = _result(None)
        result = await BalanceRepository().apply_delta(db, "alice", current_delta=-500)
        assert result is None
        params = db.execute.call_args.args[1]
        assert params["current_delta"] == -500
        assert params["escrow_delta"] == 0
        assert "current_balance + :current_delta >= 0" in str(db.execute.call_args.args[0])


class TestLedgerRepository:
    async def test_find_entry_uses_full_key(self, db) -> None:
        db.execute.return_value = _result(_ledger_row())
        entry = await LedgerRepository().find_entry(db, "alice", "signup_bonus", "alice", "earn")
        assert entry is not None and entry.entry_type == "earn"
        assert db.execute.call_args.args[1] == {
            "user_id": "alice",
            "reference_type": "signup_bonus",
            "reference_id": "alice",
            "entry_type": "earn",
        }

    async def test_append_returns_entry(self, db) -> None:
        db.execute.return_value = _result(_ledger_row(id=7, entry_type="escrow_in", amount=40))
        entry = await LedgerRepository().append(
            db, "alice", "escrow_in", 40, 60, 40, "wager_for", "w1", "Stake on 'for'"
        )
        assert entry.id == 7
        assert db.execute.call_args.args[1]["escrow_after"] == 40

    async def test_list_entries_passes_nullable_filters(self, db) -> None:
        db.execute.return_value = _result(many=[_ledger_row(id=3), _ledger_row(id=2)])
        entries = await LedgerRepository().list_entries(db, "alice", None, 21, None)
        assert [e.id for e in entries] == [3, 2]
        assert db.execute.call_args.args[1] == {
            "user_id": "alice",
            "cursor_id": None,
            "limit": 21,
            "entry_type": None,
        }

    async def test_sum_by_type(self, db) -> None:
        r1, r2 = MagicMock(), MagicMock()
        r1.entry_type, r1.total = "earn", 150
        r2.entry_type, r2.total = "spend", 20
        db.execute.return_value = _result(many=[r1, r2])
        assert await LedgerRepository().sum_by_type(db, None) == {"earn": 150, "spend": 20}
        assert db.execute.call_args.args[1] == {"user_id": None}
