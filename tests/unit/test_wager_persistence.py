"""Unit tests for WagerRepository using a mocked AsyncSession."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.sw_common.errors import WagerNotFoundError
from src.sw_wager.domain.models import Participant, Wager
from src.sw_wager.infrastructure.persistence import WagerRepository

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _wager_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "w1")
    row.opener_id = kwargs.get("opener_id", "alice")
    row.statement = kwargs.get("statement", "It rains")
    row.odds_for = 1
    row.odds_against = 1
    row.status = kwargs.get("status", "open")
    row.total_for = kwargs.get("total_for", 0)
    row.total_against = kwargs.get("total_against", 0)
    row.opens_at = NOW
    row.closes_at = NOW + timedelta(hours=1)
    row.settled_at = kwargs.get("settled_at")
    row.outcome = kwargs.get("outcome")
    row.created_at = NOW
    row.updated_at = NOW
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


class TestGetWager:
    async def test_for_update_uses_locking_query(self, db) -> None:
        db.execute.return_value = _result(_wager_row())
        wager = await WagerRepository().get_wager(db, "w1", for_update=True)
        assert wager is not None and wager.id == "w1"
        assert "FOR UPDATE" in str(db.execute.call_args.args[0])

    async def test_plain_read_does_not_lock(self, db) -> None:
        db.execute.return_value = _result(None)
        assert await WagerRepository().get_wager(db, "w1") is None
        assert "FOR UPDATE" not in str(db.execute.call_args.args[0])


class TestInsert:
    async def test_insert_wager(self, db) -> None:
        db.execute.return_value = _result(_wager_row())
        wager = Wager(
            id="w1", opener_id="alice", statement="It rains", odds_for=1, odds_against=1,
            status="open", total_for=0, total_against=0,
            opens_at=NOW, closes_at=NOW + timedelta(hours=1),
        )
        stored = await WagerRepository().insert_wager(db, wager)
        assert stored.status == "open"
        assert db.execute.call_args.args[1]["closes_at"] == NOW + timedelta(hours=1)

    async def test_duplicate_participant_returns_none(self, db) -> None:
        db.execute.return_value = _result(None)
        participant = Participant(
            wager_id="w1", user_id="alice", side="for", amount=10, joined_at=NOW
        )
        assert await WagerRepository().insert_participant(db, participant) is None
        assert "ON CONFLICT (wager_id, user_id, side) DO NOTHING" in str(
            db.execute.call_args.args[0]
        )


class TestTransitions:
    async def test_add_to_pool_picks_side_column(self, db) -> None:
        db.execute.return_value = _result(_wager_row(total_against=25))
        wager = await WagerRepository().add_to_pool(db, "w1", "against", 25)
        assert wager.total_against == 25
        sql = str(db.execute.call_args.args[0])
        assert "total_against = total_against + :amount" in sql
        assert "status = 'open'" in sql

    async def test_add_to_pool_on_closed_wager(self, db) -> None:
        db.execute.return_value = _result(None)
        with pytest.raises(WagerNotFoundError):
            await WagerRepository().add_to_pool(db, "w1", "for", 5)

    async def test_mark_finalized_guarded_on_closed(self, db) -> None:
        db.execute.return_value = _result(None)
        assert await WagerRepository().mark_finalized(db, "w1", "settled", "for", NOW) is None
        assert "status = 'closed'" in str(db.execute.call_args.args[0])
        assert db.execute.call_args.args[1]["outcome"] == "for"


class TestListOpenPastClose:
    async def test_first_page_has_null_cursor(self, db) -> None:
        db.execute.return_value = _result(many=[_wager_row()])
        page = await WagerRepository().list_open_past_close(db, NOW, None, 50)
        assert len(page) == 1
        assert db.execute.call_args.args[1] == {
            "now": NOW, "after_ts": None, "after_id": None, "limit": 50,
        }

    async def test_keyset_cursor(self, db) -> None:
        db.execute.return_value = _result(many=[])
        await WagerRepository().list_open_past_close(db, NOW, (NOW, "w9"), 10)
        params = db.execute.call_args.args[1]
        assert (params["after_ts"], params["after_id"]) == (NOW, "w9")


class TestListActive:
    async def test_excludes_expired_and_orders_newest_first(self, db) -> None:
        db.execute.return_value = _result(many=[_wager_row(id="w2"), _wager_row(id="w1")])
        page = await WagerRepository().list_active(db, NOW, 10)
        assert [w.id for w in page] == ["w2", "w1"]
        sql = str(db.execute.call_args.args[0])
        assert "status = 'open'" in sql
        assert "closes_at > :now" in sql
        assert "ORDER BY created_at DESC" in sql
        assert db.execute.call_args.args[1] == {"now": NOW, "limit": 10}
