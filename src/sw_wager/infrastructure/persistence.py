"""WagerRepository: concrete implementation of WagerRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
Status transitions are guarded in the WHERE clause so they can only move forward.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sw_common.errors import InternalError, WagerNotFoundError
from src.sw_wager.domain.models import Participant, Wager

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_WAGER_COLUMNS = """
    id, opener_id, statement, odds_for, odds_against, status,
    total_for, total_against, opens_at, closes_at, settled_at, outcome,
    created_at, updated_at
"""

_PARTICIPANT_COLUMNS = "id, wager_id, user_id, side, amount, joined_at"

_INSERT_WAGER_SQL = text(f"""
    INSERT INTO wagers
        (id, opener_id, statement, odds_for, odds_against, status,
         total_for, total_against, opens_at, closes_at)
    VALUES
        (:id, :opener_id, :statement, :odds_for, :odds_against, :status,
         :total_for, :total_against, :opens_at, :closes_at)
    RETURNING {_WAGER_COLUMNS}
""")

_GET_WAGER_SQL = text(f"SELECT {_WAGER_COLUMNS} FROM wagers WHERE id = :wager_id")

_GET_WAGER_FOR_UPDATE_SQL = text(
    f"SELECT {_WAGER_COLUMNS} FROM wagers WHERE id = :wager_id FOR UPDATE"
)

_FIND_PARTICIPANT_SQL = text(f"""
    SELECT {_PARTICIPANT_COLUMNS}
    FROM participants
    WHERE wager_id = :wager_id AND user_id = :user_id AND side = :side
""")

_INSERT_PARTICIPANT_SQL = text(f"""
    INSERT INTO participants (wager_id, user_id, side, amount, joined_at)
    VALUES (:wager_id, :user_id, :side, :amount, :joined_at)
    ON CONFLICT (wager_id, user_id, side) DO NOTHING
    RETURNING {_PARTICIPANT_COLUMNS}
""")

_ADD_FOR_SQL = text(f"""
    UPDATE wagers SET total_for = total_for + :amount, updated_at = NOW()
    WHERE id = :wager_id AND status = 'open'
    RETURNING {_WAGER_COLUMNS}
""")

_ADD_AGAINST_SQL = text(f"""
    UPDATE wagers SET total_against = total_against + :amount, updated_at = NOW()
    WHERE id = :wager_id AND status = 'open'
    RETURNING {_WAGER_COLUMNS}
""")

_LIST_PARTICIPANTS_SQL = text(f"""
    SELECT {_PARTICIPANT_COLUMNS}
    FROM participants
    WHERE wager_id = :wager_id
    ORDER BY joined_at, id
""")

_MARK_CLOSED_SQL = text(f"""
    UPDATE wagers SET status = 'closed', updated_at = NOW()
    WHERE id = :wager_id AND status = 'open'
    RETURNING {_WAGER_COLUMNS}
""")

_MARK_FINALIZED_SQL = text(f"""
    UPDATE wagers
    SET status = :status, outcome = :outcome, settled_at = :settled_at, updated_at = NOW()
    WHERE id = :wager_id AND status = 'closed'
    RETURNING {_WAGER_COLUMNS}
""")

_LIST_OPEN_PAST_CLOSE_SQL = text(f"""
    SELECT {_WAGER_COLUMNS}
    FROM wagers
    WHERE status = 'open'
      AND closes_at <= :now
      AND (
          CAST(:after_ts AS TIMESTAMPTZ) IS NULL
          OR closes_at > CAST(:after_ts AS TIMESTAMPTZ)
          OR (closes_at = CAST(:after_ts AS TIMESTAMPTZ) AND id > CAST(:after_id AS TEXT))
      )
    ORDER BY closes_at, id
    LIMIT :limit
""")

_LIST_ALL_WAGERS_SQL = text(f"SELECT {_WAGER_COLUMNS} FROM wagers ORDER BY created_at, id")

_LIST_ACTIVE_SQL = text(f"""
    SELECT {_WAGER_COLUMNS}
    FROM wagers
    WHERE status = 'open'
      AND closes_at > :now
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------

def _row_to_wager(row: object) -> Wager:
    return Wager(
        id=str(row.id),  # type: ignore[attr-defined]
        opener_id=row.opener_id,  # type: ignore[attr-defined]
        statement=row.statement,  # type: ignore[attr-defined]
        odds_for=row.odds_for,  # type: ignore[attr-defined]
        odds_against=row.odds_against,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        total_for=row.total_for,  # type: ignore[attr-defined]
        total_against=row.total_against,  # type: ignore[attr-defined]
        opens_at=row.opens_at,  # type: ignore[attr-defined]
        closes_at=row.closes_at,  # type: ignore[attr-defined]
        settled_at=row.settled_at,  # type: ignore[attr-defined]
        outcome=row.outcome,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_participant(row: object) -> Participant:
    return Participant(
        id=row.id,  # type: ignore[attr-defined]
        wager_id=str(row.wager_id),  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        joined_at=row.joined_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class WagerRepository:
    async def insert_wager(self, db: AsyncSession, wager: Wager) -> Wager:
        result = await db.execute(
            _INSERT_WAGER_SQL,
            {
                "id": wager.id,
                "opener_id": wager.opener_id,
                "statement": wager.statement,
                "odds_for": wager.odds_for,
                "odds_against": wager.odds_against,
                "status": wager.status,
                "total_for": wager.total_for,
                "total_against": wager.total_against,
                "opens_at": wager.opens_at,
                "closes_at": wager.closes_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Wager insert returned no rows: this should never happen")
        return _row_to_wager(row)

    async def get_wager(
        self, db: AsyncSession, wager_id: str, for_update: bool = False
    ) -> Wager | None:
        sql = _GET_WAGER_FOR_UPDATE_SQL if for_update else _GET_WAGER_SQL
        result = await db.execute(sql, {"wager_id": wager_id})
        row = result.fetchone()
        return _row_to_wager(row) if row else None

    async def find_participant(
        self, db: AsyncSession, wager_id: str, user_id: str, side: str
    ) -> Participant | None:
        result = await db.execute(
            _FIND_PARTICIPANT_SQL,
            {"wager_id": wager_id, "user_id": user_id, "side": side},
        )
        row = result.fetchone()
        return _row_to_participant(row) if row else None

    async def insert_participant(
        self, db: AsyncSession, participant: Participant
    ) -> Participant | None:
        result = await db.execute(
            _INSERT_PARTICIPANT_SQL,
            {
                "wager_id": participant.wager_id,
                "user_id": participant.user_id,
                "side": participant.side,
                "amount": participant.amount,
                "joined_at": participant.joined_at,
            },
        )
        row = result.fetchone()
        return _row_to_participant(row) if row else None

    async def add_to_pool(
        self, db: AsyncSession, wager_id: str, side: str, amount: int
    ) -> Wager:
        sql = _ADD_FOR_SQL if side == "for" else _ADD_AGAINST_SQL
        result = await db.execute(sql, {"wager_id": wager_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise WagerNotFoundError(wager_id)
        return _row_to_wager(row)

    async def list_participants(
        self, db: AsyncSession, wager_id: str
    ) -> list[Participant]:
        result = await db.execute(_LIST_PARTICIPANTS_SQL, {"wager_id": wager_id})
        return [_row_to_participant(row) for row in result.fetchall()]

    async def mark_closed(self, db: AsyncSession, wager_id: str) -> Wager | None:
        result = await db.execute(_MARK_CLOSED_SQL, {"wager_id": wager_id})
        row = result.fetchone()
        return _row_to_wager(row) if row else None

    async def mark_finalized(
        self,
        db: AsyncSession,
        wager_id: str,
        status: str,
        outcome: str | None,
        settled_at: datetime,
    ) -> Wager | None:
        result = await db.execute(
            _MARK_FINALIZED_SQL,
            {
                "wager_id": wager_id,
                "status": status,
                "outcome": outcome,
                "settled_at": settled_at,
            },
        )
        row = result.fetchone()
        return _row_to_wager(row) if row else None

    async def list_open_past_close(
        self,
        db: AsyncSession,
        now: datetime,
        after: tuple[datetime, str] | None,
        limit: int,
    ) -> list[Wager]:
        after_ts, after_id = after if after is not None else (None, None)
        result = await db.execute(
            _LIST_OPEN_PAST_CLOSE_SQL,
            {"now": now, "after_ts": after_ts, "after_id": after_id, "limit": limit},
        )
        return [_row_to_wager(row) for row in result.fetchall()]

    async def list_wagers(self, db: AsyncSession) -> list[Wager]:
        result = await db.execute(_LIST_ALL_WAGERS_SQL)
        return [_row_to_wager(row) for row in result.fetchall()]

    async def list_active(
        self, db: AsyncSession, now: datetime, limit: int
    ) -> list[Wager]:
        result = await db.execute(_LIST_ACTIVE_SQL, {"now": now, "limit": limit})
        return [_row_to_wager(row) for row in result.fetchall()]
