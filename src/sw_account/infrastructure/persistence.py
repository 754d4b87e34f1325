"""BalanceRepository and LedgerRepository: concrete implementations.

All balance-mutating operations use atomic PostgreSQL UPDATE ... RETURNING
with guards in the WHERE clause. A result of 0 rows means a balance would have
gone negative; the caller turns that into a typed error.

Transaction ownership: The CALLER (application service) is responsible for
starting and committing the transaction via `async with db.begin()`.
"""

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sw_account.domain.models import LedgerEntry, UserBalance
from src.sw_common.errors import InternalError

# ---------------------------------------------------------------------------
# SQL: users / balances
# ---------------------------------------------------------------------------

_BALANCE_COLUMNS = """
    user_id, current_balance, escrow_balance,
    lifetime_earned, lifetime_spent, version, created_at, updated_at
"""

_INSERT_USER_SQL = text("""
    INSERT INTO users (user_id, handle)
    VALUES (:user_id, :handle)
    ON CONFLICT (user_id) DO NOTHING
    RETURNING user_id
""")

_INSERT_BALANCE_SQL = text(f"""
    INSERT INTO balances (user_id, current_balance, lifetime_earned)
    VALUES (:user_id, :starting_balance, :starting_balance)
    RETURNING {_BALANCE_COLUMNS}
""")

_GET_BALANCE_SQL = text(f"""
    SELECT {_BALANCE_COLUMNS}
    FROM balances
    WHERE user_id = :user_id
""")

_LOCK_BALANCES_SQL = text(f"""
    SELECT {_BALANCE_COLUMNS}
    FROM balances
    WHERE user_id IN :user_ids
    ORDER BY user_id
    FOR UPDATE
""").bindparams(bindparam("user_ids", expanding=True))

_APPLY_DELTA_SQL = text(f"""
    UPDATE balances
    SET current_balance = current_balance + :current_delta,
        escrow_balance  = escrow_balance  + :escrow_delta,
        lifetime_earned = lifetime_earned + :earned_delta,
        lifetime_spent  = lifetime_spent  + :spent_delta,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
      AND current_balance + :current_delta >= 0
      AND escrow_balance  + :escrow_delta  >= 0
    RETURNING {_BALANCE_COLUMNS}
""")

_LIST_BALANCES_SQL = text(f"""
    SELECT {_BALANCE_COLUMNS}
    FROM balances
    ORDER BY user_id
""")

# ---------------------------------------------------------------------------
# SQL: ledger_entries (append-only)
# ---------------------------------------------------------------------------

_LEDGER_COLUMNS = """
    id, user_id, entry_type, amount, balance_after, escrow_after,
    reference_type, reference_id, description, created_at
"""

_INSERT_LEDGER_SQL = text(f"""
    INSERT INTO ledger_entries
        (user_id, entry_type, amount, balance_after, escrow_after,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :entry_type, :amount, :balance_after, :escrow_after,
         :reference_type, :reference_id, :description)
    RETURNING {_LEDGER_COLUMNS}
""")

_FIND_LEDGER_SQL = text(f"""
    SELECT {_LEDGER_COLUMNS}
    FROM ledger_entries
    WHERE user_id = :user_id
      AND reference_type = :reference_type
      AND reference_id = :reference_id
      AND entry_type = :entry_type
""")

_LIST_LEDGER_SQL = text(f"""
    SELECT {_LEDGER_COLUMNS}
    FROM ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = CAST(:entry_type AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_BY_REFERENCE_SQL = text(f"""
    SELECT {_LEDGER_COLUMNS}
    FROM ledger_entries
    WHERE reference_id = :reference_id
      AND reference_type IN :reference_types
    ORDER BY id
""").bindparams(bindparam("reference_types", expanding=True))

_SUM_BY_TYPE_SQL = text("""
    SELECT entry_type, COALESCE(SUM(amount), 0) AS total
    FROM ledger_entries
    WHERE CAST(:user_id AS TEXT) IS NULL OR user_id = CAST(:user_id AS TEXT)
    GROUP BY entry_type
""")


def _row_to_balance(row: object) -> UserBalance:
    return UserBalance(
        user_id=row.user_id,  # type: ignore[attr-defined]
        current_balance=row.current_balance,  # type: ignore[attr-defined]
        escrow_balance=row.escrow_balance,  # type: ignore[attr-defined]
        lifetime_earned=row.lifetime_earned,  # type: ignore[attr-defined]
        lifetime_spent=row.lifetime_spent,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_ledger(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        escrow_after=row.escrow_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class BalanceRepository:
    """Concrete repository: all operations atomic at the SQL level."""

    async def get_balance(
        self, db: AsyncSession, user_id: str
    ) -> UserBalance | None:
        result = await db.execute(_GET_BALANCE_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def create_account(
        self, db: AsyncSession, user_id: str, handle: str | None, starting_balance: int
    ) -> UserBalance | None:
        result = await db.execute(_INSERT_USER_SQL, {"user_id": user_id, "handle": handle})
        if result.fetchone() is None:
            return None
        balance_result = await db.execute(
            _INSERT_BALANCE_SQL,
            {"user_id": user_id, "starting_balance": starting_balance},
        )
        row = balance_result.fetchone()
        if row is None:
            raise InternalError("Balance insert returned no rows: this should never happen")
        return _row_to_balance(row)

    async def lock_balances(
        self, db: AsyncSession, user_ids: list[str]
    ) -> dict[str, UserBalance]:
        if not user_ids:
            return {}
        result = await db.execute(
            _LOCK_BALANCES_SQL, {"user_ids": sorted(set(user_ids))}
        )
        return {row.user_id: _row_to_balance(row) for row in result.fetchall()}

    async def apply_delta(
        self,
        db: AsyncSession,
        user_id: str,
        current_delta: int = 0,
        escrow_delta: int = 0,
        earned_delta: int = 0,
        spent_delta: int = 0,
    ) -> UserBalance | None:
        result = await db.execute(
            _APPLY_DELTA_SQL,
            {
                "user_id": user_id,
                "current_delta": current_delta,
                "escrow_delta": escrow_delta,
                "earned_delta": earned_delta,
                "spent_delta": spent_delta,
            },
        )
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def list_balances(self, db: AsyncSession) -> list[UserBalance]:
        result = await db.execute(_LIST_BALANCES_SQL)
        return [_row_to_balance(row) for row in result.fetchall()]


class LedgerRepository:
    """Append-only store. There is deliberately no update or delete method."""

    async def find_entry(
        self,
        db: AsyncSession,
        user_id: str,
        reference_type: str,
        reference_id: str,
        entry_type: str,
    ) -> LedgerEntry | None:
        result = await db.execute(
            _FIND_LEDGER_SQL,
            {
                "user_id": user_id,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "entry_type": entry_type,
            },
        )
        row = result.fetchone()
        return _row_to_ledger(row) if row else None

    async def append(
        self,
        db: AsyncSession,
        user_id: str,
        entry_type: str,
        amount: int,
        balance_after: int,
        escrow_after: int,
        reference_type: str,
        reference_id: str,
        description: str | None,
    ) -> LedgerEntry:
        result = await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "user_id": user_id,
                "entry_type": entry_type,
                "amount": amount,
                "balance_after": balance_after,
                "escrow_after": escrow_after,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "description": description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Ledger insert returned no rows: this should never happen")
        return _row_to_ledger(row)

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_LEDGER_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "entry_type": entry_type,
                "limit": limit,
            },
        )
        return [_row_to_ledger(row) for row in result.fetchall()]

    async def list_entries_for_reference(
        self, db: AsyncSession, reference_types: list[str], reference_id: str
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_BY_REFERENCE_SQL,
            {"reference_types": reference_types, "reference_id": reference_id},
        )
        return [_row_to_ledger(row) for row in result.fetchall()]

    async def sum_by_type(self, db: AsyncSession, user_id: str | None) -> dict[str, int]:
        result = await db.execute(_SUM_BY_TYPE_SQL, {"user_id": user_id})
        return {row.entry_type: int(row.total) for row in result.fetchall()}
