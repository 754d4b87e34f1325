"""Repository Protocols: dependency inversion for testability.

Unit tests inject in-memory fakes that conform to these Protocols.
Infrastructure layer provides the real implementation.

Only the Escrow Controller may call the mutating methods below.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sw_account.domain.models import LedgerEntry, UserBalance


class BalanceRepositoryProtocol(Protocol):
    async def get_balance(
        self, db: AsyncSession, user_id: str
    ) -> UserBalance | None: ...

    async def create_account(
        self, db: AsyncSession, user_id: str, handle: str | None, starting_balance: int
    ) -> UserBalance | None:
        """Insert user + balance rows. Returns None if the user already exists."""
        ...

    async def lock_balances(
        self, db: AsyncSession, user_ids: list[str]
    ) -> dict[str, UserBalance]:
        """SELECT ... FOR UPDATE, rows locked in ascending user_id order."""
        ...

    async def apply_delta(
        self,
        db: AsyncSession,
        user_id: str,
        current_delta: int = 0,
        escrow_delta: int = 0,
        earned_delta: int = 0,
        spent_delta: int = 0,
    ) -> UserBalance | None:
        """Guarded UPDATE. Returns None if either balance would go negative."""
        ...

    async def list_balances(self, db: AsyncSession) -> list[UserBalance]: ...


class LedgerRepositoryProtocol(Protocol):
    async def find_entry(
        self,
        db: AsyncSession,
        user_id: str,
        reference_type: str,
        reference_id: str,
        entry_type: str,
    ) -> LedgerEntry | None:
        """Idempotency lookup on (user_id, reference_type, reference_id, entry_type)."""
        ...

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
    ) -> LedgerEntry: ...

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]: ...

    async def list_entries_for_reference(
        self, db: AsyncSession, reference_types: list[str], reference_id: str
    ) -> list[LedgerEntry]: ...

    async def sum_by_type(self, db: AsyncSession, user_id: str | None) -> dict[str, int]:
        """Total amount per entry_type, for one user or (user_id=None) the whole store."""
        ...
