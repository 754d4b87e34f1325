"""Repository Protocol: dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sw_wager.domain.models import Participant, Wager


class WagerRepositoryProtocol(Protocol):
    async def insert_wager(self, db: AsyncSession, wager: Wager) -> Wager: ...

    async def get_wager(
        self, db: AsyncSession, wager_id: str, for_update: bool = False
    ) -> Wager | None: ...

    async def find_participant(
        self, db: AsyncSession, wager_id: str, user_id: str, side: str
    ) -> Participant | None: ...

    async def insert_participant(
        self, db: AsyncSession, participant: Participant
    ) -> Participant | None:
        """Returns None when (wager_id, user_id, side) already exists."""
        ...

    async def add_to_pool(
        self, db: AsyncSession, wager_id: str, side: str, amount: int
    ) -> Wager: ...

    async def list_participants(
        self, db: AsyncSession, wager_id: str
    ) -> list[Participant]: ...

    async def mark_closed(self, db: AsyncSession, wager_id: str) -> Wager | None:
        """open -> closed. Returns None if the wager was not open."""
        ...

    async def mark_finalized(
        self,
        db: AsyncSession,
        wager_id: str,
        status: str,
        outcome: str | None,
        settled_at: datetime,
    ) -> Wager | None:
        """closed -> settled|void. Returns None if the wager was not closed."""
        ...

    async def list_open_past_close(
        self,
        db: AsyncSession,
        now: datetime,
        after: tuple[datetime, str] | None,
        limit: int,
    ) -> list[Wager]:
        """Keyset page ordered by (closes_at, id), strictly after `after`."""
        ...

    async def list_wagers(self, db: AsyncSession) -> list[Wager]: ...

    async def list_active(
        self, db: AsyncSession, now: datetime, limit: int
    ) -> list[Wager]:
        """Open wagers with closes_at > now, newest first."""
        ...
