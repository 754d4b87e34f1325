"""AccountApplicationService: thin composition layer.

Combines Escrow Controller calls with schema transformations. Every operation
runs in its own `async with db.begin()` transaction; even a balance read may
create the account on first contact.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.sw_account.application.schemas import (
    BalanceChangeResponse,
    BalanceResponse,
    LedgerEntryItem,
    LedgerResponse,
    cursor_decode,
    cursor_encode,
)
from src.sw_account.domain.repository import LedgerRepositoryProtocol
from src.sw_account.infrastructure.persistence import LedgerRepository
from src.sw_escrow.domain.controller import EscrowController
from src.sw_escrow.domain.models import EscrowResult


def _change_response(result: EscrowResult) -> BalanceChangeResponse:
    entry_id = result.entries[-1].id if result.entries else None
    return BalanceChangeResponse(
        balance=BalanceResponse.from_domain(result.balance),
        ledger_entry_id=entry_id,
        applied=result.applied,
    )


class AccountApplicationService:
    def __init__(
        self,
        escrow: EscrowController | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
    ) -> None:
        self._escrow = escrow or EscrowController()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        async with db.begin():
            balance = await self._escrow.ensure_account(db, user_id)
        return BalanceResponse.from_domain(balance)

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        reference_type: str,
        reference_id: str,
        description: str | None,
    ) -> BalanceChangeResponse:
        async with db.begin():
            await self._escrow.ensure_account(db, user_id)
            result = await self._escrow.credit(
                db, user_id, amount, reference_type, reference_id, description
            )
        return _change_response(result)

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        reference_type: str,
        reference_id: str,
        description: str | None,
    ) -> BalanceChangeResponse:
        async with db.begin():
            await self._escrow.ensure_account(db, user_id)
            result = await self._escrow.debit(
                db, user_id, amount, reference_type, reference_id, description
            )
        return _change_response(result)

    async def list_ledger(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._ledger.list_entries(
            db, user_id, cursor_id, limit + 1, entry_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]

        items = [LedgerEntryItem.from_domain(e) for e in page]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(items=items, next_cursor=next_cursor, has_more=has_more)
