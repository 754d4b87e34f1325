"""Escrow Controller: the only code path that mutates a balance row.

Every operation:
  1. validates the amount (before any read or write),
  2. locks the balance row (SELECT ... FOR UPDATE),
  3. checks the idempotency key (user_id, reference_type, reference_id, entry_type),
  4. applies a guarded delta and appends the explaining ledger entry.

Transaction ownership: the caller wraps the call in `async with db.begin()`.
Multi-user callers must call `lock_many` first so rows are locked in
ascending user_id order.

Ledger direction per entry type:
  earn        current +a, lifetime_earned +a
  spend       current -a, lifetime_spent +a
  escrow_in   current -a, escrow +a
  refund      escrow -a, current +a
  escrow_out  escrow -a, lifetime_spent +a   (winner's stake consumed)
  payout      current +a, lifetime_earned +a
  void        escrow -a, lifetime_spent +a   (loser's stake forfeited)
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sw_account.domain.models import LedgerEntry, UserBalance
from src.sw_account.domain.repository import (
    BalanceRepositoryProtocol,
    LedgerRepositoryProtocol,
)
from src.sw_account.infrastructure.persistence import BalanceRepository, LedgerRepository
from src.sw_common.enums import (
    SIGNUP_BONUS_REF_TYPE,
    LedgerEntryType,
    ReleaseDisposition,
    WagerSide,
)
from src.sw_common.errors import (
    AccountNotFoundError,
    EscrowUnderflowError,
    InsufficientFundsError,
    InternalError,
    InvalidAmountError,
)
from src.sw_escrow.domain.models import EscrowResult

logger = logging.getLogger(__name__)

_FIRST_ENTRY_TYPE = {
    ReleaseDisposition.REFUND: LedgerEntryType.REFUND,
    ReleaseDisposition.PAYOUT: LedgerEntryType.ESCROW_OUT,
    ReleaseDisposition.VOID: LedgerEntryType.VOID,
}


def _validate_amount(amount: int) -> None:
    # bool is an int subclass; reject it explicitly
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(amount)


class EscrowController:
    def __init__(
        self,
        balances: BalanceRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
        starting_balance: int | None = None,
    ) -> None:
        self._balances: BalanceRepositoryProtocol = balances or BalanceRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._starting_balance = (
            settings.STARTING_BALANCE if starting_balance is None else starting_balance
        )

    # ------------------------------------------------------------------
    # Accounts & locking
    # ------------------------------------------------------------------

    async def ensure_account(
        self, db: AsyncSession, user_id: str, handle: str | None = None
    ) -> UserBalance:
        """Return the user's balance, creating it with the starting grant on first use."""
        existing = await self._balances.get_balance(db, user_id)
        if existing is not None:
            return existing

        created = await self._balances.create_account(
            db, user_id, handle, self._starting_balance
        )
        if created is None:
            # A concurrent request created the user first
            balance = await self._balances.get_balance(db, user_id)
            if balance is None:
                raise InternalError(f"User {user_id} exists without a balance row")
            return balance

        if self._starting_balance > 0:
            await self._record(
                db,
                created,
                LedgerEntryType.EARN,
                self._starting_balance,
                SIGNUP_BONUS_REF_TYPE,
                user_id,
                "Welcome bonus",
            )
        logger.info(
            "Account created: user=%s, starting_balance=%d", user_id, self._starting_balance
        )
        return created

    async def lock_many(
        self, db: AsyncSession, user_ids: list[str]
    ) -> dict[str, UserBalance]:
        """Lock several balance rows in ascending user_id order."""
        locked = await self._balances.lock_balances(db, sorted(set(user_ids)))
        missing = set(user_ids) - locked.keys()
        if missing:
            raise AccountNotFoundError(sorted(missing)[0])
        return locked

    async def _lock_one(self, db: AsyncSession, user_id: str) -> UserBalance:
        locked = await self.lock_many(db, [user_id])
        return locked[user_id]

    # ------------------------------------------------------------------
    # Spendable balance
    # ------------------------------------------------------------------

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        ref_type: str,
        ref_id: str,
        description: str | None = None,
    ) -> EscrowResult:
        _validate_amount(amount)
        balance = await self._lock_one(db, user_id)
        replay = await self._find_replay(db, balance, ref_type, ref_id, LedgerEntryType.EARN)
        if replay is not None:
            return replay

        updated = await self._apply(db, user_id, current_delta=amount, earned_delta=amount)
        entry = await self._record(
            db, updated, LedgerEntryType.EARN, amount, ref_type, ref_id, description
        )
        return EscrowResult(balance=updated, entries=[entry])

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        ref_type: str,
        ref_id: str,
        description: str | None = None,
    ) -> EscrowResult:
        _validate_amount(amount)
        balance = await self._lock_one(db, user_id)
        replay = await self._find_replay(db, balance, ref_type, ref_id, LedgerEntryType.SPEND)
        if replay is not None:
            return replay
        if balance.current_balance < amount:
            raise InsufficientFundsError(amount, balance.current_balance)

        updated = await self._apply(
            db, user_id, current_delta=-amount, spent_delta=amount, required=amount
        )
        entry = await self._record(
            db, updated, LedgerEntryType.SPEND, amount, ref_type, ref_id, description
        )
        return EscrowResult(balance=updated, entries=[entry])

    # ------------------------------------------------------------------
    # Escrow
    # ------------------------------------------------------------------

    async def move_to_escrow(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        wager_id: str,
        side: WagerSide,
    ) -> EscrowResult:
        _validate_amount(amount)
        balance = await self._lock_one(db, user_id)
        ref_type = side.reference_type
        replay = await self._find_replay(
            db, balance, ref_type, wager_id, LedgerEntryType.ESCROW_IN
        )
        if replay is not None:
            return replay
        if balance.current_balance < amount:
            raise InsufficientFundsError(amount, balance.current_balance)

        updated = await self._apply(
            db, user_id, current_delta=-amount, escrow_delta=amount, required=amount
        )
        entry = await self._record(
            db,
            updated,
            LedgerEntryType.ESCROW_IN,
            amount,
            ref_type,
            wager_id,
            f"Stake on '{side.value}'",
        )
        return EscrowResult(balance=updated, entries=[entry])

    async def release_from_escrow(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        wager_id: str,
        side: WagerSide,
        disposition: ReleaseDisposition,
        payout: int | None = None,
    ) -> EscrowResult:
        """Release `amount` of escrowed stake.

        refund: stake returns to spendable.
        payout: stake is consumed and `payout` (>= stake) is credited to spendable.
        void:   stake is forfeited; spendable is untouched.
        """
        _validate_amount(amount)
        if disposition is ReleaseDisposition.PAYOUT:
            if payout is None or payout < amount:
                raise InvalidAmountError(payout if payout is not None else 0)

        balance = await self._lock_one(db, user_id)
        ref_type = side.reference_type
        replay = await self._find_replay(
            db, balance, ref_type, wager_id, _FIRST_ENTRY_TYPE[disposition]
        )
        if replay is not None:
            return replay

        if balance.escrow_balance < amount:
            logger.error(
                "Escrow underflow: user=%s, wager=%s, release=%d, escrowed=%d",
                user_id, wager_id, amount, balance.escrow_balance,
            )
            raise EscrowUnderflowError(user_id, amount, balance.escrow_balance)

        if disposition is ReleaseDisposition.REFUND:
            updated = await self._apply(
                db, user_id, current_delta=amount, escrow_delta=-amount
            )
            entry = await self._record(
                db, updated, LedgerEntryType.REFUND, amount, ref_type, wager_id, "Stake refunded"
            )
            return EscrowResult(balance=updated, entries=[entry])

        if disposition is ReleaseDisposition.VOID:
            updated = await self._apply(
                db, user_id, escrow_delta=-amount, spent_delta=amount
            )
            entry = await self._record(
                db, updated, LedgerEntryType.VOID, amount, ref_type, wager_id, "Stake forfeited"
            )
            return EscrowResult(balance=updated, entries=[entry])

        assert payout is not None
        released = await self._apply(db, user_id, escrow_delta=-amount, spent_delta=amount)
        out_entry = await self._record(
            db, released, LedgerEntryType.ESCROW_OUT, amount, ref_type, wager_id, "Stake released"
        )
        updated = await self._apply(db, user_id, current_delta=payout, earned_delta=payout)
        payout_entry = await self._record(
            db, updated, LedgerEntryType.PAYOUT, payout, ref_type, wager_id, "Wager payout"
        )
        return EscrowResult(balance=updated, entries=[out_entry, payout_entry])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _find_replay(
        self,
        db: AsyncSession,
        balance: UserBalance,
        ref_type: str,
        ref_id: str,
        entry_type: LedgerEntryType,
    ) -> EscrowResult | None:
        existing = await self._ledger.find_entry(
            db, balance.user_id, ref_type, ref_id, entry_type.value
        )
        if existing is None:
            return None
        logger.info(
            "Ledger idempotency hit: user=%s, key=(%s, %s, %s)",
            balance.user_id, ref_type, ref_id, entry_type.value,
        )
        return EscrowResult(balance=balance, entries=[existing], applied=False)

    async def _apply(
        self,
        db: AsyncSession,
        user_id: str,
        current_delta: int = 0,
        escrow_delta: int = 0,
        earned_delta: int = 0,
        spent_delta: int = 0,
        required: int = 0,
    ) -> UserBalance:
        updated = await self._balances.apply_delta(
            db,
            user_id,
            current_delta=current_delta,
            escrow_delta=escrow_delta,
            earned_delta=earned_delta,
            spent_delta=spent_delta,
        )
        if updated is None:
            # Guard rejected the update even though the locked read allowed it
            current = await self._balances.get_balance(db, user_id)
            if current is None:
                raise AccountNotFoundError(user_id)
            if escrow_delta < 0:
                raise EscrowUnderflowError(user_id, -escrow_delta, current.escrow_balance)
            raise InsufficientFundsError(required, current.current_balance)
        return updated

    async def _record(
        self,
        db: AsyncSession,
        balance: UserBalance,
        entry_type: LedgerEntryType,
        amount: int,
        ref_type: str,
        ref_id: str,
        description: str | None,
    ) -> LedgerEntry:
        return await self._ledger.append(
            db,
            user_id=balance.user_id,
            entry_type=entry_type.value,
            amount=amount,
            balance_after=balance.current_balance,
            escrow_after=balance.escrow_balance,
            reference_type=ref_type,
            reference_id=ref_id,
            description=description,
        )
