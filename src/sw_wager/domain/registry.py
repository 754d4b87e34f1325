"""Wager Registry: lifecycle of betting markets and their participants.

Lock order for every mutating call: wager row first, then balance rows in
ascending user_id. Settlement follows the same order, so a join and a
settlement can never wait on each other in a cycle.
"""

import logging
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sw_account.domain.models import UserBalance
from src.sw_common.datetime_utils import ensure_utc, minutes_between, utc_now
from src.sw_common.enums import WagerSide, WagerStatus
from src.sw_common.errors import (
    DuplicateParticipationError,
    InvalidAmountError,
    InvalidDurationError,
    InvalidOddsError,
    InvalidSideError,
    InvalidStatementError,
    WagerClosedError,
    WagerNotFoundError,
)
from src.sw_escrow.domain.controller import EscrowController
from src.sw_wager.domain.models import Participant, Wager, WagerSnapshot
from src.sw_wager.domain.repository import WagerRepositoryProtocol
from src.sw_wager.infrastructure.persistence import WagerRepository

logger = logging.getLogger(__name__)


@dataclass
class JoinResult:
    wager: Wager
    participant: Participant
    balance: UserBalance


def parse_side(side: str) -> WagerSide:
    try:
        return WagerSide(side)
    except ValueError:
        raise InvalidSideError(str(side)) from None


class WagerRegistry:
    def __init__(
        self,
        repo: WagerRepositoryProtocol | None = None,
        escrow: EscrowController | None = None,
    ) -> None:
        self._repo: WagerRepositoryProtocol = repo or WagerRepository()
        self._escrow = escrow or EscrowController()

    # ------------------------------------------------------------------
    # Validation (runs before any write)
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_statement(statement: str) -> str:
        cleaned = statement.strip()
        if not cleaned or len(cleaned) > settings.STATEMENT_MAX_LENGTH:
            raise InvalidStatementError(settings.STATEMENT_MAX_LENGTH)
        return cleaned

    @staticmethod
    def _validate_odds(odds: int) -> None:
        if (
            isinstance(odds, bool)
            or not isinstance(odds, int)
            or not (settings.MIN_ODDS <= odds <= settings.MAX_ODDS)
        ):
            raise InvalidOddsError(odds, settings.MIN_ODDS, settings.MAX_ODDS)

    @staticmethod
    def _validate_window(opens_at: datetime, closes_at: datetime) -> None:
        minutes = minutes_between(opens_at, closes_at)
        if minutes <= 0:
            raise InvalidDurationError("closes_at must be after opens_at")
        if not (settings.MIN_DURATION_MINUTES <= minutes <= settings.MAX_DURATION_MINUTES):
            raise InvalidDurationError(
                f"must be between {settings.MIN_DURATION_MINUTES} and "
                f"{settings.MAX_DURATION_MINUTES} minutes, got {minutes:g}"
            )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def open(
        self,
        db: AsyncSession,
        opener_id: str,
        statement: str,
        odds_for: int,
        odds_against: int,
        opens_at: datetime,
        closes_at: datetime,
    ) -> Wager:
        cleaned = self._validate_statement(statement)
        self._validate_odds(odds_for)
        self._validate_odds(odds_against)
        opens_at, closes_at = ensure_utc(opens_at), ensure_utc(closes_at)
        self._validate_window(opens_at, closes_at)

        await self._escrow.ensure_account(db, opener_id)
        wager = await self._repo.insert_wager(
            db,
            Wager(
                id=str(uuid.uuid4()),
                opener_id=opener_id,
                statement=cleaned,
                odds_for=odds_for,
                odds_against=odds_against,
                status=WagerStatus.OPEN.value,
                total_for=0,
                total_against=0,
                opens_at=opens_at,
                closes_at=closes_at,
            ),
        )
        logger.info(
            "Wager opened: id=%s, opener=%s, odds=%d:%d, closes_at=%s",
            wager.id, opener_id, odds_for, odds_against, closes_at.isoformat(),
        )
        return wager

    async def join(
        self,
        db: AsyncSession,
        wager_id: str,
        user_id: str,
        side: str,
        amount: int,
        now: datetime | None = None,
    ) -> JoinResult:
        wager_side = parse_side(side)
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmountError(amount)
        now = ensure_utc(now) if now else utc_now()

        wager = await self._repo.get_wager(db, wager_id, for_update=True)
        if wager is None:
            raise WagerNotFoundError(wager_id)
        if wager.status != WagerStatus.OPEN.value or now >= ensure_utc(wager.closes_at):
            raise WagerClosedError(wager_id)

        await self._escrow.ensure_account(db, user_id)
        existing = await self._repo.find_participant(db, wager_id, user_id, wager_side.value)
        if existing is not None:
            raise DuplicateParticipationError(wager_id, wager_side.value)

        escrowed = await self._escrow.move_to_escrow(
            db, user_id, amount, wager_id, wager_side
        )
        participant = await self._repo.insert_participant(
            db,
            Participant(
                wager_id=wager_id,
                user_id=user_id,
                side=wager_side.value,
                amount=amount,
                joined_at=now,
            ),
        )
        if participant is None:
            raise DuplicateParticipationError(wager_id, wager_side.value)
        wager = await self._repo.add_to_pool(db, wager_id, wager_side.value, amount)

        logger.info(
            "Wager joined: id=%s, user=%s, side=%s, amount=%d, pool=%d/%d",
            wager_id, user_id, wager_side.value, amount, wager.total_for, wager.total_against,
        )
        return JoinResult(wager=wager, participant=participant, balance=escrowed.balance)

    async def close(self, db: AsyncSession, wager_id: str) -> Wager:
        """open -> closed. A wager that is already closed or finalized is returned unchanged."""
        wager = await self._repo.get_wager(db, wager_id, for_update=True)
        if wager is None:
            raise WagerNotFoundError(wager_id)
        if wager.status != WagerStatus.OPEN.value:
            return wager
        closed = await self._repo.mark_closed(db, wager_id)
        if closed is None:
            raise WagerNotFoundError(wager_id)
        logger.info("Wager closed: id=%s, pool=%d/%d", wager_id, closed.total_for, closed.total_against)
        return closed

    async def expired_page(
        self,
        db: AsyncSession,
        now: datetime,
        after: tuple[datetime, str] | None = None,
        limit: int | None = None,
    ) -> list[Wager]:
        """One keyset page of open wagers with closes_at <= now, strictly after `after`."""
        return await self._repo.list_open_past_close(
            db, ensure_utc(now), after, limit or settings.SETTLEMENT_BATCH_SIZE
        )

    async def list_open_past_close(
        self,
        db: AsyncSession,
        now: datetime,
        batch_size: int | None = None,
    ) -> AsyncIterator[Wager]:
        """Yield open wagers with closes_at <= now, oldest first.

        Pages lazily by (closes_at, id). Each call starts from the beginning,
        and `now` bounds the sequence so it always terminates.
        """
        limit = batch_size or settings.SETTLEMENT_BATCH_SIZE
        after: tuple[datetime, str] | None = None
        while True:
            page = await self.expired_page(db, now, after, limit)
            for wager in page:
                yield wager
            if len(page) < limit:
                return
            last = page[-1]
            after = (last.closes_at, last.id)

    async def list_active(
        self,
        db: AsyncSession,
        now: datetime | None = None,
        limit: int | None = None,
    ) -> list[Wager]:
        """Open wagers still accepting joins, newest first."""
        now = ensure_utc(now) if now else utc_now()
        return await self._repo.list_active(db, now, limit or settings.ACTIVE_LIST_LIMIT)

    async def get(self, db: AsyncSession, wager_id: str) -> WagerSnapshot:
        wager = await self._repo.get_wager(db, wager_id)
        if wager is None:
            raise WagerNotFoundError(wager_id)
        participants = await self._repo.list_participants(db, wager_id)
        return WagerSnapshot(wager=wager, participants=participants)
