"""Settlement Engine: the one-time resolution of a closed wager.

State machine per wager: open -> closed -> {settled, void}. Terminal states
are never left. Everything below runs inside the caller's transaction, so a
failure at any step rolls back every payout already applied.

Lock order: wager row, then participant balance rows in ascending user_id.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.sw_common.datetime_utils import utc_now
from src.sw_common.enums import (
    TERMINAL_WAGER_STATUSES,
    ReleaseDisposition,
    WagerOutcome,
    WagerSide,
    WagerStatus,
)
from src.sw_common.errors import (
    AlreadySettledError,
    InternalError,
    InvalidOutcomeError,
    LedgerMismatchError,
    NotWagerOpenerError,
    WagerNotClosedError,
    WagerNotFoundError,
)
from src.sw_escrow.domain.controller import EscrowController
from src.sw_settlement.domain.payout import SettlementPlan, compute_payouts
from src.sw_wager.domain.models import Participant, Wager
from src.sw_wager.domain.registry import WagerRegistry
from src.sw_wager.domain.repository import WagerRepositoryProtocol
from src.sw_wager.infrastructure.persistence import WagerRepository

logger = logging.getLogger(__name__)


@dataclass
class SettlementResult:
    wager: Wager
    plan: SettlementPlan


def parse_outcome(outcome: str) -> WagerOutcome:
    try:
        return WagerOutcome(outcome)
    except ValueError:
        raise InvalidOutcomeError(str(outcome)) from None


def _check_pools(wager: Wager, participants: list[Participant]) -> None:
    staked_for = sum(p.amount for p in participants if p.side == WagerSide.FOR.value)
    staked_against = sum(p.amount for p in participants if p.side == WagerSide.AGAINST.value)
    if staked_for != wager.total_for or staked_against != wager.total_against:
        msg = (
            f"wager {wager.id} pools ({wager.total_for}/{wager.total_against}) "
            f"!= participant stakes ({staked_for}/{staked_against})"
        )
        logger.error("Settlement aborted: %s", msg)
        raise LedgerMismatchError(msg)


class SettlementEngine:
    def __init__(
        self,
        repo: WagerRepositoryProtocol | None = None,
        escrow: EscrowController | None = None,
        registry: WagerRegistry | None = None,
    ) -> None:
        self._repo: WagerRepositoryProtocol = repo or WagerRepository()
        self._escrow = escrow or EscrowController()
        self._registry = registry or WagerRegistry(repo=self._repo, escrow=self._escrow)

    async def settle(
        self,
        db: AsyncSession,
        wager_id: str,
        outcome: str,
        now: datetime | None = None,
    ) -> SettlementResult:
        resolved = parse_outcome(outcome)
        now = now or utc_now()

        wager = await self._repo.get_wager(db, wager_id, for_update=True)
        if wager is None:
            raise WagerNotFoundError(wager_id)
        if wager.status in TERMINAL_WAGER_STATUSES:
            raise AlreadySettledError(wager_id, wager.status)
        if wager.status == WagerStatus.OPEN.value:
            raise WagerNotClosedError(wager_id)

        participants = await self._repo.list_participants(db, wager_id)
        _check_pools(wager, participants)

        plan = compute_payouts(participants, resolved, wager.odds_for, wager.odds_against)
        if plan.total_credited != wager.total_pool:
            msg = (
                f"wager {wager_id} would credit {plan.total_credited} "
                f"against {wager.total_pool} escrowed"
            )
            logger.error("Settlement aborted: %s", msg)
            raise LedgerMismatchError(msg)

        if participants:
            await self._escrow.lock_many(db, [p.user_id for p in participants])
        for release in sorted(plan.releases, key=lambda r: (r.participant.user_id, r.participant.side)):
            p = release.participant
            result = await self._escrow.release_from_escrow(
                db,
                p.user_id,
                p.amount,
                wager_id,
                WagerSide(p.side),
                release.disposition,
                payout=release.payout if release.disposition is ReleaseDisposition.PAYOUT else None,
            )
            if not result.applied:
                # A release for an unfinalized wager is already in the ledger
                msg = f"wager {wager_id} already has a {release.disposition.value} entry for {p.user_id}"
                logger.error("Settlement aborted: %s", msg)
                raise LedgerMismatchError(msg)

        if resolved is WagerOutcome.VOID:
            status, stored_outcome = WagerStatus.VOID.value, None
        else:
            status, stored_outcome = WagerStatus.SETTLED.value, resolved.value
        finalized = await self._repo.mark_finalized(db, wager_id, status, stored_outcome, now)
        if finalized is None:
            raise InternalError(f"Wager {wager_id} left 'closed' while locked")

        logger.info(
            "Wager finalized: id=%s, status=%s, outcome=%s, participants=%d, "
            "credited=%d, forfeited=%d",
            wager_id, status, resolved.value, len(participants),
            plan.total_credited, plan.total_forfeited,
        )
        return SettlementResult(wager=finalized, plan=plan)

    async def resolve(
        self,
        db: AsyncSession,
        wager_id: str,
        caller_id: str,
        outcome: str,
        now: datetime | None = None,
    ) -> SettlementResult:
        """Opener-driven resolution: close the wager if still open, then settle it."""
        parse_outcome(outcome)
        wager = await self._repo.get_wager(db, wager_id, for_update=True)
        if wager is None:
            raise WagerNotFoundError(wager_id)
        if wager.opener_id != caller_id:
            raise NotWagerOpenerError(wager_id)
        if wager.status in TERMINAL_WAGER_STATUSES:
            raise AlreadySettledError(wager_id, wager.status)
        await self._registry.close(db, wager_id)
        return await self.settle(db, wager_id, outcome, now=now)
