"""Settlement sweeper: periodic close-and-settle of wagers past their window.

Each expired wager is handled in its own transaction: close, ask the
OutcomeResolver, settle if an outcome was given. Expired wagers are read one
keyset page at a time. One failing wager is logged and skipped; it never rolls
back the others, and a failed sweep never stops the periodic loop.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.sw_common.database import async_session_factory
from src.sw_common.datetime_utils import utc_now
from src.sw_common.enums import WagerOutcome
from src.sw_common.errors import AlreadySettledError, AppError
from src.sw_settlement.domain.engine import SettlementEngine
from src.sw_wager.domain.models import Wager
from src.sw_wager.domain.registry import WagerRegistry

logger = logging.getLogger(__name__)


class OutcomeResolver(Protocol):
    async def resolve(self, db: AsyncSession, wager: Wager) -> WagerOutcome | None:
        """Return the outcome for a closed wager, or None to leave it closed."""
        ...


class VoidOnExpiryResolver:
    """Nobody resolved the wager before it expired: void it and refund every stake."""

    async def resolve(self, db: AsyncSession, wager: Wager) -> WagerOutcome | None:
        return WagerOutcome.VOID


@dataclass
class SweepReport:
    examined: int = 0
    settled: int = 0
    voided: int = 0
    left_closed: int = 0
    skipped: int = 0
    failed: list[str] = field(default_factory=list)


class SettlementSweeper:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        registry: WagerRegistry | None = None,
        engine: SettlementEngine | None = None,
        resolver: OutcomeResolver | None = None,
        batch_size: int | None = None,
    ) -> None:
        self._session_factory = session_factory or async_session_factory
        self._registry = registry or WagerRegistry()
        self._engine = engine or SettlementEngine(registry=self._registry)
        self._resolver: OutcomeResolver = resolver or VoidOnExpiryResolver()
        self._batch_size = batch_size or settings.SETTLEMENT_BATCH_SIZE

    async def _expired_page(
        self, now: datetime, after: tuple[datetime, str] | None
    ) -> list[Wager]:
        async with self._session_factory() as db:
            return await self._registry.expired_page(db, now, after, self._batch_size)

    async def _sweep_one(self, wager_id: str, now: datetime, report: SweepReport) -> None:
        async with self._session_factory() as db:
            async with db.begin():
                wager = await self._registry.close(db, wager_id)
                outcome = await self._resolver.resolve(db, wager)
                if outcome is None:
                    report.left_closed += 1
                    return
                await self._engine.settle(db, wager_id, outcome.value, now=now)
        if outcome is WagerOutcome.VOID:
            report.voided += 1
        else:
            report.settled += 1

    async def run_once(self, now: datetime | None = None) -> SweepReport:
        now = now or utc_now()
        report = SweepReport()
        after: tuple[datetime, str] | None = None
        while True:
            page = await self._expired_page(now, after)
            for wager in page:
                report.examined += 1
                try:
                    await self._sweep_one(wager.id, now, report)
                except AlreadySettledError:
                    report.skipped += 1
                except AppError as e:
                    logger.error("Sweep failed for wager %s: %s", wager.id, e)
                    report.failed.append(wager.id)
                except Exception:
                    logger.exception("Sweep failed for wager %s", wager.id)
                    report.failed.append(wager.id)
            if len(page) < self._batch_size:
                break
            # failed wagers stay open, so the cursor moves past them
            after = (page[-1].closes_at, page[-1].id)
        if report.examined:
            logger.info(
                "Settlement sweep: examined=%d, settled=%d, voided=%d, "
                "left_closed=%d, skipped=%d, failed=%d",
                report.examined, report.settled, report.voided,
                report.left_closed, report.skipped, len(report.failed),
            )
        return report

    async def run_forever(self, interval: float | None = None) -> None:
        interval = interval or settings.SETTLEMENT_INTERVAL_SECONDS
        logger.info("Settlement sweeper started (interval=%ss)", interval)
        try:
            while True:
                try:
                    await self.run_once()
                except Exception:
                    logger.exception("Settlement sweep aborted")
                await asyncio.sleep(interval)
        finally:
            logger.info("Settlement sweeper stopped")
