"""WagerApplicationService: composes the Wager Registry and Settlement Engine.

Mutating operations own their transaction via `async with db.begin()`.
"""

from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from src.sw_account.application.schemas import BalanceResponse
from src.sw_common.datetime_utils import utc_now
from src.sw_settlement.application.schemas import SettlementResponse
from src.sw_settlement.domain.engine import SettlementEngine
from src.sw_wager.application.schemas import (
    JoinWagerResponse,
    OpenWagerRequest,
    ParticipantItem,
    WagerDetailResponse,
    WagerListResponse,
    WagerResponse,
)
from src.sw_wager.domain.registry import WagerRegistry


class WagerApplicationService:
    def __init__(
        self,
        registry: WagerRegistry | None = None,
        engine: SettlementEngine | None = None,
    ) -> None:
        self._registry = registry or WagerRegistry()
        self._engine = engine or SettlementEngine(registry=self._registry)

    async def open_wager(self, db: AsyncSession, body: OpenWagerRequest) -> WagerResponse:
        opens_at = utc_now()
        closes_at = opens_at + timedelta(minutes=body.duration_minutes)
        async with db.begin():
            wager = await self._registry.open(
                db,
                body.opener_id,
                body.statement,
                body.odds_for,
                body.odds_against,
                opens_at,
                closes_at,
            )
        return WagerResponse.from_domain(wager)

    async def get_wager(self, db: AsyncSession, wager_id: str) -> WagerDetailResponse:
        snapshot = await self._registry.get(db, wager_id)
        return WagerDetailResponse(
            wager=WagerResponse.from_domain(snapshot.wager),
            participants=[ParticipantItem.from_domain(p) for p in snapshot.participants],
        )

    async def list_active_wagers(self, db: AsyncSession, limit: int) -> WagerListResponse:
        wagers = await self._registry.list_active(db, limit=limit)
        return WagerListResponse(items=[WagerResponse.from_domain(w) for w in wagers])

    async def join_wager(
        self, db: AsyncSession, wager_id: str, user_id: str, side: str, amount: int
    ) -> JoinWagerResponse:
        async with db.begin():
            result = await self._registry.join(db, wager_id, user_id, side, amount)
        return JoinWagerResponse(
            wager=WagerResponse.from_domain(result.wager),
            participant=ParticipantItem.from_domain(result.participant),
            balance=BalanceResponse.from_domain(result.balance),
        )

    async def close_wager(self, db: AsyncSession, wager_id: str) -> WagerResponse:
        async with db.begin():
            wager = await self._registry.close(db, wager_id)
        return WagerResponse.from_domain(wager)

    async def resolve_wager(
        self, db: AsyncSession, wager_id: str, caller_id: str, outcome: str
    ) -> SettlementResponse:
        async with db.begin():
            result = await self._engine.resolve(db, wager_id, caller_id, outcome)
        return SettlementResponse.from_result(result)
