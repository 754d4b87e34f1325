"""Admin application service: forced settlement, manual sweep and reconciliation."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.sw_account.domain.repository import (
    BalanceRepositoryProtocol,
    LedgerRepositoryProtocol,
)
from src.sw_account.infrastructure.persistence import BalanceRepository, LedgerRepository
from src.sw_settlement.application.schemas import (
    ReconcileResponse,
    SettlementResponse,
    SweepResponse,
)
from src.sw_settlement.application.sweeper import SettlementSweeper
from src.sw_settlement.domain.engine import SettlementEngine
from src.sw_settlement.domain.invariants import (
    verify_global_invariants,
    verify_user_ledger,
    verify_wager_conservation,
)
from src.sw_wager.domain.repository import WagerRepositoryProtocol
from src.sw_wager.infrastructure.persistence import WagerRepository


class AdminService:
    def __init__(
        self,
        engine: SettlementEngine | None = None,
        sweeper: SettlementSweeper | None = None,
        balances: BalanceRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
        wagers: WagerRepositoryProtocol | None = None,
    ) -> None:
        self._engine = engine or SettlementEngine()
        self._sweeper = sweeper
        self._balances: BalanceRepositoryProtocol = balances or BalanceRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._wagers: WagerRepositoryProtocol = wagers or WagerRepository()

    async def settle_wager(
        self, db: AsyncSession, wager_id: str, outcome: str
    ) -> SettlementResponse:
        """Settle a closed wager with an operator-supplied outcome."""
        async with db.begin():
            result = await self._engine.settle(db, wager_id, outcome)
        return SettlementResponse.from_result(result)

    async def run_sweep(self) -> SweepResponse:
        if self._sweeper is None:
            self._sweeper = SettlementSweeper()
        report = await self._sweeper.run_once()
        return SweepResponse.from_report(report)

    async def reconcile(self, db: AsyncSession) -> ReconcileResponse:
        """Run per-user, per-wager and global ledger checks (read-only)."""
        violations: list[str] = []
        for balance in await self._balances.list_balances(db):
            violations.extend(
                await verify_user_ledger(db, balance.user_id, self._balances, self._ledger)
            )
        for wager in await self._wagers.list_wagers(db):
            violations.extend(
                await verify_wager_conservation(db, wager.id, self._wagers, self._ledger)
            )
        violations.extend(await verify_global_invariants(db, self._balances, self._ledger))
        return ReconcileResponse(ok=not violations, violations=violations)
