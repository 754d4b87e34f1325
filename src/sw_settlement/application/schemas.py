"""Pydantic schemas for settlement results and admin operations."""

from pydantic import BaseModel

from src.sw_settlement.application.sweeper import SweepReport
from src.sw_settlement.domain.engine import SettlementResult
from src.sw_wager.application.schemas import WagerResponse


class SettleWagerRequest(BaseModel):
    outcome: str


class ReleaseItem(BaseModel):
    user_id: str
    side: str
    stake: int
    disposition: str  # refund | payout | void
    credited: int     # sparks returned to spendable balance


class SettlementResponse(BaseModel):
    wager: WagerResponse
    outcome: str
    winning_pool: int
    losing_pool: int
    total_credited: int
    total_forfeited: int
    releases: list[ReleaseItem]

    @classmethod
    def from_result(cls, result: SettlementResult) -> "SettlementResponse":
        plan = result.plan
        return cls(
            wager=WagerResponse.from_domain(result.wager),
            outcome=plan.outcome.value,
            winning_pool=plan.winning_pool,
            losing_pool=plan.losing_pool,
            total_credited=plan.total_credited,
            total_forfeited=plan.total_forfeited,
            releases=[
                ReleaseItem(
                    user_id=r.participant.user_id,
                    side=r.participant.side,
                    stake=r.participant.amount,
                    disposition=r.disposition.value,
                    credited=r.payout,
                )
                for r in plan.releases
            ],
        )


class SweepResponse(BaseModel):
    examined: int
    settled: int
    voided: int
    left_closed: int
    skipped: int
    failed: list[str]

    @classmethod
    def from_report(cls, report: SweepReport) -> "SweepResponse":
        return cls(
            examined=report.examined,
            settled=report.settled,
            voided=report.voided,
            left_closed=report.left_closed,
            skipped=report.skipped,
            failed=list(report.failed),
        )


class ReconcileResponse(BaseModel):
    ok: bool
    violations: list[str]
