"""Payout computation: pure integer arithmetic, no I/O.

Winners split the forfeited (losing) pool in proportion to their stakes:

    payout = stake + floor(stake * winnings_pool / winning_pool)

winnings_pool is the losing pool scaled by the outcome side's odds and capped
at the losing pool itself, because forfeited stakes are the only source of
winnings. Truncation leftovers go to the largest single winning stake (ties:
earliest joined, then lowest user_id), so the total credited always equals
the total staked.
"""

from dataclasses import dataclass, field

from src.sw_common.enums import ReleaseDisposition, WagerOutcome
from src.sw_wager.domain.models import Participant


@dataclass
class ParticipantRelease:
    participant: Participant
    disposition: ReleaseDisposition
    payout: int                 # credited to spendable; 0 when forfeited


@dataclass
class SettlementPlan:
    outcome: WagerOutcome
    winning_pool: int
    losing_pool: int
    releases: list[ParticipantRelease] = field(default_factory=list)

    @property
    def total_staked(self) -> int:
        return sum(r.participant.amount for r in self.releases)

    @property
    def total_credited(self) -> int:
        return sum(r.payout for r in self.releases)

    @property
    def total_forfeited(self) -> int:
        return sum(
            r.participant.amount
            for r in self.releases
            if r.disposition is ReleaseDisposition.VOID
        )


def odds_multiplier(outcome: WagerOutcome, odds_for: int, odds_against: int) -> int:
    return odds_for if outcome is WagerOutcome.FOR else odds_against


def _refund_all(outcome: WagerOutcome, participants: list[Participant]) -> SettlementPlan:
    return SettlementPlan(
        outcome=outcome,
        winning_pool=0,
        losing_pool=0,
        releases=[
            ParticipantRelease(p, ReleaseDisposition.REFUND, p.amount) for p in participants
        ],
    )


def compute_payouts(
    participants: list[Participant],
    outcome: WagerOutcome,
    odds_for: int,
    odds_against: int,
) -> SettlementPlan:
    if outcome is WagerOutcome.VOID:
        return _refund_all(outcome, participants)

    winners = [p for p in participants if p.side == outcome.value]
    losers = [p for p in participants if p.side != outcome.value]
    if not winners:
        # Nobody to pay: forfeiting would destroy currency
        return _refund_all(outcome, participants)

    winning_pool = sum(p.amount for p in winners)
    losing_pool = sum(p.amount for p in losers)
    multiplier = odds_multiplier(outcome, odds_for, odds_against)
    winnings_pool = min(losing_pool * multiplier, losing_pool)

    shares = [p.amount * winnings_pool // winning_pool for p in winners]
    remainder = winnings_pool - sum(shares)
    if remainder:
        largest = min(
            range(len(winners)),
            key=lambda i: (-winners[i].amount, winners[i].joined_at, winners[i].user_id),
        )
        shares[largest] += remainder

    releases = [
        ParticipantRelease(p, ReleaseDisposition.PAYOUT, p.amount + share)
        for p, share in zip(winners, shares)
    ]
    releases.extend(ParticipantRelease(p, ReleaseDisposition.VOID, 0) for p in losers)
    return SettlementPlan(
        outcome=outcome,
        winning_pool=winning_pool,
        losing_pool=losing_pool,
        releases=releases,
    )
