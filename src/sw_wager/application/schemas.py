"""Pydantic schemas for sw_wager API."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from src.sw_account.application.schemas import BalanceResponse
from src.sw_wager.domain.models import Participant, Wager

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class OpenWagerRequest(BaseModel):
    opener_id: str = Field(..., min_length=1, max_length=64)
    statement: str
    odds_for: int
    odds_against: int
    duration_minutes: int = Field(..., gt=0, description="Minutes until the wager closes")

    @field_validator("opener_id")
    @classmethod
    def no_whitespace(cls, v: str) -> str:
        if v != v.strip() or " " in v:
            raise ValueError("opener_id must not contain whitespace")
        return v


class JoinWagerRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    side: str = Field(..., description="'for' or 'against'")
    amount: int = Field(..., gt=0, description="Sparks to stake")


class ResolveWagerRequest(BaseModel):
    caller_id: str = Field(..., min_length=1, max_length=64)
    outcome: str = Field(..., description="'for', 'against' or 'void'")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class WagerResponse(BaseModel):
    id: str
    opener_id: str
    statement: str
    odds_for: int
    odds_against: int
    status: str
    outcome: str | None = None
    total_for: int
    total_against: int
    total_pool: int
    opens_at: datetime
    closes_at: datetime
    settled_at: datetime | None = None

    @classmethod
    def from_domain(cls, w: Wager) -> "WagerResponse":
        return cls(
            id=w.id,
            opener_id=w.opener_id,
            statement=w.statement,
            odds_for=w.odds_for,
            odds_against=w.odds_against,
            status=w.status,
            outcome=w.outcome,
            total_for=w.total_for,
            total_against=w.total_against,
            total_pool=w.total_pool,
            opens_at=w.opens_at,
            closes_at=w.closes_at,
            settled_at=w.settled_at,
        )


class ParticipantItem(BaseModel):
    user_id: str
    side: str
    amount: int
    joined_at: datetime

    @classmethod
    def from_domain(cls, p: Participant) -> "ParticipantItem":
        return cls(user_id=p.user_id, side=p.side, amount=p.amount, joined_at=p.joined_at)


class WagerDetailResponse(BaseModel):
    wager: WagerResponse
    participants: list[ParticipantItem]


class JoinWagerResponse(BaseModel):
    wager: WagerResponse
    participant: ParticipantItem
    balance: BalanceResponse


class WagerListResponse(BaseModel):
    items: list[WagerResponse]
