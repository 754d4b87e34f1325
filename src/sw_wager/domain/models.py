"""Domain models for sw_wager: pure dataclasses, no business logic."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Wager:
    id: str
    opener_id: str
    statement: str
    odds_for: int
    odds_against: int
    status: str                 # WagerStatus value
    total_for: int
    total_against: int
    opens_at: datetime
    closes_at: datetime
    settled_at: datetime | None = None
    outcome: str | None = None  # WagerOutcome value, set iff status == settled
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_pool(self) -> int:
        return self.total_for + self.total_against


@dataclass
class Participant:
    wager_id: str
    user_id: str
    side: str                   # WagerSide value
    amount: int
    joined_at: datetime
    id: int | None = None


@dataclass
class WagerSnapshot:
    """Read-only view of a wager together with its participants."""

    wager: Wager
    participants: list[Participant] = field(default_factory=list)
