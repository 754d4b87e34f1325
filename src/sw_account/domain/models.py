"""Domain models for sw_account: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class UserBalance:
    user_id: str
    current_balance: int     # spendable
    escrow_balance: int      # locked in open wagers
    lifetime_earned: int
    lifetime_spent: int
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_balance(self) -> int:
        return self.current_balance + self.escrow_balance


@dataclass
class LedgerEntry:
    id: int                          # BIGSERIAL
    user_id: str
    entry_type: str                  # LedgerEntryType value
    amount: int                      # always positive, direction implied by entry_type
    balance_after: int               # current_balance snapshot after op
    escrow_after: int                # escrow_balance snapshot after op
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None
