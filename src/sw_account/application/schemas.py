"""Pydantic schemas and cursor utilities for sw_account API."""

import base64
import json

from pydantic import BaseModel, Field

from src.sw_account.domain.models import LedgerEntry, UserBalance

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BalanceChangeRequest(BaseModel):
    """Credit or debit of spendable sparks, keyed for idempotency by the reference."""

    amount: int = Field(..., gt=0, description="Sparks to move")
    reference_type: str = Field(..., min_length=1, max_length=32)
    reference_id: str = Field(..., min_length=1, max_length=64)
    description: str | None = Field(None, max_length=200)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    current_balance: int
    escrow_balance: int
    total_balance: int
    lifetime_earned: int
    lifetime_spent: int

    @classmethod
    def from_domain(cls, balance: UserBalance) -> "BalanceResponse":
        return cls(
            user_id=balance.user_id,
            current_balance=balance.current_balance,
            escrow_balance=balance.escrow_balance,
            total_balance=balance.total_balance,
            lifetime_earned=balance.lifetime_earned,
            lifetime_spent=balance.lifetime_spent,
        )


class LedgerEntryItem(BaseModel):
    id: int
    entry_type: str
    amount: int
    balance_after: int
    escrow_after: int
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, e: LedgerEntry) -> "LedgerEntryItem":
        return cls(
            id=e.id,
            entry_type=e.entry_type,
            amount=e.amount,
            balance_after=e.balance_after,
            escrow_after=e.escrow_after,
            reference_type=e.reference_type,
            reference_id=e.reference_id,
            description=e.description,
            created_at=e.created_at.isoformat() if e.created_at else "",
        )


class BalanceChangeResponse(BaseModel):
    balance: BalanceResponse
    ledger_entry_id: int | None
    applied: bool  # False: the reference was already recorded, nothing changed


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool
