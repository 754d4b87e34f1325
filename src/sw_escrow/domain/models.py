"""Domain models for sw_escrow: pure dataclasses."""

from dataclasses import dataclass, field

from src.sw_account.domain.models import LedgerEntry, UserBalance


@dataclass
class EscrowResult:
    """Outcome of one Escrow Controller operation.

    applied=False means the idempotency key was already recorded and nothing
    was written; entries then holds the previously recorded entry.
    """

    balance: UserBalance
    entries: list[LedgerEntry] = field(default_factory=list)
    applied: bool = True
