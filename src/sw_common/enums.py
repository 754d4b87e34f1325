"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class LedgerEntryType(str, Enum):
    EARN = "earn"
    SPEND = "spend"
    ESCROW_IN = "escrow_in"
    ESCROW_OUT = "escrow_out"
    REFUND = "refund"
    PAYOUT = "payout"
    VOID = "void"


class WagerStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    SETTLED = "settled"
    VOID = "void"


class WagerSide(str, Enum):
    FOR = "for"
    AGAINST = "against"

    @property
    def reference_type(self) -> str:
        """Ledger reference_type for escrow movements on this side of a wager."""
        return f"wager_{self.value}"


class WagerOutcome(str, Enum):
    FOR = "for"
    AGAINST = "against"
    VOID = "void"


class ReleaseDisposition(str, Enum):
    """How escrowed stake leaves a user's escrow balance."""
    REFUND = "refund"    # back to spendable
    PAYOUT = "payout"    # consumed, payout credited to spendable
    VOID = "void"        # forfeited to the winning side


# Statuses a wager can never leave (values, compared against stored strings)
TERMINAL_WAGER_STATUSES = frozenset({WagerStatus.SETTLED.value, WagerStatus.VOID.value})

SIGNUP_BONUS_REF_TYPE = "signup_bonus"
