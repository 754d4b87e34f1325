"""Reconciliation checks between the Ledger Store and the Balance Aggregate.

Every balance-affecting event is in ledger_entries, so each balance row can be
rebuilt from the ledger alone:

  current  = earn - spend - escrow_in + refund + payout
  escrow   = escrow_in - refund - escrow_out - void
  lifetime_earned - lifetime_spent = current + escrow
                                   = earn - spend - escrow_out - void + payout

Globally, currency only enters through earn and leaves through spend, so the
sum of all holdings equals earn - spend.

Each check returns a list of violation strings (empty = OK) and logs each
violation at ERROR for operator investigation.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.sw_account.domain.models import UserBalance
from src.sw_account.domain.repository import (
    BalanceRepositoryProtocol,
    LedgerRepositoryProtocol,
)
from src.sw_account.infrastructure.persistence import BalanceRepository, LedgerRepository
from src.sw_common.enums import TERMINAL_WAGER_STATUSES, LedgerEntryType, WagerSide
from src.sw_wager.domain.repository import WagerRepositoryProtocol
from src.sw_wager.infrastructure.persistence import WagerRepository

logger = logging.getLogger(__name__)

_T = LedgerEntryType


def expected_from_ledger(sums: dict[str, int]) -> tuple[int, int, int]:
    """(current, escrow, earned - spent) as implied by per-type ledger sums."""

    def s(t: LedgerEntryType) -> int:
        return sums.get(t.value, 0)

    current = s(_T.EARN) - s(_T.SPEND) - s(_T.ESCROW_IN) + s(_T.REFUND) + s(_T.PAYOUT)
    escrow = s(_T.ESCROW_IN) - s(_T.REFUND) - s(_T.ESCROW_OUT) - s(_T.VOID)
    net = s(_T.EARN) - s(_T.SPEND) - s(_T.ESCROW_OUT) - s(_T.VOID) + s(_T.PAYOUT)
    return current, escrow, net


def check_balance_against_ledger(balance: UserBalance, sums: dict[str, int]) -> list[str]:
    violations: list[str] = []
    current, escrow, net = expected_from_ledger(sums)
    uid = balance.user_id
    if balance.current_balance < 0 or balance.escrow_balance < 0:
        violations.append(
            f"user {uid}: negative balance current={balance.current_balance} "
            f"escrow={balance.escrow_balance}"
        )
    if balance.current_balance != current:
        violations.append(f"user {uid}: current_balance={balance.current_balance} != ledger {current}")
    if balance.escrow_balance != escrow:
        violations.append(f"user {uid}: escrow_balance={balance.escrow_balance} != ledger {escrow}")
    lifetime_net = balance.lifetime_earned - balance.lifetime_spent
    if lifetime_net != net:
        violations.append(f"user {uid}: lifetime earned-spent={lifetime_net} != ledger {net}")
    return violations


async def verify_user_ledger(
    db: AsyncSession,
    user_id: str,
    balances: BalanceRepositoryProtocol | None = None,
    ledger: LedgerRepositoryProtocol | None = None,
) -> list[str]:
    balances = balances or BalanceRepository()
    ledger = ledger or LedgerRepository()
    balance = await balances.get_balance(db, user_id)
    if balance is None:
        return []
    violations = check_balance_against_ledger(balance, await ledger.sum_by_type(db, user_id))
    for v in violations:
        logger.error("Reconciliation: %s", v)
    return violations


async def verify_wager_conservation(
    db: AsyncSession,
    wager_id: str,
    wagers: WagerRepositoryProtocol | None = None,
    ledger: LedgerRepositoryProtocol | None = None,
) -> list[str]:
    """Pools match stakes, stakes match escrow_in, and a finalized wager paid out exactly its pool."""
    wagers = wagers or WagerRepository()
    ledger = ledger or LedgerRepository()
    wager = await wagers.get_wager(db, wager_id)
    if wager is None:
        return []

    violations: list[str] = []
    participants = await wagers.list_participants(db, wager_id)
    staked = sum(p.amount for p in participants)
    if staked != wager.total_pool:
        violations.append(f"wager {wager_id}: pools={wager.total_pool} != stakes={staked}")

    entries = await ledger.list_entries_for_reference(
        db, [side.reference_type for side in WagerSide], wager_id
    )
    totals: dict[str, int] = {}
    for e in entries:
        totals[e.entry_type] = totals.get(e.entry_type, 0) + e.amount

    escrowed = totals.get(_T.ESCROW_IN.value, 0)
    released = sum(totals.get(t.value, 0) for t in (_T.REFUND, _T.ESCROW_OUT, _T.VOID))
    credited = totals.get(_T.REFUND.value, 0) + totals.get(_T.PAYOUT.value, 0)
    if escrowed != staked:
        violations.append(f"wager {wager_id}: escrow_in={escrowed} != stakes={staked}")
    if wager.status in TERMINAL_WAGER_STATUSES:
        if released != staked:
            violations.append(f"wager {wager_id}: released={released} != stakes={staked}")
        if credited != staked:
            violations.append(f"wager {wager_id}: credited={credited} != stakes={staked}")
    elif released or credited:
        violations.append(
            f"wager {wager_id}: status={wager.status} but released={released}, credited={credited}"
        )

    for v in violations:
        logger.error("Reconciliation: %s", v)
    return violations


async def verify_global_invariants(
    db: AsyncSession,
    balances: BalanceRepositoryProtocol | None = None,
    ledger: LedgerRepositoryProtocol | None = None,
) -> list[str]:
    """Check total holdings == earn - spend across every user."""
    balances = balances or BalanceRepository()
    ledger = ledger or LedgerRepository()
    violations: list[str] = []

    rows = await balances.list_balances(db)
    holdings = sum(b.total_balance for b in rows)
    sums = await ledger.sum_by_type(db, None)
    minted = sums.get(_T.EARN.value, 0) - sums.get(_T.SPEND.value, 0)
    if holdings != minted:
        msg = f"holdings({holdings}) != earn - spend ({minted})"
        violations.append(msg)
        logger.error("Reconciliation: %s", msg)
    else:
        logger.debug("Global invariant OK: holdings=%d", holdings)
    return violations
