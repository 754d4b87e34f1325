"""In-memory repositories conforming to the repository Protocols.

FakeSession.begin() snapshots the whole store and restores it if the block
raises, so domain scenarios observe the same all-or-nothing behaviour as a
PostgreSQL transaction.
"""

import copy
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from src.sw_account.domain.models import LedgerEntry, UserBalance
from src.sw_wager.domain.models import Participant, Wager


@dataclass
class InMemoryStore:
    users: dict[str, str | None] = field(default_factory=dict)
    balances: dict[str, UserBalance] = field(default_factory=dict)
    ledger: list[LedgerEntry] = field(default_factory=list)
    wagers: dict[str, Wager] = field(default_factory=dict)
    participants: list[Participant] = field(default_factory=list)
    next_ledger_id: int = 1
    next_participant_id: int = 1


class FakeSession:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    @asynccontextmanager
    async def begin(self) -> Any:
        snapshot = copy.deepcopy(self.store.__dict__)
        try:
            yield self
        except BaseException:
            self.store.__dict__.update(snapshot)
            raise

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None


def session_factory(store: InMemoryStore) -> Any:
    def factory() -> FakeSession:
        return FakeSession(store)

    return factory


T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _now() -> datetime:
    return datetime.now(UTC)


class FakeBalanceRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def get_balance(self, db: Any, user_id: str) -> UserBalance | None:
        b = self.store.balances.get(user_id)
        return replace(b) if b else None

    async def create_account(
        self, db: Any, user_id: str, handle: str | None, starting_balance: int
    ) -> UserBalance | None:
        if user_id in self.store.users:
            return None
        self.store.users[user_id] = handle
        balance = UserBalance(
            user_id=user_id,
            current_balance=starting_balance,
            escrow_balance=0,
            lifetime_earned=starting_balance,
            lifetime_spent=0,
            version=0,
            created_at=_now(),
            updated_at=_now(),
        )
        self.store.balances[user_id] = balance
        return replace(balance)

    async def lock_balances(self, db: Any, user_ids: list[str]) -> dict[str, UserBalance]:
        return {
            uid: replace(self.store.balances[uid])
            for uid in sorted(set(user_ids))
            if uid in self.store.balances
        }

    async def apply_delta(
        self,
        db: Any,
        user_id: str,
        current_delta: int = 0,
        escrow_delta: int = 0,
        earned_delta: int = 0,
        spent_delta: int = 0,
    ) -> UserBalance | None:
        b = self.store.balances.get(user_id)
        if b is None:
            return None
        if b.current_balance + current_delta < 0 or b.escrow_balance + escrow_delta < 0:
            return None
        b.current_balance += current_delta
        b.escrow_balance += escrow_delta
        b.lifetime_earned += earned_delta
        b.lifetime_spent += spent_delta
        b.version += 1
        b.updated_at = _now()
        return replace(b)

    async def list_balances(self, db: Any) -> list[UserBalance]:
        return [replace(self.store.balances[k]) for k in sorted(self.store.balances)]


class FakeLedgerRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def find_entry(
        self, db: Any, user_id: str, reference_type: str, reference_id: str, entry_type: str
    ) -> LedgerEntry | None:
        for e in self.store.ledger:
            if (e.user_id, e.reference_type, e.reference_id, e.entry_type) == (
                user_id, reference_type, reference_id, entry_type
            ):
                return e
        return None

    async def append(
        self,
        db: Any,
        user_id: str,
        entry_type: str,
        amount: int,
        balance_after: int,
        escrow_after: int,
        reference_type: str,
        reference_id: str,
        description: str | None,
    ) -> LedgerEntry:
        if await self.find_entry(db, user_id, reference_type, reference_id, entry_type):
            raise AssertionError("unique idempotency key violated")
        assert amount > 0
        entry = LedgerEntry(
            id=self.store.next_ledger_id,
            user_id=user_id,
            entry_type=entry_type,
            amount=amount,
            balance_after=balance_after,
            escrow_after=escrow_after,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
            created_at=_now(),
        )
        self.store.next_ledger_id += 1
        self.store.ledger.append(entry)
        return entry

    async def list_entries(
        self,
        db: Any,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        rows = [
            e
            for e in reversed(self.store.ledger)
            if e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (entry_type is None or e.entry_type == entry_type)
        ]
        return rows[:limit]

    async def list_entries_for_reference(
        self, db: Any, reference_types: list[str], reference_id: str
    ) -> list[LedgerEntry]:
        return [
            e
            for e in self.store.ledger
            if e.reference_id == reference_id and e.reference_type in reference_types
        ]

    async def sum_by_type(self, db: Any, user_id: str | None) -> dict[str, int]:
        totals: dict[str, int] = {}
        for e in self.store.ledger:
            if user_id is None or e.user_id == user_id:
                totals[e.entry_type] = totals.get(e.entry_type, 0) + e.amount
        return totals


class FakeWagerRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def insert_wager(self, db: Any, wager: Wager) -> Wager:
        stored = replace(wager, created_at=_now(), updated_at=_now())
        self.store.wagers[wager.id] = stored
        return replace(stored)

    async def get_wager(self, db: Any, wager_id: str, for_update: bool = False) -> Wager | None:
        w = self.store.wagers.get(wager_id)
        return replace(w) if w else None

    async def find_participant(
        self, db: Any, wager_id: str, user_id: str, side: str
    ) -> Participant | None:
        for p in self.store.participants:
            if (p.wager_id, p.user_id, p.side) == (wager_id, user_id, side):
                return replace(p)
        return None

    async def insert_participant(self, db: Any, participant: Participant) -> Participant | None:
        if await self.find_participant(
            db, participant.wager_id, participant.user_id, participant.side
        ):
            return None
        stored = replace(participant, id=self.store.next_participant_id)
        self.store.next_participant_id += 1
        self.store.participants.append(stored)
        return replace(stored)

    async def add_to_pool(self, db: Any, wager_id: str, side: str, amount: int) -> Wager:
        w = self.store.wagers[wager_id]
        assert w.status == "open"
        if side == "for":
            w.total_for += amount
        else:
            w.total_against += amount
        return replace(w)

    async def list_participants(self, db: Any, wager_id: str) -> list[Participant]:
        rows = [p for p in self.store.participants if p.wager_id == wager_id]
        return [replace(p) for p in sorted(rows, key=lambda p: (p.joined_at, p.id))]

    async def mark_closed(self, db: Any, wager_id: str) -> Wager | None:
        w = self.store.wagers.get(wager_id)
        if w is None or w.status != "open":
            return None
        w.status = "closed"
        return replace(w)

    async def mark_finalized(
        self, db: Any, wager_id: str, status: str, outcome: str | None, settled_at: datetime
    ) -> Wager | None:
        w = self.store.wagers.get(wager_id)
        if w is None or w.status != "closed":
            return None
        w.status, w.outcome, w.settled_at = status, outcome, settled_at
        return replace(w)

    async def list_open_past_close(
        self, db: Any, now: datetime, after: tuple[datetime, str] | None, limit: int
    ) -> list[Wager]:
        rows = sorted(
            (
                w
                for w in self.store.wagers.values()
                if w.status == "open"
                and w.closes_at <= now
                and (after is None or (w.closes_at, w.id) > after)
            ),
            key=lambda w: (w.closes_at, w.id),
        )
        return [replace(w) for w in rows[:limit]]

    async def list_wagers(self, db: Any) -> list[Wager]:
        return [replace(w) for w in self.store.wagers.values()]

    async def list_active(self, db: Any, now: datetime, limit: int) -> list[Wager]:
        # insertion order stands in for created_at
        rows = [
            w
            for w in reversed(self.store.wagers.values())
            if w.status == "open" and w.closes_at > now
        ]
        return [replace(w) for w in rows[:limit]]
