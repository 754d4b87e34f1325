"""Domain fixtures wired to the in-memory store."""

from datetime import timedelta

import pytest

from src.sw_escrow.domain.controller import EscrowController
from src.sw_settlement.domain.engine import SettlementEngine
from src.sw_wager.domain.registry import WagerRegistry
from tests.unit.fakes import (
    T0,
    FakeBalanceRepository,
    FakeLedgerRepository,
    FakeSession,
    FakeWagerRepository,
    InMemoryStore,
)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def db(store: InMemoryStore) -> FakeSession:
    return FakeSession(store)


@pytest.fixture
def balances(store: InMemoryStore) -> FakeBalanceRepository:
    return FakeBalanceRepository(store)


@pytest.fixture
def ledger(store: InMemoryStore) -> FakeLedgerRepository:
    return FakeLedgerRepository(store)


@pytest.fixture
def wagers(store: InMemoryStore) -> FakeWagerRepository:
    return FakeWagerRepository(store)


@pytest.fixture
def escrow(balances: FakeBalanceRepository, ledger: FakeLedgerRepository) -> EscrowController:
    return EscrowController(balances=balances, ledger=ledger, starting_balance=100)


@pytest.fixture
def registry(wagers: FakeWagerRepository, escrow: EscrowController) -> WagerRegistry:
    return WagerRegistry(repo=wagers, escrow=escrow)


@pytest.fixture
def engine(
    wagers: FakeWagerRepository, escrow: EscrowController, registry: WagerRegistry
) -> SettlementEngine:
    return SettlementEngine(repo=wagers, escrow=escrow, registry=registry)


@pytest.fixture
def open_wager(db: FakeSession, registry: WagerRegistry):
    """Factory: open a wager by `opener` at T0 with the given odds and duration."""

    async def _open(
        opener: str = "opener",
        odds_for: int = 1,
        odds_against: int = 1,
        minutes: int = 60,
    ):
        async with db.begin():
            return await registry.open(
                db,
                opener,
                "It will rain tomorrow",
                odds_for,
                odds_against,
                T0,
                T0 + timedelta(minutes=minutes),
            )

    return _open
