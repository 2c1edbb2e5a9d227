"""Shared test fixtures for the BitLogic test suite.

Provides:
    - A controllable clock and deterministic escrow ids
    - An in-memory store and a ledger that records (or fails) its calls
    - Fully wired proof service, action trigger, escrow manager and facade
    - Factory functions for creating test data
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest

from bitlogic_escrow.client import BitLogic
from bitlogic_escrow.domain.conditions import TimeLock, time_lock
from bitlogic_escrow.domain.models import EscrowParams, LockedFunds
from bitlogic_escrow.infrastructure.memory_store import InMemoryEscrowStore
from bitlogic_escrow.services.action_trigger import ActionTrigger, SimulatedReceiver
from bitlogic_escrow.services.escrow_manager import EscrowManager
from bitlogic_escrow.services.proof_service import ProofService

START = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def ms(self) -> int:
        return int(self.now.timestamp() * 1000)

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class SequentialIds:
    """Deterministic escrow id factory: escrow_test_0001, escrow_test_0002, ..."""

    def __init__(self) -> None:
        self.issued: list[str] = []

    def __call__(self) -> str:
        self.issued.append(f"escrow_test_{len(self.issued) + 1:04d}")
        return self.issued[-1]


class RecordingLedger:
    """LedgerClient that records every call and can be told to fail."""

    def __init__(self) -> None:
        self.locks: list[tuple[int, str, str]] = []
        self.spends: list[str] = []
        self.refunds: list[str] = []
        self.fail_on: set[str] = set()

    async def lock_funds(self, amount_units: int, beneficiary: str, commitment: str) -> LockedFunds:
        if "lock" in self.fail_on:
            raise ConnectionError("ledger unreachable")
        self.locks.append((amount_units, beneficiary, commitment))
        return LockedFunds(
            txid=f"lock_{len(self.locks)}",
            vout=0,
            value=amount_units,
            script_pubkey=f"script_{commitment[-8:]}",
        )

    async def spend(self, lock: LockedFunds, attestation: Any) -> str:
        # Yield so concurrent releases interleave at the ledger call.
        await asyncio.sleep(0)
        if "spend" in self.fail_on:
            raise ConnectionError("broadcast rejected")
        self.spends.append(lock.txid)
        return f"spend_{lock.txid}"

    async def refund(self, lock: LockedFunds) -> str:
        await asyncio.sleep(0)
        if "refund" in self.fail_on:
            raise ConnectionError("broadcast rejected")
        self.refunds.append(lock.txid)
        return f"refund_{lock.txid}"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def id_factory() -> SequentialIds:
    return SequentialIds()


@pytest.fixture
def store() -> InMemoryEscrowStore:
    return InMemoryEscrowStore()


@pytest.fixture
def ledger() -> RecordingLedger:
    return RecordingLedger()


@pytest.fixture
def proof_service(clock: FakeClock) -> ProofService:
    return ProofService(circuit_version="1.0.0", cost_estimate=250000, clock_ms=clock.ms)


@pytest.fixture
def action_trigger(clock: FakeClock) -> ActionTrigger:
    receivers = {"ethereum": SimulatedReceiver("https://rpc.test", confirmation_delay_ms=0)}
    return ActionTrigger(receivers=receivers, clock_ms=clock.ms)


@pytest.fixture
def manager(
    store: InMemoryEscrowStore,
    ledger: RecordingLedger,
    proof_service: ProofService,
    action_trigger: ActionTrigger,
    id_factory: SequentialIds,
    clock: FakeClock,
) -> EscrowManager:
    return EscrowManager(
        store=store,
        ledger=ledger,
        proof_service=proof_service,
        action_trigger=action_trigger,
        id_factory=id_factory,
        clock=clock,
        default_timeout=604800,
        amount_decimals=8,
    )


@pytest.fixture
def client(
    manager: EscrowManager,
    proof_service: ProofService,
    action_trigger: ActionTrigger,
    store: InMemoryEscrowStore,
) -> BitLogic:
    return BitLogic(manager, proof_service, action_trigger, store)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def passed_time_lock(clock: FakeClock, seconds_ago: int = 1) -> TimeLock:
    return time_lock(clock() - timedelta(seconds=seconds_ago))


def make_params(clock: FakeClock, **overrides: Any) -> EscrowParams:
    """Valid escrow params: 0.5 BTC to addr1 behind an already-passed TimeLock."""
    fields: dict[str, Any] = {
        "amount": Decimal("0.5"),
        "beneficiary": "addr1",
        "conditions": (passed_time_lock(clock),),
    }
    fields.update(overrides)
    return EscrowParams(**fields)


@pytest.fixture
def escrow_params(clock: FakeClock):
    """Factory fixture: ``escrow_params(timeout=10)`` -> EscrowParams."""

    def factory(**overrides: Any) -> EscrowParams:
        return make_params(clock, **overrides)

    return factory
