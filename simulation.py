#!/usr/bin/env python3
"""BitLogic: End-to-End Simulation.

Walks through four escrow scenarios against the BitLogic facade, with a
simulated ledger and simulated remote receivers:

    Scenario A: Time-lock release
        - Lock 0.5 BTC for addr1 behind a TimeLock that has already passed
        - Generate a proof -> release -> status RELEASED

    Scenario B: Timeout refund
        - Lock funds with a 10 second timeout
        - Refund at 5s -> TimeoutNotElapsed
        - Refund at 11s -> status REFUNDED

    Scenario C: Release with an unroutable action
        - Attach an action targeting an environment with no endpoint
        - Release still succeeds; the action result reports UNSUPPORTED_ENVIRONMENT

    Scenario D: Invalid creation
        - create_escrow with no conditions -> InvalidEscrowParams, nothing stored

Usage:
    # In-memory store (default):
    python simulation.py

    # SQLite in-memory store through SQLAlchemy:
    python simulation.py --sqlite

    # Run a specific scenario:
    python simulation.py --scenario B
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal

# ---------------------------------------------------------------------------
# Configure structured logging BEFORE importing app modules
# ---------------------------------------------------------------------------
from bitlogic_escrow.logging_config import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False)
logger = get_logger("simulation")

from bitlogic_escrow.client import BitLogic, build_client  # noqa: E402
from bitlogic_escrow.config import Settings  # noqa: E402
from bitlogic_escrow.domain.conditions import time_lock  # noqa: E402
from bitlogic_escrow.domain.exceptions import (  # noqa: E402
    InvalidEscrowParamsError,
    TimeoutNotElapsedError,
)
from bitlogic_escrow.domain.models import EscrowParams, mint_nft  # noqa: E402
from bitlogic_escrow.infrastructure.database.sql_store import SqlEscrowStore  # noqa: E402
from bitlogic_escrow.services.escrow_manager import generate_escrow_id  # noqa: E402

_use_sqlite = False


class SimulationClock:
    """Wall clock that scenarios can fast-forward."""

    def __init__(self) -> None:
        self._offset = timedelta()

    def __call__(self) -> datetime:
        return datetime.now(UTC) + self._offset

    def advance(self, seconds: float) -> None:
        self._offset += timedelta(seconds=seconds)


async def open_client(
    clock: SimulationClock, id_factory: Callable[[], str] = generate_escrow_id
) -> BitLogic:
    """Build a facade on the selected store with fast simulated receivers."""
    settings = Settings(action_confirmation_delay_ms=10)
    store = SqlEscrowStore.from_url("sqlite+aiosqlite://") if _use_sqlite else None
    client = build_client(settings=settings, store=store, clock=clock, id_factory=id_factory)
    await client.startup()
    return client


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------
def banner(title: str) -> None:
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def section(title: str) -> None:
    print(f"\n--- {title} ---")


async def print_audit_trail(client: BitLogic, escrow_id: str) -> None:
    section("Audit Trail")
    for event in await client.get_events(escrow_id):
        old = event.old_status.value if event.old_status else "-"
        print(f"  {event.event_type.value:<18} {old:>8} -> {event.new_status.value}")


# ===========================================================================
# Scenario A: Time-lock release
# ===========================================================================
async def scenario_a_release() -> None:
    banner("SCENARIO A: Time-lock release")
    clock = SimulationClock()
    client = await open_client(clock)
    try:
        section("Step 1: Create escrow")
        escrow = await client.create_escrow(
            EscrowParams(
                amount=Decimal("0.5"),
                beneficiary="addr1",
                conditions=(time_lock(clock() - timedelta(seconds=1)),),
            )
        )
        print(f"  Escrow {escrow.id} locked {escrow.amount} BTC ({escrow.amount_units} sats)")
        print(f"  Script hash: {escrow.script_hash}")

        section("Step 2: Generate proof")
        attestation = await client.generate_proof(
            escrow.id,
            {"current_time": clock(), "escrow_id": escrow.id, "beneficiary": "addr1"},
        )
        print(f"  Circuit: {attestation.circuit_id}")
        print(f"  Public inputs: {list(attestation.public_inputs)}")

        section("Step 3: Verify and release")
        result = await client.execute_with_proof(attestation)
        released = await client.get_escrow(escrow.id)
        print(f"  Release ref: {result.release_ref}")
        print(f"  Final status: {released.status.value}")

        await print_audit_trail(client, escrow.id)
    finally:
        await client.close()


# ===========================================================================
# Scenario B: Timeout refund
# ===========================================================================
async def scenario_b_refund() -> None:
    banner("SCENARIO B: Timeout refund")
    clock = SimulationClock()
    client = await open_client(clock)
    try:
        escrow = await client.create_escrow(
            EscrowParams(
                amount=Decimal("1.25"),
                beneficiary="addr2",
                conditions=(time_lock(clock() + timedelta(days=30)),),
                timeout=10,
            )
        )
        print(f"  Escrow {escrow.id} created with a 10s timeout")

        section("Refund after 5 seconds")
        clock.advance(5)
        try:
            await client.refund_escrow(escrow.id)
        except TimeoutNotElapsedError as exc:
            print(f"  Refused: {exc.message}")

        section("Refund after 11 seconds")
        clock.advance(6)
        result = await client.refund_escrow(escrow.id)
        refunded = await client.get_escrow(escrow.id)
        print(f"  Refund ref: {result.refund_ref}")
        print(f"  Final status: {refunded.status.value}")

        await print_audit_trail(client, escrow.id)
    finally:
        await client.close()


# ===========================================================================
# Scenario C: Release with an unroutable action
# ===========================================================================
async def scenario_c_unsupported_action() -> None:
    banner("SCENARIO C: Release with an action on an unconfigured environment")
    clock = SimulationClock()
    client = await open_client(clock)
    try:
        escrow = await client.create_escrow(
            EscrowParams(
                amount=Decimal("0.1"),
                beneficiary="addr3",
                conditions=(time_lock(clock() - timedelta(minutes=1)),),
                action=mint_nft("solana", "nft_program", token_id=7),
            )
        )
        print(f"  Configured environments: {client.actions.environments}")

        attestation = await client.generate_proof(escrow.id, {"current_time": clock()})
        result = await client.execute_with_proof(attestation)
        released = await client.get_escrow(escrow.id)

        print(f"  Final status: {released.status.value}")
        print(f"  Action status: {result.action_result.status.value}")
        print(f"  Action error:  {result.action_result.error_code} ({result.action_result.error})")

        await print_audit_trail(client, escrow.id)
    finally:
        await client.close()


# ===========================================================================
# Scenario D: Invalid creation
# ===========================================================================
async def scenario_d_invalid_params() -> None:
    banner("SCENARIO D: Creation without conditions")
    clock = SimulationClock()
    generated: list[str] = []

    def recording_id() -> str:
        generated.append(f"escrow_sim_{len(generated)}")
        return generated[-1]

    client = await open_client(clock, id_factory=recording_id)
    try:
        try:
            await client.create_escrow(
                EscrowParams(amount=Decimal("0.5"), beneficiary="addr4", conditions=())
            )
        except InvalidEscrowParamsError as exc:
            print(f"  Rejected ({exc.field}): {exc.message}")
        print(f"  Ids generated: {generated or 'none'}")
        print(f"  Lookup of escrow_sim_0: {await client.get_escrow('escrow_sim_0')}")
    finally:
        await client.close()


# ===========================================================================
# Main
# ===========================================================================
SCENARIOS = {
    "A": scenario_a_release,
    "B": scenario_b_refund,
    "C": scenario_c_unsupported_action,
    "D": scenario_d_invalid_params,
}


async def run_all() -> None:
    """Run all scenarios sequentially."""
    print("\n" + "#" * 70)
    print("  BITLOGIC: CONDITIONAL ESCROW SIMULATION")
    print(f"  Store: {'SQLite (in-memory)' if _use_sqlite else 'in-memory'}")
    print("#" * 70)

    for scenario in SCENARIOS.values():
        await scenario()

    print("\n" + "=" * 70)
    print("  ALL SCENARIOS COMPLETED SUCCESSFULLY")
    print("=" * 70 + "\n")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="BitLogic Simulation")
    parser.add_argument(
        "--scenario",
        choices=sorted(SCENARIOS),
        default=None,
        help="Run a specific scenario (A, B, C or D). Default: run all.",
    )
    parser.add_argument(
        "--sqlite",
        action="store_true",
        help="Persist escrows through SQLAlchemy on an in-memory SQLite database.",
    )
    args = parser.parse_args()
    _use_sqlite = args.sqlite

    if args.scenario is None:
        asyncio.run(run_all())
    else:
        asyncio.run(SCENARIOS[args.scenario]())
