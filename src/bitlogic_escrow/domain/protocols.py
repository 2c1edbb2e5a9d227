"""Collaborator protocols.

Structural interfaces for everything outside the escrow core: the ledger that
locks and spends funds, the cryptographic verifier that a production
deployment plugs into proof verification, the receivers that execute actions
on remote environments, and the escrow record store.

The domain layer has ZERO imports from SQLAlchemy, FastAPI, or any network
client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bitlogic_escrow.domain.enums import EscrowStatus
    from bitlogic_escrow.domain.models import (
        ActionResult,
        Attestation,
        Escrow,
        EscrowEvent,
        LockedFunds,
    )


@runtime_checkable
class LedgerClient(Protocol):
    """Locks, spends and refunds escrowed funds.

    Callers must invoke spend/refund at most once per lock; the escrow
    manager's state gate provides that guarantee.
    """

    async def lock_funds(
        self, amount_units: int, beneficiary: str, commitment: str
    ) -> LockedFunds: ...

    async def spend(self, lock: LockedFunds, attestation: Attestation) -> str: ...

    async def refund(self, lock: LockedFunds) -> str: ...


@runtime_checkable
class CryptographicVerifier(Protocol):
    """A sound proof verifier (e.g. a verifying-key check or on-chain call)."""

    async def verify(self, attestation: Attestation) -> bool: ...


@runtime_checkable
class RemoteReceiver(Protocol):
    """Executes an action on one remote environment and waits for confirmation."""

    async def submit(
        self,
        contract: str,
        method: str,
        params: Mapping[str, Any],
        attestation_ref: str,
    ) -> ActionResult: ...


@runtime_checkable
class EscrowStore(Protocol):
    """Narrow persistence interface for escrow records.

    ``claim`` marks a record as having a release/refund in flight. Only one
    claim can be held at a time, and only on an ``active`` record; the
    terminal ``compare_and_swap_status`` clears it.
    """

    async def get(self, escrow_id: str) -> Escrow | None: ...

    async def put(self, escrow: Escrow) -> None: ...

    async def claim(self, escrow_id: str, token: str) -> bool: ...

    async def release_claim(self, escrow_id: str, token: str) -> None: ...

    async def compare_and_swap_status(
        self,
        escrow_id: str,
        expected: EscrowStatus,
        new: EscrowStatus,
        claim_token: str | None = None,
        **changes: Any,
    ) -> Escrow | None: ...

    async def record_event(self, event: EscrowEvent) -> None: ...

    async def get_events(self, escrow_id: str) -> list[EscrowEvent]: ...

    async def close(self) -> None: ...
