"""In-memory escrow store.

Records are immutable snapshots kept in a dict; every mutation swaps in a new
snapshot under that record's asyncio.Lock, so concurrent readers observe
either the old or the new record, never a half-written one. Suitable for a
single process; use SqlEscrowStore for durability.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from bitlogic_escrow.domain.enums import EscrowStatus

if TYPE_CHECKING:
    from bitlogic_escrow.domain.models import Escrow, EscrowEvent


class InMemoryEscrowStore:
    """EscrowStore backed by process memory."""

    def __init__(self) -> None:
        self._records: dict[str, Escrow] = {}
        self._claims: dict[str, str] = {}
        self._events: dict[str, list[EscrowEvent]] = defaultdict(list)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get(self, escrow_id: str) -> Escrow | None:
        return self._records.get(escrow_id)

    async def put(self, escrow: Escrow) -> None:
        async with self._locks[escrow.id]:
            self._records[escrow.id] = escrow

    async def claim(self, escrow_id: str, token: str) -> bool:
        async with self._locks[escrow_id]:
            escrow = self._records.get(escrow_id)
            if escrow is None or escrow.status is not EscrowStatus.ACTIVE:
                return False
            if escrow_id in self._claims:
                return False
            self._claims[escrow_id] = token
            return True

    async def release_claim(self, escrow_id: str, token: str) -> None:
        async with self._locks[escrow_id]:
            if self._claims.get(escrow_id) == token:
                del self._claims[escrow_id]

    async def compare_and_swap_status(
        self,
        escrow_id: str,
        expected: EscrowStatus,
        new: EscrowStatus,
        claim_token: str | None = None,
        **changes: Any,
    ) -> Escrow | None:
        async with self._locks[escrow_id]:
            escrow = self._records.get(escrow_id)
            if escrow is None or escrow.status is not expected:
                return None
            if self._claims.get(escrow_id) != claim_token:
                return None
            updated = replace(escrow, status=new, **changes)
            self._records[escrow_id] = updated
            self._claims.pop(escrow_id, None)
            return updated

    async def record_event(self, event: EscrowEvent) -> None:
        self._events[event.escrow_id].append(event)

    async def get_events(self, escrow_id: str) -> list[EscrowEvent]:
        return list(self._events.get(escrow_id, []))

    async def close(self) -> None:
        return None
