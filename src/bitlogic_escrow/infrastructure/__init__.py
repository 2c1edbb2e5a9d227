"""Persistence backends for escrow records and their audit trail."""

from bitlogic_escrow.infrastructure.memory_store import InMemoryEscrowStore

__all__ = ["InMemoryEscrowStore"]
