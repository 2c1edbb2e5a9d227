"""Application services: use case orchestration."""

from bitlogic_escrow.services.action_trigger import ActionTrigger, SimulatedReceiver
from bitlogic_escrow.services.escrow_manager import EscrowManager
from bitlogic_escrow.services.ledger_service import SimulatedLedger
from bitlogic_escrow.services.proof_service import ProofService

__all__ = [
    "ActionTrigger",
    "EscrowManager",
    "ProofService",
    "SimulatedLedger",
    "SimulatedReceiver",
]
