"""Domain layer: pure business logic with zero framework dependencies."""

from bitlogic_escrow.domain.conditions import (
    Condition,
    Custom,
    GovernanceVote,
    HashLock,
    MultiSig,
    Oracle,
    TimeLock,
    WitnessData,
    derive_circuit_id,
    evaluate_condition,
    validate_condition,
)
from bitlogic_escrow.domain.enums import (
    ActionStatus,
    ConditionType,
    EscrowStatus,
    EventType,
)
from bitlogic_escrow.domain.exceptions import (
    ActionDispatchFailedError,
    BitLogicError,
    EscrowNotFoundError,
    InvalidEscrowParamsError,
    InvalidProofError,
    InvalidRequestError,
    InvalidStateError,
    LedgerError,
    TimeoutNotElapsedError,
    UnsupportedEnvironmentError,
)
from bitlogic_escrow.domain.models import (
    ActionDescriptor,
    ActionResult,
    Attestation,
    Escrow,
    EscrowParams,
    ReleaseParams,
    ReleaseResult,
    VerificationResult,
)
from bitlogic_escrow.domain.state_machine import (
    EscrowStateMachine,
    validate_transition,
)

__all__ = [
    "ActionDescriptor",
    "ActionDispatchFailedError",
    "ActionResult",
    "ActionStatus",
    "Attestation",
    "BitLogicError",
    "Condition",
    "ConditionType",
    "Custom",
    "Escrow",
    "EscrowNotFoundError",
    "EscrowParams",
    "EscrowStateMachine",
    "EscrowStatus",
    "EventType",
    "GovernanceVote",
    "HashLock",
    "InvalidEscrowParamsError",
    "InvalidProofError",
    "InvalidRequestError",
    "InvalidStateError",
    "LedgerError",
    "MultiSig",
    "Oracle",
    "ReleaseParams",
    "ReleaseResult",
    "TimeLock",
    "TimeoutNotElapsedError",
    "UnsupportedEnvironmentError",
    "VerificationResult",
    "WitnessData",
    "derive_circuit_id",
    "evaluate_condition",
    "validate_condition",
    "validate_transition",
]
