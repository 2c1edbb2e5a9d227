"""Pydantic API schemas."""

from bitlogic_escrow.schemas.action import (
    ActionDescriptorSchema,
    ActionResultResponse,
    TriggerActionRequest,
)
from bitlogic_escrow.schemas.conditions import ConditionSchema
from bitlogic_escrow.schemas.escrow import (
    CreateEscrowRequest,
    EscrowEventResponse,
    EscrowResponse,
    EscrowStatusResponse,
    HealthResponse,
    RefundResponse,
    ReleaseRequest,
    ReleaseResponse,
)
from bitlogic_escrow.schemas.proof import (
    AttestationSchema,
    BatchProofRequest,
    GenerateProofRequest,
    VerificationResponse,
)

__all__ = [
    "ActionDescriptorSchema",
    "ActionResultResponse",
    "AttestationSchema",
    "BatchProofRequest",
    "ConditionSchema",
    "CreateEscrowRequest",
    "EscrowEventResponse",
    "EscrowResponse",
    "EscrowStatusResponse",
    "GenerateProofRequest",
    "HealthResponse",
    "RefundResponse",
    "ReleaseRequest",
    "ReleaseResponse",
    "TriggerActionRequest",
    "VerificationResponse",
]
