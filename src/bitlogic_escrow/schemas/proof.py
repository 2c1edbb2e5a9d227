"""Pydantic schemas for the proof and action endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from bitlogic_escrow.domain.models import Attestation, ProofRequest, VerificationResult
from bitlogic_escrow.schemas.conditions import ConditionSchema


class AttestationSchema(BaseModel):
    """An attestation as carried over the wire."""

    proof: str = Field(..., min_length=1)
    public_inputs: list[str] = Field(default_factory=list)
    circuit_id: str = Field(..., min_length=1)
    timestamp: int
    escrow_id: str = Field(..., min_length=1)
    verified: bool = False

    @classmethod
    def from_domain(cls, attestation: Attestation) -> AttestationSchema:
        return cls.model_validate(attestation.to_dict())

    def to_domain(self) -> Attestation:
        return Attestation(
            proof=self.proof,
            public_inputs=tuple(self.public_inputs),
            circuit_id=self.circuit_id,
            timestamp=self.timestamp,
            escrow_id=self.escrow_id,
            verified=self.verified,
        )


class GenerateProofRequest(BaseModel):
    """Request body for generating a release attestation.

    ``conditions`` defaults to the escrow's own conditions when the escrow
    exists, so the circuit id matches the one bound at creation.
    """

    escrow_id: str = Field(..., min_length=1)
    condition_data: dict[str, Any] = Field(
        ...,
        description="Witness data, e.g. current_time, oracle_value, signatures, preimage",
    )
    conditions: list[ConditionSchema] | None = None

    def to_domain(self) -> ProofRequest:
        return ProofRequest(
            escrow_id=self.escrow_id,
            condition_data=self.condition_data,
            conditions=(
                tuple(c.to_domain() for c in self.conditions)
                if self.conditions is not None
                else None
            ),
        )


class BatchProofRequest(BaseModel):
    requests: list[GenerateProofRequest] = Field(..., min_length=1)


class VerificationResponse(BaseModel):
    valid: bool
    error: str | None = None
    cost_estimate: int | None = None

    @classmethod
    def from_domain(cls, result: VerificationResult) -> VerificationResponse:
        return cls(valid=result.valid, error=result.error, cost_estimate=result.cost_estimate)

