"""Pydantic schemas for the Escrow API.

These schemas define the request/response shapes for the REST API. They
are separate from the domain dataclasses and the ORM models to keep clean
boundaries between the API, the escrow core and the database layer.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from bitlogic_escrow.domain.models import (
    Escrow,
    EscrowEvent,
    EscrowParams,
    RefundResult,
    ReleaseResult,
)
from bitlogic_escrow.schemas.action import ActionDescriptorSchema, ActionResultResponse
from bitlogic_escrow.schemas.conditions import ConditionSchema
from bitlogic_escrow.schemas.proof import AttestationSchema

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateEscrowRequest(BaseModel):
    """Request body for creating a new escrow."""

    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=8,
        description="Amount to lock, in whole coins (1 unit = 10^-8)",
        examples=["0.5"],
    )
    beneficiary: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Address that receives the funds on release",
        examples=["tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx"],
    )
    conditions: list[ConditionSchema] = Field(
        ...,
        description="Release conditions; at least one is required",
    )
    timeout: int | None = Field(
        default=None,
        gt=0,
        description="Seconds after creation when a refund becomes possible (default 7 days)",
    )
    action: ActionDescriptorSchema | None = None

    def to_domain(self) -> EscrowParams:
        return EscrowParams(
            amount=self.amount,
            beneficiary=self.beneficiary,
            conditions=tuple(c.to_domain() for c in self.conditions),
            timeout=self.timeout,
            action=self.action.to_domain() if self.action else None,
        )


class ReleaseRequest(BaseModel):
    """Request body for releasing an escrow against an attestation."""

    proof: AttestationSchema
    public_inputs: list[str] | None = Field(
        default=None,
        description="If given, must equal the attestation's public inputs",
    )


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class LockedFundsResponse(BaseModel):
    txid: str
    vout: int
    value: int
    script_pubkey: str


class EscrowResponse(BaseModel):
    """Response schema for an escrow."""

    id: str
    amount: Decimal
    amount_units: int
    beneficiary: str
    conditions: list[dict[str, Any]]
    timeout: int
    lock: LockedFundsResponse
    script_hash: str
    circuit_id: str
    status: str
    action: dict[str, Any] | None
    release_ref: str | None
    refund_ref: str | None
    action_result: ActionResultResponse | None
    created_at: datetime
    closed_at: datetime | None

    @classmethod
    def from_domain(cls, escrow: Escrow) -> EscrowResponse:
        return cls.model_validate(escrow.to_dict())


class EscrowEventResponse(BaseModel):
    """Response schema for an audit event."""

    escrow_id: str
    event_type: str
    old_status: str | None
    new_status: str
    metadata: dict[str, Any] | None = None
    created_at: datetime

    @classmethod
    def from_domain(cls, event: EscrowEvent) -> EscrowEventResponse:
        return cls(
            escrow_id=event.escrow_id,
            event_type=event.event_type.value,
            old_status=event.old_status.value if event.old_status else None,
            new_status=event.new_status.value,
            metadata=dict(event.metadata) or None,
            created_at=event.created_at,
        )


class EscrowStatusResponse(BaseModel):
    """Lightweight status check response."""

    escrow_id: str
    status: str
    allowed_events: list[str] = Field(
        description="State machine events that can fire from the current status"
    )


class ReleaseResponse(BaseModel):
    release_ref: str
    status: str
    external_action_ref: str | None = None
    minted_resource_id: int | None = None
    action_result: ActionResultResponse | None = None

    @classmethod
    def from_domain(cls, result: ReleaseResult) -> ReleaseResponse:
        return cls(
            release_ref=result.release_ref,
            status=result.status.value,
            external_action_ref=result.external_action_ref,
            minted_resource_id=result.minted_resource_id,
            action_result=(
                ActionResultResponse.from_domain(result.action_result)
                if result.action_result
                else None
            ),
        )


class RefundResponse(BaseModel):
    escrow_id: str
    refund_ref: str
    status: str = "refunded"

    @classmethod
    def from_domain(cls, result: RefundResult) -> RefundResponse:
        return cls(escrow_id=result.escrow_id, refund_ref=result.refund_ref)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "1.0.0"
    network: str = "testnet"
    store: str = "unknown"
    environments: list[str] = Field(default_factory=list)
