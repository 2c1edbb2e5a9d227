"""Pydantic schemas for cross-environment actions."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from bitlogic_escrow.domain.models import ActionDescriptor, ActionResult
from bitlogic_escrow.schemas.proof import AttestationSchema


class ActionDescriptorSchema(BaseModel):
    """A side effect to trigger on a remote environment upon release."""

    environment: str = Field(..., min_length=1, examples=["ethereum"])
    contract: str = Field(
        ...,
        min_length=1,
        examples=["0x742d35Cc6634C0532925a3b844Bc9e7595f2bD18"],
    )
    method: str = Field(..., min_length=1, examples=["mintNFT"])
    params: dict[str, Any] = Field(default_factory=dict)
    gas_limit: int | None = Field(default=None, gt=0)

    def to_domain(self) -> ActionDescriptor:
        return ActionDescriptor(
            environment=self.environment,
            contract=self.contract,
            method=self.method,
            params=self.params,
            gas_limit=self.gas_limit,
        )


class ActionResultResponse(BaseModel):
    tx_hash: str
    status: str
    block_number: int | None = None
    token_id: int | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def from_domain(cls, result: ActionResult) -> ActionResultResponse:
        return cls.model_validate(result.to_dict())


class TriggerActionRequest(BaseModel):
    """Request body for dispatching an action outside of a release."""

    escrow_id: str = Field(..., min_length=1)
    action: ActionDescriptorSchema
    attestation: AttestationSchema | None = None
