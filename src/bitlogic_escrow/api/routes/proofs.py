"""Proof REST API routes.

Routes:
    POST   /api/v1/proofs           Generate a release attestation
    POST   /api/v1/proofs/verify    Verify an attestation
    POST   /api/v1/proofs/batch     Generate several attestations (all-or-nothing)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from bitlogic_escrow.api.deps import get_client
from bitlogic_escrow.client import BitLogic
from bitlogic_escrow.schemas.proof import (
    AttestationSchema,
    BatchProofRequest,
    GenerateProofRequest,
    VerificationResponse,
)

router = APIRouter(prefix="/api/v1/proofs", tags=["Proofs"])


@router.post("", response_model=AttestationSchema, summary="Generate an attestation")
async def generate_proof(
    request: GenerateProofRequest,
    client: BitLogic = Depends(get_client),
) -> AttestationSchema:
    proof_request = request.to_domain()
    attestation = await client.generate_proof(
        proof_request.escrow_id, proof_request.condition_data, proof_request.conditions
    )
    return AttestationSchema.from_domain(attestation)


@router.post("/verify", response_model=VerificationResponse, summary="Verify an attestation")
async def verify_proof(
    request: AttestationSchema,
    client: BitLogic = Depends(get_client),
) -> VerificationResponse:
    """Never fails on a malformed proof; the verdict is in ``valid``."""
    result = await client.verify_proof(request.to_domain())
    return VerificationResponse.from_domain(result)


@router.post(
    "/batch",
    response_model=list[AttestationSchema],
    summary="Generate several attestations",
)
async def batch_generate_proofs(
    request: BatchProofRequest,
    client: BitLogic = Depends(get_client),
) -> list[AttestationSchema]:
    attestations = await client.batch_generate_proofs([r.to_domain() for r in request.requests])
    return [AttestationSchema.from_domain(a) for a in attestations]
