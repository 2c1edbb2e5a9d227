"""Escrow REST API routes.

Routes:
    POST   /api/v1/escrows                 Create (lock funds) a new escrow
    GET    /api/v1/escrows/{id}            Get escrow details
    GET    /api/v1/escrows/{id}/status     Lightweight status check
    GET    /api/v1/escrows/{id}/events     Audit trail
    POST   /api/v1/escrows/{id}/release    Release against an attestation
    POST   /api/v1/escrows/{id}/refund     Refund after the timeout
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from bitlogic_escrow.api.deps import get_client
from bitlogic_escrow.client import BitLogic
from bitlogic_escrow.domain.exceptions import EscrowNotFoundError
from bitlogic_escrow.domain.models import ReleaseParams
from bitlogic_escrow.logging_config import get_logger
from bitlogic_escrow.schemas.escrow import (
    CreateEscrowRequest,
    EscrowEventResponse,
    EscrowResponse,
    EscrowStatusResponse,
    RefundResponse,
    ReleaseRequest,
    ReleaseResponse,
)

router = APIRouter(prefix="/api/v1/escrows", tags=["Escrow"])
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=EscrowResponse,
    status_code=201,
    summary="Create a new escrow",
)
async def create_escrow(
    request: CreateEscrowRequest,
    client: BitLogic = Depends(get_client),
) -> EscrowResponse:
    """Lock funds under the given conditions. The escrow is returned ``active``."""
    escrow = await client.create_escrow(request.to_domain())
    return EscrowResponse.from_domain(escrow)


# ---------------------------------------------------------------------------
# Release / Refund
# ---------------------------------------------------------------------------


@router.post(
    "/{escrow_id}/release",
    response_model=ReleaseResponse,
    summary="Release escrowed funds",
)
async def release_escrow(
    escrow_id: str,
    request: ReleaseRequest,
    client: BitLogic = Depends(get_client),
) -> ReleaseResponse:
    """Verify the attestation, spend the lock and trigger the attached action, if any."""
    result = await client.execute_release(
        ReleaseParams(
            escrow_id=escrow_id,
            proof=request.proof.to_domain(),
            public_inputs=(
                tuple(request.public_inputs) if request.public_inputs is not None else None
            ),
        )
    )
    return ReleaseResponse.from_domain(result)


@router.post(
    "/{escrow_id}/refund",
    response_model=RefundResponse,
    summary="Refund an expired escrow",
)
async def refund_escrow(
    escrow_id: str,
    client: BitLogic = Depends(get_client),
) -> RefundResponse:
    """Return the funds once the escrow timeout has elapsed."""
    result = await client.refund_escrow(escrow_id)
    return RefundResponse.from_domain(result)


# ---------------------------------------------------------------------------
# Read endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/{escrow_id}",
    response_model=EscrowResponse,
    summary="Get escrow details",
)
async def get_escrow(
    escrow_id: str,
    client: BitLogic = Depends(get_client),
) -> EscrowResponse:
    escrow = await client.get_escrow(escrow_id)
    if escrow is None:
        raise EscrowNotFoundError(escrow_id)
    return EscrowResponse.from_domain(escrow)


@router.get(
    "/{escrow_id}/status",
    response_model=EscrowStatusResponse,
    summary="Get lightweight status check",
)
async def get_status(
    escrow_id: str,
    client: BitLogic = Depends(get_client),
) -> EscrowStatusResponse:
    """Return the current status and the lifecycle events that may still fire."""
    return EscrowStatusResponse(**await client.get_status(escrow_id))


@router.get(
    "/{escrow_id}/events",
    response_model=list[EscrowEventResponse],
    summary="Get audit trail",
)
async def get_events(
    escrow_id: str,
    client: BitLogic = Depends(get_client),
) -> list[EscrowEventResponse]:
    events = await client.get_events(escrow_id)
    return [EscrowEventResponse.from_domain(e) for e in events]
