"""Cross-environment action REST API routes.

Routes:
    POST   /api/v1/actions           Dispatch an action and wait for its outcome
    GET    /api/v1/actions/{ref}     Status of an in-flight action
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from bitlogic_escrow.api.deps import get_client
from bitlogic_escrow.client import BitLogic
from bitlogic_escrow.schemas.action import ActionResultResponse, TriggerActionRequest

router = APIRouter(prefix="/api/v1/actions", tags=["Actions"])


class ActionStatusResponse(BaseModel):
    action_ref: str
    pending: bool
    result: ActionResultResponse | None = None


@router.post("", response_model=ActionResultResponse, summary="Trigger an action")
async def trigger_action(
    request: TriggerActionRequest,
    client: BitLogic = Depends(get_client),
) -> ActionResultResponse:
    """Failures come back as ``status=failed`` with an error code, not as HTTP errors."""
    result = await client.trigger_action(
        request.action.to_domain(),
        request.escrow_id,
        request.attestation.to_domain() if request.attestation else None,
    )
    return ActionResultResponse.from_domain(result)


@router.get(
    "/{action_ref}",
    response_model=ActionStatusResponse,
    summary="Get in-flight action status",
)
async def get_action_status(
    action_ref: str,
    client: BitLogic = Depends(get_client),
) -> ActionStatusResponse:
    """Only in-flight actions are known here; settled ones report ``pending=false``."""
    result = await client.get_action_status(action_ref)
    return ActionStatusResponse(
        action_ref=action_ref,
        pending=result is not None,
        result=ActionResultResponse.from_domain(result) if result else None,
    )
