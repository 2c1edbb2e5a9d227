"""BitLogic facade: the single external-facing API.

Composes the escrow manager, proof service and action trigger over one
store and one ledger client. ``build_client`` wires everything from
settings; every collaborator can be overridden explicitly.

Usage:
    client = build_client()
    await client.startup()
    escrow = await client.create_escrow(EscrowParams(...))
    attestation = await client.generate_proof(escrow.id, {"current_time": ...})
    result = await client.execute_with_proof(attestation)
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Any

from bitlogic_escrow.config import Settings, get_settings
from bitlogic_escrow.domain.exceptions import BitLogicError, InvalidProofError
from bitlogic_escrow.domain.models import ReleaseParams
from bitlogic_escrow.infrastructure.database.sql_store import SqlEscrowStore
from bitlogic_escrow.infrastructure.memory_store import InMemoryEscrowStore
from bitlogic_escrow.logging_config import get_logger
from bitlogic_escrow.services.action_trigger import ActionTrigger
from bitlogic_escrow.services.escrow_manager import (
    EscrowManager,
    generate_escrow_id,
    utc_now,
)
from bitlogic_escrow.services.ledger_service import SimulatedLedger
from bitlogic_escrow.services.proof_service import ProofService

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from datetime import datetime

    from bitlogic_escrow.domain.conditions import Condition, WitnessData
    from bitlogic_escrow.domain.models import (
        ActionDescriptor,
        ActionResult,
        Attestation,
        Escrow,
        EscrowEvent,
        EscrowParams,
        ProofRequest,
        RefundResult,
        ReleaseResult,
        VerificationResult,
    )
    from bitlogic_escrow.domain.protocols import (
        CryptographicVerifier,
        EscrowStore,
        LedgerClient,
        RemoteReceiver,
    )

logger = get_logger(__name__)


class BitLogic:
    """Conditional escrow facade over the manager, proof service and action trigger."""

    def __init__(
        self,
        manager: EscrowManager,
        proof_service: ProofService,
        action_trigger: ActionTrigger,
        store: EscrowStore,
    ) -> None:
        self.manager = manager
        self.proofs = proof_service
        self.actions = action_trigger
        self.store = store

    async def startup(self) -> None:
        """Prepare the backing store (creates tables for the SQL store)."""
        if isinstance(self.store, SqlEscrowStore):
            await self.store.init_models()
        logger.info("client.started", store=type(self.store).__name__)

    async def close(self) -> None:
        await self.store.close()
        logger.info("client.closed")

    # --- Escrows ---

    async def create_escrow(self, params: EscrowParams) -> Escrow:
        return await self.manager.create_escrow(params)

    async def get_escrow(self, escrow_id: str) -> Escrow | None:
        return await self.manager.get_escrow(escrow_id)

    async def get_events(self, escrow_id: str) -> list[EscrowEvent]:
        return await self.manager.get_events(escrow_id)

    async def get_status(self, escrow_id: str) -> dict[str, Any]:
        return await self.manager.get_status(escrow_id)

    async def execute_release(self, params: ReleaseParams) -> ReleaseResult:
        return await self.manager.execute_release(params)

    async def refund_escrow(self, escrow_id: str) -> RefundResult:
        return await self.manager.refund_escrow(escrow_id)

    # --- Proofs ---

    async def generate_proof(
        self,
        escrow_id: str,
        condition_data: WitnessData | Mapping[str, Any] | None,
        conditions: Sequence[Condition] | None = None,
    ) -> Attestation:
        """Generate an attestation; defaults ``conditions`` to the escrow's own when known."""
        if conditions is None:
            conditions = await self._escrow_conditions(escrow_id)
        return await self.proofs.generate_proof(escrow_id, condition_data, conditions)

    async def batch_generate_proofs(self, requests: Sequence[ProofRequest]) -> list[Attestation]:
        resolved = [
            replace(r, conditions=await self._escrow_conditions(r.escrow_id))
            if r.conditions is None
            else r
            for r in requests
        ]
        return await self.proofs.batch_generate_proofs(resolved)

    async def verify_proof(self, attestation: Attestation) -> VerificationResult:
        return await self.proofs.verify_proof(attestation)

    async def execute_with_proof(
        self, attestation: Attestation, escrow_id: str | None = None
    ) -> ReleaseResult:
        """Verify ``attestation`` and release the escrow it is bound to.

        Raises:
            InvalidProofError: If verification fails (nothing is released).
        """
        verification = await self.proofs.verify_proof(attestation)
        if not verification.valid:
            raise InvalidProofError(
                verification.error or "Invalid proof",
                escrow_id=escrow_id or attestation.escrow_id,
            )
        return await self.manager.execute_release(
            ReleaseParams(escrow_id=escrow_id or attestation.escrow_id, proof=attestation)
        )

    async def _escrow_conditions(self, escrow_id: str) -> tuple[Condition, ...] | None:
        escrow = await self.manager.get_escrow(escrow_id) if escrow_id else None
        return escrow.conditions if escrow is not None else None

    # --- Actions ---

    async def trigger_action(
        self,
        action: ActionDescriptor,
        escrow_id: str,
        attestation: Attestation | None = None,
    ) -> ActionResult:
        return await self.actions.trigger_action(action, escrow_id, attestation)

    async def get_action_status(self, action_ref: str) -> ActionResult | None:
        return await self.actions.get_action_status(action_ref)


def build_client(
    settings: Settings | None = None,
    store: EscrowStore | None = None,
    ledger: LedgerClient | None = None,
    verifier: CryptographicVerifier | None = None,
    receivers: Mapping[str, RemoteReceiver] | None = None,
    id_factory: Callable[[], str] = generate_escrow_id,
    clock: Callable[[], datetime] = utc_now,
) -> BitLogic:
    """Wire a BitLogic facade from settings plus explicit overrides."""
    settings = settings or get_settings()

    if store is None:
        if settings.storage_backend == "sql":
            store = SqlEscrowStore.from_url(settings.database_url, echo=settings.db_echo_sql)
        else:
            store = InMemoryEscrowStore()

    if ledger is None:
        if not settings.simulate_ledger:
            raise BitLogicError(
                "No ledger client supplied and simulate_ledger is disabled",
                code="LEDGER_NOT_CONFIGURED",
            )
        ledger = SimulatedLedger()

    def clock_ms() -> int:
        return int(clock().timestamp() * 1000)

    proof_service = ProofService(
        verifier=verifier,
        circuit_version=settings.proof_circuit_version,
        cost_estimate=settings.verification_cost_estimate,
        clock_ms=clock_ms,
    )
    action_trigger = ActionTrigger(
        receivers=receivers,
        endpoints=settings.environment_endpoints,
        confirmation_delay_ms=settings.action_confirmation_delay_ms,
        clock_ms=clock_ms,
    )
    manager = EscrowManager(
        store=store,
        ledger=ledger,
        proof_service=proof_service,
        action_trigger=action_trigger,
        id_factory=id_factory,
        clock=clock,
        default_timeout=settings.default_timeout_seconds,
        amount_decimals=settings.amount_decimals,
    )
    logger.info(
        "client.built",
        network=settings.network,
        store=type(store).__name__,
        environments=action_trigger.environments,
    )
    return BitLogic(manager, proof_service, action_trigger, store)
