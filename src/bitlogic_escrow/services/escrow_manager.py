"""Escrow Manager: the escrow lifecycle state machine.

This is the application layer that coordinates between:
    - Domain state machine (transition guard)
    - Condition model (structural validation at creation)
    - Proof service (attestation verification before release)
    - Ledger collaborator (lock / spend / refund)
    - Action trigger (best-effort cross-environment side effect)
    - Escrow store (records, claims and the audit trail)

Release and refund are serialised per escrow without holding a lock across
I/O: the caller first claims the record (atomic, only on an ``active``
record with no claim), then awaits the ledger, then swaps the status to its
terminal value under that claim. A second caller finds the claim, or the
terminal status, and gets InvalidStateError. A ledger failure releases the
claim and leaves the escrow ``active`` so the caller may retry.
"""

from __future__ import annotations

import secrets
from dataclasses import replace
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from statemachine.exceptions import TransitionNotAllowed

from bitlogic_escrow.config import get_settings
from bitlogic_escrow.domain.conditions import (
    condition_fingerprint,
    derive_circuit_id,
    validate_condition,
)
from bitlogic_escrow.domain.enums import ActionStatus, EscrowStatus, EventType
from bitlogic_escrow.domain.exceptions import (
    BitLogicError,
    EscrowNotFoundError,
    InvalidEscrowParamsError,
    InvalidProofError,
    InvalidStateError,
    LedgerError,
    TimeoutNotElapsedError,
)
from bitlogic_escrow.domain.models import (
    Escrow,
    EscrowEvent,
    RefundResult,
    ReleaseResult,
)
from bitlogic_escrow.domain.state_machine import EscrowStateMachine
from bitlogic_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from bitlogic_escrow.domain.models import EscrowParams, ReleaseParams
    from bitlogic_escrow.domain.protocols import EscrowStore, LedgerClient
    from bitlogic_escrow.services.action_trigger import ActionTrigger
    from bitlogic_escrow.services.proof_service import ProofService

logger = get_logger(__name__)


def generate_escrow_id() -> str:
    """Random 128-bit escrow identifier."""
    return f"escrow_{secrets.token_hex(16)}"


def utc_now() -> datetime:
    return datetime.now(UTC)


class EscrowManager:
    """Owns escrow records end-to-end: creation, proof-gated release, timeout refund."""

    def __init__(
        self,
        store: EscrowStore,
        ledger: LedgerClient,
        proof_service: ProofService,
        action_trigger: ActionTrigger,
        id_factory: Callable[[], str] = generate_escrow_id,
        clock: Callable[[], datetime] = utc_now,
        default_timeout: int | None = None,
        amount_decimals: int | None = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self._ledger = ledger
        self._proofs = proof_service
        self._trigger = action_trigger
        self._id_factory = id_factory
        self._clock = clock
        self._default_timeout = (
            default_timeout if default_timeout is not None else settings.default_timeout_seconds
        )
        self._unit = Decimal(10) ** (
            amount_decimals if amount_decimals is not None else settings.amount_decimals
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_escrow(self, params: EscrowParams) -> Escrow:
        """Validate, lock funds and persist a new escrow in ``active`` status.

        Raises:
            InvalidEscrowParamsError: On any validation failure (nothing stored).
            LedgerError: If the ledger could not lock the funds (nothing stored).
        """
        amount_units = self._validate_params(params)
        timeout = params.timeout if params.timeout is not None else self._default_timeout

        escrow_id = self._id_factory()
        script_hash = condition_fingerprint(params.conditions)
        sm = EscrowStateMachine(EscrowStatus.PENDING.value)

        try:
            lock = await self._ledger.lock_funds(amount_units, params.beneficiary, script_hash)
        except BitLogicError:
            raise
        except Exception as err:
            logger.exception("escrow.lock_failed", escrow_id=escrow_id)
            raise LedgerError(f"Failed to lock funds: {err}", operation="lock") from err

        sm.lock_confirmed()
        escrow = Escrow(
            id=escrow_id,
            amount=params.amount,
            amount_units=amount_units,
            beneficiary=params.beneficiary,
            conditions=params.conditions,
            timeout=timeout,
            lock=lock,
            script_hash=script_hash,
            circuit_id=derive_circuit_id(params.conditions),
            created_at=self._clock(),
            status=EscrowStatus(sm.status),
            action=params.action,
        )
        await self._store.put(escrow)
        await self._record(escrow, EventType.ESCROW_CREATED, None, {"lock_txid": lock.txid})

        logger.info(
            "escrow.created",
            escrow_id=escrow_id,
            amount=str(params.amount),
            beneficiary=params.beneficiary,
            conditions=len(params.conditions),
        )
        return escrow

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_escrow(self, escrow_id: str) -> Escrow | None:
        return await self._store.get(escrow_id)

    async def get_events(self, escrow_id: str) -> list[EscrowEvent]:
        await self._get_escrow_or_raise(escrow_id)
        return await self._store.get_events(escrow_id)

    async def get_status(self, escrow_id: str) -> dict[str, Any]:
        """Current status with the lifecycle events that may still fire."""
        escrow = await self._get_escrow_or_raise(escrow_id)
        sm = EscrowStateMachine(current_status=escrow.status.value)
        return {
            "escrow_id": escrow.id,
            "status": escrow.status.value,
            "allowed_events": sm.get_allowed_events(),
        }

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    async def execute_release(self, params: ReleaseParams) -> ReleaseResult:
        """Release the escrowed funds against a verified attestation.

        Raises:
            EscrowNotFoundError: Unknown escrow id.
            InvalidStateError: Escrow not active, or a release/refund in flight.
            InvalidProofError: Attestation rejected; status stays active.
            LedgerError: Spend failed; status stays active.
        """
        escrow = await self._get_escrow_or_raise(params.escrow_id)
        self._ensure_transition(escrow, "release")
        await self._verify_release_proof(escrow, params)

        token = await self._claim_or_raise(escrow, "release")
        try:
            release_ref = await self._ledger.spend(escrow.lock, params.proof)
        except Exception as err:
            await self._store.release_claim(escrow.id, token)
            logger.exception("escrow.spend_failed", escrow_id=escrow.id)
            if isinstance(err, BitLogicError):
                raise
            raise LedgerError(f"Failed to spend escrow funds: {err}", operation="spend") from err

        released = await self._store.compare_and_swap_status(
            escrow.id,
            EscrowStatus.ACTIVE,
            EscrowStatus.RELEASED,
            claim_token=token,
            release_ref=release_ref,
            closed_at=self._clock(),
        )
        if released is None:
            raise InvalidStateError(escrow.id, escrow.status.value, "release")
        await self._record(
            released, EventType.ESCROW_RELEASED, EscrowStatus.ACTIVE, {"release_ref": release_ref}
        )
        logger.info("escrow.released", escrow_id=escrow.id, release_ref=release_ref)

        if released.action is None:
            return ReleaseResult(release_ref=release_ref)

        # Best effort: a failed action never undoes the release.
        action_result = await self._trigger.trigger_action(
            released.action, released.id, params.proof
        )
        await self._store.put(replace(released, action_result=action_result))
        confirmed = action_result.status is not ActionStatus.FAILED
        await self._record(
            released,
            EventType.ACTION_CONFIRMED if confirmed else EventType.ACTION_FAILED,
            EscrowStatus.RELEASED,
            action_result.to_dict(),
        )
        return ReleaseResult(
            release_ref=release_ref,
            external_action_ref=action_result.tx_hash or None,
            minted_resource_id=action_result.token_id,
            action_result=action_result,
        )

    # ------------------------------------------------------------------
    # Refund
    # ------------------------------------------------------------------

    async def refund_escrow(self, escrow_id: str) -> RefundResult:
        """Return the funds once the escrow timeout has elapsed.

        Raises:
            EscrowNotFoundError: Unknown escrow id.
            InvalidStateError: Escrow not active, or a release/refund in flight.
            TimeoutNotElapsedError: Called before created_at + timeout.
            LedgerError: Refund failed; status stays active.
        """
        escrow = await self._get_escrow_or_raise(escrow_id)
        self._ensure_transition(escrow, "refund")

        elapsed = (self._clock() - escrow.created_at).total_seconds()
        if elapsed < escrow.timeout:
            raise TimeoutNotElapsedError(escrow.id, escrow.timeout - elapsed)

        token = await self._claim_or_raise(escrow, "refund")
        try:
            refund_ref = await self._ledger.refund(escrow.lock)
        except Exception as err:
            await self._store.release_claim(escrow.id, token)
            logger.exception("escrow.refund_failed", escrow_id=escrow.id)
            if isinstance(err, BitLogicError):
                raise
            raise LedgerError(f"Failed to refund escrow funds: {err}", operation="refund") from err

        refunded = await self._store.compare_and_swap_status(
            escrow.id,
            EscrowStatus.ACTIVE,
            EscrowStatus.REFUNDED,
            claim_token=token,
            refund_ref=refund_ref,
            closed_at=self._clock(),
        )
        if refunded is None:
            raise InvalidStateError(escrow.id, escrow.status.value, "refund")
        await self._record(
            refunded, EventType.ESCROW_REFUNDED, EscrowStatus.ACTIVE, {"refund_ref": refund_ref}
        )
        logger.info("escrow.refunded", escrow_id=escrow.id, refund_ref=refund_ref)
        return RefundResult(escrow_id=escrow.id, refund_ref=refund_ref)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _validate_params(self, params: EscrowParams) -> int:
        """Check creation params and return the amount in minimal units."""
        if params.amount <= 0:
            raise InvalidEscrowParamsError("Escrow amount must be positive", field="amount")
        units = params.amount * self._unit
        if units != units.to_integral_value():
            raise InvalidEscrowParamsError(
                "Escrow amount is finer than the minimal unit", field="amount"
            )
        if not params.beneficiary or not params.beneficiary.strip():
            raise InvalidEscrowParamsError(
                "Beneficiary address is required", field="beneficiary"
            )
        if not params.conditions:
            raise InvalidEscrowParamsError(
                "At least one condition is required", field="conditions"
            )
        for index, condition in enumerate(params.conditions):
            if not validate_condition(condition):
                raise InvalidEscrowParamsError(
                    f"Condition {index} ({type(condition).__name__}) is malformed",
                    field="conditions",
                )
        if params.timeout is not None and params.timeout <= 0:
            raise InvalidEscrowParamsError("Timeout must be positive", field="timeout")
        action = params.action
        if action is not None and not (action.environment and action.contract and action.method):
            raise InvalidEscrowParamsError(
                "Action requires environment, contract and method", field="action"
            )
        return int(units)

    async def _verify_release_proof(self, escrow: Escrow, params: ReleaseParams) -> None:
        attestation = params.proof
        reason: str | None = None

        if attestation.escrow_id != escrow.id:
            reason = "Attestation was generated for a different escrow"
        elif attestation.circuit_id != escrow.circuit_id:
            reason = (
                f"Attestation circuit {attestation.circuit_id} does not match "
                f"escrow circuit {escrow.circuit_id}"
            )
        elif (
            params.public_inputs is not None
            and tuple(params.public_inputs) != attestation.public_inputs
        ):
            reason = "Public inputs do not match the attestation"
        else:
            verification = await self._proofs.verify_proof(attestation)
            if not verification.valid:
                reason = verification.error or "Invalid proof"

        if reason is not None:
            await self._record(
                escrow, EventType.PROOF_REJECTED, EscrowStatus.ACTIVE, {"reason": reason}
            )
            logger.info("escrow.proof_rejected", escrow_id=escrow.id, reason=reason)
            raise InvalidProofError(reason, escrow_id=escrow.id)

    async def _claim_or_raise(self, escrow: Escrow, operation: str) -> str:
        token = secrets.token_hex(16)
        if not await self._store.claim(escrow.id, token):
            current = await self._store.get(escrow.id)
            status = current.status.value if current else escrow.status.value
            logger.info("escrow.claim_lost", escrow_id=escrow.id, operation=operation)
            raise InvalidStateError(escrow.id, status, operation)
        return token

    async def _get_escrow_or_raise(self, escrow_id: str) -> Escrow:
        escrow = await self._store.get(escrow_id)
        if escrow is None:
            raise EscrowNotFoundError(escrow_id)
        return escrow

    def _ensure_transition(self, escrow: Escrow, event_name: str) -> None:
        """Validate a transition against the state machine without applying it.

        Raises InvalidStateError if the transition is illegal.
        """
        sm = EscrowStateMachine(current_status=escrow.status.value)
        try:
            sm.fire(event_name)
        except TransitionNotAllowed as err:
            raise InvalidStateError(escrow.id, escrow.status.value, event_name) from err

    async def _record(
        self,
        escrow: Escrow,
        event_type: EventType,
        old_status: EscrowStatus | None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        await self._store.record_event(
            EscrowEvent(
                escrow_id=escrow.id,
                event_type=event_type,
                old_status=old_status,
                new_status=escrow.status,
                created_at=self._clock(),
                metadata=metadata or {},
            )
        )
