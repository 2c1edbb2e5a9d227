"""Action Trigger: dispatches release actions to remote execution environments.

Dispatch flow:
    1. Register a pending-action record keyed by ``{escrow_id}_{dispatch_ms}``.
    2. Resolve the action's environment to a configured receiver.
    3. Submit the call and wait for confirmation.
    4. Drop the pending record once the dispatch reaches a terminal outcome.

Failures never propagate: they come back as an ActionResult with
``status=failed`` and the error code of the underlying failure, so the escrow
manager can report them without rolling back a confirmed release.

The pending registry is advisory bookkeeping only; it is not a dedup lock.
Once an action completes, get_action_status no longer knows about it.
"""

from __future__ import annotations

import asyncio
import random
import secrets
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from bitlogic_escrow.config import get_settings
from bitlogic_escrow.domain.enums import ActionStatus
from bitlogic_escrow.domain.exceptions import (
    ActionDispatchFailedError,
    BitLogicError,
    UnsupportedEnvironmentError,
)
from bitlogic_escrow.domain.models import ActionResult
from bitlogic_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from bitlogic_escrow.domain.models import ActionDescriptor, Attestation
    from bitlogic_escrow.domain.protocols import RemoteReceiver

logger = get_logger(__name__)

MINTING_METHODS = frozenset({"mint", "mintNFT"})


@dataclass(frozen=True)
class PendingAction:
    """An action that has been dispatched but not yet settled."""

    action_ref: str
    source_environment: str
    target_environment: str
    escrow_id: str
    action: ActionDescriptor
    attestation_ref: str
    dispatched_at: int


class SimulatedReceiver:
    """Receiver that fakes execution on an EVM-style environment.

    Generates a random transaction hash and block number after a short
    confirmation delay, and mints a token id for minting methods.
    """

    def __init__(self, endpoint: str, confirmation_delay_ms: int | None = None) -> None:
        self.endpoint = endpoint
        if confirmation_delay_ms is None:
            confirmation_delay_ms = get_settings().action_confirmation_delay_ms
        self._delay = confirmation_delay_ms / 1000

    async def submit(
        self,
        contract: str,
        method: str,
        params: Mapping[str, Any],
        attestation_ref: str,
    ) -> ActionResult:
        await asyncio.sleep(self._delay)
        token_id = random.randrange(10000) if method in MINTING_METHODS else None
        return ActionResult(
            tx_hash="0x" + secrets.token_hex(32),
            block_number=18_000_000 + random.randrange(1_000_000),
            status=ActionStatus.CONFIRMED,
            token_id=token_id,
        )


class ActionTrigger:
    """Submits action descriptors to per-environment receivers."""

    def __init__(
        self,
        receivers: Mapping[str, RemoteReceiver] | None = None,
        endpoints: Mapping[str, str] | None = None,
        source_environment: str = "bitcoin",
        confirmation_delay_ms: int | None = None,
        clock_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ) -> None:
        """Initialize with explicit receivers, or simulated ones for each endpoint.

        Args:
            receivers: Receiver per environment identifier. Takes precedence.
            endpoints: Environment -> endpoint URL; defaults to the configured
                       environment endpoints. Only used when receivers is None.
            confirmation_delay_ms: Delay of the simulated receivers built from
                       endpoints; defaults to the configured delay.
        """
        if receivers is None:
            if endpoints is None:
                endpoints = get_settings().environment_endpoints
            receivers = {
                env: SimulatedReceiver(url, confirmation_delay_ms)
                for env, url in endpoints.items()
                if url
            }
        self._receivers: dict[str, RemoteReceiver] = dict(receivers)
        self._source_environment = source_environment
        self._clock_ms = clock_ms
        self._pending: dict[str, PendingAction] = {}

    @property
    def environments(self) -> list[str]:
        return sorted(self._receivers)

    async def trigger_action(
        self,
        action: ActionDescriptor,
        escrow_id: str,
        attestation: Attestation | None = None,
    ) -> ActionResult:
        """Dispatch ``action`` for ``escrow_id`` and wait for the outcome."""
        dispatched_at = self._clock_ms()
        action_ref = f"{escrow_id}_{dispatched_at}"
        attestation_ref = attestation.proof if attestation is not None else ""
        self._pending[action_ref] = PendingAction(
            action_ref=action_ref,
            source_environment=self._source_environment,
            target_environment=action.environment,
            escrow_id=escrow_id,
            action=action,
            attestation_ref=attestation_ref,
            dispatched_at=dispatched_at,
        )

        logger.info(
            "action.dispatching",
            escrow_id=escrow_id,
            action_ref=action_ref,
            environment=action.environment,
            contract=action.contract,
            method=action.method,
        )

        try:
            receiver = self._resolve(action.environment)
            result = await receiver.submit(
                action.contract, action.method, action.params, attestation_ref
            )
        except BitLogicError as exc:
            logger.warning(
                "action.failed", escrow_id=escrow_id, code=exc.code, error=exc.message
            )
            return ActionResult(
                tx_hash="", status=ActionStatus.FAILED, error=exc.message, error_code=exc.code
            )
        except Exception as exc:
            logger.exception("action.dispatch_error", escrow_id=escrow_id)
            failure = ActionDispatchFailedError(str(exc))
            return ActionResult(
                tx_hash="",
                status=ActionStatus.FAILED,
                error=failure.message,
                error_code=failure.code,
            )
        finally:
            self._pending.pop(action_ref, None)

        logger.info(
            "action.completed",
            escrow_id=escrow_id,
            tx_hash=result.tx_hash,
            status=result.status.value,
            token_id=result.token_id,
        )
        return result

    async def get_action_status(self, action_ref: str) -> ActionResult | None:
        """Status of an in-flight action; None once it has settled."""
        if action_ref not in self._pending:
            return None
        return ActionResult(tx_hash=f"pending_{action_ref}", status=ActionStatus.PENDING)

    def pending_actions(self) -> list[PendingAction]:
        return list(self._pending.values())

    def _resolve(self, environment: str) -> RemoteReceiver:
        receiver = self._receivers.get(environment)
        if receiver is None:
            raise UnsupportedEnvironmentError(environment)
        return receiver
