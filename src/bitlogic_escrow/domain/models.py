"""Domain records for escrows, attestations and cross-environment actions.

All records are frozen dataclasses. The escrow manager produces new snapshots
with ``dataclasses.replace`` instead of mutating, so a reader always sees
either the pre- or the post-transition record.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any

from bitlogic_escrow.domain.conditions import (
    Condition,
    condition_from_dict,
    condition_to_dict,
    to_decimal,
    to_utc_datetime,
)
from bitlogic_escrow.domain.enums import (
    ActionStatus,
    EscrowStatus,
    EventType,
    ReleaseStatus,
)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


# ---------------------------------------------------------------------------
# Cross-environment actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class ActionDescriptor:
    """A side effect to trigger on a remote execution environment upon release.

    Attributes:
        environment: Target environment identifier (e.g. "ethereum", "base").
        contract: Receiver contract address or identifier.
        method: Method / selector name.
        params: Named call parameters.
        gas_limit: Optional resource-limit hint.
    """

    environment: str
    contract: str
    method: str
    params: Mapping[str, Any] = field(default_factory=dict)
    gas_limit: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "environment": self.environment,
            "contract": self.contract,
            "method": self.method,
            "params": dict(self.params),
            "gas_limit": self.gas_limit,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ActionDescriptor:
        return cls(
            environment=data["environment"],
            contract=data["contract"],
            method=data["method"],
            params=data.get("params") or {},
            gas_limit=data.get("gas_limit"),
        )


@dataclass(frozen=True, kw_only=True)
class ActionResult:
    """Outcome of dispatching an action to a remote environment."""

    tx_hash: str
    status: ActionStatus
    block_number: int | None = None
    token_id: int | None = None
    error: str | None = None
    error_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "status": self.status.value,
            "block_number": self.block_number,
            "token_id": self.token_id,
            "error": self.error,
            "error_code": self.error_code,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ActionResult:
        return cls(
            tx_hash=data.get("tx_hash", ""),
            status=ActionStatus(data["status"]),
            block_number=data.get("block_number"),
            token_id=data.get("token_id"),
            error=data.get("error"),
            error_code=data.get("error_code"),
        )


# --- Action templates ---


def mint_nft(
    environment: str,
    contract: str,
    token_id: int,
    recipient: str | None = None,
) -> ActionDescriptor:
    return ActionDescriptor(
        environment=environment,
        contract=contract,
        method="mintNFT",
        params={"tokenId": token_id, "recipient": recipient or ZERO_ADDRESS},
    )


def release_tokens(environment: str, contract: str, amount: str, recipient: str) -> ActionDescriptor:
    return ActionDescriptor(
        environment=environment,
        contract=contract,
        method="release",
        params={"amount": amount, "recipient": recipient},
    )


def execute_proposal(environment: str, governance_contract: str, proposal_id: int) -> ActionDescriptor:
    return ActionDescriptor(
        environment=environment,
        contract=governance_contract,
        method="executeProposal",
        params={"proposalId": proposal_id},
    )


def contract_call(
    environment: str,
    contract: str,
    method: str,
    params: Mapping[str, Any] | None = None,
) -> ActionDescriptor:
    return ActionDescriptor(
        environment=environment, contract=contract, method=method, params=params or {}
    )


# ---------------------------------------------------------------------------
# Proofs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class Attestation:
    """A proof plus the public commitments it attests to.

    ``verified`` is self-reported by the generator and purely advisory; trust
    comes only from ProofService.verify_proof.
    """

    proof: str
    public_inputs: tuple[str, ...]
    circuit_id: str
    timestamp: int
    escrow_id: str
    verified: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "public_inputs", tuple(self.public_inputs))

    def to_dict(self) -> dict[str, Any]:
        return {
            "proof": self.proof,
            "public_inputs": list(self.public_inputs),
            "circuit_id": self.circuit_id,
            "timestamp": self.timestamp,
            "escrow_id": self.escrow_id,
            "verified": self.verified,
        }


@dataclass(frozen=True)
class VerificationResult:
    """Output of proof verification.

    Attributes:
        valid: Whether the attestation passed verification.
        error: Reason for rejection, if any.
        cost_estimate: Estimated on-chain verification cost (gas units).
    """

    valid: bool
    error: str | None = None
    cost_estimate: int | None = None


@dataclass(frozen=True, kw_only=True)
class ProofRequest:
    escrow_id: str
    condition_data: Any
    conditions: Sequence[Condition] | None = None


# ---------------------------------------------------------------------------
# Ledger references
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class LockedFunds:
    """UTXO-style reference to the locked funds."""

    txid: str
    vout: int
    value: int
    script_pubkey: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "txid": self.txid,
            "vout": self.vout,
            "value": self.value,
            "script_pubkey": self.script_pubkey,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LockedFunds:
        return cls(
            txid=data["txid"],
            vout=int(data["vout"]),
            value=int(data["value"]),
            script_pubkey=data["script_pubkey"],
        )


# ---------------------------------------------------------------------------
# Escrow
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class EscrowParams:
    """Creation parameters. ``timeout`` is in seconds; None means the configured default."""

    amount: Decimal
    beneficiary: str
    conditions: tuple[Condition, ...]
    timeout: int | None = None
    action: ActionDescriptor | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "conditions", tuple(self.conditions or ()))


@dataclass(frozen=True, kw_only=True)
class Escrow:
    """A record binding locked funds to a beneficiary and a set of release conditions."""

    id: str
    amount: Decimal
    amount_units: int
    beneficiary: str
    conditions: tuple[Condition, ...]
    timeout: int
    lock: LockedFunds
    script_hash: str
    circuit_id: str
    created_at: datetime
    status: EscrowStatus
    action: ActionDescriptor | None = None
    release_ref: str | None = None
    refund_ref: str | None = None
    closed_at: datetime | None = None
    action_result: ActionResult | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "amount": str(self.amount),
            "amount_units": self.amount_units,
            "beneficiary": self.beneficiary,
            "conditions": [condition_to_dict(c) for c in self.conditions],
            "timeout": self.timeout,
            "lock": self.lock.to_dict(),
            "script_hash": self.script_hash,
            "circuit_id": self.circuit_id,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
            "action": self.action.to_dict() if self.action else None,
            "release_ref": self.release_ref,
            "refund_ref": self.refund_ref,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "action_result": self.action_result.to_dict() if self.action_result else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Escrow:
        return cls(
            id=data["id"],
            amount=to_decimal(data["amount"]),
            amount_units=int(data["amount_units"]),
            beneficiary=data["beneficiary"],
            conditions=tuple(condition_from_dict(c) for c in data["conditions"]),
            timeout=int(data["timeout"]),
            lock=LockedFunds.from_dict(data["lock"]),
            script_hash=data["script_hash"],
            circuit_id=data["circuit_id"],
            created_at=to_utc_datetime(data["created_at"]),
            status=EscrowStatus(data["status"]),
            action=ActionDescriptor.from_dict(data["action"]) if data.get("action") else None,
            release_ref=data.get("release_ref"),
            refund_ref=data.get("refund_ref"),
            closed_at=to_utc_datetime(data["closed_at"]) if data.get("closed_at") else None,
            action_result=(
                ActionResult.from_dict(data["action_result"])
                if data.get("action_result")
                else None
            ),
        )


@dataclass(frozen=True, kw_only=True)
class ReleaseParams:
    """Release request. ``public_inputs``, when given, must match the attestation's."""

    escrow_id: str
    proof: Attestation
    public_inputs: tuple[str, ...] | None = None


@dataclass(frozen=True, kw_only=True)
class ReleaseResult:
    release_ref: str
    status: ReleaseStatus = ReleaseStatus.SUCCESS
    external_action_ref: str | None = None
    minted_resource_id: int | None = None
    action_result: ActionResult | None = None


@dataclass(frozen=True, kw_only=True)
class RefundResult:
    escrow_id: str
    refund_ref: str


@dataclass(frozen=True, kw_only=True)
class EscrowEvent:
    """One entry of an escrow's append-only audit trail."""

    escrow_id: str
    event_type: EventType
    old_status: EscrowStatus | None
    new_status: EscrowStatus
    created_at: datetime
    metadata: Mapping[str, Any] = field(default_factory=dict)
