"""Release condition model.

Each condition kind is its own frozen dataclass, so validation and evaluation
dispatch over a closed set of variants instead of probing loosely-typed maps.
Witness data is equally explicit: ``WitnessData`` lists the optional field
each variant may consult.

Two pure functions form the contract:
    validate_condition(condition) -> bool   structural well-formedness
    evaluate_condition(condition, witness) -> bool   cheap local pre-check

Neither performs I/O. Oracle values, signature sets and vote outcomes are
gathered by callers and passed in as witness data. The authoritative check is
always the attestation verified before release.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, ClassVar

from bitlogic_escrow.domain.enums import ConditionType, HashAlgorithm, OracleSource
from bitlogic_escrow.domain.exceptions import InvalidRequestError

GENERIC_CIRCUIT_ID = "generic_escrow_v1"


def to_utc_datetime(value: datetime | str | int | float) -> datetime:
    """Normalise an ISO string, epoch seconds or datetime to an aware UTC datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    try:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return datetime.fromtimestamp(value, tz=UTC)
        if isinstance(value, str):
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    except (ValueError, OverflowError, OSError) as err:
        raise InvalidRequestError(f"Cannot interpret {value!r} as a timestamp") from err
    raise InvalidRequestError(f"Cannot interpret {value!r} as a timestamp")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce an amount to Decimal through its string form (never via float math)."""
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as err:
        raise InvalidRequestError(f"Not a valid amount: {value!r}") from err


def _frozen_mapping(value: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(value or {}))


# ---------------------------------------------------------------------------
# Condition variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class TimeLock:
    """Unlocks once the caller-supplied current time reaches ``unlock_after``.

    ``min_delay`` (e.g. "48h") describes the underlying lock script and is
    not re-checked here.
    """

    type: ClassVar[ConditionType] = ConditionType.TIME_LOCK

    unlock_after: datetime
    min_delay: str | None = None
    id: str | None = None
    description: str | None = None


@dataclass(frozen=True, kw_only=True)
class Oracle:
    """Gated on an external data feed, e.g. ``BTC_PRICE > 100000``."""

    type: ClassVar[ConditionType] = ConditionType.ORACLE

    source: str
    expression: str
    feed_id: str | None = None
    threshold: Decimal | None = None
    id: str | None = None
    description: str | None = None


@dataclass(frozen=True, kw_only=True)
class MultiSig:
    """M-of-N signature quorum."""

    type: ClassVar[ConditionType] = ConditionType.MULTI_SIG

    required: int
    signers: tuple[str, ...]
    collected_signatures: tuple[str, ...] = ()
    id: str | None = None
    description: str | None = None


@dataclass(frozen=True, kw_only=True)
class HashLock:
    """Unlocked by revealing the preimage of ``hash``."""

    type: ClassVar[ConditionType] = ConditionType.HASH_LOCK

    algorithm: str
    hash: str
    preimage: str | None = None
    id: str | None = None
    description: str | None = None


@dataclass(frozen=True, kw_only=True)
class GovernanceVote:
    """Passes when a governance proposal is approved (threshold like "66%")."""

    type: ClassVar[ConditionType] = ConditionType.GOVERNANCE_VOTE

    proposal_id: str
    threshold: str
    governance_contract: str | None = None
    id: str | None = None
    description: str | None = None


@dataclass(frozen=True, kw_only=True)
class Custom:
    """An arbitrary circuit with caller-defined inputs."""

    type: ClassVar[ConditionType] = ConditionType.CUSTOM

    circuit_id: str
    inputs: Mapping[str, Any] = field(default_factory=dict)
    verifier_address: str | None = None
    id: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "inputs", _frozen_mapping(self.inputs))


Condition = TimeLock | Oracle | MultiSig | HashLock | GovernanceVote | Custom

CONDITION_CLASSES: dict[ConditionType, type] = {
    ConditionType.TIME_LOCK: TimeLock,
    ConditionType.ORACLE: Oracle,
    ConditionType.MULTI_SIG: MultiSig,
    ConditionType.HASH_LOCK: HashLock,
    ConditionType.GOVERNANCE_VOTE: GovernanceVote,
    ConditionType.CUSTOM: Custom,
}


# ---------------------------------------------------------------------------
# Witness data
# ---------------------------------------------------------------------------

# camelCase spellings accepted from JSON callers
_WITNESS_ALIASES = {
    "currentTime": "current_time",
    "oracleValue": "oracle_value",
    "voteApproved": "vote_approved",
    "proofVerified": "proof_verified",
    "escrowId": "escrow_id",
}


@dataclass(frozen=True, kw_only=True)
class WitnessData:
    """Caller-supplied facts that conditions are evaluated against.

    Attributes:
        current_time: Wall-clock time for TimeLock.
        oracle_value: Value fetched from the oracle feed.
        signatures: Signatures collected for MultiSig.
        preimage: Revealed preimage for HashLock.
        vote_approved: Governance outcome.
        proof_verified: Prior verification result for Custom circuits.
        timestamp, escrow_id, beneficiary, amount: Public commitments that
            end up, in this order, in an attestation's public inputs.
        extra: Any further circuit-specific witness values.
    """

    current_time: datetime | None = None
    oracle_value: Any = None
    signatures: tuple[str, ...] = ()
    preimage: str | None = None
    vote_approved: bool | None = None
    proof_verified: bool | None = None
    timestamp: int | None = None
    escrow_id: str | None = None
    beneficiary: str | None = None
    amount: Decimal | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", _frozen_mapping(self.extra))
        object.__setattr__(self, "signatures", tuple(self.signatures))
        if self.current_time is not None:
            object.__setattr__(self, "current_time", to_utc_datetime(self.current_time))
        if self.amount is not None:
            object.__setattr__(self, "amount", to_decimal(self.amount))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> WitnessData:
        """Build witness data from a loose mapping; unknown keys go to ``extra``."""
        known = {name for name in cls.__dataclass_fields__ if name != "extra"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            name = _WITNESS_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
            else:
                extra[key] = value
        if "signatures" in kwargs:
            kwargs["signatures"] = tuple(kwargs["signatures"] or ())
        return cls(**kwargs, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe dict of the fields that are actually present."""
        out: dict[str, Any] = dict(self.extra)
        if self.current_time is not None:
            out["current_time"] = self.current_time.isoformat()
        if self.oracle_value is not None:
            out["oracle_value"] = str(self.oracle_value)
        if self.signatures:
            out["signatures"] = list(self.signatures)
        for name in ("preimage", "vote_approved", "proof_verified", "timestamp",
                     "escrow_id", "beneficiary"):
            value = getattr(self, name)
            if value is not None:
                out[name] = value
        if self.amount is not None:
            out["amount"] = str(self.amount)
        return out

    def is_empty(self) -> bool:
        return not self.to_dict()

    def public_inputs(self) -> list[str]:
        """Public commitments in order: timestamp, escrow id, beneficiary, amount."""
        inputs: list[str] = []
        if self.timestamp is not None:
            inputs.append(str(self.timestamp))
        if self.escrow_id:
            inputs.append(self.escrow_id)
        if self.beneficiary:
            inputs.append(self.beneficiary)
        if self.amount is not None:
            inputs.append(str(self.amount))
        return inputs


def coerce_witness(data: WitnessData | Mapping[str, Any] | None) -> WitnessData:
    if data is None:
        return WitnessData()
    if isinstance(data, WitnessData):
        return data
    if isinstance(data, Mapping):
        return WitnessData.from_mapping(data)
    raise InvalidRequestError("Witness data must be a mapping or WitnessData")


# ---------------------------------------------------------------------------
# Validation & evaluation
# ---------------------------------------------------------------------------


def _present(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _aware_datetime(value: Any) -> bool:
    return isinstance(value, datetime) and value.utcoffset() is not None


def validate_condition(condition: Any) -> bool:
    """Structural well-formedness check. Unknown or malformed input is rejected."""
    if isinstance(condition, TimeLock):
        return _aware_datetime(condition.unlock_after)
    if isinstance(condition, Oracle):
        return (
            condition.source in {s.value for s in OracleSource}
            and _present(condition.expression)
        )
    if isinstance(condition, MultiSig):
        required = condition.required
        return (
            isinstance(required, int)
            and not isinstance(required, bool)
            and required > 0
            and len(condition.signers) >= required
            and all(_present(s) for s in condition.signers)
        )
    if isinstance(condition, HashLock):
        return (
            _present(condition.hash)
            and condition.algorithm in {a.value for a in HashAlgorithm}
        )
    if isinstance(condition, GovernanceVote):
        return _present(condition.proposal_id) and _present(condition.threshold)
    if isinstance(condition, Custom):
        return _present(condition.circuit_id)
    return False


def evaluate_condition(
    condition: Condition,
    witness: WitnessData | Mapping[str, Any] | None = None,
) -> bool:
    """Local gate: does the witness data plausibly satisfy this condition?

    Oracle expressions and hash equality are enforced by the circuit, not here.
    """
    data = coerce_witness(witness)

    if isinstance(condition, TimeLock):
        if data.current_time is None or not _aware_datetime(condition.unlock_after):
            return False
        return data.current_time >= condition.unlock_after
    if isinstance(condition, Oracle):
        return data.oracle_value is not None
    if isinstance(condition, MultiSig):
        collected = set(condition.collected_signatures) | set(data.signatures)
        return len(collected) >= condition.required
    if isinstance(condition, HashLock):
        return bool(data.preimage)
    if isinstance(condition, GovernanceVote):
        return data.vote_approved is True
    if isinstance(condition, Custom):
        return data.proof_verified is True
    return False


def evaluate_all(
    conditions: Sequence[Condition],
    witness: WitnessData | Mapping[str, Any] | None = None,
) -> bool:
    data = coerce_witness(witness)
    return bool(conditions) and all(evaluate_condition(c, data) for c in conditions)


# ---------------------------------------------------------------------------
# Derivations
# ---------------------------------------------------------------------------


def derive_circuit_id(conditions: Sequence[Condition] | None) -> str:
    """Circuit identifier for a condition set; independent of condition order."""
    if not conditions:
        return GENERIC_CIRCUIT_ID
    types = "_".join(sorted(c.type.value for c in conditions))
    return f"circuit_{types.lower()}"


def condition_fingerprint(conditions: Sequence[Condition]) -> str:
    """Script hash summarising a condition set (sha256 over canonical JSON)."""
    canonical = json.dumps(
        [condition_to_dict(c) for c in conditions],
        sort_keys=True,
        separators=(",", ":"),
    )
    return "scripthash_" + hashlib.sha256(canonical.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------


def condition_to_dict(condition: Condition) -> dict[str, Any]:
    """JSON-safe representation tagged with ``type``."""
    out: dict[str, Any] = {"type": condition.type.value}
    for name in condition.__dataclass_fields__:
        value = getattr(condition, name)
        if value is None:
            continue
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = str(value)
        elif isinstance(value, tuple):
            value = list(value)
        elif isinstance(value, Mapping):
            value = dict(value)
        out[name] = value
    return out


def condition_from_dict(data: Mapping[str, Any]) -> Condition:
    """Inverse of condition_to_dict.

    Raises:
        InvalidRequestError: If the type tag is unknown or fields don't fit.
    """
    payload = dict(data)
    try:
        ctype = ConditionType(payload.pop("type"))
    except (KeyError, ValueError) as err:
        raise InvalidRequestError(f"Unknown condition type in {dict(data)!r}") from err

    if ctype is ConditionType.TIME_LOCK and "unlock_after" in payload:
        payload["unlock_after"] = to_utc_datetime(payload["unlock_after"])
    if ctype is ConditionType.ORACLE and payload.get("threshold") is not None:
        payload["threshold"] = to_decimal(payload["threshold"])
    for name in ("signers", "collected_signatures"):
        if name in payload:
            payload[name] = tuple(payload[name])

    try:
        return CONDITION_CLASSES[ctype](**payload)
    except TypeError as err:
        raise InvalidRequestError(f"Malformed {ctype.value} condition: {err}") from err


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def time_lock(unlock_after: datetime | str | int | float, min_delay: str | None = None) -> TimeLock:
    return TimeLock(unlock_after=to_utc_datetime(unlock_after), min_delay=min_delay)


def oracle(
    source: str,
    expression: str,
    feed_id: str | None = None,
    threshold: Decimal | int | str | None = None,
) -> Oracle:
    return Oracle(
        source=source,
        expression=expression,
        feed_id=feed_id,
        threshold=to_decimal(threshold) if threshold is not None else None,
    )


def multi_sig(required: int, signers: Sequence[str]) -> MultiSig:
    if required > len(signers):
        raise InvalidRequestError("Required signatures cannot exceed number of signers")
    return MultiSig(required=required, signers=tuple(signers))


def hash_lock(hash: str, algorithm: str = HashAlgorithm.SHA256.value) -> HashLock:
    return HashLock(algorithm=algorithm, hash=hash)


def governance_vote(proposal_id: str, threshold: str) -> GovernanceVote:
    return GovernanceVote(proposal_id=proposal_id, threshold=threshold)


def custom(circuit_id: str, inputs: Mapping[str, Any] | None = None) -> Custom:
    return Custom(circuit_id=circuit_id, inputs=inputs or {})
