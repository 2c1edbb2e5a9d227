"""Domain enumerations for BitLogic escrows.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class EscrowStatus(enum.StrEnum):
    """Lifecycle states of an escrow.

    State transitions are enforced by the EscrowStateMachine guard.
    See domain/state_machine.py for the transition table.
    """

    PENDING = "pending"
    ACTIVE = "active"
    RELEASED = "released"
    REFUNDED = "refunded"


class ConditionType(enum.StrEnum):
    """Tags of the release condition variants."""

    TIME_LOCK = "TIME_LOCK"
    ORACLE = "ORACLE"
    MULTI_SIG = "MULTI_SIG"
    HASH_LOCK = "HASH_LOCK"
    GOVERNANCE_VOTE = "GOVERNANCE_VOTE"
    CUSTOM = "CUSTOM"


class OracleSource(enum.StrEnum):
    CHAINLINK = "chainlink"
    PYTH = "pyth"
    CUSTOM = "custom"


class HashAlgorithm(enum.StrEnum):
    SHA256 = "sha256"
    SHA3 = "sha3"
    BLAKE2 = "blake2"


class ActionStatus(enum.StrEnum):
    """Outcome of a cross-environment action dispatch."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ReleaseStatus(enum.StrEnum):
    SUCCESS = "success"
    FAILED = "failed"


class EventType(enum.StrEnum):
    """Types of audit events recorded per escrow.

    Every state transition produces exactly one event; proof rejections and
    action outcomes are recorded as well.
    """

    ESCROW_CREATED = "ESCROW_CREATED"
    PROOF_REJECTED = "PROOF_REJECTED"
    ESCROW_RELEASED = "ESCROW_RELEASED"
    ACTION_CONFIRMED = "ACTION_CONFIRMED"
    ACTION_FAILED = "ACTION_FAILED"
    ESCROW_REFUNDED = "ESCROW_REFUNDED"
