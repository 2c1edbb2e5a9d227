"""Pydantic schemas for release conditions.

A discriminated union on ``type`` so the API rejects unknown variants and
missing fields before anything reaches the escrow manager. Each schema maps
onto its frozen domain dataclass through ``to_domain()``.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from bitlogic_escrow.domain.conditions import Condition, condition_from_dict
from bitlogic_escrow.domain.enums import HashAlgorithm


class _ConditionBase(BaseModel):
    id: str | None = None
    description: str | None = None

    def to_domain(self) -> Condition:
        return condition_from_dict(self.model_dump(exclude_none=True))


class TimeLockSchema(_ConditionBase):
    type: Literal["TIME_LOCK"] = "TIME_LOCK"
    unlock_after: datetime = Field(..., description="Funds unlock at or after this instant")
    min_delay: str | None = Field(default=None, examples=["48h"])


class OracleSchema(_ConditionBase):
    type: Literal["ORACLE"] = "ORACLE"
    source: str = Field(..., min_length=1, examples=["chainlink"])
    expression: str = Field(..., min_length=1, examples=["BTC_PRICE > 100000"])
    feed_id: str | None = None
    threshold: Decimal | None = None


class MultiSigSchema(_ConditionBase):
    type: Literal["MULTI_SIG"] = "MULTI_SIG"
    required: int = Field(..., gt=0)
    signers: list[str] = Field(..., min_length=1)
    collected_signatures: list[str] = Field(default_factory=list)


class HashLockSchema(_ConditionBase):
    type: Literal["HASH_LOCK"] = "HASH_LOCK"
    algorithm: str = HashAlgorithm.SHA256.value
    hash: str = Field(..., min_length=1)


class GovernanceVoteSchema(_ConditionBase):
    type: Literal["GOVERNANCE_VOTE"] = "GOVERNANCE_VOTE"
    proposal_id: str = Field(..., min_length=1)
    threshold: str = Field(..., examples=["66%"])
    governance_contract: str | None = None


class CustomSchema(_ConditionBase):
    type: Literal["CUSTOM"] = "CUSTOM"
    circuit_id: str = Field(..., min_length=1)
    inputs: dict[str, Any] = Field(default_factory=dict)
    verifier_address: str | None = None


ConditionSchema = Annotated[
    TimeLockSchema
    | OracleSchema
    | MultiSigSchema
    | HashLockSchema
    | GovernanceVoteSchema
    | CustomSchema,
    Field(discriminator="type"),
]
