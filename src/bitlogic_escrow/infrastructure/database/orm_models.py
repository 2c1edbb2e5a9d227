"""SQLAlchemy 2.0 ORM models for BitLogic escrows.

Two tables:
    1. escrows       : One row per escrow record, including its claim marker.
    2. escrow_events : Append-only audit log of every state transition.

Design decisions:
    - Decimal for the display amount plus an integer column for minimal units.
    - JSON columns for conditions, action descriptor, lock reference and
      action result (JSONB on PostgreSQL).
    - CHECK constraint on status to prevent invalid values at DB level.
    - claim_token is non-NULL only while a release/refund is in flight.
    - escrow_events is append-only: no UPDATE or DELETE at the application level.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal  # noqa: TC003 - needed at runtime by SQLAlchemy Mapped[]

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class EscrowRecord(Base):
    """Persisted form of a domain Escrow."""

    __tablename__ = "escrows"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # --- Financials ---
    amount: Mapped[Decimal] = mapped_column(
        Numeric(28, 8),
        nullable=False,
        comment="Locked amount in whole coins",
    )
    amount_units: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Locked amount in minimal units",
    )
    beneficiary: Mapped[str] = mapped_column(String(128), nullable=False)

    # --- Release Rules ---
    conditions: Mapped[list] = mapped_column(JSONType, nullable=False)
    script_hash: Mapped[str] = mapped_column(String(96), nullable=False)
    circuit_id: Mapped[str] = mapped_column(String(255), nullable=False)
    timeout_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[dict | None] = mapped_column(JSONType, nullable=True, default=None)

    # --- Ledger References ---
    lock: Mapped[dict] = mapped_column(JSONType, nullable=False)
    release_ref: Mapped[str | None] = mapped_column(String(128), nullable=True, default=None)
    refund_ref: Mapped[str | None] = mapped_column(String(128), nullable=True, default=None)
    action_result: Mapped[dict | None] = mapped_column(JSONType, nullable=True, default=None)

    # --- Status (Enum-guarded) ---
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="pending",
        comment="Current lifecycle state (guarded by EscrowStateMachine)",
    )
    claim_token: Mapped[str | None] = mapped_column(String(64), nullable=True, default=None)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    events: Mapped[list[EscrowEventRecord]] = relationship(
        back_populates="escrow",
        order_by="EscrowEventRecord.created_at",
        lazy="noload",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'active', 'released', 'refunded')",
            name="ck_escrows_status",
        ),
        CheckConstraint("amount_units > 0", name="ck_escrows_amount_positive"),
        Index("ix_escrows_status", "status"),
        Index("ix_escrows_beneficiary", "beneficiary"),
    )


class EscrowEventRecord(Base):
    """Append-only audit log entry."""

    __tablename__ = "escrow_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    escrow_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("escrows.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    old_status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    new_status: Mapped[str] = mapped_column(String(16), nullable=False)
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata", JSONType, nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    escrow: Mapped[EscrowRecord] = relationship(back_populates="events")

    __table_args__ = (Index("ix_escrow_events_escrow_id", "escrow_id"),)
