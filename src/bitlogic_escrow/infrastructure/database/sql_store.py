"""Durable EscrowStore on SQLAlchemy 2.0 async.

Every public method runs in its own session and commits before returning, so
the store can be shared across concurrent tasks. Claims and status swaps are
single conditional UPDATE statements; the row count tells the caller whether
it won.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select, update

from bitlogic_escrow.domain.conditions import (
    condition_to_dict,
    to_utc_datetime,
)
from bitlogic_escrow.domain.enums import EscrowStatus, EventType
from bitlogic_escrow.domain.models import (
    ActionDescriptor,
    ActionResult,
    Escrow,
    EscrowEvent,
    LockedFunds,
)
from bitlogic_escrow.infrastructure.database.engine import (
    build_engine,
    build_session_factory,
    init_models,
)
from bitlogic_escrow.infrastructure.database.orm_models import (
    EscrowEventRecord,
    EscrowRecord,
)
from bitlogic_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = get_logger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    return to_utc_datetime(value) if value is not None else None


def _column_value(value: Any) -> Any:
    if isinstance(value, (ActionResult, ActionDescriptor, LockedFunds)):
        return value.to_dict()
    if isinstance(value, EscrowStatus):
        return value.value
    return value


def to_record(escrow: Escrow) -> EscrowRecord:
    """Map a domain Escrow onto a new ORM row."""
    return EscrowRecord(
        id=escrow.id,
        amount=escrow.amount,
        amount_units=escrow.amount_units,
        beneficiary=escrow.beneficiary,
        conditions=[condition_to_dict(c) for c in escrow.conditions],
        script_hash=escrow.script_hash,
        circuit_id=escrow.circuit_id,
        timeout_seconds=escrow.timeout,
        action=escrow.action.to_dict() if escrow.action else None,
        lock=escrow.lock.to_dict(),
        release_ref=escrow.release_ref,
        refund_ref=escrow.refund_ref,
        action_result=escrow.action_result.to_dict() if escrow.action_result else None,
        status=escrow.status.value,
        created_at=escrow.created_at,
        closed_at=escrow.closed_at,
    )


def to_domain(record: EscrowRecord) -> Escrow:
    """Map an ORM row back onto an immutable domain Escrow."""
    return Escrow.from_dict(
        {
            "id": record.id,
            "amount": record.amount,
            "amount_units": record.amount_units,
            "beneficiary": record.beneficiary,
            "conditions": record.conditions,
            "timeout": record.timeout_seconds,
            "lock": record.lock,
            "script_hash": record.script_hash,
            "circuit_id": record.circuit_id,
            "created_at": record.created_at,
            "status": record.status,
            "action": record.action,
            "release_ref": record.release_ref,
            "refund_ref": record.refund_ref,
            "closed_at": record.closed_at,
            "action_result": record.action_result,
        }
    )


class SqlEscrowStore:
    """EscrowStore persisted through an async SQLAlchemy engine."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory = build_session_factory(engine)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> SqlEscrowStore:
        return cls(build_engine(database_url, echo=echo))

    async def init_models(self) -> None:
        await init_models(self._engine)

    async def get(self, escrow_id: str) -> Escrow | None:
        async with self._session_factory() as session:
            record = await session.get(EscrowRecord, escrow_id)
            return to_domain(record) if record is not None else None

    async def put(self, escrow: Escrow) -> None:
        """Insert or overwrite the record; an outstanding claim is preserved."""
        async with self._session_factory() as session:
            existing = await session.get(EscrowRecord, escrow.id)
            if existing is None:
                session.add(to_record(escrow))
            else:
                fresh = to_record(escrow)
                for column in EscrowRecord.__table__.columns.keys():
                    if column in ("id", "claim_token"):
                        continue
                    setattr(existing, column, getattr(fresh, column))
            await session.commit()

    async def claim(self, escrow_id: str, token: str) -> bool:
        stmt = (
            update(EscrowRecord)
            .where(
                EscrowRecord.id == escrow_id,
                EscrowRecord.status == EscrowStatus.ACTIVE.value,
                EscrowRecord.claim_token.is_(None),
            )
            .values(claim_token=token)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        won = result.rowcount == 1
        logger.debug("store.claim", escrow_id=escrow_id, won=won)
        return won

    async def release_claim(self, escrow_id: str, token: str) -> None:
        stmt = (
            update(EscrowRecord)
            .where(EscrowRecord.id == escrow_id, EscrowRecord.claim_token == token)
            .values(claim_token=None)
        )
        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def compare_and_swap_status(
        self,
        escrow_id: str,
        expected: EscrowStatus,
        new: EscrowStatus,
        claim_token: str | None = None,
        **changes: Any,
    ) -> Escrow | None:
        claim_clause = (
            EscrowRecord.claim_token.is_(None)
            if claim_token is None
            else EscrowRecord.claim_token == claim_token
        )
        values = {name: _column_value(value) for name, value in changes.items()}
        stmt = (
            update(EscrowRecord)
            .where(
                EscrowRecord.id == escrow_id,
                EscrowRecord.status == expected.value,
                claim_clause,
            )
            .values(status=new.value, claim_token=None, **values)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            if result.rowcount != 1:
                return None
            record = await session.get(EscrowRecord, escrow_id, populate_existing=True)
            return to_domain(record)

    async def record_event(self, event: EscrowEvent) -> None:
        """Append an audit event. This is the ONLY write the event log allows."""
        async with self._session_factory() as session:
            session.add(
                EscrowEventRecord(
                    escrow_id=event.escrow_id,
                    event_type=event.event_type.value,
                    old_status=event.old_status.value if event.old_status else None,
                    new_status=event.new_status.value,
                    metadata_json=dict(event.metadata) or None,
                    created_at=event.created_at,
                )
            )
            await session.commit()

    async def get_events(self, escrow_id: str) -> list[EscrowEvent]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(EscrowEventRecord)
                .where(EscrowEventRecord.escrow_id == escrow_id)
                .order_by(EscrowEventRecord.created_at, EscrowEventRecord.id)
            )
            return [
                EscrowEvent(
                    escrow_id=row.escrow_id,
                    event_type=EventType(row.event_type),
                    old_status=EscrowStatus(row.old_status) if row.old_status else None,
                    new_status=EscrowStatus(row.new_status),
                    created_at=_aware(row.created_at),
                    metadata=row.metadata_json or {},
                )
                for row in result.scalars().all()
            ]

    async def close(self) -> None:
        await self._engine.dispose()
        logger.info("database.engine_disposed")
