"""Database infrastructure: engine, ORM models, and the SQL escrow store."""

from bitlogic_escrow.infrastructure.database.engine import (
    build_engine,
    build_session_factory,
    init_models,
)
from bitlogic_escrow.infrastructure.database.orm_models import (
    Base,
    EscrowEventRecord,
    EscrowRecord,
)
from bitlogic_escrow.infrastructure.database.sql_store import SqlEscrowStore

__all__ = [
    "Base",
    "EscrowRecord",
    "EscrowEventRecord",
    "SqlEscrowStore",
    "build_engine",
    "build_session_factory",
    "init_models",
]
