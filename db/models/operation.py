"""
db/models/operation.py

Ledger entry for one tracked execution of an endpoint (one upload batch).
"""

from __future__ import annotations

import uuid

from sqlalchemy import Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

CORRELATION_ID_MAX_LENGTH = 128


class OperationStatus:
    RECEIVED = "RECEIVED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    TERMINAL = frozenset({COMPLETED, FAILED})

    # Lifecycle order; a status may only move to a strictly later rank.
    _RANK = {RECEIVED: 0, PROCESSING: 1, COMPLETED: 2, FAILED: 2}

    @classmethod
    def can_transition(cls, current: str, target: str) -> bool:
        if current in cls.TERMINAL or target not in cls._RANK:
            return False
        return cls._RANK[target] > cls._RANK.get(current, -1)


class Operation(Base, TimestampMixin):
    __tablename__ = "operations"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    endpoint: Mapped[str] = mapped_column(String(120), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=OperationStatus.RECEIVED,
    )
    correlation_id: Mapped[str] = mapped_column(
        String(CORRELATION_ID_MAX_LENGTH),
        nullable=False,
    )
    rows_inserted: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rows_rejected: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_operations_correlation_id", "correlation_id"),
        Index("ix_operations_status", "status"),
        Index("ix_operations_created_at", "created_at"),
    )
