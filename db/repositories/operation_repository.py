"""
Repository for operation ledger persistence and lookup.
"""

from __future__ import annotations

import uuid

from sqlalchemy.orm import Session

from db.models.operation import Operation, OperationStatus
from db.repositories.errors import OperationNotFoundError, OperationStateError


class OperationRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_operation(
        self,
        *,
        operation_id: uuid.UUID,
        endpoint: str,
        correlation_id: str,
        status: str = OperationStatus.RECEIVED,
    ) -> Operation:
        operation = Operation(
            id=operation_id,
            endpoint=endpoint,
            status=status,
            correlation_id=correlation_id,
        )
        self._session.add(operation)
        self._session.flush()
        self._session.refresh(operation)
        return operation

    def get_operation(self, operation_id: uuid.UUID) -> Operation | None:
        return self._session.get(Operation, operation_id)

    def update_metrics(
        self,
        *,
        operation_id: uuid.UUID,
        status: str,
        rows_inserted: int,
        rows_rejected: int,
        duration_ms: int,
        error_summary: str | None = None,
    ) -> Operation:
        operation = self.get_operation(operation_id)
        if operation is None:
            raise OperationNotFoundError(f"Operation not found: {operation_id}")
        if not OperationStatus.can_transition(operation.status, status):
            raise OperationStateError(
                f"Operation {operation_id} cannot move from {operation.status} to {status}."
            )

        operation.status = status
        operation.rows_inserted = rows_inserted
        operation.rows_rejected = rows_rejected
        operation.duration_ms = duration_ms
        operation.error_summary = error_summary
        self._session.flush()
        return operation
