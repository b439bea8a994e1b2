"""
app/services/operation_ledger.py

Lifecycle tracking for upload operations.

``register`` must succeed before a batch is processed; its failure aborts the
request. ``finish`` is best-effort: a failure is logged and swallowed so it
never masks the response already computed for the caller.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.orm import Session

from db.models.operation import Operation, OperationStatus
from db.repositories.operation_repository import OperationRepository

logger = logging.getLogger(__name__)

_MAX_ERROR_SUMMARY_LENGTH = 2000


class OperationRegistrationError(RuntimeError):
    """
    Raised when an operation cannot be recorded in the ledger.
    """

    def __init__(self, *, operation_id: uuid.UUID, correlation_id: str, reason: str) -> None:
        super().__init__(f"Failed to register operation {operation_id}: {reason}")
        self.operation_id = operation_id
        self.correlation_id = correlation_id
        self.reason = reason


class OperationLedger:
    def __init__(
        self,
        session: Session,
        *,
        repository: OperationRepository | None = None,
    ) -> None:
        self._session = session
        self._repository = repository or OperationRepository(session)

    def register(
        self,
        *,
        operation_id: uuid.UUID,
        endpoint: str,
        correlation_id: str,
    ) -> Operation:
        """
        Persist a new operation in PROCESSING state and commit it.
        """

        try:
            operation = self._repository.create_operation(
                operation_id=operation_id,
                endpoint=endpoint,
                correlation_id=correlation_id,
                status=OperationStatus.PROCESSING,
            )
            self._session.commit()
        except Exception as exc:
            self._session.rollback()
            raise OperationRegistrationError(
                operation_id=operation_id,
                correlation_id=correlation_id,
                reason=f"{type(exc).__name__}: {exc}",
            ) from exc
        return operation

    def finish(
        self,
        *,
        operation_id: uuid.UUID,
        status: str,
        rows_inserted: int,
        rows_rejected: int,
        duration_ms: int,
        error_summary: str | None = None,
    ) -> bool:
        """
        Record the terminal status and metrics. Returns False when the update
        could not be persisted.
        """

        if error_summary is not None:
            error_summary = error_summary[:_MAX_ERROR_SUMMARY_LENGTH]

        try:
            self._repository.update_metrics(
                operation_id=operation_id,
                status=status,
                rows_inserted=rows_inserted,
                rows_rejected=rows_rejected,
                duration_ms=duration_ms,
                error_summary=error_summary,
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            logger.exception(
                "Failed to update operation metrics id=%s status=%s",
                operation_id,
                status,
            )
            return False
        return True

    def get(self, operation_id: uuid.UUID) -> Operation | None:
        return self._repository.get_operation(operation_id)
