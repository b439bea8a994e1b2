"""
app/services/policy_ingestion_service.py

Batch ingestion of uploaded policy CSV files.

One call to ``PolicyIngestionService.ingest`` handles one upload:

    1. register the operation in the ledger (PROCESSING)
    2. check the upload is present and non-empty
    3. parse the CSV into header-normalized records
    4. normalize each row and run business rules on valid candidates
    5. drop candidates whose policy number is already stored or repeated
    6. insert the remainder in one transaction
    7. close the operation (COMPLETED or FAILED) and log the accounting

Row defects never abort the batch. A uniqueness conflict raised by the
insert itself is reported as duplicate rows, not as a server error.
"""

from __future__ import annotations

import csv
import io
import logging
import re
import time
import uuid
from collections.abc import Callable, Sequence
from functools import lru_cache
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_upload_settings
from app.domain.policy import (
    IngestionOutcome,
    IngestionStatusClass,
    PolicyCandidate,
    RowError,
)
from app.logging_utils import elapsed_ms, log_event
from app.repositories.policy_repository import PolicyRepository
from app.services.duplicate_checker import DuplicateChecker, first_occurrence_rows
from app.services.operation_ledger import OperationLedger
from app.validators.business_rules import PolicyRuleValidator, create_default_validator
from app.validators.policy_row_normalizer import (
    DUPLICATE_POLICY_NUMBER,
    ERROR_MESSAGES,
    PolicyRowNormalizer,
)
from db.models.operation import CORRELATION_ID_MAX_LENGTH, OperationStatus

logger = logging.getLogger(__name__)

NO_FILE_MESSAGE = "No file uploaded"
EMPTY_FILE_MESSAGE = "Empty file"
DUPLICATES_DETECTED_SUMMARY = "Duplicate policy numbers detected"
SERVER_ERROR_MESSAGE = "Internal server error while processing the file"

_UNIQUE_VIOLATION_SQLSTATE = "23505"
_WHITESPACE_RUN = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class UploadValidationError(ValueError):
    """
    Raised when the upload itself (not a row) is unusable.
    """


class CSVParseError(ValueError):
    """
    Raised when the upload cannot be decoded or parsed as CSV.
    """


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def normalize_header(name: str) -> str:
    """
    " Policy Number " -> "policy_number".
    """

    return _WHITESPACE_RUN.sub("_", name.strip().lower())


def parse_policy_csv(content: bytes) -> list[dict[str, str]]:
    """
    Decode a UTF-8 CSV buffer into ordered, header-normalized records.

    Cells beyond the header width are ignored; missing cells become "".
    """

    try:
        text = content.decode("utf-8-sig")
        reader = csv.reader(io.StringIO(text, newline=""))
        header = next(reader, None)
        if header is None:
            return []

        keys = [normalize_header(name) for name in header]
        records: list[dict[str, str]] = []
        for values in reader:
            if not values:
                continue
            record = {key: "" for key in keys}
            for key, value in zip(keys, values):
                record[key] = value
            records.append(record)
        return records
    except UnicodeDecodeError as exc:
        raise CSVParseError("CSV must be UTF-8 encoded.") from exc
    except csv.Error as exc:
        raise CSVParseError(f"Invalid CSV format: {exc}") from exc


def resolve_correlation_id(value: str | None) -> str:
    """
    Trimmed caller id cut to the ledger column width, or a fresh UUID4.
    """

    candidate = (value or "").strip()[:CORRELATION_ID_MAX_LENGTH].strip()
    return candidate or str(uuid.uuid4())


def _is_unique_violation(exc: IntegrityError) -> bool:
    original = exc.orig
    if getattr(original, "sqlstate", None) == _UNIQUE_VIOLATION_SQLSTATE:
        return True
    message = str(original if original is not None else exc).lower()
    return "unique" in message or "duplicate key" in message


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class PolicyIngestionService:
    """
    Coordinates parsing, validation, duplicate filtering and persistence of
    one policy upload.
    """

    def __init__(
        self,
        *,
        endpoint: str,
        log_row_errors: bool,
        normalizer: PolicyRowNormalizer | None = None,
        validator: PolicyRuleValidator | None = None,
        repository_factory: Callable[[Session], PolicyRepository] = PolicyRepository,
        ledger_factory: Callable[[Session], OperationLedger] = OperationLedger,
    ) -> None:
        self._endpoint = endpoint
        self._log_row_errors = log_row_errors
        self._normalizer = normalizer or PolicyRowNormalizer()
        self._validator = validator or create_default_validator()
        self._repository_factory = repository_factory
        self._ledger_factory = ledger_factory

    def ingest(
        self,
        *,
        db: Session,
        content: bytes | None,
        correlation_id: str | None = None,
    ) -> IngestionOutcome:
        """
        Process one uploaded CSV buffer.

        Raises ``OperationRegistrationError`` when the operation cannot be
        recorded; every other failure is reported through the outcome.
        """

        started_at = time.perf_counter()
        operation_id = uuid.uuid4()
        correlation_id = resolve_correlation_id(correlation_id)

        log_event(
            logger,
            logging.INFO,
            "upload.received",
            correlation_id=correlation_id,
            operation_id=operation_id,
            endpoint=self._endpoint,
            status=OperationStatus.RECEIVED,
        )

        ledger = self._ledger_factory(db)
        ledger.register(
            operation_id=operation_id,
            endpoint=self._endpoint,
            correlation_id=correlation_id,
        )

        errors: list[RowError] = []
        try:
            if content is None:
                raise UploadValidationError(NO_FILE_MESSAGE)
            if not content:
                raise UploadValidationError(EMPTY_FILE_MESSAGE)

            records = parse_policy_csv(content)
            candidates = self._evaluate_rows(records, errors)
            first_rows = first_occurrence_rows(
                PolicyRowNormalizer.policy_number_of(record) for record in records
            )

            repository = self._repository_factory(db)
            to_insert = self._filter_duplicates(
                repository=repository,
                candidates=candidates,
                first_rows=first_rows,
                errors=errors,
            )
            inserted_count, conflict = self._insert(
                db=db,
                repository=repository,
                to_insert=to_insert,
                first_rows=first_rows,
                errors=errors,
            )
        except UploadValidationError as exc:
            return self._close(
                ledger=ledger,
                operation_id=operation_id,
                correlation_id=correlation_id,
                started_at=started_at,
                status=OperationStatus.FAILED,
                status_class=IngestionStatusClass.CLIENT_ERROR,
                inserted_count=0,
                errors=errors,
                error_summary=str(exc),
                error_message=str(exc),
            )
        except Exception as exc:
            db.rollback()
            logger.exception(
                "Policy upload failed operation_id=%s correlation_id=%s",
                operation_id,
                correlation_id,
            )
            return self._close(
                ledger=ledger,
                operation_id=operation_id,
                correlation_id=correlation_id,
                started_at=started_at,
                status=OperationStatus.FAILED,
                status_class=IngestionStatusClass.SERVER_ERROR,
                inserted_count=0,
                errors=errors,
                error_summary=f"{type(exc).__name__}: {exc}",
                error_message=SERVER_ERROR_MESSAGE,
            )

        if conflict:
            summary: str | None = DUPLICATES_DETECTED_SUMMARY
        else:
            summary = f"{len(errors)} row(s) rejected" if errors else None

        return self._close(
            ledger=ledger,
            operation_id=operation_id,
            correlation_id=correlation_id,
            started_at=started_at,
            status=OperationStatus.COMPLETED,
            status_class=IngestionStatusClass.SUCCESS,
            inserted_count=inserted_count,
            errors=errors,
            error_summary=summary,
            error_message=None,
        )

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def _evaluate_rows(
        self,
        records: Sequence[dict[str, Any]],
        errors: list[RowError],
    ) -> list[tuple[int, PolicyCandidate]]:
        valid: list[tuple[int, PolicyCandidate]] = []
        for row_number, record in enumerate(records, start=1):
            candidate, row_errors = self._normalizer.normalize(
                raw_row=record,
                row_number=row_number,
            )
            if candidate is None:
                self._record_errors(errors, row_errors)
                continue

            violations = self._validator.validate(candidate)
            if violations:
                self._record_errors(
                    errors,
                    [RowError.from_violation(v, row_number=row_number) for v in violations],
                )
                continue

            valid.append((row_number, candidate))
        return valid

    def _filter_duplicates(
        self,
        *,
        repository: PolicyRepository,
        candidates: Sequence[tuple[int, PolicyCandidate]],
        first_rows: dict[str, int],
        errors: list[RowError],
    ) -> list[PolicyCandidate]:
        if not candidates:
            return []

        existing = DuplicateChecker(repository).find_existing(
            candidate.policy_number for _, candidate in candidates
        )

        seen: set[str] = set()
        to_insert: list[PolicyCandidate] = []
        for row_number, candidate in candidates:
            number = candidate.policy_number
            if number in existing:
                self._record_errors(
                    errors,
                    [self._duplicate_error(first_rows.get(number, row_number))],
                )
            elif number in seen:
                # Repeated inside this upload: the first occurrence wins.
                self._record_errors(errors, [self._duplicate_error(row_number)])
            else:
                seen.add(number)
                to_insert.append(candidate)
        return to_insert

    def _insert(
        self,
        *,
        db: Session,
        repository: PolicyRepository,
        to_insert: Sequence[PolicyCandidate],
        first_rows: dict[str, int],
        errors: list[RowError],
    ) -> tuple[int, bool]:
        """
        Insert all candidates atomically. Returns (inserted, conflict).
        """

        if not to_insert:
            return 0, False

        try:
            inserted = repository.insert_many(to_insert)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if not _is_unique_violation(exc):
                raise
            logger.warning(
                "Uniqueness conflict at insert; rejecting %d candidate(s)",
                len(to_insert),
            )
            self._record_errors(
                errors,
                [
                    self._duplicate_error(first_rows.get(candidate.policy_number, 1))
                    for candidate in to_insert
                ],
            )
            return 0, True
        except Exception:
            db.rollback()
            raise
        return inserted, False

    # ------------------------------------------------------------------
    # Accounting
    # ------------------------------------------------------------------

    def _close(
        self,
        *,
        ledger: OperationLedger,
        operation_id: uuid.UUID,
        correlation_id: str,
        started_at: float,
        status: str,
        status_class: str,
        inserted_count: int,
        errors: list[RowError],
        error_summary: str | None,
        error_message: str | None,
    ) -> IngestionOutcome:
        duration_ms = elapsed_ms(started_at)
        ledger.finish(
            operation_id=operation_id,
            status=status,
            rows_inserted=inserted_count,
            rows_rejected=len(errors),
            duration_ms=duration_ms,
            error_summary=error_summary,
        )

        log_event(
            logger,
            logging.ERROR if status_class == IngestionStatusClass.SERVER_ERROR else logging.INFO,
            "upload.finished",
            correlation_id=correlation_id,
            operation_id=operation_id,
            endpoint=self._endpoint,
            duration_ms=duration_ms,
            inserted_count=inserted_count,
            rejected_count=len(errors),
            status=status,
            error=error_summary if status == OperationStatus.FAILED else None,
        )

        return IngestionOutcome(
            operation_id=operation_id,
            correlation_id=correlation_id,
            inserted_count=inserted_count,
            rejected_count=len(errors),
            errors=list(errors),
            status_class=status_class,
            error_message=error_message,
        )

    def _record_errors(self, captured: list[RowError], row_errors: Sequence[RowError]) -> None:
        for error in row_errors:
            if self._log_row_errors:
                logger.warning(
                    "Policy row rejected row=%s code=%s field=%s",
                    error.row_number,
                    error.code,
                    error.field,
                )
            captured.append(error)

    @staticmethod
    def _duplicate_error(row_number: int) -> RowError:
        return RowError(
            row_number=row_number,
            code=DUPLICATE_POLICY_NUMBER,
            field="policy_number",
            message=ERROR_MESSAGES[DUPLICATE_POLICY_NUMBER],
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_policy_ingestion_service() -> PolicyIngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """
    settings = get_upload_settings()
    return PolicyIngestionService(
        endpoint=settings.endpoint_name,
        log_row_errors=settings.log_row_errors,
    )
