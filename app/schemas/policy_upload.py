"""
app/schemas/policy_upload.py

Response schemas for the policy upload endpoint.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field

from app.domain.policy import IngestionOutcome


class RowErrorResponse(BaseModel):
    """
    API response model for one rejected row.
    """

    row_number: int = Field(..., ge=1)
    field: str
    code: str
    message: str


class PolicyUploadResponse(BaseModel):
    """
    Accounting for one upload; ``error`` is set only on failure.
    """

    operation_id: UUID
    correlation_id: str
    inserted_count: int = Field(..., ge=0)
    rejected_count: int = Field(..., ge=0)
    errors: list[RowErrorResponse] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: IngestionOutcome) -> "PolicyUploadResponse":
        return cls(
            operation_id=outcome.operation_id,
            correlation_id=outcome.correlation_id,
            inserted_count=outcome.inserted_count,
            rejected_count=outcome.rejected_count,
            errors=[
                RowErrorResponse(
                    row_number=error.row_number,
                    field=error.field,
                    code=error.code,
                    message=error.message,
                )
                for error in outcome.errors
            ],
            error=outcome.error_message,
        )
