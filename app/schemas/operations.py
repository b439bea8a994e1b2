"""
Schema for operation read-back.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class OperationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    endpoint: str
    status: str
    correlation_id: str
    rows_inserted: int | None = None
    rows_rejected: int | None = None
    duration_ms: int | None = None
    error_summary: str | None = None
    created_at: datetime
    updated_at: datetime
