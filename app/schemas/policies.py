"""
Schemas for policy listing and portfolio summary endpoints.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class PolicyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    policy_number: str
    customer: str
    policy_type: str
    start_date: date | None = None
    end_date: date | None = None
    premium_usd: float
    status: str
    insured_value_usd: float
    created_at: datetime | None = None


class PaginationResponse(BaseModel):
    limit: int = Field(..., ge=1)
    offset: int = Field(..., ge=0)
    total: int = Field(..., ge=0)


class PolicyListResponse(BaseModel):
    items: list[PolicyResponse] = Field(default_factory=list)
    pagination: PaginationResponse


class PolicySummaryResponse(BaseModel):
    total_policies: int = Field(..., ge=0)
    total_premium_usd: float
    count_by_status: dict[str, int] = Field(default_factory=dict)
    count_by_type: dict[str, int] = Field(default_factory=dict)
    premium_by_type: dict[str, float] = Field(default_factory=dict)
