"""
Schemas for the portfolio insights endpoint.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.domain.policy import PolicyFilters


class InsightFilters(BaseModel):
    status: str | None = None
    policy_type: str | None = None
    q: str | None = None

    def to_domain(self) -> PolicyFilters:
        return PolicyFilters(search=self.q, status=self.status, policy_type=self.policy_type)


class InsightsRequest(BaseModel):
    filters: InsightFilters = Field(default_factory=InsightFilters)


class InsightHighlights(BaseModel):
    total_policies: int = Field(..., ge=0)
    risk_flags: int = Field(..., ge=0)


class InsightsResponse(BaseModel):
    insights: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    highlights: InsightHighlights
    source: str
