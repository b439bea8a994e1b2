"""Structured output schema for portfolio insight generation."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

MIN_RECOMMENDATIONS = 2
MAX_RECOMMENDATIONS = 3


class PolicyInsightOutput(BaseModel):
    """Only allowed output contract for the insight generator."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
    )

    insights: List[str] = Field(min_length=1)
    recommendations: List[str] = Field(
        min_length=MIN_RECOMMENDATIONS,
        max_length=MAX_RECOMMENDATIONS,
    )
