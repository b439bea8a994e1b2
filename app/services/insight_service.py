"""
app/services/insight_service.py

Portfolio risk analysis and insight generation.

Insights come from the configured LLM adapter when one is available and
from a deterministic rule-based fallback otherwise (or when the adapter
fails or keeps returning malformed output).
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from typing import Any, Sequence

from sqlalchemy.orm import Session

from app.config import InsightSettings, get_insight_settings
from app.domain.policy import PolicyFilters, PolicySummary
from app.repositories.policy_repository import PolicyRepository
from app.validators.business_rules import (
    AUTO_MIN_INSURED_VALUE_USD,
    PROPERTY_MIN_INSURED_VALUE_USD,
)
from db.models.policy import Policy, PolicyStatus, PolicyType
from llm_synthesis.adapter import BaseLLMAdapter, MockLLMAdapter, OpenAILLMAdapter
from llm_synthesis.prompt_builder import InsightPromptBuilder
from llm_synthesis.retry import generate_with_retry
from llm_synthesis.schema import MAX_RECOMMENDATIONS

logger = logging.getLogger(__name__)

MAX_POLICIES_ANALYSED = 100

NEAR_MINIMUM_FACTOR = Decimal("1.1")
CONCENTRATION_THRESHOLD_PCT = 60.0
NEAR_MINIMUM_THRESHOLD_PCT = 20.0
INACTIVE_SHARE_THRESHOLD = 0.3
DIVERSITY_MIN_TYPES = 2
DIVERSITY_MIN_PORTFOLIO = 10

SOURCE_LLM = "llm"
SOURCE_FALLBACK = "fallback"

_MINIMUM_BY_TYPE: dict[str, Decimal] = {
    PolicyType.PROPERTY: PROPERTY_MIN_INSURED_VALUE_USD,
    PolicyType.AUTO: AUTO_MIN_INSURED_VALUE_USD,
}

_FALLBACK_FILLERS = (
    "Review insured value and premium thresholds periodically.",
    "Set up alerts when indicators approach their defined limits.",
)


@dataclass(frozen=True)
class RiskAnalysis:
    total_policies: int
    total_premium_usd: Decimal
    count_by_status: dict[str, int]
    risk_flags: list[str] = field(default_factory=list)
    concentration: list[str] = field(default_factory=list)
    policies_near_minimum: int = 0
    average_insured_value_usd: Decimal = Decimal("0")

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_policies": self.total_policies,
            "total_premium_usd": float(self.total_premium_usd),
            "count_by_status": dict(self.count_by_status),
            "risk_flags": list(self.risk_flags),
            "concentration": list(self.concentration),
            "policies_near_minimum": self.policies_near_minimum,
            "average_insured_value_usd": float(self.average_insured_value_usd),
        }


@dataclass(frozen=True)
class PolicyInsights:
    insights: list[str]
    recommendations: list[str]
    total_policies: int
    risk_flags: int
    source: str


def summary_to_dict(summary: PolicySummary) -> dict[str, Any]:
    return {
        "total_policies": summary.total_policies,
        "total_premium_usd": float(summary.total_premium_usd),
        "count_by_status": dict(summary.count_by_status),
        "count_by_type": dict(summary.count_by_type),
        "premium_by_type": {key: float(value) for key, value in summary.premium_by_type.items()},
    }


def analyze_risks(summary: PolicySummary, policies: Sequence[Policy]) -> RiskAnalysis:
    """
    Compute the portfolio risk flags.

    Concentration and near-minimum shares are measured over the sampled
    policies against the portfolio total.
    """

    total = summary.total_policies
    flags: list[str] = []
    concentration: list[str] = []

    type_counts = Counter(policy.policy_type for policy in policies)
    if total > 0:
        for policy_type, count in sorted(type_counts.items()):
            percentage = count / total * 100
            if percentage > CONCENTRATION_THRESHOLD_PCT:
                concentration.append(f"{policy_type}: {percentage:.1f}%")
                flags.append(f"CONCENTRATION_{policy_type.upper()}")

    near_minimum = 0
    for policy in policies:
        minimum = _MINIMUM_BY_TYPE.get(policy.policy_type)
        if minimum is not None and policy.insured_value_usd < minimum * NEAR_MINIMUM_FACTOR:
            near_minimum += 1
    if total > 0 and near_minimum / total * 100 > NEAR_MINIMUM_THRESHOLD_PCT:
        flags.append("VALUES_NEAR_MINIMUM")

    inactive = summary.count_by_status.get(PolicyStatus.EXPIRED, 0) + summary.count_by_status.get(
        PolicyStatus.CANCELLED, 0
    )
    if inactive > total * INACTIVE_SHARE_THRESHOLD:
        flags.append("HIGH_EXPIRED_CANCELLED")

    if len(summary.count_by_type) < DIVERSITY_MIN_TYPES and total > DIVERSITY_MIN_PORTFOLIO:
        flags.append("LOW_DIVERSITY")

    average = Decimal("0")
    if policies:
        average = sum((policy.insured_value_usd for policy in policies), Decimal("0")) / len(policies)

    return RiskAnalysis(
        total_policies=total,
        total_premium_usd=summary.total_premium_usd,
        count_by_status=dict(summary.count_by_status),
        risk_flags=flags,
        concentration=concentration,
        policies_near_minimum=near_minimum,
        average_insured_value_usd=average,
    )


def build_fallback_insights(analysis: RiskAnalysis) -> tuple[list[str], list[str]]:
    """
    Rule-based insights used when no LLM answer is available.

    Always yields two or three recommendations.
    """

    insights: list[str] = []
    recommendations: list[str] = []

    if analysis.total_policies == 0:
        insights.append("No policies are registered yet.")
        recommendations.append("Load policies through the upload endpoint.")
        recommendations.append("Review thresholds and validation rules once data exists.")
        return insights, recommendations

    if analysis.concentration:
        insights.append(
            f"High concentration detected: {', '.join(analysis.concentration)}. "
            "This can increase exposure risk."
        )
        recommendations.append("Diversify the portfolio to reduce concentration risk.")

    if analysis.policies_near_minimum > 0:
        percentage = analysis.policies_near_minimum / analysis.total_policies * 100
        insights.append(
            f"{percentage:.1f}% of policies have insured values close to the allowed minimum."
        )
        recommendations.append(
            "Alert on policies insured below 1.1x the minimum and route them to manual review."
        )

    inactive = analysis.count_by_status.get(PolicyStatus.EXPIRED, 0) + analysis.count_by_status.get(
        PolicyStatus.CANCELLED, 0
    )
    if inactive > analysis.total_policies * INACTIVE_SHARE_THRESHOLD:
        percentage = inactive / analysis.total_policies * 100
        insights.append(f"{percentage:.1f}% of policies are expired or cancelled.")
        recommendations.append("Review customer retention strategies for active policies.")

    if not insights:
        insights.append(
            f"Portfolio of {analysis.total_policies} policies with total premium "
            f"${analysis.total_premium_usd:,.2f}."
        )
        insights.append("Risk distribution looks balanced.")
        recommendations.append("Keep monitoring key metrics regularly.")

    for filler in _FALLBACK_FILLERS:
        if len(recommendations) >= MAX_RECOMMENDATIONS:
            break
        recommendations.append(filler)
    return insights, recommendations[:MAX_RECOMMENDATIONS]


class InsightService:
    """
    Generates portfolio insights from the stored policies.
    """

    def __init__(
        self,
        *,
        adapter: BaseLLMAdapter | None = None,
        max_retries: int = 1,
        prompt_builder: InsightPromptBuilder | None = None,
    ) -> None:
        self._adapter = adapter
        self._max_retries = max(0, max_retries)
        self._prompt_builder = prompt_builder or InsightPromptBuilder()

    def generate(self, db: Session, filters: PolicyFilters | None = None) -> PolicyInsights:
        repository = PolicyRepository(db)
        summary = repository.summarize()
        policies, _ = repository.list_policies(
            limit=MAX_POLICIES_ANALYSED,
            offset=0,
            filters=filters,
        )
        analysis = analyze_risks(summary, policies)

        if self._adapter is None:
            logger.warning("No LLM provider configured; using fallback insights")
            return self._fallback(analysis)

        prompt = self._prompt_builder.build_prompt(
            summary=summary_to_dict(summary),
            risk_analysis=analysis.to_dict(),
            filters=self._filters_dict(filters),
        )
        try:
            output = generate_with_retry(self._adapter, prompt, max_retries=self._max_retries)
        except Exception:
            logger.warning("LLM insight generation failed; using fallback insights", exc_info=True)
            return self._fallback(analysis)

        return PolicyInsights(
            insights=list(output.insights),
            recommendations=list(output.recommendations),
            total_policies=analysis.total_policies,
            risk_flags=len(analysis.risk_flags),
            source=SOURCE_LLM,
        )

    @staticmethod
    def _fallback(analysis: RiskAnalysis) -> PolicyInsights:
        insights, recommendations = build_fallback_insights(analysis)
        return PolicyInsights(
            insights=insights,
            recommendations=recommendations,
            total_policies=analysis.total_policies,
            risk_flags=len(analysis.risk_flags),
            source=SOURCE_FALLBACK,
        )

    @staticmethod
    def _filters_dict(filters: PolicyFilters | None) -> dict[str, str]:
        if filters is None:
            return {}
        return {
            key: value
            for key, value in (
                ("q", filters.search),
                ("status", filters.status),
                ("policy_type", filters.policy_type),
            )
            if value
        }


def build_insight_adapter(settings: InsightSettings) -> BaseLLMAdapter | None:
    if settings.provider in {"openai", "gemini"}:
        if not settings.api_key:
            logger.warning("Insight provider %s has no API key; using fallback", settings.provider)
            return None
        return OpenAILLMAdapter(
            model=settings.model,
            max_tokens=settings.max_tokens,
            api_key=settings.api_key,
            base_url=settings.base_url,
        )
    if settings.provider == "mock":
        return MockLLMAdapter()
    return None


@lru_cache(maxsize=1)
def get_insight_service() -> InsightService:
    settings = get_insight_settings()
    return InsightService(
        adapter=build_insight_adapter(settings),
        max_retries=settings.max_retries,
    )


__all__ = [
    "InsightService",
    "PolicyInsights",
    "RiskAnalysis",
    "analyze_risks",
    "build_fallback_insights",
    "build_insight_adapter",
    "get_insight_service",
]
