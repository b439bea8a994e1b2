"""
tests/test_insight_service.py

Risk analysis, fallback insights and LLM orchestration.
"""

from __future__ import annotations

import json
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import Session

from app.config import InsightSettings
from app.domain.policy import PolicyCandidate, PolicySummary
from app.repositories.policy_repository import PolicyRepository
from app.services.insight_service import (
    InsightService,
    analyze_risks,
    build_fallback_insights,
    build_insight_adapter,
)
from llm_synthesis.adapter import BaseLLMAdapter, MockLLMAdapter


def _policy(policy_type: str, insured: str) -> SimpleNamespace:
    return SimpleNamespace(policy_type=policy_type, insured_value_usd=Decimal(insured))


def _summary(total: int, *, by_status=None, by_type=None) -> PolicySummary:
    return PolicySummary(
        total_policies=total,
        total_premium_usd=Decimal("1000"),
        count_by_status=by_status or {"active": total},
        count_by_type=by_type or {},
    )


class _FailingAdapter(BaseLLMAdapter):
    def generate(self, prompt: str) -> str:
        raise RuntimeError("provider unavailable")


class _CapturingAdapter(BaseLLMAdapter):
    def __init__(self) -> None:
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return json.dumps({"insights": ["LLM says hi"], "recommendations": ["do x"]})


# ---------------------------------------------------------------------------
# Risk analysis
# ---------------------------------------------------------------------------


def test_concentration_and_near_minimum_flags() -> None:
    policies = [_policy("Property", "5200")] * 4 + [_policy("Auto", "50000")]

    analysis = analyze_risks(_summary(5, by_type={"Property": 4, "Auto": 1}), policies)

    assert "CONCENTRATION_PROPERTY" in analysis.risk_flags
    assert "VALUES_NEAR_MINIMUM" in analysis.risk_flags
    assert analysis.policies_near_minimum == 4
    assert analysis.concentration == ["Property: 80.0%"]


def test_near_minimum_uses_strict_factor() -> None:
    analysis = analyze_risks(_summary(2), [_policy("Property", "5500"), _policy("Auto", "10999")])

    assert analysis.policies_near_minimum == 1


def test_expired_and_cancelled_share_flag() -> None:
    summary = _summary(10, by_status={"active": 6, "expired": 2, "cancelled": 2})

    assert "HIGH_EXPIRED_CANCELLED" in analyze_risks(summary, []).risk_flags


def test_low_diversity_flag() -> None:
    summary = _summary(30, by_type={"Property": 30})

    assert "LOW_DIVERSITY" in analyze_risks(summary, []).risk_flags


def test_two_types_are_diverse_even_when_one_is_small() -> None:
    summary = _summary(16, by_type={"Property": 11, "Auto": 5})
    policies = [_policy("Property", "90000")] * 11 + [_policy("Auto", "90000")] * 5

    flags = analyze_risks(summary, policies).risk_flags

    assert "LOW_DIVERSITY" not in flags
    assert flags == ["CONCENTRATION_PROPERTY"]


def test_small_single_type_portfolio_is_not_low_diversity() -> None:
    summary = _summary(10, by_type={"Auto": 10})

    assert "LOW_DIVERSITY" not in analyze_risks(summary, []).risk_flags


def test_balanced_portfolio_has_no_flags() -> None:
    summary = _summary(30, by_type={"Property": 15, "Auto": 15})
    policies = [_policy("Property", "90000")] * 15 + [_policy("Auto", "90000")] * 15

    assert analyze_risks(summary, policies).risk_flags == []


# ---------------------------------------------------------------------------
# Fallback insights
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "summary, policies",
    [
        (_summary(0, by_status={}), []),
        (_summary(30, by_type={"Property": 15, "Auto": 15}), [_policy("Auto", "90000")]),
        (
            _summary(5, by_status={"expired": 3, "active": 2}, by_type={"Property": 5}),
            [_policy("Property", "5100")] * 5,
        ),
    ],
)
def test_fallback_always_has_two_or_three_recommendations(summary, policies) -> None:
    insights, recommendations = build_fallback_insights(analyze_risks(summary, policies))

    assert insights
    assert 2 <= len(recommendations) <= 3


def test_empty_portfolio_fallback_mentions_upload() -> None:
    insights, recommendations = build_fallback_insights(analyze_risks(_summary(0, by_status={}), []))

    assert insights == ["No policies are registered yet."]
    assert recommendations[0] == "Load policies through the upload endpoint."


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


@pytest.fixture()
def portfolio(session: Session) -> Session:
    PolicyRepository(session).insert_many(
        [
            PolicyCandidate(
                policy_number=f"P-{i}",
                customer="Acme",
                policy_type="Property",
                start_date=None,
                end_date=None,
                premium_usd=Decimal("100"),
                status="active",
                insured_value_usd=Decimal("5100"),
            )
            for i in range(3)
        ]
    )
    session.commit()
    return session


def test_without_adapter_uses_fallback(portfolio: Session) -> None:
    result = InsightService(adapter=None).generate(portfolio)

    assert result.source == "fallback"
    assert result.total_policies == 3
    assert result.risk_flags >= 1
    assert 2 <= len(result.recommendations) <= 3


def test_adapter_failure_uses_fallback(portfolio: Session) -> None:
    result = InsightService(adapter=_FailingAdapter()).generate(portfolio)

    assert result.source == "fallback"


def test_llm_answer_is_returned_with_padded_recommendations(portfolio: Session) -> None:
    adapter = _CapturingAdapter()

    result = InsightService(adapter=adapter).generate(portfolio)

    assert result.source == "llm"
    assert result.insights == ["LLM says hi"]
    assert len(result.recommendations) == 2
    assert '"total_policies": 3' in adapter.prompts[0]


def test_build_adapter_from_settings() -> None:
    assert build_insight_adapter(InsightSettings(provider="none")) is None
    assert isinstance(build_insight_adapter(InsightSettings(provider="mock")), MockLLMAdapter)
    assert build_insight_adapter(InsightSettings(provider="openai", api_key=None)) is None
