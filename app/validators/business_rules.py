"""
app/validators/business_rules.py

Business rules applied to technically valid policy candidates.

Each rule is an independent value object exposing ``evaluate``; the
PolicyRuleValidator runs an ordered collection of them and merges every
violation. New rules are added by passing them to the validator.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from app.domain.policy import PolicyCandidate, RuleViolation
from db.models.policy import PolicyType

PROPERTY_VALUE_TOO_LOW = "PROPERTY_VALUE_TOO_LOW"
AUTO_VALUE_TOO_LOW = "AUTO_VALUE_TOO_LOW"

PROPERTY_MIN_INSURED_VALUE_USD = Decimal("5000")
AUTO_MIN_INSURED_VALUE_USD = Decimal("10000")


class BusinessRule(Protocol):
    """Contract implemented by every business rule."""

    name: str

    def evaluate(self, candidate: PolicyCandidate) -> list[RuleViolation]: ...


def _minimum_insured_value(
    candidate: PolicyCandidate,
    *,
    policy_type: str,
    minimum: Decimal,
    code: str,
) -> list[RuleViolation]:
    if candidate.policy_type != policy_type:
        return []
    if candidate.insured_value_usd >= minimum:
        return []
    return [
        RuleViolation(
            code=code,
            field="insured_value_usd",
            message=(
                f"{policy_type} policies require insured_value_usd >= {minimum}. "
                f"Got {candidate.insured_value_usd}."
            ),
        )
    ]


@dataclass(frozen=True)
class PropertyMinInsuredValueRule:
    """Property policies must insure at least ``minimum`` USD."""

    minimum: Decimal = PROPERTY_MIN_INSURED_VALUE_USD
    name: str = "property_min_insured_value"

    def evaluate(self, candidate: PolicyCandidate) -> list[RuleViolation]:
        return _minimum_insured_value(
            candidate,
            policy_type=PolicyType.PROPERTY,
            minimum=self.minimum,
            code=PROPERTY_VALUE_TOO_LOW,
        )


@dataclass(frozen=True)
class AutoMinInsuredValueRule:
    """Auto policies must insure at least ``minimum`` USD."""

    minimum: Decimal = AUTO_MIN_INSURED_VALUE_USD
    name: str = "auto_min_insured_value"

    def evaluate(self, candidate: PolicyCandidate) -> list[RuleViolation]:
        return _minimum_insured_value(
            candidate,
            policy_type=PolicyType.AUTO,
            minimum=self.minimum,
            code=AUTO_VALUE_TOO_LOW,
        )


@dataclass(frozen=True)
class PolicyRuleValidator:
    """
    Runs every rule against a candidate and concatenates the violations.

    Rules are evaluated in order and never short-circuit, so one row can
    fail several rules at once.
    """

    rules: Sequence[BusinessRule] = ()

    def validate(self, candidate: PolicyCandidate) -> list[RuleViolation]:
        violations: list[RuleViolation] = []
        for rule in self.rules:
            violations.extend(rule.evaluate(candidate))
        return violations

    def with_rule(self, rule: BusinessRule) -> PolicyRuleValidator:
        """Return a new validator appending ``rule`` at the end."""

        return PolicyRuleValidator(rules=(*self.rules, rule))

    def extend(self, rules: Iterable[BusinessRule]) -> PolicyRuleValidator:
        return PolicyRuleValidator(rules=(*self.rules, *rules))


def create_default_validator() -> PolicyRuleValidator:
    """
    Validator carrying the mandatory minimum insured value rules.
    """

    return PolicyRuleValidator(
        rules=(
            PropertyMinInsuredValueRule(),
            AutoMinInsuredValueRule(),
        )
    )
