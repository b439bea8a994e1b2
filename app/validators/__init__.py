"""
app/validators package marker.
"""

from app.validators.business_rules import (
    AutoMinInsuredValueRule,
    BusinessRule,
    PolicyRuleValidator,
    PropertyMinInsuredValueRule,
    create_default_validator,
)
from app.validators.policy_row_normalizer import PolicyRowNormalizer

__all__ = [
    "AutoMinInsuredValueRule",
    "BusinessRule",
    "PolicyRowNormalizer",
    "PolicyRuleValidator",
    "PropertyMinInsuredValueRule",
    "create_default_validator",
]
