"""
app/domain package marker.
"""

from app.domain.policy import (
    IngestionOutcome,
    IngestionStatusClass,
    PolicyCandidate,
    PolicyFilters,
    PolicySummary,
    RowError,
    RuleViolation,
)

__all__ = [
    "IngestionOutcome",
    "IngestionStatusClass",
    "PolicyCandidate",
    "PolicyFilters",
    "PolicySummary",
    "RowError",
    "RuleViolation",
]
