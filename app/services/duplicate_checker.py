"""
app/services/duplicate_checker.py

Pre-insert duplicate detection against persisted policies.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

logger = logging.getLogger(__name__)


class ExistingPolicyLookup(Protocol):
    def find_existing(self, policy_numbers: Iterable[str]) -> set[str]: ...


class DuplicateChecker:
    """
    Finds which policy numbers of a batch are already stored.

    This is a best-effort pre-check: a concurrent batch may still insert the
    same number before this one commits, which the insert step handles.
    """

    def __init__(self, lookup: ExistingPolicyLookup) -> None:
        self._lookup = lookup

    def find_existing(self, policy_numbers: Iterable[str]) -> set[str]:
        keys = {number for number in policy_numbers if number}
        if not keys:
            return set()

        existing = self._lookup.find_existing(keys) & keys
        logger.debug("Duplicate pre-check keys=%d existing=%d", len(keys), len(existing))
        return existing


def first_occurrence_rows(policy_numbers: Iterable[str]) -> dict[str, int]:
    """
    Map each policy number to the 1-based row where it first appears.

    ``policy_numbers`` holds one entry per parsed row, in batch order; blank
    entries are skipped but still consume a row number.
    """

    rows: dict[str, int] = {}
    for row_number, policy_number in enumerate(policy_numbers, start=1):
        if policy_number and policy_number not in rows:
            rows[policy_number] = row_number
    return rows
