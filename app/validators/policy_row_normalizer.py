"""
app/validators/policy_row_normalizer.py

Technical validation and type parsing for one uploaded policy row.

Dates are optional. The range check only runs when both dates are present;
a lone date that cannot be parsed is stored as None and logged at DEBUG.
Text fields and amounts must fit the policies table, otherwise the row is
rejected instead of failing the whole insert.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping

from app.domain.policy import PolicyCandidate, RowError
from db.base import MONEY_LIMIT, MONEY_SCALE
from db.models.policy import (
    CUSTOMER_MAX_LENGTH,
    POLICY_NUMBER_MAX_LENGTH,
    POLICY_TYPE_MAX_LENGTH,
    PolicyStatus,
)

logger = logging.getLogger(__name__)

DATE_FORMATS: tuple[str, ...] = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d.%m.%Y",
    "%Y-%m-%d %H:%M:%S",
)

_CENT = Decimal(1).scaleb(-MONEY_SCALE)

MAX_LENGTHS: dict[str, int] = {
    "policy_number": POLICY_NUMBER_MAX_LENGTH,
    "customer": CUSTOMER_MAX_LENGTH,
    "policy_type": POLICY_TYPE_MAX_LENGTH,
}

POLICY_NUMBER_REQUIRED = "POLICY_NUMBER_REQUIRED"
INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
INVALID_STATUS = "INVALID_STATUS"
INVALID_NUMBER = "INVALID_NUMBER"
FIELD_TOO_LONG = "FIELD_TOO_LONG"
DUPLICATE_POLICY_NUMBER = "DUPLICATE_POLICY_NUMBER"

ERROR_MESSAGES: dict[str, str] = {
    POLICY_NUMBER_REQUIRED: "Policy number is required.",
    INVALID_DATE_RANGE: "start_date must be a valid date earlier than end_date.",
    INVALID_STATUS: "status must be one of: active, expired, cancelled.",
    INVALID_NUMBER: "premium_usd and insured_value_usd must be valid numbers.",
    FIELD_TOO_LONG: "Value exceeds the maximum length for this field.",
    DUPLICATE_POLICY_NUMBER: "Policy number already exists.",
}


class PolicyRowNormalizer:
    """
    Turns a header-keyed CSV record into a PolicyCandidate or its defects.
    """

    def normalize(
        self,
        *,
        raw_row: Mapping[str, Any],
        row_number: int,
    ) -> tuple[PolicyCandidate | None, list[RowError]]:
        """
        Validate and parse one record.

        Every check runs; the numeric check is reported only when the row
        has no other defect.
        """

        errors: list[RowError] = []

        policy_number = self.policy_number_of(raw_row)
        if not policy_number:
            errors.append(self._error(POLICY_NUMBER_REQUIRED, "policy_number", row_number))

        start_raw = self._field(raw_row, "start_date")
        end_raw = self._field(raw_row, "end_date")
        start_date = self._parse_date(start_raw)
        end_date = self._parse_date(end_raw)
        if start_raw and end_raw:
            if start_date is None or end_date is None or start_date >= end_date:
                errors.append(self._error(INVALID_DATE_RANGE, "start_date,end_date", row_number))
        elif (start_raw and start_date is None) or (end_raw and end_date is None):
            logger.debug(
                "Unparseable lone date on row %s stored as empty start=%r end=%r",
                row_number,
                start_raw,
                end_raw,
            )

        status = self._field(raw_row, "status").lower()
        if status not in PolicyStatus.ALL:
            errors.append(self._error(INVALID_STATUS, "status", row_number))

        for name, max_length in MAX_LENGTHS.items():
            if len(self._field(raw_row, name)) > max_length:
                errors.append(self._error(FIELD_TOO_LONG, name, row_number))

        premium_usd = self._parse_amount(self._field(raw_row, "premium_usd"))
        insured_value_usd = self._parse_amount(self._field(raw_row, "insured_value_usd"))
        if premium_usd is None or insured_value_usd is None:
            if not errors:
                errors.append(
                    self._error(INVALID_NUMBER, "premium_usd|insured_value_usd", row_number)
                )

        if errors or premium_usd is None or insured_value_usd is None:
            return None, errors

        return (
            PolicyCandidate(
                policy_number=policy_number,
                customer=self._field(raw_row, "customer"),
                policy_type=self._field(raw_row, "policy_type"),
                start_date=start_date,
                end_date=end_date,
                premium_usd=premium_usd,
                status=status,
                insured_value_usd=insured_value_usd,
            ),
            [],
        )

    @classmethod
    def policy_number_of(cls, raw_row: Mapping[str, Any]) -> str:
        """
        Trimmed policy number of a raw record ("" when missing).
        """

        return cls._field(raw_row, "policy_number")

    @staticmethod
    def _field(raw_row: Mapping[str, Any], key: str) -> str:
        # Headers normally arrive as snake_case; the spaced form is a fallback.
        value = raw_row.get(key)
        if value is None:
            value = raw_row.get(key.replace("_", " "))
        if value is None:
            return ""
        return str(value).strip()

    @staticmethod
    def _parse_date(value: str) -> date | None:
        if not value:
            return None

        try:
            return date.fromisoformat(value)
        except ValueError:
            pass

        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            return datetime.fromisoformat(normalized).date()
        except ValueError:
            pass

        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(value, fmt).date()
            except ValueError:
                continue
        return None

    @staticmethod
    def _parse_amount(value: str) -> Decimal | None:
        if not value:
            return None
        try:
            amount = Decimal(value)
        except (InvalidOperation, ValueError):
            return None
        if not amount.is_finite() or abs(amount) >= MONEY_LIMIT:
            return None
        if abs(amount.quantize(_CENT, rounding=ROUND_HALF_UP)) >= MONEY_LIMIT:
            return None
        return amount

    @staticmethod
    def _error(code: str, field: str, row_number: int) -> RowError:
        return RowError(
            row_number=row_number,
            code=code,
            field=field,
            message=ERROR_MESSAGES[code],
        )
