"""Validation layer for raw LLM insight output.

Parses and validates JSON strings against the PolicyInsightOutput schema.
"""

import json
import re
from typing import Any, Dict, List

from pydantic import ValidationError

from llm_synthesis.schema import (
    MAX_RECOMMENDATIONS,
    MIN_RECOMMENDATIONS,
    PolicyInsightOutput,
)

DEFAULT_RECOMMENDATIONS = (
    "Review insured value and premium thresholds periodically.",
    "Set up alerts when indicators approach their defined limits.",
    "Request additional data or a manual review when anomalies are detected.",
)


class LLMOutputValidationError(Exception):
    """Raised when LLM output fails parsing or schema validation.

    Attributes:
        stage: Which validation step failed ("json_parse" or "schema").
        errors: List of human-readable error descriptions.
        raw_response: The original string that failed validation.
    """

    def __init__(
        self,
        stage: str,
        errors: List[str],
        raw_response: str,
    ) -> None:
        self.stage = stage
        self.errors = errors
        self.raw_response = raw_response
        message = (
            f"LLM output validation failed at stage '{stage}': "
            + "; ".join(errors)
        )
        super().__init__(message)


def _extract_json_object(text: str) -> str:
    """Pull the JSON object out of a response that may carry extra text.

    Models sometimes wrap the object in ```json fences or add a sentence
    around it despite instructions.
    """
    stripped = text.strip()
    fenced = re.search(r"```(?:json)?\s*(.*?)```", stripped, re.DOTALL)
    if fenced:
        stripped = fenced.group(1).strip()
    braces = re.search(r"\{.*\}", stripped, re.DOTALL)
    if braces:
        return braces.group(0)
    return stripped


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def _pad_recommendations(recommendations: List[str]) -> List[str]:
    """Keep between two and three recommendations."""
    padded = list(recommendations)
    for default in DEFAULT_RECOMMENDATIONS:
        if len(padded) >= MIN_RECOMMENDATIONS:
            break
        padded.append(default)
    return padded[:MAX_RECOMMENDATIONS]


def validate_llm_output(raw_response: str) -> PolicyInsightOutput:
    """Parse and validate a raw LLM response string.

    Steps:
        1. Extract the JSON object (fences and surrounding prose removed).
        2. Parse as JSON.
        3. Coerce list fields and pad recommendations to 2-3 entries.
        4. Validate against the PolicyInsightOutput model.

    Raises:
        LLMOutputValidationError: If JSON parsing or schema validation fails.
    """
    cleaned = _extract_json_object(raw_response or "")

    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError) as exc:
        raise LLMOutputValidationError(
            stage="json_parse",
            errors=[str(exc)],
            raw_response=raw_response,
        ) from exc

    if not isinstance(data, dict):
        raise LLMOutputValidationError(
            stage="schema",
            errors=["top-level JSON must be an object"],
            raw_response=raw_response,
        )

    normalized: Dict[str, Any] = {
        "insights": _string_list(data.get("insights")),
        "recommendations": _pad_recommendations(_string_list(data.get("recommendations"))),
    }
    try:
        return PolicyInsightOutput.model_validate(normalized)
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}"
            for e in exc.errors()
        ]
        raise LLMOutputValidationError(
            stage="schema",
            errors=errors,
            raw_response=raw_response,
        ) from exc
