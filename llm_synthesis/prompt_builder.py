"""Structured prompt builder for portfolio insight generation."""

import json
from typing import Any, Dict, Mapping, Optional

from llm_synthesis.schema import PolicyInsightOutput

_SCHEMA_JSON = json.dumps(PolicyInsightOutput.model_json_schema(), indent=2)

_EXAMPLE_OUTPUT = json.dumps(
    {
        "insights": [
            "Property policies account for 72% of the portfolio.",
            "31% of Auto policies are insured below 1.1x the minimum value.",
            "Expired and cancelled policies make up 35% of the total.",
        ],
        "recommendations": [
            "Diversify the portfolio to reduce concentration in Property.",
            "Route policies insured below 1.1x the minimum to manual review.",
        ],
    },
    indent=2,
)

_SYSTEM_INSTRUCTIONS = """\
Act as an insurance risk analyst.

STRICT RULES:
- Use ONLY the data provided below.
- "insights": 5 to 10 short lines describing risks and anomalies (rejections,
  insured values close to the minimum, concentration by policy type, a high
  share of expired or cancelled policies). Include numbers and percentages.
- "recommendations": exactly 2 or 3 specific, actionable recommendations.
- Return strictly valid JSON matching the schema defined below.
- Do NOT include any text outside the JSON object.
- Do NOT wrap the JSON in markdown code fences.
"""

_SECTION_TEMPLATE = """\
## {title}
```json
{data}
```
"""


class InsightPromptBuilder:
    """Builds a deterministic prompt from the portfolio summary."""

    def build_prompt(
        self,
        summary: Mapping[str, Any],
        risk_analysis: Mapping[str, Any],
        filters: Optional[Mapping[str, str]] = None,
    ) -> str:
        sections: Dict[str, Any] = {
            "portfolio_summary": summary,
            "risk_analysis": risk_analysis,
        }
        active_filters = {key: value for key, value in (filters or {}).items() if value}
        if active_filters:
            sections["applied_filters"] = active_filters

        return (
            f"{_SYSTEM_INSTRUCTIONS}\n"
            f"# PROVIDED DATA\n\n{self._format_data_sections(**sections)}\n"
            f"# OUTPUT SCHEMA\n\n"
            f"Your response MUST conform to this JSON schema:\n\n"
            f"```json\n{_SCHEMA_JSON}\n```\n\n"
            f"# EXAMPLE OUTPUT\n\n"
            f"```json\n{_EXAMPLE_OUTPUT}\n```\n\n"
            f"# TASK\n\n"
            f"Analyse the provided data and answer with a single JSON object "
            f"matching the schema above."
        )

    def _format_data_sections(self, **data: Any) -> str:
        parts = []
        for key, value in data.items():
            title = key.replace("_", " ").title()
            body = json.dumps(value, indent=2, default=str, sort_keys=True)
            parts.append(_SECTION_TEMPLATE.format(title=title, data=body))
        return "\n".join(parts)
