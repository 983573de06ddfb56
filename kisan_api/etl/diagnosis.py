"""Prompt text and reply parsing for leaf diagnoses."""

import json
import logging
import re
from typing import Any, List

from kisan_api.models import Diagnosis, TreatmentStep

logger = logging.getLogger(__name__)

FALLBACK_PRODUCT = "General"

DIAGNOSIS_PROMPT = """
Act as a Senior Agronomist for Kisan-AGI.

I will provide an image of a crop.
1. Identify the disease.
2. GENERATE a 3-step treatment schedule. Do not leave this empty.

RETURN JSON ONLY.

EXAMPLE OUTPUT (Follow this format exactly):
{
  "disease_name": "Tomato Early Blight",
  "confidence_score": 98,
  "timeline": [
    {
      "day": "Day 1",
      "title": "Fungicide Application",
      "detail": "Spray Copper Oxychloride (3g/liter) ensuring full leaf coverage."
    },
    {
      "day": "Day 5",
      "title": "Observation",
      "detail": "Check for new lesions. If spotting continues, re-apply spray."
    },
    {
      "day": "Day 10",
      "title": "Prevention",
      "detail": "Mulch soil to prevent spore splashback. Prune lower leaves."
    }
  ]
}

NOW ANALYZE THE PROVIDED IMAGE AND GENERATE THE PLAN.
""".strip()

_FENCE_RE = re.compile(r"```json|```")


class DiagnosisParseError(ValueError):
    """Raised when the model reply is not the expected JSON shape."""


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def recommended_product(timeline: List[TreatmentStep]) -> str:
    """First word of the first step's detail; assumes it names the treatment."""
    words = timeline[0].detail.split()
    return words[0] if words else FALLBACK_PRODUCT


def _parse_step(raw: Any, index: int) -> TreatmentStep:
    if not isinstance(raw, dict):
        raise DiagnosisParseError(f"timeline[{index}] is not an object")
    detail = raw.get("detail")
    if not isinstance(detail, str):
        raise DiagnosisParseError(f"timeline[{index}] has no detail text")
    return TreatmentStep(
        day=str(raw.get("day") or ""),
        title=str(raw.get("title") or ""),
        detail=detail,
    )


def parse_diagnosis(text: str) -> Diagnosis:
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except ValueError as exc:
        logger.error("Model reply is not JSON: %.200s", cleaned)
        raise DiagnosisParseError(f"Model reply is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise DiagnosisParseError("Model reply is not a JSON object")
    if not data.get("disease_name"):
        raise DiagnosisParseError("Model reply is missing disease_name")

    raw_timeline = data.get("timeline")
    if not isinstance(raw_timeline, list) or not raw_timeline:
        raise DiagnosisParseError("Model reply has an empty or missing timeline")

    timeline = [_parse_step(raw, index) for index, raw in enumerate(raw_timeline)]
    return Diagnosis(
        disease_name=str(data["disease_name"]),
        confidence_score=data.get("confidence_score"),
        timeline=timeline,
        recommended_product=recommended_product(timeline),
    )
