"""Structured verdict extraction from free-form completion text.

Reasoning models do not reliably return bare JSON, so the completion
text goes through a fallback chain, stopping at the first step that
yields parseable JSON:

1. A fenced code block labelled ``json``
2. The whole text
3. The substring from the first ``{`` to the last ``}``
"""

from __future__ import annotations

import math
import re
from typing import Any

import orjson
import pydantic

from peak_core.errors import NoStructuredOutputError, ValidationError
from peak_core.models import AnalysisMetadata, AssessmentResult

REQUIRED_FIELDS = ("score", "analysis", "reasoning", "key_factors")

MIN_SCORE = 1
MAX_SCORE = 100

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)


def _try_loads(text: str) -> tuple[bool, Any]:
    try:
        return True, orjson.loads(text)
    except orjson.JSONDecodeError:
        return False, None


def parse_json_from_text(text: str | None) -> Any:
    """Extract the first parseable JSON value from completion text.

    Raises:
        NoStructuredOutputError: If the text is empty or no step parses
    """
    if not text or not isinstance(text, str):
        raise NoStructuredOutputError("Empty completion text")

    fenced = _FENCED_JSON.search(text)
    if fenced and fenced.group(1):
        ok, value = _try_loads(fenced.group(1))
        if ok:
            return value

    ok, value = _try_loads(text)
    if ok:
        return value

    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        ok, value = _try_loads(text[first : last + 1])
        if ok:
            return value

    raise NoStructuredOutputError("No JSON found in completion text")


def validate_assessment(obj: Any) -> dict[str, Any]:
    """Check the extracted object has the verdict shape.

    Raises:
        ValidationError: Naming the first offending field
    """
    if not isinstance(obj, dict):
        raise ValidationError("<root>", "Completion JSON must be an object")

    for field in REQUIRED_FIELDS:
        if field not in obj:
            raise ValidationError(field, f"Missing: {field}")

    score = obj["score"]
    if (
        isinstance(score, bool)
        or not isinstance(score, (int, float))
        or not math.isfinite(score)
        or score < MIN_SCORE
        or score > MAX_SCORE
    ):
        raise ValidationError("score", f"score must be a number in {MIN_SCORE}..{MAX_SCORE}")

    if not isinstance(obj["key_factors"], list):
        raise ValidationError("key_factors", "key_factors must be an array")

    return obj


def build_result(obj: dict[str, Any], metadata: AnalysisMetadata) -> AssessmentResult:
    """Validate the verdict and attach run metadata."""
    validate_assessment(obj)
    fields = {key: value for key, value in obj.items() if key != "metadata"}
    try:
        return AssessmentResult.model_validate({**fields, "metadata": metadata})
    except pydantic.ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error.get("loc") else "<root>"
        raise ValidationError(field, f"{field}: {error['msg']}") from e
