"""
Response extraction for chart analysis replies.

Models frequently wrap the requested JSON in commentary or markdown fences,
so the object is located by taking everything from the first ``{`` to the
last ``}``. Only ``recommendation`` is strict; every other field falls back
to a default instead of failing the request.
"""
import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from .types import (
    AnalysisResult,
    Recommendation,
    ResponseParseError,
    DEFAULT_CONFIDENCE,
    DEFAULT_EXPLANATION,
    DEFAULT_TIMEFRAME,
)

logger = logging.getLogger(__name__)

# Greedy on purpose: first "{" through last "}", across newlines.
JSON_SPAN = re.compile(r"\{[\s\S]*\}")


def find_json_span(text: str) -> Optional[str]:
    if not text:
        return None
    match = JSON_SPAN.search(text)
    return match.group(0) if match else None


def _parse_recommendation(value: Any) -> Recommendation:
    if isinstance(value, str):
        normalized = value.strip().upper()
        if normalized in Recommendation.__members__:
            return Recommendation(normalized)
    raise ResponseParseError("Formato de recomendación inválido")


def _parse_confidence(value: Any) -> float:
    # bool is an int subclass; true/false are not confidences
    if isinstance(value, bool) or value is None:
        return DEFAULT_CONFIDENCE
    if isinstance(value, str):
        match = re.match(r"\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?", value)
        if not match:
            return DEFAULT_CONFIDENCE
        value = match.group(0)
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(confidence) or math.isinf(confidence):
        return DEFAULT_CONFIDENCE
    return confidence


def _parse_text(value: Any, default: str) -> str:
    if not value or isinstance(value, (dict, list)):
        return default
    return str(value)


def _parse_patterns(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(p) for p in value if p is not None]


def extract_analysis(text: str) -> AnalysisResult:
    """
    Turn a raw model reply into an AnalysisResult.

    Raises ResponseParseError when the reply holds no JSON object, when the
    object is malformed, or when ``recommendation`` is missing or not one of
    SUBIR / BAJAR / NEUTRAL (case-insensitive).
    """
    span = find_json_span(text)
    if span is None:
        logger.warning(f"Model reply contained no JSON: {(text or '')[:200]!r}")
        raise ResponseParseError("La respuesta del modelo no contiene un JSON válido", raw_text=text)

    try:
        parsed: Dict[str, Any] = json.loads(span)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError is a ValueError; very deep nesting exhausts the decoder stack
        logger.warning(f"Model reply JSON could not be parsed: {e}")
        raise ResponseParseError(f"JSON inválido en la respuesta del modelo: {e}", raw_text=text) from e

    if not isinstance(parsed, dict):
        raise ResponseParseError("La respuesta del modelo no contiene un objeto JSON", raw_text=text)

    return AnalysisResult(
        recommendation=_parse_recommendation(parsed.get("recommendation")),
        confidence=_parse_confidence(parsed.get("confidence")),
        explanation=_parse_text(parsed.get("explanation"), DEFAULT_EXPLANATION),
        patterns=_parse_patterns(parsed.get("patterns")),
        timeframe=_parse_text(parsed.get("timeframe"), DEFAULT_TIMEFRAME),
    )
