"""
Schema-validated decoding of model replies.

The model answers in free text with an embedded JSON payload. The first
top-level span is extracted and validated against the expected model;
any structural mismatch raises ParseError so the caller can fall back.
"""

from typing import Any, Dict, List, Type, TypeVar

import orjson
from pydantic import BaseModel, TypeAdapter, ValidationError

from errors import ParseError
from schemas import PerformanceAnalysis, PerformanceInsights, ThresholdRecommendation
from utils import extract_json_span, json_loads

ModelT = TypeVar("ModelT", bound=BaseModel)

ACTION_MARKERS = ("recommend", "should", "need to")
SUMMARY_LIMIT = 200
MAX_ACTION_ITEMS = 3

_records_adapter = TypeAdapter(List[Dict[str, Any]])


def _load_span(text: str, opener: str) -> Any:
    span = extract_json_span(text, opener)
    if span is None:
        raise ParseError(f"No JSON payload found in reply: {text[:120]!r}")
    try:
        return json_loads(span)
    except orjson.JSONDecodeError as e:
        raise ParseError(f"Malformed JSON in reply: {e}") from e


def decode_model(text: str, model: Type[ModelT]) -> ModelT:
    payload = _load_span(text, "{")
    # Source is assigned by the client, never taken from the reply.
    if isinstance(payload, dict):
        payload.pop("source", None)
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ParseError(f"Reply does not match {model.__name__}: {e.error_count()} error(s)") from e


def decode_analysis(text: str) -> PerformanceAnalysis:
    return decode_model(text, PerformanceAnalysis)


def decode_threshold_recommendation(text: str) -> ThresholdRecommendation:
    return decode_model(text, ThresholdRecommendation)


def decode_test_records(text: str) -> List[Dict[str, Any]]:
    payload = _load_span(text, "[")
    try:
        records = _records_adapter.validate_python(payload)
    except ValidationError as e:
        raise ParseError(f"Reply is not a list of records: {e.error_count()} error(s)") from e
    if not records:
        raise ParseError("Reply contained no records")
    return records


def extract_action_items(text: str) -> List[str]:
    """Lines that read like advice, at most three"""
    items = []
    for line in text.splitlines():
        if any(marker in line for marker in ACTION_MARKERS):
            items.append(line.strip())
    return items[:MAX_ACTION_ITEMS]


def decode_insights(text: str) -> PerformanceInsights:
    if not text.strip():
        raise ParseError("Empty reply")
    return PerformanceInsights(
        summary=text.strip()[:SUMMARY_LIMIT],
        actionable=extract_action_items(text),
    )
