"""Normalization of untrusted extraction responses.

An external language model (called by a collaborator outside this
package) returns entity extraction output as text that should contain a
JSON object with ``entities``, ``relationships`` and ``suggestions``
arrays.  Nothing about that text is trusted: it may be wrapped in a
fenced code block, malformed, the wrong shape, or missing any sub-field.

``parse_extraction_response`` is total.  Every sub-field is replaced by
a safe default when missing or invalid, and a response that cannot be
decoded at all becomes a single zero-confidence suggestion describing
the failure.
"""
from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from src.prd_extraction.services.entity_normalizer import merge_entities, normalize_entity
from src.prd_extraction.services.naming import to_camel_case, to_pascal_case
from src.shared.constants import CONFIDENCE_AI
from src.shared.models.entity import (
    Cardinality,
    EntityExtractionResult,
    EntitySource,
    EntitySourceType,
    EntitySuggestion,
    Relationship,
    RelationshipEnd,
    RelationshipType,
    SuggestionType,
)

logger = logging.getLogger(__name__)

_FENCED_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)

_PARSE_FAILURE_SUGGESTION = (
    "Entity extraction failed to parse the response. "
    "Please try again or add entities manually."
)


def parse_extraction_response(content: str) -> EntityExtractionResult:
    """Decode a raw model response and normalize it.

    Args:
        content: The response text, optionally wrapped in a fenced code
            block.

    Returns:
        The normalized result.  On a decode or shape failure the result
        has no entities or relationships, one suggestion with confidence
        0 and reason ``"Parse error"``, and ``raw_response`` set to
        *content*.
    """
    text = content if isinstance(content, str) else ""
    payload_text = text.strip()
    if payload_text.startswith("```"):
        m = _FENCED_RE.search(payload_text)
        if m:
            payload_text = m.group(1).strip()

    try:
        payload = json.loads(payload_text)
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse extraction response: %s", exc)
        return _parse_failure(text)

    if not isinstance(payload, dict):
        logger.warning(
            "Extraction response is a JSON %s, expected an object",
            type(payload).__name__,
        )
        return _parse_failure(text)

    return normalize_extraction_result(payload)


def normalize_extraction_result(payload: Any) -> EntityExtractionResult:
    """Normalize an already-decoded response payload.

    Non-list ``entities``/``relationships``/``suggestions`` are treated
    as empty.  Entities sharing a name (case-insensitive) are merged into
    the first one.
    """
    if not isinstance(payload, dict):
        payload = {}

    source = EntitySource(type=EntitySourceType.AI_EXTRACTED)
    entities = merge_entities([], [
        normalize_entity(raw, source=source, confidence=CONFIDENCE_AI)
        for raw in _as_list(payload.get("entities"))
    ])
    relationships = [normalize_relationship(r) for r in _as_list(payload.get("relationships"))]
    suggestions = [normalize_suggestion(s) for s in _as_list(payload.get("suggestions"))]

    logger.debug(
        "Normalized extraction response: %d entities, %d relationships, %d suggestions",
        len(entities), len(relationships), len(suggestions),
    )
    return EntityExtractionResult(
        entities=entities,
        relationships=relationships,
        suggestions=suggestions,
    )


def normalize_relationship(raw: Any) -> Relationship:
    """Normalize one raw relationship record.

    Entity names are PascalCased and field names camelCased; missing
    fields default to ``id``.  Unknown relationship types fall back to
    many-to-one and unknown cardinalities to ``"1"``.
    """
    if not isinstance(raw, dict):
        raw = {}
    from_end = _relationship_end(raw.get("from"))
    to_end = _relationship_end(raw.get("to"))
    name = raw.get("name")
    description = raw.get("description")
    return Relationship(
        name=name.strip() if isinstance(name, str) and name.strip()
        else f"{from_end.entity}_{to_end.entity}" if from_end.entity and to_end.entity
        else "unnamed_relationship",
        type=_enum_or(RelationshipType, raw.get("type"), RelationshipType.MANY_TO_ONE),
        from_=from_end,
        to=to_end,
        description=str(description) if description is not None else None,
        source=EntitySource(type=EntitySourceType.AI_EXTRACTED),
    )


def normalize_suggestion(raw: Any) -> EntitySuggestion:
    """Normalize one raw suggestion record (confidence clamped to 0..1)."""
    if isinstance(raw, str):
        raw = {"suggestion": raw}
    if not isinstance(raw, dict):
        raw = {}
    confidence = _finite(raw.get("confidence"))
    if not confidence:
        confidence = 0.5
    return EntitySuggestion(
        type=_enum_or(SuggestionType, raw.get("type"), SuggestionType.ADD_ENTITY),
        target=_str(raw.get("target")),
        suggestion=_str(raw.get("suggestion")),
        reason=_str(raw.get("reason")),
        confidence=max(0.0, min(1.0, confidence)),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_failure(content: str) -> EntityExtractionResult:
    return EntityExtractionResult(
        suggestions=[EntitySuggestion(
            type=SuggestionType.ADD_ENTITY,
            target="general",
            suggestion=_PARSE_FAILURE_SUGGESTION,
            reason="Parse error",
            confidence=0.0,
        )],
        raw_response=content,
    )


def _relationship_end(raw: Any) -> RelationshipEnd:
    if not isinstance(raw, dict):
        raw = {}
    return RelationshipEnd(
        entity=to_pascal_case(_str(raw.get("entity"))),
        field=to_camel_case(_str(raw.get("field"))) or "id",
        cardinality=_enum_or(Cardinality, raw.get("cardinality"), Cardinality.ONE),
    )


def _enum_or(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except (TypeError, ValueError):
        return default


def _finite(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""
