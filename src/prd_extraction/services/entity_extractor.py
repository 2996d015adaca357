"""Entity extraction for the extraction service.

Builds the canonical entity graph for a ``StructuredPRD``:

  1. PRD-declared entity definitions are normalized.
  2. Entities derived from screen field mappings are merged in (a field
     union by case-insensitive name, never an overwrite).
  3. Foreign-key relationships are inferred from ``<name>Id`` fields.
  4. Suggestions are added for empty or thin models, and the graph is
     validated.

``extract_entities_from_response`` runs steps 3 and 4 on untrusted
structured output instead, keeping its explicit relationships.
"""
from __future__ import annotations

import logging

from src.prd_extraction.services.entity_normalizer import (
    STANDARD_FIELD_NAMES,
    entities_from_screens,
    entity_from_definition,
    merge_entities,
)
from src.prd_extraction.services.relationship_inference import (
    infer_relationships,
    merge_relationships,
)
from src.prd_extraction.services.response_parser import (
    normalize_extraction_result,
    parse_extraction_response,
)
from src.prd_extraction.services.validator import validate_entity_graph
from src.shared.constants import MIN_ENTITY_FIELDS
from src.shared.models.entity import (
    Entity,
    EntityExtractionResult,
    EntitySuggestion,
    Relationship,
    SuggestionType,
)
from src.shared.models.prd import StructuredPRD

logger = logging.getLogger(__name__)


def extract_entities_from_prd(
    prd: StructuredPRD,
    min_fields: int = MIN_ENTITY_FIELDS,
) -> EntityExtractionResult:
    """Extract the entity graph from a parsed PRD.

    Args:
        prd: Parsed PRD.  Not modified.
        min_fields: Entities with fewer non-standard fields than this get
            an ``add-field`` suggestion.

    Returns:
        Entities, inferred relationships, suggestions and validation
        warnings.
    """
    declared = [entity_from_definition(d) for d in prd.data_requirements.entities]
    from_screens = entities_from_screens(prd.all_screens())
    entities = merge_entities(declared, from_screens)

    logger.debug(
        "Extracted %d entities (%d declared, %d from screens)",
        len(entities), len(declared), len(from_screens),
    )
    return _finalize(entities, [], [], min_fields)


def extract_entities_from_response(
    response_text: str | None = None,
    payload: object = None,
    min_fields: int = MIN_ENTITY_FIELDS,
) -> EntityExtractionResult:
    """Normalize untrusted extraction output into a validated entity graph.

    Exactly one of *response_text* (raw model output) or *payload* (an
    already-decoded object) is expected; *response_text* wins when both
    are given.
    """
    if response_text is not None:
        parsed = parse_extraction_response(response_text)
    else:
        parsed = normalize_extraction_result(payload)

    if parsed.raw_response is not None:
        return parsed

    return _finalize(
        parsed.entities, parsed.relationships, parsed.suggestions, min_fields,
    )


def build_suggestions(entities: list[Entity], min_fields: int) -> list[EntitySuggestion]:
    """Suggest additions for an empty model or entities with few fields."""
    suggestions: list[EntitySuggestion] = []
    if not entities:
        suggestions.append(EntitySuggestion(
            type=SuggestionType.ADD_ENTITY,
            target="general",
            suggestion=(
                "No entities were found. Consider defining entities in the "
                "PRD data requirements section."
            ),
            reason="No entities found",
        ))

    for entity in entities:
        own_fields = [f for f in entity.fields if f.name not in STANDARD_FIELD_NAMES]
        if len(own_fields) < min_fields:
            suggestions.append(EntitySuggestion(
                type=SuggestionType.ADD_FIELD,
                target=entity.name,
                suggestion=f'Entity "{entity.name}" has very few fields. Consider adding more fields.',
                reason=f"{len(own_fields)} of at least {min_fields} expected fields",
            ))
    return suggestions


def _finalize(
    entities: list[Entity],
    explicit: list[Relationship],
    suggestions: list[EntitySuggestion],
    min_fields: int,
) -> EntityExtractionResult:
    relationships = merge_relationships(explicit, infer_relationships(entities))
    return EntityExtractionResult(
        entities=entities,
        relationships=relationships,
        suggestions=[*suggestions, *build_suggestions(entities, min_fields)],
        warnings=validate_entity_graph(entities, relationships),
    )
