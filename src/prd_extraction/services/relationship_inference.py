"""Foreign-key relationship inference.

Every field named ``<name>Id`` (other than ``id`` itself) is a candidate
foreign key to an entity called ``<name>``.  Matching is an exact,
case-insensitive name lookup through an index built in declaration
order; when several entities share a lower-cased name the first one
declared is the target.  No pluralisation or fuzzy matching is applied.
"""
from __future__ import annotations

import logging

from src.shared.models.entity import (
    Cardinality,
    Entity,
    EntitySource,
    EntitySourceType,
    Relationship,
    RelationshipEnd,
    RelationshipType,
)

logger = logging.getLogger(__name__)

_FK_SUFFIX = "Id"


def build_name_index(entities: list[Entity]) -> dict[str, Entity]:
    """Map lower-cased entity names to entities; the first declaration wins."""
    index: dict[str, Entity] = {}
    for entity in entities:
        index.setdefault(entity.name.lower(), entity)
    return index


def foreign_key_target(field_name: str) -> str | None:
    """Return the referenced entity name implied by *field_name*, if any.

    >>> foreign_key_target("customerId")
    'customer'
    >>> foreign_key_target("id") is None
    True
    """
    if field_name == "id" or not field_name.endswith(_FK_SUFFIX):
        return None
    stem = field_name[: -len(_FK_SUFFIX)]
    return stem or None


def infer_relationships(entities: list[Entity]) -> list[Relationship]:
    """Infer many-to-one relationships from ``<name>Id`` fields.

    Returns relationships in entity declaration order, then field order.
    Each points from the owning entity and field (cardinality ``*``) to
    the referenced entity's primary-key field (cardinality ``1``).
    """
    index = build_name_index(entities)
    relationships: list[Relationship] = []

    for entity in entities:
        for f in entity.fields:
            stem = foreign_key_target(f.name)
            if stem is None:
                continue
            target = index.get(stem.lower())
            if target is None:
                continue
            pk = target.primary_key()
            relationships.append(Relationship(
                name=f"{entity.name}_{target.name}",
                type=RelationshipType.MANY_TO_ONE,
                from_=RelationshipEnd(
                    entity=entity.name, field=f.name, cardinality=Cardinality.MANY,
                ),
                to=RelationshipEnd(
                    entity=target.name,
                    field=pk.name if pk is not None else "id",
                    cardinality=Cardinality.ONE,
                ),
                source=EntitySource(type=EntitySourceType.PRD_INFERRED),
            ))

    logger.debug("Inferred %d relationships from %d entities", len(relationships), len(entities))
    return relationships


def merge_relationships(
    explicit: list[Relationship], inferred: list[Relationship]
) -> list[Relationship]:
    """Combine explicit and inferred relationships.

    An inferred relationship is dropped when an explicit one already
    connects the same (from entity, from field, to entity) triple.
    Explicit relationships come first, both lists keep their order.
    """
    seen = {_key(r) for r in explicit}
    merged = list(explicit)
    for rel in inferred:
        key = _key(rel)
        if key not in seen:
            seen.add(key)
            merged.append(rel)
    return merged


def _key(rel: Relationship) -> tuple[str, str, str]:
    return (rel.from_.entity.lower(), rel.from_.field.lower(), rel.to.entity.lower())
