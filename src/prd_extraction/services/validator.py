"""Entity graph validator.

Pure-function module that checks an entity graph for referential
inconsistencies: relationships naming unknown entities or fields,
ambiguous entity names, primary-key violations, and cycles of required
foreign keys.  Every finding is a non-fatal ``WARNING:`` string for the
caller to display; nothing here raises.
"""

from __future__ import annotations

from collections import defaultdict

import networkx as nx

from src.shared.models.entity import Entity, Relationship


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_entity_graph(
    entities: list[Entity],
    relationships: list[Relationship],
) -> list[str]:
    """Validate an entity graph.

    Checks performed:
        1. Entity name uniqueness (case-insensitive; duplicates make
           foreign-key inference ambiguous)
        2. Field name uniqueness within each entity
        3. Exactly one primary key per entity
        4. Relationship endpoints name existing entities and fields
        5. No cycle made only of non-nullable foreign keys

    Args:
        entities: Normalized entities.
        relationships: Explicit and inferred relationships.

    Returns:
        List of warning strings.  Empty list means no issues were found.
    """
    issues: list[str] = []

    issues.extend(_check_entity_name_uniqueness(entities))
    issues.extend(_check_field_name_uniqueness(entities))
    issues.extend(_check_primary_keys(entities))
    issues.extend(_check_relationship_endpoints(entities, relationships))
    issues.extend(_check_required_cycles(entities, relationships))

    return issues


# ---------------------------------------------------------------------------
# Individual validation checks (private helpers)
# ---------------------------------------------------------------------------


def _check_entity_name_uniqueness(entities: list[Entity]) -> list[str]:
    """Report entity names declared more than once (case-insensitive)."""
    issues: list[str] = []

    declared: dict[str, list[str]] = defaultdict(list)
    for entity in entities:
        declared[entity.name.lower()].append(entity.name)

    for names in declared.values():
        if len(names) > 1:
            issues.append(
                f"WARNING: Entity name '{names[0]}' is declared {len(names)} times; "
                f"foreign keys resolve to the first declaration"
            )

    return issues


def _check_field_name_uniqueness(entities: list[Entity]) -> list[str]:
    issues: list[str] = []

    for entity in entities:
        counts: dict[str, int] = defaultdict(int)
        for f in entity.fields:
            counts[f.name] += 1
        for name, count in counts.items():
            if count > 1:
                issues.append(
                    f"WARNING: Field '{entity.name}.{name}' is declared {count} times"
                )

    return issues


def _check_primary_keys(entities: list[Entity]) -> list[str]:
    """Every entity must have exactly one primary-key field."""
    issues: list[str] = []

    for entity in entities:
        pk_count = sum(1 for f in entity.fields if f.constraints.primary_key)
        if pk_count != 1:
            issues.append(
                f"WARNING: Entity '{entity.name}' has {pk_count} primary key fields"
            )

    return issues


def _check_relationship_endpoints(
    entities: list[Entity],
    relationships: list[Relationship],
) -> list[str]:
    """Verify that every relationship references entities and fields that exist."""
    issues: list[str] = []

    index: dict[str, Entity] = {}
    for entity in entities:
        index.setdefault(entity.name.lower(), entity)

    for rel in relationships:
        for role, end in (("source", rel.from_), ("target", rel.to)):
            entity = index.get(end.entity.lower())
            if entity is None:
                issues.append(
                    f"WARNING: Relationship '{rel.name}' references non-existent "
                    f"{role} entity '{end.entity}'"
                )
            elif end.field not in entity.field_names():
                issues.append(
                    f"WARNING: Relationship '{rel.name}' references non-existent "
                    f"{role} field '{entity.name}.{end.field}'"
                )

    return issues


def _check_required_cycles(
    entities: list[Entity],
    relationships: list[Relationship],
) -> list[str]:
    """Detect cycles of non-nullable foreign keys.

    Builds a directed graph where an edge ``A -> B`` means entity *A*
    holds a non-nullable field referencing *B*.  No row of any entity on
    such a cycle can be inserted first.
    """
    issues: list[str] = []

    index: dict[str, Entity] = {}
    for entity in entities:
        index.setdefault(entity.name.lower(), entity)

    graph = nx.DiGraph()
    for rel in relationships:
        source = index.get(rel.from_.entity.lower())
        target = index.get(rel.to.entity.lower())
        if source is None or target is None or source.name == target.name:
            continue
        field = next((f for f in source.fields if f.name == rel.from_.field), None)
        if field is not None and not field.constraints.nullable:
            graph.add_edge(source.name, target.name)

    for cycle in nx.simple_cycles(graph):
        cycle_path = " -> ".join(cycle + [cycle[0]])
        issues.append(
            f"WARNING: Circular required foreign keys: {cycle_path}"
        )

    return issues
