"""Tests for the entity graph validator."""
from __future__ import annotations

from src.prd_extraction.services.entity_normalizer import normalize_entity
from src.prd_extraction.services.relationship_inference import infer_relationships
from src.prd_extraction.services.response_parser import normalize_relationship
from src.prd_extraction.services.validator import validate_entity_graph
from src.shared.models.entity import (
    Entity,
    EntityField,
    EntitySource,
    EntitySourceType,
    FieldSource,
    FieldSourceType,
)


def _graph():
    entities = [
        normalize_entity({"name": "Order", "fields": [{"name": "customerId"}]}),
        normalize_entity({"name": "Customer"}),
    ]
    return entities, infer_relationships(entities)


class TestValidateEntityGraph:
    def test_clean_graph(self):
        entities, relationships = _graph()
        assert validate_entity_graph(entities, relationships) == []

    def test_empty_graph(self):
        assert validate_entity_graph([], []) == []

    def test_unknown_entity(self):
        entities, _ = _graph()
        rel = normalize_relationship({
            "name": "ghost",
            "from": {"entity": "Order", "field": "customerId"},
            "to": {"entity": "Supplier"},
        })
        issues = validate_entity_graph(entities, [rel])
        assert issues == [
            "WARNING: Relationship 'ghost' references non-existent target entity 'Supplier'"
        ]

    def test_unknown_field(self):
        entities, _ = _graph()
        rel = normalize_relationship({
            "name": "bad_field",
            "from": {"entity": "Order", "field": "buyerId"},
            "to": {"entity": "Customer"},
        })
        issues = validate_entity_graph(entities, [rel])
        assert issues == [
            "WARNING: Relationship 'bad_field' references non-existent source field 'Order.buyerId'"
        ]

    def test_duplicate_entity_names_flag_ambiguity(self):
        entities = [normalize_entity({"name": "Customer"}), normalize_entity({"name": "customer"})]
        issues = validate_entity_graph(entities, [])
        assert len(issues) == 1
        assert issues[0].startswith("WARNING: Entity name 'Customer' is declared 2 times")

    def test_primary_key_count(self):
        entity = Entity(
            name="Loose",
            table_name="loose",
            fields=[EntityField(
                name="label",
                column_name="label",
                source=FieldSource(type=FieldSourceType.MANUAL),
            )],
            source=EntitySource(type=EntitySourceType.MANUAL),
        )
        assert validate_entity_graph([entity], []) == [
            "WARNING: Entity 'Loose' has 0 primary key fields"
        ]

    def test_duplicate_field_names(self):
        field = EntityField(
            name="code", column_name="code",
            source=FieldSource(type=FieldSourceType.MANUAL),
        )
        entity = normalize_entity({"name": "Region", "fields": [{"name": "code"}]})
        entity = entity.model_copy(update={"fields": [*entity.fields, field]})
        assert "WARNING: Field 'Region.code' is declared 2 times" in validate_entity_graph([entity], [])

    def test_required_foreign_key_cycle(self):
        entities = [
            normalize_entity({"name": "Husband", "fields": [{"name": "wifeId", "required": True}]}),
            normalize_entity({"name": "Wife", "fields": [{"name": "husbandId", "required": True}]}),
        ]
        issues = validate_entity_graph(entities, infer_relationships(entities))
        assert len(issues) == 1
        assert issues[0].startswith("WARNING: Circular required foreign keys:")
        assert "Husband" in issues[0] and "Wife" in issues[0]

    def test_nullable_cycle_allowed(self):
        entities = [
            normalize_entity({"name": "Husband", "fields": [{"name": "wifeId"}]}),
            normalize_entity({"name": "Wife", "fields": [{"name": "husbandId", "required": True}]}),
        ]
        assert validate_entity_graph(entities, infer_relationships(entities)) == []
