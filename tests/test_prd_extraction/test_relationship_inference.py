"""Tests for foreign-key relationship inference."""
from __future__ import annotations

from src.prd_extraction.services.entity_normalizer import normalize_entity
from src.prd_extraction.services.relationship_inference import (
    build_name_index,
    foreign_key_target,
    infer_relationships,
    merge_relationships,
)
from src.prd_extraction.services.response_parser import normalize_relationship
from src.shared.models.entity import Cardinality, EntitySourceType, RelationshipType


class TestForeignKeyTarget:
    def test_suffix_stripped(self):
        assert foreign_key_target("customerId") == "customer"
        assert foreign_key_target("purchaseOrderId") == "purchaseOrder"

    def test_non_candidates(self):
        assert foreign_key_target("id") is None
        assert foreign_key_target("Id") is None
        assert foreign_key_target("identity") is None
        assert foreign_key_target("paid") is None


class TestInferRelationships:
    def test_purchase_order_to_customer(self):
        entities = [
            normalize_entity({"name": "purchase_order", "fields": [{"name": "customer_id", "dataType": "uuid"}]}),
            normalize_entity({"name": "customer"}),
        ]
        relationships = infer_relationships(entities)
        assert len(relationships) == 1
        rel = relationships[0]
        assert rel.type is RelationshipType.MANY_TO_ONE
        assert rel.name == "PurchaseOrder_Customer"
        assert (rel.from_.entity, rel.from_.field, rel.from_.cardinality) == (
            "PurchaseOrder", "customerId", Cardinality.MANY,
        )
        assert (rel.to.entity, rel.to.field, rel.to.cardinality) == ("Customer", "id", Cardinality.ONE)
        assert rel.source.type is EntitySourceType.PRD_INFERRED

    def test_no_target_no_relationship(self):
        entities = [normalize_entity({"name": "Order", "fields": [{"name": "warehouseId"}]})]
        assert infer_relationships(entities) == []

    def test_self_reference(self):
        entities = [normalize_entity({"name": "Employee", "fields": [{"name": "employeeId"}]})]
        rel = infer_relationships(entities)[0]
        assert (rel.from_.entity, rel.to.entity) == ("Employee", "Employee")

    def test_target_primary_key_name_used(self):
        entities = [
            normalize_entity({"name": "Order", "fields": [{"name": "regionId"}]}),
            normalize_entity({"name": "Region", "fields": [{"name": "code", "primaryKey": True}]}),
        ]
        assert infer_relationships(entities)[0].to.field == "code"

    def test_first_declared_entity_wins(self):
        first = normalize_entity({"name": "Customer", "description": "first"})
        second = normalize_entity({"name": "customer", "description": "second"})
        assert build_name_index([first, second])["customer"].description == "first"

    def test_declaration_order(self):
        entities = [
            normalize_entity({"name": "Shipment", "fields": [{"name": "orderId"}, {"name": "carrierId"}]}),
            normalize_entity({"name": "Order"}),
            normalize_entity({"name": "Carrier"}),
        ]
        assert [r.to.entity for r in infer_relationships(entities)] == ["Order", "Carrier"]


class TestMergeRelationships:
    def test_explicit_wins(self):
        entities = [
            normalize_entity({"name": "Order", "fields": [{"name": "customerId"}]}),
            normalize_entity({"name": "Customer"}),
        ]
        explicit = [normalize_relationship({
            "name": "placed_by",
            "type": "one-to-one",
            "from": {"entity": "Order", "field": "customerId"},
            "to": {"entity": "Customer"},
        })]
        merged = merge_relationships(explicit, infer_relationships(entities))
        assert [r.name for r in merged] == ["placed_by"]
        assert merged[0].type is RelationshipType.ONE_TO_ONE

    def test_distinct_relationships_kept(self):
        entities = [
            normalize_entity({"name": "Order", "fields": [{"name": "customerId"}]}),
            normalize_entity({"name": "Customer"}),
        ]
        explicit = [normalize_relationship({
            "from": {"entity": "Customer", "field": "id"},
            "to": {"entity": "Order", "field": "customerId"},
        })]
        merged = merge_relationships(explicit, infer_relationships(entities))
        assert len(merged) == 2
        assert merged[0] is explicit[0]
