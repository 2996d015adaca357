"""Tests for the PRD and entity graph Pydantic data models."""
from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from src.shared.models.common import HealthStatus
from src.shared.models.entity import (
    Cardinality,
    Entity,
    EntityExtractionResult,
    EntityField,
    EntitySource,
    EntitySourceType,
    EntitySuggestion,
    FieldSource,
    FieldSourceType,
    Relationship,
    RelationshipEnd,
)
from src.shared.models.prd import (
    AcceptanceCriterion,
    BusinessRule,
    FunctionalRequirement,
    ParsePRDRequest,
    Priority,
    Screen,
    ScreenLayout,
    StructuredPRD,
)


def _relationship(**overrides) -> Relationship:
    data = {
        "name": "order_customer",
        "from": {"entity": "Order", "field": "customerId", "cardinality": "*"},
        "to": {"entity": "Customer", "field": "id"},
        "source": {"type": "prd-inferred"},
    }
    data.update(overrides)
    return Relationship.model_validate(data)


class TestHealthStatus:
    def test_valid_construction(self):
        status = HealthStatus(service_name="svc", version="1.0.0", uptime_seconds=1.5)
        assert status.status == "healthy"
        assert status.details == {}

    def test_invalid_status(self):
        with pytest.raises(ValidationError):
            HealthStatus(status="sleepy", service_name="svc", version="1", uptime_seconds=0)


class TestPrdModels:
    def test_identifier_patterns_enforced(self):
        with pytest.raises(ValidationError):
            FunctionalRequirement(id="FR-1", title="x")
        with pytest.raises(ValidationError):
            BusinessRule(id="BR-001", name="x")
        with pytest.raises(ValidationError):
            Screen(id="SCREEN-1", name="x", route="/x")
        with pytest.raises(ValidationError):
            AcceptanceCriterion(id="FR-001-1", description="x")

    def test_requirement_defaults(self):
        fr = FunctionalRequirement(id="FR-001", title="Login")
        assert fr.priority is Priority.SHOULD
        assert fr.business_rules == [] and fr.screens == []
        assert fr.is_workflow is False

    def test_layout_type_pattern(self):
        with pytest.raises(ValidationError):
            ScreenLayout(type="sketch")

    def test_structured_prd_helpers(self):
        prd = StructuredPRD(
            project_name="P",
            functional_requirements=[
                FunctionalRequirement(
                    id="FR-001", title="a",
                    business_rules=[BusinessRule(id="BR-001-A", name="r")],
                    screens=[Screen(id="SCR-001", name="s", route="/s")],
                ),
                FunctionalRequirement(
                    id="FR-002", title="b",
                    business_rules=[BusinessRule(id="VR-001", name="v")],
                ),
            ],
        )
        assert [r.id for r in prd.all_business_rules()] == ["BR-001-A", "VR-001"]
        assert [s.id for s in prd.all_screens()] == ["SCR-001"]
        assert prd.id
        assert prd.module_name == "Main"

    def test_structured_prd_json_serializable(self):
        dumped = json.loads(StructuredPRD(project_name="P").model_dump_json())
        assert dumped["project_name"] == "P"
        assert "created_at" in dumped

    def test_parse_request_requires_text(self):
        with pytest.raises(ValidationError):
            ParsePRDRequest()


class TestEntityModels:
    def test_entity_helpers(self):
        pk = EntityField(
            name="id", column_name="id",
            source=FieldSource(type=FieldSourceType.STANDARD),
        )
        pk.constraints.primary_key = True
        entity = Entity(
            name="Order", table_name="order", fields=[pk],
            source=EntitySource(type=EntitySourceType.MANUAL),
        )
        assert entity.field_names() == ["id"]
        assert entity.primary_key() is pk

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            EntitySuggestion(confidence=1.5)

    def test_relationship_accepts_from_alias(self):
        rel = _relationship()
        assert rel.from_.cardinality is Cardinality.MANY
        assert rel.to.cardinality is Cardinality.ONE

    def test_relationship_accepts_field_name(self):
        rel = Relationship(
            name="r",
            from_=RelationshipEnd(entity="A", field="bId"),
            to=RelationshipEnd(entity="B", field="id"),
            source=EntitySource(type=EntitySourceType.MANUAL),
        )
        assert rel.model_dump(by_alias=True)["from"]["entity"] == "A"

    def test_invalid_cardinality(self):
        with pytest.raises(ValidationError):
            _relationship(to={"entity": "Customer", "field": "id", "cardinality": "many"})

    def test_result_defaults(self):
        result = EntityExtractionResult()
        assert result.entities == [] and result.warnings == []
        assert result.raw_response is None
