"""Tests for StructuredPRD assembly.

Covers document metadata, the placeholder requirement for documents
without identifiers, declared entities and enums from the data
requirements section, and robustness against malformed input.
"""
from __future__ import annotations

import pytest

from src.prd_extraction.services.prd_parser import (
    extract_data_requirements,
    extract_module_name,
    parse_prd,
)
from src.prd_extraction.services.markdown_parser import parse_markdown
from src.shared.models.prd import StructuredPRD


class TestMetadata:
    def test_sample_metadata(self, order_prd):
        prd = parse_prd(order_prd)
        assert isinstance(prd, StructuredPRD)
        assert prd.project_name == "Order Management System"
        assert prd.module_name == "Order"
        assert prd.overview.description == "Manages customer orders from entry to fulfilment."
        assert prd.raw_content == order_prd

    def test_defaults(self):
        prd = parse_prd("Just text.")
        assert prd.project_name == "Untitled Project"
        assert prd.module_name == "Main"
        assert prd.overview.description == "Just text."

    def test_description_default_for_empty_document(self):
        assert parse_prd("").overview.description == "No description available"

    def test_module_name_strips_numbering(self):
        parsed = parse_markdown("## 3. Billing Module\n")
        assert extract_module_name(parsed) == "Billing"

    def test_overview_lists(self):
        text = (
            "## Objectives\n- Faster checkout\n- Fewer errors\n"
            "## Out of Scope\n- Mobile app\n"
            "## Assumptions\n- Users have accounts\n"
        )
        overview = parse_prd(text).overview
        assert overview.objectives == ["Faster checkout", "Fewer errors"]
        assert overview.scope.excluded == ["Mobile app"]
        assert overview.assumptions == ["Users have accounts"]


class TestRequirements:
    def test_sample_requirements(self, order_prd):
        prd = parse_prd(order_prd)
        assert [fr.id for fr in prd.functional_requirements] == ["FR-001", "FR-002"]
        assert [r.id for r in prd.all_business_rules()] == ["BR-001-A", "BR-001-B", "VR-001"]
        assert [s.id for s in prd.all_screens()] == ["SCR-001", "SCR-002"]

    def test_free_text_yields_placeholder(self):
        text = (
            "Our team needs a better way to track invoices.\n\n"
            "Accountants spend too long reconciling payments by hand.\n"
        )
        prd = parse_prd(text)
        assert prd is not None
        assert len(prd.functional_requirements) == 1
        placeholder = prd.functional_requirements[0]
        assert placeholder.id == "FR-001"
        assert placeholder.business_rules == []
        assert placeholder.screens == []

    @pytest.mark.parametrize("text", [
        None,
        "```\nunterminated",
        "| a |\n|---|\n",
        "FR-001 FR-001 FR-001",
        "### \n## \n# ",
        "BR-001-A:\nVR-001:\nSCR-001:",
    ])
    def test_never_raises(self, text):
        prd = parse_prd(text)
        assert prd.functional_requirements

    def test_screen_heading_overflow(self):
        text = "\n".join(f"### Item list {i}" for i in range(1001))
        screens = parse_prd(text).all_screens()
        assert len(screens) == 999
        assert screens[-1].id == "SCR-999"


class TestDataRequirements:
    def test_declared_entities(self, order_prd):
        data = parse_prd(order_prd).data_requirements
        assert [e.name for e in data.entities] == ["Customer", "Order"]
        customer = data.entities[0]
        assert customer.description == "Customers who place orders."
        assert customer.fields == ["name:string", "email:varchar", "phone:string"]

    def test_status_heading_is_enum(self, order_prd):
        enums = parse_prd(order_prd).data_requirements.enums
        assert [e.name for e in enums] == ["OrderStatus"]
        assert [(v.key, v.label) for v in enums[0].values] == [
            ("draft", "Draft"), ("approved", "Approved"),
        ]

    def test_field_table_and_bare_names(self):
        text = (
            "## Data Model\n"
            "### Line Item Entity\n"
            "- sku\n"
            "| Field | Type |\n"
            "|---|---|\n"
            "| quantity | int |\n"
            "| unitPrice | decimal |\n"
            "### Priority Enum\n"
            "- HIGH - Urgent\n"
            "- LOW\n"
        )
        data = extract_data_requirements(parse_markdown(text))
        assert [e.name for e in data.entities] == ["LineItem"]
        assert data.entities[0].fields == ["sku", "quantity:int", "unitPrice:decimal"]
        assert data.enums[0].name == "Priority"
        assert [(v.key, v.label) for v in data.enums[0].values] == [
            ("HIGH", "Urgent"), ("LOW", "LOW"),
        ]

    def test_sections_outside_data_requirements_ignored(self):
        text = "## Features\n### Customer\n- name: string\n"
        assert parse_prd(text).data_requirements.entities == []
