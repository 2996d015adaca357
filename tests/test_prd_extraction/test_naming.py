"""Tests for name casing and type-string normalization."""
from __future__ import annotations

import pytest

from src.prd_extraction.services.naming import (
    input_type_to_data_type,
    normalize_data_type,
    slugify,
    split_words,
    to_camel_case,
    to_display_name,
    to_pascal_case,
    to_snake_case,
)
from src.shared.models.entity import DataType
from src.shared.models.prd import InputType


class TestSplitWords:
    def test_snake_case(self):
        assert split_words("purchase_order") == ["purchase", "order"]

    def test_camel_case(self):
        assert split_words("purchaseOrder") == ["purchase", "Order"]

    def test_acronym_run(self):
        assert split_words("HTTPServer") == ["HTTP", "Server"]

    def test_non_string(self):
        assert split_words(None) == []


class TestCasing:
    @pytest.mark.parametrize("raw, expected", [
        ("purchase_order", "PurchaseOrder"),
        ("order item", "OrderItem"),
        ("purchase-order", "PurchaseOrder"),
        ("purchaseOrder", "PurchaseOrder"),
    ])
    def test_pascal(self, raw, expected):
        assert to_pascal_case(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("customer_id", "customerId"),
        ("CustomerID", "customerId"),
        ("Order Date", "orderDate"),
    ])
    def test_camel(self, raw, expected):
        assert to_camel_case(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("PurchaseOrder", "purchase_order"),
        ("Field Name", "field_name"),
        ("HTTPServer", "http_server"),
    ])
    def test_snake(self, raw, expected):
        assert to_snake_case(raw) == expected

    def test_display_name(self):
        assert to_display_name("createdAt") == "Created At"
        assert to_display_name("order_number") == "Order Number"

    def test_slugify(self):
        assert slugify("Purchase Order List") == "purchase-order-list"

    def test_empty_string_is_total(self):
        assert to_pascal_case("") == ""
        assert to_camel_case("") == ""
        assert to_snake_case("") == ""
        assert to_display_name("") == ""


class TestIdempotence:
    """Re-applying a normalizer to its own output is a no-op."""

    @pytest.mark.parametrize("name", ["PurchaseOrder", "Customer", "OrderItem2", "AddressLine1"])
    def test_pascal_idempotent(self, name):
        assert to_pascal_case(name) == name
        assert to_pascal_case(to_pascal_case("purchase_order")) == "PurchaseOrder"

    @pytest.mark.parametrize("name", ["customerId", "orderDate", "id", "addressLine1"])
    def test_camel_idempotent(self, name):
        assert to_camel_case(name) == name

    @pytest.mark.parametrize("name", ["order_item", "created_at", "id", "address_line1"])
    def test_snake_idempotent(self, name):
        assert to_snake_case(name) == name

    def test_digits_stay_with_preceding_word(self):
        assert to_snake_case("AddressLine1") == "address_line1"
        assert to_camel_case("address_line1") == "addressLine1"
        assert to_pascal_case("address_line1") == "AddressLine1"


class TestNormalizeDataType:
    @pytest.mark.parametrize("raw, expected", [
        ("varchar", DataType.STRING),
        ("VARCHAR(255)", DataType.STRING),
        ("int", DataType.INTEGER),
        ("bigint", DataType.BIGINT),
        ("decimal(10,2)", DataType.DECIMAL),
        ("guid", DataType.UUID),
        ("jsonb", DataType.JSON),
        ("Boolean", DataType.BOOLEAN),
        ("timestamp", DataType.TIMESTAMP),
        ("datetime", DataType.DATETIME),
        ("date", DataType.DATE),
    ])
    def test_known_tokens(self, raw, expected):
        assert normalize_data_type(raw) is expected

    def test_unknown_defaults_to_string(self):
        assert normalize_data_type("geography") is DataType.STRING

    @pytest.mark.parametrize("raw", [None, 42, "", "   "])
    def test_never_fails(self, raw):
        assert normalize_data_type(raw) is DataType.STRING

    def test_data_type_passthrough(self):
        assert normalize_data_type(DataType.UUID) is DataType.UUID


class TestInputTypeToDataType:
    def test_mapping(self):
        assert input_type_to_data_type(InputType.CURRENCY) is DataType.DECIMAL
        assert input_type_to_data_type(InputType.DATE) is DataType.DATE
        assert input_type_to_data_type(InputType.CHECKBOX) is DataType.BOOLEAN
        assert input_type_to_data_type(InputType.TEXTAREA) is DataType.TEXT
        assert input_type_to_data_type(InputType.SELECT) is DataType.STRING

    def test_unknown_input_type(self):
        assert input_type_to_data_type("slider") is DataType.STRING
