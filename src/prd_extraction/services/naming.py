"""Name-casing and type-string normalization.

Every function here is pure and total: any string (including the empty
string) is accepted and none of them raise.  Names are split into words
at separators (anything that is not an ASCII letter or digit), at
lower-to-upper transitions, and at the end of upper-case runs, so
``"purchase_order"``, ``"purchase-order"``, ``"PurchaseOrder"`` and
``"purchaseOrder"`` all share the word list ``["purchase", "order"]``.
Acronyms are folded to a single capital (``"customerID"`` becomes
``"customerId"``), which keeps the ``<entity>Id`` foreign-key convention
recognisable after normalization.  Digits stay attached to the word they
follow (``"address_line1"`` splits into ``["address", "line1"]``).
"""
from __future__ import annotations

import re
from typing import Any

from src.shared.models.entity import DataType
from src.shared.models.prd import InputType

_WORD_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+\d*|\d+")

# Free-text type tokens -> DataType.  Keys are lower-case base tokens.
_DATA_TYPE_ALIASES: dict[str, DataType] = {
    "string": DataType.STRING,
    "str": DataType.STRING,
    "varchar": DataType.STRING,
    "nvarchar": DataType.STRING,
    "char": DataType.STRING,
    "email": DataType.STRING,
    "url": DataType.STRING,
    "phone": DataType.STRING,
    "text": DataType.TEXT,
    "longtext": DataType.TEXT,
    "mediumtext": DataType.TEXT,
    "int": DataType.INTEGER,
    "integer": DataType.INTEGER,
    "smallint": DataType.INTEGER,
    "tinyint": DataType.INTEGER,
    "bigint": DataType.BIGINT,
    "long": DataType.BIGINT,
    "decimal": DataType.DECIMAL,
    "numeric": DataType.DECIMAL,
    "number": DataType.DECIMAL,
    "float": DataType.DECIMAL,
    "double": DataType.DECIMAL,
    "real": DataType.DECIMAL,
    "money": DataType.DECIMAL,
    "currency": DataType.DECIMAL,
    "bool": DataType.BOOLEAN,
    "boolean": DataType.BOOLEAN,
    "bit": DataType.BOOLEAN,
    "date": DataType.DATE,
    "datetime": DataType.DATETIME,
    "timestamp": DataType.TIMESTAMP,
    "timestamptz": DataType.TIMESTAMP,
    "uuid": DataType.UUID,
    "guid": DataType.UUID,
    "uniqueidentifier": DataType.UUID,
    "json": DataType.JSON,
    "jsonb": DataType.JSON,
    "object": DataType.JSON,
    "enum": DataType.ENUM,
    "binary": DataType.BINARY,
    "blob": DataType.BINARY,
    "bytea": DataType.BINARY,
    "bytes": DataType.BINARY,
}

_INPUT_TYPE_DATA_TYPES: dict[InputType, DataType] = {
    InputType.NUMBER: DataType.DECIMAL,
    InputType.CURRENCY: DataType.DECIMAL,
    InputType.PERCENTAGE: DataType.DECIMAL,
    InputType.DATE: DataType.DATE,
    InputType.CHECKBOX: DataType.BOOLEAN,
    InputType.TEXTAREA: DataType.TEXT,
}


def split_words(name: str) -> list[str]:
    """Split an identifier-like string into its words, preserving case."""
    if not isinstance(name, str):
        return []
    return _WORD_RE.findall(name)


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def to_pascal_case(name: str) -> str:
    """Convert a string to PascalCase.

    Examples::

        "purchase_order" -> "PurchaseOrder"
        "order item"     -> "OrderItem"
        "PurchaseOrder"  -> "PurchaseOrder"  (no change)
    """
    return "".join(_capitalize(w) for w in split_words(name))


def to_camel_case(name: str) -> str:
    """Convert a string to camelCase.

    Examples::

        "customer_id" -> "customerId"
        "CustomerID"  -> "customerId"
        "customerId"  -> "customerId"  (no change)
    """
    words = split_words(name)
    if not words:
        return ""
    return words[0].lower() + "".join(_capitalize(w) for w in words[1:])


def to_snake_case(name: str) -> str:
    """Convert a string to snake_case.

    Examples::

        "PurchaseOrder" -> "purchase_order"
        "Field Name"    -> "field_name"
        "order_item"    -> "order_item"  (no change)
    """
    return "_".join(w.lower() for w in split_words(name))


def to_display_name(name: str) -> str:
    """Convert a string to a space-separated title ("Created At")."""
    return " ".join(_capitalize(w) for w in split_words(name))


def slugify(name: str) -> str:
    """Convert a string to a lower-case hyphenated slug."""
    return "-".join(w.lower() for w in split_words(name))


def normalize_data_type(raw: Any) -> DataType:
    """Map a free-text type token onto the closed ``DataType`` set.

    Lookup is case-insensitive on the leading word of the token, so
    ``"VARCHAR(255)"`` and ``"decimal(10,2)"`` resolve by their base
    name.  Unrecognized or non-string input yields ``DataType.STRING``.
    """
    if isinstance(raw, DataType):
        return raw
    if not isinstance(raw, str):
        return DataType.STRING
    m = re.match(r"[a-z]+", raw.strip().strip("`*_").lower())
    if not m:
        return DataType.STRING
    return _DATA_TYPE_ALIASES.get(m.group(0), DataType.STRING)


def input_type_to_data_type(input_type: InputType | str) -> DataType:
    """Return the column type implied by a screen input widget."""
    try:
        key = InputType(input_type)
    except ValueError:
        return DataType.STRING
    return _INPUT_TYPE_DATA_TYPES.get(key, DataType.STRING)
