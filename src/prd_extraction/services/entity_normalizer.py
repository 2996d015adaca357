"""Entity / field normalizer.

Converts loosely-typed entity and field records into canonical
``Entity`` objects.  Three producers feed it:

  - PRD-declared entity definitions (``"name:type"`` field strings),
  - screen field mappings (``"Entity.field"`` references),
  - untrusted structured extraction output (dicts with any subset of
    the expected keys, in camelCase or snake_case).

Every normalized entity satisfies the canonical graph invariants:

  - exactly one primary-key field (an ``id`` uuid is injected at the
    front when none is declared; extra primary keys are demoted),
  - unique field names (the first declaration of a name wins),
  - audit fields present unless ``is_auditable`` is explicitly false,
  - soft-delete fields present unless ``is_soft_delete`` is explicitly
    false.

All functions are pure and never mutate their inputs.
"""
from __future__ import annotations

import logging
import math
from typing import Any

from src.prd_extraction.services.naming import (
    input_type_to_data_type,
    normalize_data_type,
    to_camel_case,
    to_display_name,
    to_pascal_case,
    to_snake_case,
)
from src.shared.constants import (
    CONFIDENCE_AI,
    CONFIDENCE_PRD_ENTITY,
    CONFIDENCE_PRD_FIELD,
    CONFIDENCE_SCREEN_ENTITY,
    CONFIDENCE_SCREEN_FIELD,
    CONFIDENCE_STANDARD,
)
from src.shared.models.entity import (
    DataType,
    Entity,
    EntityField,
    EntitySource,
    EntitySourceType,
    EntityType,
    FieldConstraints,
    FieldSource,
    FieldSourceType,
)
from src.shared.models.prd import EntityDefinition, Screen

logger = logging.getLogger(__name__)

_UNNAMED_ENTITY = "UnnamedEntity"
_UNNAMED_FIELD = "unnamedField"

# (name, data type, nullable, indexed)
_AUDIT_FIELDS: tuple[tuple[str, DataType, bool, bool], ...] = (
    ("createdAt", DataType.TIMESTAMP, False, True),
    ("createdBy", DataType.UUID, True, False),
    ("updatedAt", DataType.TIMESTAMP, False, False),
    ("updatedBy", DataType.UUID, True, False),
)
_SOFT_DELETE_FIELDS: tuple[tuple[str, DataType, bool, bool], ...] = (
    ("deletedAt", DataType.TIMESTAMP, True, True),
    ("deletedBy", DataType.UUID, True, False),
)

AUDIT_FIELD_NAMES: tuple[str, ...] = tuple(f[0] for f in _AUDIT_FIELDS)
SOFT_DELETE_FIELD_NAMES: tuple[str, ...] = tuple(f[0] for f in _SOFT_DELETE_FIELDS)
STANDARD_FIELD_NAMES: frozenset[str] = frozenset(
    ("id", *AUDIT_FIELD_NAMES, *SOFT_DELETE_FIELD_NAMES)
)

# Keyword table for entity type inference (first matching row wins).
_ENTITY_TYPE_KEYWORDS: list[tuple[EntityType, tuple[str, ...]]] = [
    (EntityType.TRANSACTION, ("order", "transaction", "payment", "log", "audit", "event", "invoice")),
    (EntityType.REFERENCE, ("status", "type", "category", "country", "currency")),
    (EntityType.LOOKUP, ("setting", "config", "option")),
]


# ---------------------------------------------------------------------------
# Classifiers
# ---------------------------------------------------------------------------


def infer_entity_type(name: str) -> EntityType:
    """Infer the entity role from keywords in its name (default master)."""
    lower = name.lower() if isinstance(name, str) else ""
    for entity_type, keywords in _ENTITY_TYPE_KEYWORDS:
        if any(k in lower for k in keywords):
            return entity_type
    return EntityType.MASTER


# ---------------------------------------------------------------------------
# Field normalization
# ---------------------------------------------------------------------------


def normalize_field(
    raw: Any,
    source: FieldSource | None = None,
    confidence: float = CONFIDENCE_AI,
) -> EntityField:
    """Normalize one raw field record.

    *raw* may be a mapping with camelCase or snake_case keys, a
    ``"name:type"`` string, or anything else (which yields an
    ``unnamedField`` string column).  Constraint flags may be given in a
    nested ``constraints`` mapping or at the top level.
    """
    if isinstance(raw, EntityField):
        return raw.model_copy(deep=True)
    if isinstance(raw, str):
        name, _, type_token = raw.partition(":")
        raw = {"name": name.strip(), "dataType": type_token.strip() or "string"}
    if not isinstance(raw, dict):
        raw = {}

    name = to_camel_case(_text(_get(raw, "name"))) or _UNNAMED_FIELD
    nested = _get(raw, "constraints")
    nested = nested if isinstance(nested, dict) else {}

    def _flag(key: str, default: bool) -> bool:
        value = _get(nested, key)
        if value is None:
            value = _get(raw, key)
        return _as_bool(value, default)

    primary_key = _flag("primary_key", False) or _as_bool(_get(raw, "is_primary_key"), False)
    required = _as_bool(_get(raw, "required"), False) or _as_bool(_get(raw, "is_required"), False)
    constraints = FieldConstraints(
        primary_key=primary_key,
        unique=_flag("unique", False) or primary_key,
        nullable=_flag("nullable", not required) and not primary_key,
        indexed=_flag("indexed", False) or primary_key,
        min_length=_as_int(_get(nested, "min_length")),
        max_length=_as_int(_get(nested, "max_length")),
        min=_as_float(_get(nested, "min")),
        max=_as_float(_get(nested, "max")),
    )

    enum_values = _get(raw, "enum_values")
    if isinstance(enum_values, list):
        enum_values = [str(v) for v in enum_values]
    else:
        enum_values = None

    default_value = _get(raw, "default_value")
    description = _get(raw, "description")

    return EntityField(
        name=name,
        column_name=_text(_get(raw, "column_name")) or to_snake_case(name),
        display_name=_text(_get(raw, "display_name")) or to_display_name(name),
        description=str(description) if description is not None else None,
        data_type=normalize_data_type(_get(raw, "data_type") or _get(raw, "type")),
        constraints=constraints,
        default_value=str(default_value) if default_value is not None else None,
        enum_values=enum_values,
        source=source or FieldSource(type=FieldSourceType.AI_EXTRACTED),
        confidence=_clamp(_get(raw, "confidence"), confidence),
    )


def _standard_field(
    name: str,
    data_type: DataType,
    nullable: bool,
    indexed: bool,
    primary_key: bool = False,
) -> EntityField:
    return EntityField(
        name=name,
        column_name=to_snake_case(name),
        display_name="ID" if name == "id" else to_display_name(name),
        data_type=data_type,
        constraints=FieldConstraints(
            primary_key=primary_key,
            unique=primary_key,
            nullable=nullable,
            indexed=indexed,
        ),
        source=FieldSource(type=FieldSourceType.STANDARD),
        confidence=CONFIDENCE_STANDARD,
    )


# ---------------------------------------------------------------------------
# Entity normalization
# ---------------------------------------------------------------------------


def normalize_entity(
    raw: Any,
    source: EntitySource | None = None,
    confidence: float = CONFIDENCE_AI,
    field_source: FieldSource | None = None,
    field_confidence: float | None = None,
) -> Entity:
    """Normalize one raw entity record into a canonical ``Entity``.

    Args:
        raw: Mapping with any subset of ``name``, ``display_name``,
            ``table_name``, ``description``, ``type``, ``fields``,
            ``is_auditable`` and ``is_soft_delete`` (camelCase accepted),
            a bare entity name string, or an existing ``Entity``.
        source: Provenance recorded on the entity.  Defaults to
            ``ai-extracted``.
        confidence: Entity confidence used when *raw* carries none.
        field_source: Provenance for non-standard fields.  Defaults to
            the field-source type matching *source*.
        field_confidence: Field confidence used when a field carries
            none.  Defaults to *confidence*.

    Returns:
        An entity satisfying the canonical graph invariants.
    """
    if isinstance(raw, Entity):
        source = source or raw.source
        raw = {**raw.model_dump(exclude={"fields", "source"}), "fields": list(raw.fields)}
    elif isinstance(raw, str):
        raw = {"name": raw}
    elif not isinstance(raw, dict):
        raw = {}

    source = source or EntitySource(type=EntitySourceType.AI_EXTRACTED)
    field_source = field_source or FieldSource(
        type=_FIELD_SOURCE_FOR.get(source.type, FieldSourceType.INFERRED),
        reference=source.reference,
    )
    if field_confidence is None:
        field_confidence = confidence

    raw_name = _text(_get(raw, "name"))
    name = to_pascal_case(raw_name) or _UNNAMED_ENTITY

    raw_fields = _get(raw, "fields")
    fields = _dedupe_fields(
        [
            normalize_field(f, field_source, field_confidence)
            for f in (raw_fields if isinstance(raw_fields, list) else [])
        ]
    )
    fields = _ensure_primary_key(fields, name)

    is_auditable = _as_bool(_get(raw, "is_auditable"), True)
    is_soft_delete = _as_bool(_get(raw, "is_soft_delete"), True)
    if is_auditable:
        fields = _append_missing(fields, _AUDIT_FIELDS)
    if is_soft_delete:
        fields = _append_missing(fields, _SOFT_DELETE_FIELDS)

    raw_type = _get(raw, "type")
    try:
        entity_type = EntityType(raw_type)
    except (TypeError, ValueError):
        entity_type = infer_entity_type(raw_name or name)

    description = _get(raw, "description")
    return Entity(
        name=name,
        display_name=_text(_get(raw, "display_name")) or to_display_name(name),
        table_name=_text(_get(raw, "table_name")) or to_snake_case(name),
        description=str(description) if description else "",
        type=entity_type,
        fields=fields,
        is_auditable=is_auditable,
        is_soft_delete=is_soft_delete,
        source=source,
        confidence=_clamp(_get(raw, "confidence"), confidence),
    )


_FIELD_SOURCE_FOR: dict[EntitySourceType, FieldSourceType] = {
    EntitySourceType.PRD_EXPLICIT: FieldSourceType.PRD_EXPLICIT,
    EntitySourceType.SCREEN_MAPPING: FieldSourceType.SCREEN_FIELD,
    EntitySourceType.BUSINESS_RULE: FieldSourceType.BUSINESS_RULE,
    EntitySourceType.MANUAL: FieldSourceType.MANUAL,
    EntitySourceType.AI_EXTRACTED: FieldSourceType.AI_EXTRACTED,
}


def _dedupe_fields(fields: list[EntityField]) -> list[EntityField]:
    seen: set[str] = set()
    unique: list[EntityField] = []
    for f in fields:
        if f.name in seen:
            logger.debug("Dropping duplicate field %s", f.name)
            continue
        seen.add(f.name)
        unique.append(f)
    return unique


def _ensure_primary_key(fields: list[EntityField], entity_name: str) -> list[EntityField]:
    """Return *fields* with exactly one primary key."""
    pk_indexes = [i for i, f in enumerate(fields) if f.constraints.primary_key]

    if not pk_indexes:
        existing_id = next((i for i, f in enumerate(fields) if f.name == "id"), None)
        if existing_id is not None:
            promoted = fields[existing_id].model_copy(
                update={"constraints": fields[existing_id].constraints.model_copy(
                    update={"primary_key": True, "unique": True, "nullable": False, "indexed": True}
                )}
            )
            return [promoted if i == existing_id else f for i, f in enumerate(fields)]
        return [_standard_field("id", DataType.UUID, False, True, primary_key=True), *fields]

    if len(pk_indexes) > 1:
        logger.debug(
            "Entity %s declared %d primary keys; keeping %s",
            entity_name, len(pk_indexes), fields[pk_indexes[0]].name,
        )
        demoted = set(pk_indexes[1:])
        return [
            f.model_copy(update={"constraints": f.constraints.model_copy(
                update={"primary_key": False}
            )}) if i in demoted else f
            for i, f in enumerate(fields)
        ]
    return fields


def _append_missing(
    fields: list[EntityField],
    standard: tuple[tuple[str, DataType, bool, bool], ...],
) -> list[EntityField]:
    names = {f.name for f in fields}
    return fields + [
        _standard_field(name, data_type, nullable, indexed)
        for name, data_type, nullable, indexed in standard
        if name not in names
    ]


# ---------------------------------------------------------------------------
# Producers
# ---------------------------------------------------------------------------


def entity_from_definition(definition: EntityDefinition) -> Entity:
    """Build an entity from a PRD-declared definition (``"name:type"`` fields)."""
    return normalize_entity(
        {
            "name": definition.name,
            "description": definition.description,
            "fields": list(definition.fields),
        },
        source=EntitySource(type=EntitySourceType.PRD_EXPLICIT),
        confidence=CONFIDENCE_PRD_ENTITY,
        field_confidence=CONFIDENCE_PRD_FIELD,
    )


def entities_from_screens(screens: list[Screen]) -> list[Entity]:
    """Derive entities from ``Entity.field`` references in screen field mappings.

    Mappings whose ``entity_field`` names no entity (no dot) are skipped.
    Entities are returned in order of first reference.
    """
    grouped: dict[str, list[EntityField]] = {}
    for screen in screens:
        for mapping in screen.field_mappings:
            entity_name, dot, field_name = mapping.entity_field.partition(".")
            key = to_pascal_case(entity_name)
            if not dot or not key or not to_camel_case(field_name):
                continue
            fields = grouped.setdefault(key, [])
            camel = to_camel_case(field_name)
            if any(f.name == camel for f in fields):
                continue
            fields.append(EntityField(
                name=camel,
                column_name=to_snake_case(camel),
                display_name=mapping.label or to_display_name(camel),
                data_type=input_type_to_data_type(mapping.input_type),
                constraints=FieldConstraints(nullable=not mapping.is_required),
                source=FieldSource(type=FieldSourceType.SCREEN_FIELD, reference=screen.id),
                confidence=CONFIDENCE_SCREEN_FIELD,
            ))

    return [
        normalize_entity(
            {
                "name": name,
                "description": "Extracted from screen mappings",
                "type": EntityType.MASTER.value,
                "fields": fields,
            },
            source=EntitySource(type=EntitySourceType.SCREEN_MAPPING),
            confidence=CONFIDENCE_SCREEN_ENTITY,
        )
        for name, fields in grouped.items()
    ]


def merge_entities(primary: list[Entity], secondary: list[Entity]) -> list[Entity]:
    """Union *secondary* into *primary* by case-insensitive entity name.

    Fields of a matching secondary entity are added to the primary one
    when no field of that name (case-insensitive) exists yet; existing
    fields are never overwritten.  Unmatched secondary entities are
    appended.  Inputs are not modified.
    """
    merged: list[Entity] = [e.model_copy(deep=True) for e in primary]
    index: dict[str, int] = {}
    for i, entity in enumerate(merged):
        index.setdefault(entity.name.lower(), i)

    for entity in secondary:
        key = entity.name.lower()
        if key not in index:
            index[key] = len(merged)
            merged.append(entity.model_copy(deep=True))
            continue
        target = merged[index[key]]
        present = {f.name.lower() for f in target.fields}
        additions = [
            f.model_copy(deep=True)
            for f in entity.fields
            if f.name.lower() not in present and not f.constraints.primary_key
        ]
        if additions:
            merged[index[key]] = target.model_copy(update={"fields": target.fields + additions})
    return merged


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _get(raw: dict, key: str) -> Any:
    """Return ``raw[key]`` accepting either snake_case or camelCase *key*."""
    if key in raw:
        return raw[key]
    return raw.get(to_camel_case(key))


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
    return default


def _as_int(value: Any) -> int | None:
    number = _as_float(value)
    return int(number) if number is not None else None


def _as_float(value: Any) -> float | None:
    """Return *value* as a finite float; ``None`` for anything else.

    Decoded JSON may carry ``Infinity``, ``NaN`` or integers too large
    for a float.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _clamp(value: Any, default: float) -> float:
    number = _as_float(value)
    if number is None:
        return default
    return max(0.0, min(1.0, number))
