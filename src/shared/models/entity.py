"""Entity graph Pydantic v2 data models.

A canonical entity graph satisfies three invariants: each entity has
exactly one primary-key field, field names are unique within an entity,
and the audit / soft-delete fields are present when the entity opts in.
The normalizer in ``src.prd_extraction.services.entity_normalizer`` is
the only producer that guarantees them.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from src.shared.utils import generate_id


class DataType(str, Enum):
    """Closed set of column data types."""
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    BIGINT = "bigint"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIMESTAMP = "timestamp"
    UUID = "uuid"
    JSON = "json"
    ENUM = "enum"
    BINARY = "binary"


class EntityType(str, Enum):
    """Role of an entity in the data model."""
    MASTER = "master"
    TRANSACTION = "transaction"
    REFERENCE = "reference"
    LOOKUP = "lookup"
    JUNCTION = "junction"


class EntitySourceType(str, Enum):
    """Where an entity or relationship came from."""
    PRD_EXPLICIT = "prd-explicit"
    PRD_INFERRED = "prd-inferred"
    SCREEN_MAPPING = "screen-mapping"
    BUSINESS_RULE = "business-rule"
    MANUAL = "manual"
    AI_EXTRACTED = "ai-extracted"


class FieldSourceType(str, Enum):
    """Where a field came from."""
    PRD_EXPLICIT = "prd-explicit"
    SCREEN_FIELD = "screen-field"
    BUSINESS_RULE = "business-rule"
    STANDARD = "standard"
    INFERRED = "inferred"
    MANUAL = "manual"
    AI_EXTRACTED = "ai-extracted"


class RelationshipType(str, Enum):
    """Cardinality class of a relationship."""
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_ONE = "many-to-one"
    MANY_TO_MANY = "many-to-many"


class Cardinality(str, Enum):
    """Cardinality of one end of a relationship."""
    ONE = "1"
    ZERO_OR_ONE = "0..1"
    MANY = "*"
    ONE_OR_MORE = "1..*"
    ZERO_OR_MORE = "0..*"


class SuggestionType(str, Enum):
    """Kinds of modelling suggestion."""
    ADD_ENTITY = "add-entity"
    ADD_FIELD = "add-field"
    ADD_RELATIONSHIP = "add-relationship"
    MODIFY_TYPE = "modify-type"
    ADD_INDEX = "add-index"


class EntitySource(BaseModel):
    """Provenance of an entity or relationship."""
    type: EntitySourceType
    reference: str | None = None

    model_config = {"from_attributes": True}


class FieldSource(BaseModel):
    """Provenance of a field."""
    type: FieldSourceType
    reference: str | None = None

    model_config = {"from_attributes": True}


class FieldConstraints(BaseModel):
    """Column constraints of a field."""
    primary_key: bool = False
    unique: bool = False
    nullable: bool = True
    indexed: bool = False
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None

    model_config = {"from_attributes": True}


class EntityField(BaseModel):
    """Field within an entity."""
    id: str = Field(default_factory=generate_id)
    name: str
    column_name: str
    display_name: str = ""
    description: str | None = None
    data_type: DataType = DataType.STRING
    constraints: FieldConstraints = Field(default_factory=FieldConstraints)
    default_value: str | None = None
    enum_values: list[str] | None = None
    source: FieldSource
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    model_config = {"from_attributes": True}


class Entity(BaseModel):
    """Normalized entity of the canonical entity graph."""
    id: str = Field(default_factory=generate_id)
    name: str
    display_name: str = ""
    table_name: str
    description: str = ""
    type: EntityType = EntityType.MASTER
    fields: list[EntityField] = Field(default_factory=list)
    is_auditable: bool = True
    is_soft_delete: bool = True
    source: EntitySource
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    model_config = {"from_attributes": True}

    def field_names(self) -> list[str]:
        """Return field names in declaration order."""
        return [f.name for f in self.fields]

    def primary_key(self) -> EntityField | None:
        """Return the first primary-key field, if any."""
        return next((f for f in self.fields if f.constraints.primary_key), None)


class RelationshipEnd(BaseModel):
    """One end of a relationship."""
    entity: str
    field: str
    cardinality: Cardinality = Cardinality.ONE

    model_config = {"from_attributes": True}


class Relationship(BaseModel):
    """Directed relationship between two entities."""
    id: str = Field(default_factory=generate_id)
    name: str
    type: RelationshipType = RelationshipType.MANY_TO_ONE
    from_: RelationshipEnd = Field(..., alias="from")
    to: RelationshipEnd
    description: str | None = None
    source: EntitySource

    model_config = {"from_attributes": True, "populate_by_name": True}


class EntitySuggestion(BaseModel):
    """Modelling suggestion for the caller to review."""
    type: SuggestionType = SuggestionType.ADD_ENTITY
    target: str = ""
    suggestion: str = ""
    reason: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    model_config = {"from_attributes": True}


class EntityExtractionResult(BaseModel):
    """Entity graph plus suggestions and non-fatal validation warnings."""
    entities: list[Entity] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    suggestions: list[EntitySuggestion] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    raw_response: str | None = None

    model_config = {"from_attributes": True}


class NormalizeEntitiesRequest(BaseModel):
    """Untrusted extraction output, as raw text or an already-decoded payload."""
    response_text: str | None = None
    payload: Any = None

    model_config = {"from_attributes": True}
