"""Structured PRD Pydantic v2 data models.

These records are produced once per extraction pass and handed to the
caller as-is.  Identifier formats are enforced by field patterns.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from src.shared.constants import (
    BR_ID_PATTERN,
    FR_ID_PATTERN,
    SCREEN_ID_PATTERN,
    VR_ID_PATTERN,
)
from src.shared.utils import generate_id


class Priority(str, Enum):
    """MoSCoW priority of a functional requirement."""
    MUST = "must"
    SHOULD = "should"
    COULD = "could"
    WONT = "wont"


class BusinessRuleType(str, Enum):
    """Kinds of business rule."""
    VALIDATION = "validation"
    CALCULATION = "calculation"
    CONSTRAINT = "constraint"
    WORKFLOW = "workflow"


class ScreenType(str, Enum):
    """Kinds of screen."""
    LIST = "list"
    FORM = "form"
    DETAIL = "detail"
    MODAL = "modal"
    DASHBOARD = "dashboard"
    REPORT = "report"


class InputType(str, Enum):
    """Input widget of a screen field."""
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"
    MULTISELECT = "multiselect"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    TEXTAREA = "textarea"
    FILE = "file"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"


class ActionType(str, Enum):
    """Behaviour of a screen action."""
    SUBMIT = "submit"
    CANCEL = "cancel"
    NAVIGATE = "navigate"
    MODAL = "modal"
    API = "api"
    DOWNLOAD = "download"
    PRINT = "print"


class AcceptanceCriterion(BaseModel):
    """Single acceptance criterion of a requirement."""
    id: str = Field(..., pattern=rf"^{FR_ID_PATTERN}-AC\d{{2,}}$")
    description: str
    type: str = Field(
        default="functional",
        pattern=r"^(functional|ui|data|performance)$"
    )

    model_config = {"from_attributes": True}


class BusinessRule(BaseModel):
    """Business or validation rule recovered from an identifier."""
    id: str = Field(..., pattern=rf"^({BR_ID_PATTERN}|{VR_ID_PATTERN})$")
    name: str
    type: BusinessRuleType = BusinessRuleType.VALIDATION
    description: str = ""
    formula: str | None = None
    conditions: list[str] = Field(default_factory=list)
    error_message: str | None = None
    related_fr: str | None = None

    model_config = {"from_attributes": True}


class ScreenLayout(BaseModel):
    """Free-form description of a screen layout."""
    type: str = Field(
        default="description",
        pattern=r"^(wireframe|html|image|description)$"
    )
    content: str = ""

    model_config = {"from_attributes": True}


class FieldMapping(BaseModel):
    """Mapping from a screen input to an entity field."""
    field_id: str
    field_name: str
    label: str
    entity_field: str
    input_type: InputType = InputType.TEXT
    is_required: bool = False

    model_config = {"from_attributes": True}


class ScreenAction(BaseModel):
    """Button or link offered by a screen."""
    id: str
    label: str
    type: ActionType = ActionType.SUBMIT
    action: str

    model_config = {"from_attributes": True}


class Screen(BaseModel):
    """Screen recovered from an identifier or a screen-like heading."""
    id: str = Field(..., pattern=rf"^{SCREEN_ID_PATTERN}$")
    name: str
    type: ScreenType = ScreenType.FORM
    route: str
    layout: ScreenLayout = Field(default_factory=ScreenLayout)
    field_mappings: list[FieldMapping] = Field(default_factory=list)
    actions: list[ScreenAction] = Field(default_factory=list)
    related_fr: str | None = None

    model_config = {"from_attributes": True}


class FunctionalRequirement(BaseModel):
    """Functional requirement owning its rules and screens."""
    id: str = Field(..., pattern=rf"^{FR_ID_PATTERN}$")
    title: str
    description: str = ""
    priority: Priority = Priority.SHOULD
    acceptance_criteria: list[AcceptanceCriterion] = Field(default_factory=list)
    business_rules: list[BusinessRule] = Field(default_factory=list)
    screens: list[Screen] = Field(default_factory=list)
    involved_entities: list[str] = Field(default_factory=list)
    is_workflow: bool = False

    model_config = {"from_attributes": True}


class PRDScope(BaseModel):
    """Included and excluded scope statements."""
    included: list[str] = Field(default_factory=list)
    excluded: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class PRDOverview(BaseModel):
    """Narrative overview of the document."""
    description: str = ""
    objectives: list[str] = Field(default_factory=list)
    scope: PRDScope = Field(default_factory=PRDScope)
    assumptions: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class EntityDefinition(BaseModel):
    """Entity declared in the PRD, with ``name:type`` field strings."""
    name: str
    description: str = ""
    fields: list[str] = Field(default_factory=list)
    relationships: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class EnumValue(BaseModel):
    """Single value of a declared enumeration."""
    key: str
    label: str

    model_config = {"from_attributes": True}


class EnumDefinition(BaseModel):
    """Enumeration declared in the PRD."""
    name: str
    values: list[EnumValue] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class DataRequirements(BaseModel):
    """Entities and enumerations declared in the PRD."""
    entities: list[EntityDefinition] = Field(default_factory=list)
    enums: list[EnumDefinition] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class StructuredPRD(BaseModel):
    """Complete result of parsing a requirements document."""
    id: str = Field(default_factory=generate_id)
    project_name: str
    module_name: str = "Main"
    version: str = "1.0.0"
    overview: PRDOverview = Field(default_factory=PRDOverview)
    functional_requirements: list[FunctionalRequirement] = Field(default_factory=list)
    data_requirements: DataRequirements = Field(default_factory=DataRequirements)
    raw_content: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"from_attributes": True}

    def all_business_rules(self) -> list[BusinessRule]:
        """Return every rule, in requirement order."""
        return [
            rule
            for requirement in self.functional_requirements
            for rule in requirement.business_rules
        ]

    def all_screens(self) -> list[Screen]:
        """Return every screen, in requirement order."""
        return [
            screen
            for requirement in self.functional_requirements
            for screen in requirement.screens
        ]


class ParsePRDRequest(BaseModel):
    """Request to parse a PRD document."""
    prd_text: str = Field(..., max_length=16_777_216)

    model_config = {"from_attributes": True}
