"""Shared configuration management using pydantic-settings."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

from src.shared.constants import MAX_DOCUMENT_BYTES, MIN_ENTITY_FIELDS


class SharedConfig(BaseSettings):
    """Base configuration shared across all services."""
    log_level: str = Field(default="info", validation_alias="LOG_LEVEL")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


class ExtractionConfig(SharedConfig):
    """Configuration for the PRD extraction service."""
    max_document_bytes: int = Field(
        default=MAX_DOCUMENT_BYTES,
        gt=0,
        validation_alias="MAX_DOCUMENT_BYTES",
    )
    min_entity_fields: int = Field(
        default=MIN_ENTITY_FIELDS,
        ge=0,
        validation_alias="MIN_ENTITY_FIELDS",
    )
