"""Shared constants used across the extraction service."""
from __future__ import annotations

# Application version
VERSION: str = "1.0.0"

# Service identity
EXTRACTION_SERVICE_NAME: str = "prd-extraction"
EXTRACTION_PORT: int = 8004

# Canonical identifier patterns
FR_ID_PATTERN: str = r"FR-\d{3}"
BR_ID_PATTERN: str = r"BR-\d{3}-[A-Z]"
VR_ID_PATTERN: str = r"VR-\d{3}"
SCREEN_ID_PATTERN: str = r"SCR-\d{3}"

# Context windows (characters) scanned after an identifier match
RULE_CONTEXT_CHARS: int = 500
RULE_FR_LOOKAHEAD_CHARS: int = 200
SCREEN_CONTEXT_CHARS: int = 1000
SCREEN_FR_LOOKAHEAD_CHARS: int = 300
FR_SECTION_FALLBACK_CHARS: int = 1000

# Placeholder names
DEFAULT_PROJECT_NAME: str = "Untitled Project"
DEFAULT_MODULE_NAME: str = "Main"
DEFAULT_DESCRIPTION: str = "No description available"
PLACEHOLDER_FR_ID: str = "FR-001"

# Confidence levels by source
CONFIDENCE_PRD_ENTITY: float = 0.95
CONFIDENCE_PRD_FIELD: float = 0.9
CONFIDENCE_AI: float = 0.85
CONFIDENCE_SCREEN_FIELD: float = 0.8
CONFIDENCE_SCREEN_ENTITY: float = 0.7
CONFIDENCE_STANDARD: float = 1.0

# Request limits
MAX_DOCUMENT_BYTES: int = 1_048_576
MIN_ENTITY_FIELDS: int = 3
