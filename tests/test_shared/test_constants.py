"""Tests for shared constants values."""
from __future__ import annotations

import re

from src.shared.constants import (
    BR_ID_PATTERN,
    CONFIDENCE_AI,
    CONFIDENCE_PRD_ENTITY,
    CONFIDENCE_PRD_FIELD,
    CONFIDENCE_SCREEN_ENTITY,
    CONFIDENCE_SCREEN_FIELD,
    CONFIDENCE_STANDARD,
    EXTRACTION_PORT,
    EXTRACTION_SERVICE_NAME,
    FR_ID_PATTERN,
    SCREEN_ID_PATTERN,
    VERSION,
    VR_ID_PATTERN,
)


class TestServiceConstants:
    def test_service_name(self):
        assert EXTRACTION_SERVICE_NAME == "prd-extraction"

    def test_port(self):
        assert EXTRACTION_PORT == 8004

    def test_version_is_semver(self):
        assert re.fullmatch(r"\d+\.\d+\.\d+", VERSION)


class TestIdentifierPatterns:
    def test_patterns_match_canonical_ids(self):
        assert re.fullmatch(FR_ID_PATTERN, "FR-001")
        assert re.fullmatch(BR_ID_PATTERN, "BR-001-A")
        assert re.fullmatch(VR_ID_PATTERN, "VR-042")
        assert re.fullmatch(SCREEN_ID_PATTERN, "SCR-100")

    def test_patterns_reject_lowercase(self):
        assert not re.fullmatch(FR_ID_PATTERN, "fr-001")
        assert not re.fullmatch(BR_ID_PATTERN, "BR-001-a")


class TestConfidenceLevels:
    def test_ordering(self):
        assert (
            CONFIDENCE_STANDARD
            >= CONFIDENCE_PRD_ENTITY
            > CONFIDENCE_PRD_FIELD
            > CONFIDENCE_AI
            > CONFIDENCE_SCREEN_FIELD
            > CONFIDENCE_SCREEN_ENTITY
        )
