"""Extraction router for the PRD extraction service."""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Request

from src.prd_extraction.services.entity_extractor import (
    extract_entities_from_prd,
    extract_entities_from_response,
)
from src.prd_extraction.services.prd_parser import parse_prd
from src.shared.config import ExtractionConfig
from src.shared.errors import ParsingError, PayloadTooLargeError, ValidationError
from src.shared.models.entity import EntityExtractionResult, NormalizeEntitiesRequest
from src.shared.models.prd import ParsePRDRequest, StructuredPRD

logger = logging.getLogger(__name__)

router = APIRouter(tags=["extraction"])


def _check_size(request: Request, text: str) -> ExtractionConfig:
    config: ExtractionConfig = request.app.state.config
    size = len(text.encode("utf-8"))
    if size > config.max_document_bytes:
        raise PayloadTooLargeError(
            f"Document is {size} bytes; the limit is {config.max_document_bytes}"
        )
    return config


def _run_entity_extraction(prd_text: str, min_fields: int) -> EntityExtractionResult:
    """Parse the PRD and extract its entity graph.

    This function is called via asyncio.to_thread() from the async endpoint.
    """
    prd = parse_prd(prd_text)
    return extract_entities_from_prd(prd, min_fields=min_fields)


@router.post("/api/prd/parse")
async def parse_document(request: Request, body: ParsePRDRequest) -> StructuredPRD:
    """Parse a PRD into requirements, rules, screens and declared data."""
    _check_size(request, body.prd_text)
    prd = await asyncio.to_thread(parse_prd, body.prd_text)
    logger.info(
        "Parsed PRD: project=%s requirements=%d",
        prd.project_name, len(prd.functional_requirements),
    )
    return prd


@router.post("/api/entities/extract")
async def extract_entities(request: Request, body: ParsePRDRequest) -> EntityExtractionResult:
    """Parse a PRD and return its normalized entity graph."""
    config = _check_size(request, body.prd_text)
    result = await asyncio.to_thread(
        _run_entity_extraction, body.prd_text, config.min_entity_fields,
    )
    logger.info(
        "Extracted entities: entities=%d relationships=%d warnings=%d",
        len(result.entities), len(result.relationships), len(result.warnings),
    )
    return result


@router.post("/api/entities/normalize")
async def normalize_entities(
    request: Request, body: NormalizeEntitiesRequest
) -> EntityExtractionResult:
    """Normalize untrusted extraction output into a validated entity graph.

    Accepts either raw ``response_text`` (optionally fenced) or an
    already-decoded ``payload``.
    """
    if body.response_text is None and body.payload is None:
        raise ValidationError("Either response_text or payload is required")

    config: ExtractionConfig = request.app.state.config
    if body.response_text is not None:
        _check_size(request, body.response_text)
    elif not isinstance(body.payload, dict):
        raise ParsingError(
            f"payload must be a JSON object, got {type(body.payload).__name__}"
        )

    result = await asyncio.to_thread(
        extract_entities_from_response,
        body.response_text,
        body.payload,
        config.min_entity_fields,
    )
    if result.raw_response is not None:
        logger.warning("Extraction response could not be parsed; returning parse-error suggestion")
    return result
