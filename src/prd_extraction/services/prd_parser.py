"""PRD parser for the extraction service.

Parses a requirements document and returns a ``StructuredPRD`` using
deterministic regex/string matching.  No LLM usage.

Pipeline:
  1. Structural parse into a section tree (``markdown_parser``).
  2. Identifier extraction over the raw text (``identifier_extractor``).
  3. Cross-linking of rules and screens to requirements (``cross_linker``).
  4. Declared entities and enums from the data-requirements section.

This is a pure function.  It never raises for malformed or incomplete
input: the worst case is a sparse result that still carries at least one
functional requirement.
"""
from __future__ import annotations

import logging
import re

from src.prd_extraction.services.cross_linker import link_requirements
from src.prd_extraction.services.identifier_extractor import (
    extract_business_rules,
    extract_requirement_candidates,
    extract_screens,
)
from src.prd_extraction.services.markdown_parser import (
    ParsedMarkdown,
    ParsedSection,
    iter_sections,
    parse_markdown,
    split_table_row,
)
from src.prd_extraction.services.naming import to_pascal_case
from src.shared.constants import (
    DEFAULT_DESCRIPTION,
    DEFAULT_MODULE_NAME,
    DEFAULT_PROJECT_NAME,
)
from src.shared.models.prd import (
    DataRequirements,
    EntityDefinition,
    EnumDefinition,
    EnumValue,
    PRDOverview,
    PRDScope,
    StructuredPRD,
)

logger = logging.getLogger(__name__)

_OVERVIEW_TITLES: tuple[str, ...] = ("overview", "description", "introduction")
_DATA_SECTION_RE = re.compile(
    r"\b(?:data\s+requirements?|data\s+model|domain\s+model|entities|entity\s+definitions?)\b",
    re.IGNORECASE,
)
_ENUM_TITLE_RE = re.compile(r"\benum(?:s|erations?)?\b", re.IGNORECASE)
_STATUS_TITLE_RE = re.compile(r"\bstatus(?:es)?\b", re.IGNORECASE)
_BULLET_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(.*)$")
_FIELD_BULLET_RE = re.compile(r"^`?(\w+)`?\s*[:\-–]\s*`?([A-Za-z]\w*)")
_NUMBERING_RE = re.compile(r"^\d+(?:\.\d+)*\.?\s*")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_prd(prd_text: str) -> StructuredPRD:
    """Parse a PRD document and return a ``StructuredPRD``.

    Args:
        prd_text: Raw PRD text (Markdown or plain text).  ``None`` is
            treated as an empty document.

    Returns:
        The structured PRD.  ``functional_requirements`` is never empty.
    """
    text = prd_text if isinstance(prd_text, str) else ""
    parsed = parse_markdown(text)

    candidates = extract_requirement_candidates(text)
    rules = extract_business_rules(text)
    screens = extract_screens(text)
    requirements = link_requirements(candidates, rules, screens)

    data_requirements = extract_data_requirements(parsed)

    logger.debug(
        "Parsed PRD: %d requirements, %d rules, %d screens, %d declared entities",
        len(requirements), len(rules), len(screens), len(data_requirements.entities),
    )

    return StructuredPRD(
        project_name=parsed.title or DEFAULT_PROJECT_NAME,
        module_name=extract_module_name(parsed),
        overview=extract_overview(parsed),
        functional_requirements=requirements,
        data_requirements=data_requirements,
        raw_content=text,
    )


# ---------------------------------------------------------------------------
# Document metadata
# ---------------------------------------------------------------------------


def extract_module_name(parsed: ParsedMarkdown) -> str:
    """Return the module name from a section titled "... Module ..."."""
    for section in parsed.sections:
        if "module" in section.title.lower():
            name = re.sub(r"module", "", section.title, flags=re.IGNORECASE)
            name = _NUMBERING_RE.sub("", name.strip()).strip(" :-")
            if name:
                return name
    return DEFAULT_MODULE_NAME


def extract_overview(parsed: ParsedMarkdown) -> PRDOverview:
    """Build the overview from the overview/description/introduction section."""
    section = next(
        (
            s for s in parsed.sections
            if any(k in s.title.lower() for k in _OVERVIEW_TITLES)
        ),
        None,
    )
    description = section.body.strip() if section else ""
    return PRDOverview(
        description=description or parsed.preamble.strip() or DEFAULT_DESCRIPTION,
        objectives=_bullets_of(parsed, ("objective", "goal")),
        scope=PRDScope(
            included=_bullets_of(parsed, ("in scope", "included")),
            excluded=_bullets_of(parsed, ("out of scope", "excluded", "non-goal")),
        ),
        assumptions=_bullets_of(parsed, ("assumption",)),
        constraints=_bullets_of(parsed, ("constraint",)),
    )


def _bullets_of(parsed: ParsedMarkdown, keywords: tuple[str, ...]) -> list[str]:
    """Collect bullet items of every section whose title contains a keyword."""
    items: list[str] = []
    for section in iter_sections(parsed):
        if any(k in section.title.lower() for k in keywords):
            items.extend(_bullet_items(section.body))
    return items


# ---------------------------------------------------------------------------
# Data requirements
# ---------------------------------------------------------------------------


def extract_data_requirements(parsed: ParsedMarkdown) -> DataRequirements:
    """Read declared entities and enums from the data-requirements section.

    Every level-3 heading under a section titled Data Requirements / Data
    Model / Entities declares one entity; its fields come from
    ``- name: type`` bullets or from a field table.  Headings that mention
    "enum" or "status" declare an enumeration whose bullets are its values.
    """
    entities: list[EntityDefinition] = []
    enums: list[EnumDefinition] = []
    seen: set[str] = set()

    for section in parsed.sections:
        if not _DATA_SECTION_RE.search(section.title):
            continue
        for child in section.children:
            title = _NUMBERING_RE.sub("", child.title).strip().strip("*_`")
            if _ENUM_TITLE_RE.search(title) or _STATUS_TITLE_RE.search(title):
                enums.append(_enum_from_section(title, child))
                continue
            definition = _entity_from_section(title, child)
            key = definition.name.lower()
            if definition.name and key not in seen:
                seen.add(key)
                entities.append(definition)

    return DataRequirements(entities=entities, enums=enums)


def _entity_from_section(title: str, section: ParsedSection) -> EntityDefinition:
    name = re.sub(r"\s+entity$", "", title, flags=re.IGNORECASE).strip()
    description = ""
    fields: list[str] = []

    for line in section.body.splitlines():
        bullet = _BULLET_RE.match(line)
        if bullet:
            m = _FIELD_BULLET_RE.match(bullet.group(1).strip())
            if m:
                fields.append(f"{m.group(1)}:{m.group(2)}")
            else:
                token = re.match(r"`?(\w+)`?", bullet.group(1).strip())
                if token:
                    fields.append(token.group(1))
        elif line.strip() and not description:
            description = line.strip()

    for table in section.tables:
        fields.extend(_fields_from_table(table))

    return EntityDefinition(
        name=to_pascal_case(name) or name,
        description=description,
        fields=list(dict.fromkeys(fields)),
    )


def _fields_from_table(rows: list[str]) -> list[str]:
    """Return ``name:type`` strings from a field table (header row first)."""
    if len(rows) < 2:
        return []
    headers = [h.lower() for h in split_table_row(rows[0])]
    name_idx = next(
        (i for i, h in enumerate(headers) if h in ("field", "name", "column", "attribute")
         or "field" in h),
        None,
    )
    if name_idx is None:
        return []
    type_idx = next((i for i, h in enumerate(headers) if "type" in h), None)

    fields: list[str] = []
    for row in rows[1:]:
        cells = split_table_row(row)
        if name_idx >= len(cells):
            continue
        name = cells[name_idx].strip("`*_ ")
        if not name:
            continue
        if type_idx is not None and type_idx < len(cells) and cells[type_idx].strip():
            fields.append(f"{name}:{cells[type_idx].strip('`*_ ')}")
        else:
            fields.append(name)
    return fields


def _enum_from_section(title: str, section: ParsedSection) -> EnumDefinition:
    name = _ENUM_TITLE_RE.sub("", title).strip(" :-")
    values: list[EnumValue] = []
    for item in _bullet_items(section.body):
        key, _, label = item.partition(":")
        if not label:
            key, _, label = item.partition(" - ")
        key = key.strip().strip("`*_")
        if key:
            values.append(EnumValue(key=key, label=label.strip() or key))
    return EnumDefinition(name=to_pascal_case(name) or title, values=values)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _bullet_items(body: str) -> list[str]:
    items: list[str] = []
    for line in body.splitlines():
        m = _BULLET_RE.match(line)
        if m and m.group(1).strip():
            items.append(m.group(1).strip())
    return items
