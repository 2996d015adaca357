"""Identifier pattern extractor.

Scans raw document text (not the section tree, so identifiers inside
tables and inline prose are still found) for three identifier families:

  - requirements: ``FR-###``
  - rules:        ``BR-###-X`` and ``VR-###``
  - screens:      ``SCR-###`` (with a heading-based fallback)

Every heuristic classifier (rule type, screen type, input type, action
type, priority) is a named pure function driven by a keyword table, so
each one can be replaced without touching its callers.

When an identifier occurs more than once, the first *defining*
occurrence is used: one where only Markdown markup (heading hashes,
bullets, emphasis, numbering) precedes it on its line.  Without a
defining occurrence the first mention is used.  Output order is always
the order of first appearance in the document.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from src.prd_extraction.services.markdown_parser import split_table_row
from src.prd_extraction.services.naming import slugify, to_snake_case
from src.shared.constants import (
    BR_ID_PATTERN,
    FR_ID_PATTERN,
    FR_SECTION_FALLBACK_CHARS,
    RULE_CONTEXT_CHARS,
    RULE_FR_LOOKAHEAD_CHARS,
    SCREEN_CONTEXT_CHARS,
    SCREEN_FR_LOOKAHEAD_CHARS,
    SCREEN_ID_PATTERN,
    VR_ID_PATTERN,
)
from src.shared.models.prd import (
    ActionType,
    BusinessRule,
    BusinessRuleType,
    FieldMapping,
    InputType,
    Priority,
    Screen,
    ScreenAction,
    ScreenLayout,
    ScreenType,
)

logger = logging.getLogger(__name__)

# Highest number a three-digit identifier can carry.
_MAX_ID_NUMBER = 999

# ---------------------------------------------------------------------------
# Identifier patterns
# ---------------------------------------------------------------------------

_START = r"(?<![A-Za-z0-9])"
_FR_SRC = rf"{FR_ID_PATTERN}(?!\d)"
_BR_SRC = rf"{BR_ID_PATTERN}(?![A-Za-z0-9])"
_VR_SRC = rf"{VR_ID_PATTERN}(?!\d)"
_SCR_SRC = rf"{SCREEN_ID_PATTERN}(?!\d)"

_FR_RE = re.compile(_START + _FR_SRC)
_BR_RE = re.compile(_START + _BR_SRC)
_VR_RE = re.compile(_START + _VR_SRC)
_SCR_RE = re.compile(_START + _SCR_SRC)
_ANY_ID_RE = re.compile(_START + f"(?:{_FR_SRC}|{_BR_SRC}|{_VR_SRC}|{_SCR_SRC})")

# Characters that may precede a defining occurrence on its line.
_MARKUP_PREFIX_RE = re.compile(r"^[\s#>*_+\-\d.)\[\]]*$")
# Separator between an identifier and its title on the same line.
_TITLE_SEPARATOR_RE = re.compile(r"^[*_`]*[ \t]*(?:[:\-–—][ \t]*)*")

_HEADING_LINE_RE = re.compile(r"^\s*(#{1,6})\s+")
_LIST_LINE_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+")
_LABEL_LINE_RE = re.compile(
    r"^\s*[*_]*(?:formula|error(?:\s+message)?|message|priority|route|path|url)[*_]*\s*:",
    re.IGNORECASE,
)

_SCREEN_HEADING_RE = re.compile(
    r"^###[ \t]*[\d.]*[ \t]*([^\n]*(?:screen|list|form|view|entry|detail|"
    r"dashboard|modal|confirmation)[^\n]*)",
    re.IGNORECASE | re.MULTILINE,
)
_FORMULA_RE = re.compile(r"formula\s*:\s*`?([^`\n]+)`?", re.IGNORECASE)
_ERROR_RE = re.compile(
    r"\b(?:error(?:\s+message)?|message)\s*:\s*[\"'`]?([^\"'`\n]+)[\"'`]?",
    re.IGNORECASE,
)
_ROUTE_RE = re.compile(
    r"\b(?:route|path|url)\s*:\s*[`\"']?([^\s`\"']+)",
    re.IGNORECASE,
)
_ACTIONS_LABEL_RE = re.compile(
    r"^\s*(?:#{1,6}\s*)?[*_]*\s*Actions?\s*[*_]*\s*:?\s*[*_]*\s*$",
    re.IGNORECASE,
)
_ACTIONS_INLINE_RE = re.compile(
    r"^\s*[*_]*\s*Actions?\s*[*_]*\s*:\s*[*_]*\s*(.+)$",
    re.IGNORECASE,
)
_PRIORITY_LABEL_RE = re.compile(
    r"\bpriority\s*[*_]*\s*:\s*[*_]*\s*([A-Za-z0-9' ]+)",
    re.IGNORECASE,
)

# ---------------------------------------------------------------------------
# Keyword tables (first matching row wins)
# ---------------------------------------------------------------------------

_RULE_TYPE_KEYWORDS: list[tuple[BusinessRuleType, tuple[str, ...]]] = [
    (BusinessRuleType.CALCULATION, ("calculat", "formula", "compute")),
    (BusinessRuleType.WORKFLOW, ("workflow", "approval", "state")),
    (BusinessRuleType.CONSTRAINT, ("constraint", "restrict", "limit")),
]

_SCREEN_TYPE_KEYWORDS: list[tuple[ScreenType, tuple[str, ...]]] = [
    (ScreenType.LIST, ("list", "table", "grid")),
    (ScreenType.DETAIL, ("detail", "view", "display", "confirmation")),
    (ScreenType.MODAL, ("modal", "dialog", "popup")),
    (ScreenType.DASHBOARD, ("dashboard", "overview")),
    (ScreenType.REPORT, ("report",)),
]

_INPUT_TYPE_KEYWORDS: list[tuple[InputType, tuple[str, ...]]] = [
    (InputType.CURRENCY, ("currency", "money")),
    (InputType.PERCENTAGE, ("percent",)),
    (InputType.NUMBER, ("number", "numeric", "integer", "decimal")),
    (InputType.DATE, ("date", "time")),
    (InputType.MULTISELECT, ("multiselect", "multi-select")),
    (InputType.SELECT, ("select", "dropdown", "lookup", "combo")),
    (InputType.TEXTAREA, ("textarea", "multiline", "multi-line")),
    (InputType.CHECKBOX, ("checkbox", "toggle", "boolean")),
    (InputType.RADIO, ("radio",)),
    (InputType.FILE, ("file", "upload", "attachment")),
]

_ACTION_TYPE_KEYWORDS: list[tuple[ActionType, tuple[str, ...]]] = [
    (ActionType.CANCEL, ("cancel", "back")),
    (ActionType.NAVIGATE, ("navigate", "go to")),
    (ActionType.DOWNLOAD, ("download", "export")),
    (ActionType.PRINT, ("print",)),
]

_PRIORITY_KEYWORDS: list[tuple[Priority, tuple[str, ...]]] = [
    (Priority.MUST, (r"\bmust\b", r"\brequired\b", r"\bmandatory\b", r"\bshall\b", r"\bcritical\b")),
    (Priority.SHOULD, (r"\bshould\b", r"\brecommended\b")),
    (Priority.COULD, (r"\bmay\b", r"\bcould\b", r"\boptional\b", r"\bnice to have\b")),
    (Priority.WONT, (r"\bwon'?t\b", r"\bout of scope\b")),
]

# Explicit "Priority: <value>" labels.
_PRIORITY_LABELS: dict[str, Priority] = {
    "must": Priority.MUST,
    "must have": Priority.MUST,
    "high": Priority.MUST,
    "critical": Priority.MUST,
    "p0": Priority.MUST,
    "p1": Priority.MUST,
    "should": Priority.SHOULD,
    "should have": Priority.SHOULD,
    "medium": Priority.SHOULD,
    "p2": Priority.SHOULD,
    "could": Priority.COULD,
    "could have": Priority.COULD,
    "low": Priority.COULD,
    "p3": Priority.COULD,
    "wont": Priority.WONT,
    "won't": Priority.WONT,
    "won't have": Priority.WONT,
}

_REQUIRED_VALUES = {"yes", "y", "true", "required", "mandatory", "x", "✓", "✔"}


# ---------------------------------------------------------------------------
# Candidate records
# ---------------------------------------------------------------------------


@dataclass
class IdentifierMatch:
    """One occurrence of an identifier together with its same-line title."""

    id: str
    start: int
    end: int
    title: str
    definitional: bool


@dataclass
class RequirementCandidate:
    """Flat record for one ``FR-###`` identifier.

    Attributes:
        id: The requirement identifier.
        title: Best-effort title from the defining line.
        description: First substantial prose line of the local section.
        priority: Priority inferred from the local section.
        section_text: Text from the defining occurrence up to the next
            requirement (or section boundary).
        position: Offset of the defining occurrence in the document.
    """

    id: str
    title: str
    description: str
    priority: Priority
    section_text: str
    position: int


# ---------------------------------------------------------------------------
# Identifier lists
# ---------------------------------------------------------------------------


def extract_fr_ids(text: str) -> list[str]:
    """Return unique ``FR-###`` identifiers in order of first appearance."""
    return _unique_ids(_FR_RE, text)


def extract_rule_ids(text: str) -> list[str]:
    """Return unique ``BR-###-X`` / ``VR-###`` identifiers in order of first appearance."""
    return [m.id for m in _select(_scan(_BR_RE, text) + _scan(_VR_RE, text))]


def extract_screen_ids(text: str) -> list[str]:
    """Return unique ``SCR-###`` identifiers in order of first appearance."""
    return _unique_ids(_SCR_RE, text)


def _unique_ids(pattern: re.Pattern[str], text: str) -> list[str]:
    if not isinstance(text, str):
        return []
    return list(dict.fromkeys(m.group(0) for m in pattern.finditer(text)))


# ---------------------------------------------------------------------------
# Classifiers
# ---------------------------------------------------------------------------


def infer_rule_type(title: str) -> BusinessRuleType:
    """Classify a rule from keywords in its title (default: validation)."""
    lower = title.lower()
    for rule_type, keywords in _RULE_TYPE_KEYWORDS:
        if any(k in lower for k in keywords):
            return rule_type
    return BusinessRuleType.VALIDATION


def infer_screen_type(title: str) -> ScreenType:
    """Classify a screen from keywords in its title (default: form)."""
    lower = title.lower()
    for screen_type, keywords in _SCREEN_TYPE_KEYWORDS:
        if any(k in lower for k in keywords):
            return screen_type
    return ScreenType.FORM


def infer_input_type(raw: str) -> InputType:
    """Classify a field-table type cell as an input widget (default: text)."""
    lower = raw.lower()
    for input_type, keywords in _INPUT_TYPE_KEYWORDS:
        if any(k in lower for k in keywords):
            return input_type
    return InputType.TEXT


def infer_action_type(label: str) -> ActionType:
    """Classify a screen action from its text (default: submit)."""
    lower = label.lower()
    for action_type, keywords in _ACTION_TYPE_KEYWORDS:
        if any(k in lower for k in keywords):
            return action_type
    return ActionType.SUBMIT


def infer_priority(section_text: str) -> Priority:
    """Infer MoSCoW priority for a requirement's local section.

    An explicit ``Priority: <value>`` label wins.  Otherwise the first
    keyword row that matches decides; ``should`` is the default.
    """
    label = _PRIORITY_LABEL_RE.search(section_text)
    if label:
        value = label.group(1).strip().lower()
        for key in sorted(_PRIORITY_LABELS, key=len, reverse=True):
            if value.startswith(key):
                return _PRIORITY_LABELS[key]
    lower = section_text.lower()
    for priority, patterns in _PRIORITY_KEYWORDS:
        if any(re.search(p, lower) for p in patterns):
            return priority
    return Priority.SHOULD


# ---------------------------------------------------------------------------
# Requirement candidates
# ---------------------------------------------------------------------------


def extract_requirement_candidates(text: str) -> list[RequirementCandidate]:
    """Build one ``RequirementCandidate`` per ``FR-###`` identifier."""
    if not isinstance(text, str):
        return []
    anchors = _select(_scan(_FR_RE, text))
    starts = sorted(a.start for a in anchors if a.definitional)

    candidates: list[RequirementCandidate] = []
    for anchor in anchors:
        line_start = text.rfind("\n", 0, anchor.start) + 1
        section = text[line_start:_section_end(text, anchor, starts)]
        candidates.append(RequirementCandidate(
            id=anchor.id,
            title=_clean_title(anchor.title) or f"Requirement {anchor.id}",
            description=_first_prose_line(section, min_length=10),
            priority=infer_priority(section),
            section_text=section,
            position=anchor.start,
        ))
    return candidates


def _section_end(text: str, anchor: IdentifierMatch, starts: list[int]) -> int:
    """Return the end offset of the local section opened by *anchor*."""
    boundaries: list[int] = [s for s in starts if s > anchor.start][:1]

    line_start = text.rfind("\n", 0, anchor.start) + 1
    heading = _HEADING_LINE_RE.match(text[line_start:anchor.start + 1])
    max_level = len(heading.group(1)) if heading else 2
    line_end = text.find("\n", anchor.start)
    if line_end != -1:
        for m in re.finditer(r"^(#{1,6})\s+", text[line_end:], re.MULTILINE):
            if len(m.group(1)) <= max_level:
                boundaries.append(line_end + m.start())
                break

    if not boundaries:
        return min(len(text), anchor.start + FR_SECTION_FALLBACK_CHARS)
    return min(boundaries)


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------


def extract_business_rules(text: str) -> list[BusinessRule]:
    """Extract one ``BusinessRule`` per ``BR-###-X`` / ``VR-###`` identifier."""
    if not isinstance(text, str):
        return []
    rules: list[BusinessRule] = []
    for anchor in _select(_scan(_BR_RE, text) + _scan(_VR_RE, text)):
        rules.append(_build_rule(anchor, text))
    return rules


def _build_rule(anchor: IdentifierMatch, text: str) -> BusinessRule:
    title = _clean_title(anchor.title)
    block = _trailing_block(text, anchor.end, RULE_CONTEXT_CHARS, stop_at_headings=True)

    formula_match = re.search(r"`([^`]+)`", title) or _FORMULA_RE.search(block)
    error_match = _ERROR_RE.search(title) or _ERROR_RE.search(block)
    fr_match = _FR_RE.search(title) or _FR_RE.search(block[:RULE_FR_LOOKAHEAD_CHARS])

    name = re.sub(r"`[^`]+`", "", title)
    name = _ERROR_RE.sub("", name).strip(" .:-") or anchor.id
    description = _first_prose_line(block, skip_first=False) or title or anchor.id

    return BusinessRule(
        id=anchor.id,
        name=name,
        type=infer_rule_type(title),
        description=description,
        formula=formula_match.group(1).strip() if formula_match else None,
        error_message=error_match.group(1).strip() if error_match else None,
        related_fr=fr_match.group(0) if fr_match else None,
    )


# ---------------------------------------------------------------------------
# Screens
# ---------------------------------------------------------------------------


def extract_screens(text: str) -> list[Screen]:
    """Extract screens from ``SCR-###`` identifiers.

    When the document has no screen identifiers at all, level-3 headings
    whose title contains a screen-like keyword are used instead and
    numbered ``SCR-001``, ``SCR-002``, ... in document order, up to
    ``SCR-999``.
    """
    if not isinstance(text, str):
        return []
    anchors = _select(_scan(_SCR_RE, text))
    if anchors:
        return [_build_screen(a.id, a.title, text, a.end) for a in anchors]

    screens: list[Screen] = []
    for m in _SCREEN_HEADING_RE.finditer(text):
        if len(screens) == _MAX_ID_NUMBER:
            logger.debug(
                "Screen heading fallback stopped at SCR-%03d; remaining headings ignored",
                _MAX_ID_NUMBER,
            )
            break
        scr_id = f"SCR-{len(screens) + 1:03d}"
        screens.append(_build_screen(scr_id, m.group(1), text, m.end()))
    return screens


def _build_screen(scr_id: str, raw_title: str, text: str, end: int) -> Screen:
    title = _clean_title(raw_title)
    context = _screen_context(text, end)

    name = re.sub(r"\([^)]*\)", "", title)
    name = re.sub(r"^\d+(?:\.\d+)*\s*", "", name).strip(" .:-") or scr_id
    screen_type = infer_screen_type(title)

    route_match = _ROUTE_RE.search(context)
    route = route_match.group(1) if route_match else "/" + (slugify(name) or scr_id.lower())

    actions = extract_actions(context, scr_id) or default_actions(scr_id, screen_type)
    fr_match = _FR_RE.search(title) or _FR_RE.search(context[:SCREEN_FR_LOOKAHEAD_CHARS])

    return Screen(
        id=scr_id,
        name=name,
        type=screen_type,
        route=route,
        layout=ScreenLayout(type="description", content=title),
        field_mappings=extract_field_mappings(context, scr_id),
        actions=actions,
        related_fr=fr_match.group(0) if fr_match else None,
    )


def _screen_context(text: str, pos: int) -> str:
    """Return the trailing context of a screen.

    The context is cut at the next screen or requirement definition and
    at the next heading of level 3 or above.
    """
    segment = text[pos:pos + SCREEN_CONTEXT_CHARS]
    lines = segment.split("\n")
    kept: list[str] = lines[:1]
    for line in lines[1:]:
        heading = _HEADING_LINE_RE.match(line)
        if heading and len(heading.group(1)) <= 3:
            break
        m = re.search(r"(?<![A-Za-z0-9])(?:SCR|FR)-\d{3}(?!\d)", line)
        if m and _MARKUP_PREFIX_RE.match(line[:m.start()]):
            break
        kept.append(line)
    return "\n".join(kept)


def extract_field_mappings(context: str, scr_id: str) -> list[FieldMapping]:
    """Read field mappings from the first pipe table whose header mentions "Field"."""
    rows = _first_field_table(context)
    if not rows:
        return []

    headers = [h.lower() for h in split_table_row(rows[0])]
    name_idx = next(
        (i for i, h in enumerate(headers) if ("field" in h or h == "name") and "entity" not in h),
        0,
    )
    type_idx = next((i for i, h in enumerate(headers) if "input" in h), None)
    if type_idx is None:
        type_idx = next(
            (i for i, h in enumerate(headers) if "type" in h and i != name_idx),
            None,
        )
    required_idx = next(
        (i for i, h in enumerate(headers) if "mandatory" in h or "required" in h),
        None,
    )
    entity_idx = next(
        (i for i, h in enumerate(headers) if "entity" in h and i != name_idx),
        None,
    )

    mappings: list[FieldMapping] = []
    for row in rows[1:]:
        cells = split_table_row(row)
        label = _cell(cells, name_idx).strip("`*_ ")
        field_name = to_snake_case(label)
        if not field_name:
            continue
        entity_field = _cell(cells, entity_idx).strip("`*_ ")
        mappings.append(FieldMapping(
            field_id=f"{scr_id}-F{len(mappings) + 1:02d}",
            field_name=field_name,
            label=label,
            entity_field=entity_field if "." in entity_field else field_name,
            input_type=infer_input_type(_cell(cells, type_idx)),
            is_required=_cell(cells, required_idx).strip("*_ ").lower() in _REQUIRED_VALUES,
        ))
    return mappings


def _first_field_table(context: str) -> list[str]:
    """Return the rows (header first, separators dropped) of the first field table."""
    rows: list[str] = []
    for line in context.split("\n"):
        if "|" in line:
            if not rows:
                if "field" not in line.lower():
                    continue
            elif re.match(r"^\s*\|?[\s\-:|]+\|?\s*$", line):
                continue
            rows.append(line)
        elif rows:
            break
    return rows


def extract_actions(context: str, scr_id: str) -> list[ScreenAction]:
    """Read actions from a bullet list (or inline list) following an "Actions" label."""
    lines = context.split("\n")
    items: list[str] = []
    for i, line in enumerate(lines):
        if not _ACTIONS_LABEL_RE.match(line):
            inline = _ACTIONS_INLINE_RE.match(line)
            if inline and not _LIST_LINE_RE.match(line):
                items = [p for p in re.split(r"\s*[,;|]\s*", inline.group(1)) if p.strip("*_ ")]
                break
            continue
        for follower in lines[i + 1:]:
            if not follower.strip():
                if items:
                    break
                continue
            bullet = _LIST_LINE_RE.match(follower)
            if not bullet:
                break
            items.append(follower[bullet.end():])
        break

    actions: list[ScreenAction] = []
    for item in items:
        text = item.strip().strip("*_`").strip()
        if not text or text.startswith("#"):
            continue
        label = re.split(r"\s*(?::|\s[-–]\s|\()", text, maxsplit=1)[0].strip("*_` ") or text
        actions.append(ScreenAction(
            id=f"{scr_id}-A{len(actions) + 1:02d}",
            label=label,
            type=infer_action_type(text),
            action=to_snake_case(label) or "action",
        ))
    return actions


def default_actions(scr_id: str, screen_type: ScreenType) -> list[ScreenAction]:
    """Return the default actions injected for a screen with none declared."""
    if screen_type is ScreenType.FORM:
        return [
            ScreenAction(id=f"{scr_id}-A01", label="Save", type=ActionType.SUBMIT, action="save"),
            ScreenAction(id=f"{scr_id}-A02", label="Cancel", type=ActionType.CANCEL, action="cancel"),
        ]
    if screen_type is ScreenType.LIST:
        return [
            ScreenAction(id=f"{scr_id}-A01", label="Add New", type=ActionType.NAVIGATE, action="create"),
            ScreenAction(id=f"{scr_id}-A02", label="View", type=ActionType.NAVIGATE, action="view"),
        ]
    return []


# ---------------------------------------------------------------------------
# Scanning helpers
# ---------------------------------------------------------------------------


def _scan(pattern: re.Pattern[str], text: str) -> list[IdentifierMatch]:
    """Return every occurrence of *pattern* with its same-line title."""
    matches: list[IdentifierMatch] = []
    for m in pattern.finditer(text):
        line_start = text.rfind("\n", 0, m.start()) + 1
        line_end = text.find("\n", m.end())
        if line_end == -1:
            line_end = len(text)
        rest = text[m.end():line_end]
        title = rest[_TITLE_SEPARATOR_RE.match(rest).end():]
        matches.append(IdentifierMatch(
            id=m.group(0),
            start=m.start(),
            end=line_end,
            title=title,
            definitional=bool(_MARKUP_PREFIX_RE.match(text[line_start:m.start()])),
        ))
    return matches


def _select(matches: list[IdentifierMatch]) -> list[IdentifierMatch]:
    """Pick one occurrence per identifier, ordered by first appearance."""
    first_seen: dict[str, int] = {}
    chosen: dict[str, IdentifierMatch] = {}
    for m in sorted(matches, key=lambda x: x.start):
        first_seen.setdefault(m.id, m.start)
        current = chosen.get(m.id)
        if current is None or (m.definitional and not current.definitional):
            chosen[m.id] = m
    return sorted(chosen.values(), key=lambda m: first_seen[m.id])


def _trailing_block(text: str, pos: int, limit: int, *, stop_at_headings: bool) -> str:
    """Return the lines after *pos* up to the next heading or identifier definition."""
    lines = text[pos:pos + limit].split("\n")
    kept: list[str] = lines[:1]
    for line in lines[1:]:
        if stop_at_headings and _HEADING_LINE_RE.match(line):
            break
        if _is_definition_line(line):
            break
        kept.append(line)
    return "\n".join(kept)


def _is_definition_line(line: str) -> bool:
    m = _ANY_ID_RE.search(line)
    return bool(m and _MARKUP_PREFIX_RE.match(line[:m.start()]))


def _first_prose_line(block: str, *, min_length: int = 1, skip_first: bool = True) -> str:
    """Return the first plain prose line of *block*.

    Headings, list items, table rows, labelled lines (``Formula:``,
    ``Error:`` ...) and identifier definitions are skipped.
    """
    lines = block.split("\n")
    if skip_first:
        lines = lines[1:]
    for line in lines:
        stripped = line.strip()
        if not stripped or len(stripped) < min_length:
            continue
        if (
            _HEADING_LINE_RE.match(line)
            or _LIST_LINE_RE.match(line)
            or stripped.startswith("|")
            or _LABEL_LINE_RE.match(line)
            or _is_definition_line(line)
        ):
            continue
        return stripped.strip("*_ ")
    return ""


def _clean_title(raw: str) -> str:
    """Strip table pipes and emphasis markers from a same-line title."""
    title = raw.strip()
    if "|" in title:
        title = next((c for c in split_table_row(title) if c), "")
    title = title.replace("**", "").replace("__", "")
    return title.strip(" *_:-\t")


def _cell(cells: list[str], idx: int | None) -> str:
    if idx is None or idx >= len(cells):
        return ""
    return cells[idx]
