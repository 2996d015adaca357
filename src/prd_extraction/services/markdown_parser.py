"""Structural Markdown parser.

Turns raw document text into a section tree plus the fenced code blocks,
pipe tables and bullet/numbered lists it contains.  The parser is a
single forward scan over lines driven by a small state machine
(normal / in code block / in table).  It never raises: malformed
Markdown is segmented by the most recent context instead.

Sectioning rules:
  - The first level-1 heading becomes the document title.
  - Level-2 headings open top-level sections.
  - Level-3+ headings nest directly under the current level-2 section
    (one level only); before any level-2 heading they become roots.
  - Body text accumulates into the most recently opened section; text
    before the first section is kept as the document preamble.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)(?:\s+#+)?\s*$")
_FENCE_RE = re.compile(r"^\s*(```|~~~)(.*)$")
_SEPARATOR_ROW_RE = re.compile(r"^\s*\|?[\s\-:|]+\|?\s*$")
_LIST_ITEM_RE = re.compile(r"^(\s*)(?:[-*+]|\d+[.)])\s+(.*)$")


class _State(Enum):
    NORMAL = "normal"
    IN_CODE_BLOCK = "in_code_block"
    IN_TABLE = "in_table"


@dataclass
class ParsedSection:
    """A heading and the content that follows it."""

    level: int
    title: str
    body: str = ""
    children: list[ParsedSection] = field(default_factory=list)
    tables: list[list[str]] = field(default_factory=list)


@dataclass
class CodeBlock:
    """A fenced code block captured verbatim."""

    language: str
    content: str


@dataclass
class ParsedMarkdown:
    """Structured result produced by ``parse_markdown``.

    Attributes:
        title: Text of the first level-1 heading, or ``""``.
        preamble: Body text that appears before the first section.
        sections: Root sections in document order.
        code_blocks: Fenced code blocks in document order.
        tables: Table rows (separator rows dropped), one list per table.
        lists: List item texts, one list per contiguous list.
    """

    title: str = ""
    preamble: str = ""
    sections: list[ParsedSection] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)
    tables: list[list[str]] = field(default_factory=list)
    lists: list[list[str]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_markdown(text: str) -> ParsedMarkdown:
    """Parse *text* into a ``ParsedMarkdown`` structure.

    Args:
        text: Raw, Markdown-flavoured document text.  ``None`` and other
            non-string values are treated as an empty document.

    Returns:
        The parsed structure.  Never raises.
    """
    result = ParsedMarkdown()
    if not isinstance(text, str) or not text:
        return result

    state = _State.NORMAL
    fence = ""
    code_lang = ""
    code_lines: list[str] = []
    table_rows: list[str] = []

    current_top: ParsedSection | None = None
    current: ParsedSection | None = None
    preamble: list[str] = []

    list_open = False
    after_blank = False

    def _append_body(line: str) -> None:
        if current is not None:
            current.body += line + "\n"
        else:
            preamble.append(line)

    def _flush_table() -> None:
        if table_rows:
            rows = list(table_rows)
            result.tables.append(rows)
            if current is not None:
                current.tables.append(rows)
        table_rows.clear()

    for line in text.splitlines():
        # -- Fenced code blocks -------------------------------------------
        if state is _State.IN_CODE_BLOCK:
            if line.strip().startswith(fence):
                result.code_blocks.append(
                    CodeBlock(language=code_lang, content="\n".join(code_lines).strip())
                )
                state = _State.NORMAL
                code_lines = []
            else:
                code_lines.append(line)
            continue

        fence_match = _FENCE_RE.match(line)
        if fence_match:
            if state is _State.IN_TABLE:
                _flush_table()
            state = _State.IN_CODE_BLOCK
            fence = fence_match.group(1)
            code_lang = fence_match.group(2).strip()
            code_lines = []
            list_open = False
            continue

        # -- Tables -------------------------------------------------------
        if "|" in line and not line.lstrip().startswith("#"):
            state = _State.IN_TABLE
            if not _SEPARATOR_ROW_RE.match(line):
                table_rows.append(line.strip())
            list_open = False
            continue
        if state is _State.IN_TABLE:
            _flush_table()
            state = _State.NORMAL

        # -- Headings -----------------------------------------------------
        heading_match = _HEADING_RE.match(line)
        if heading_match:
            level = len(heading_match.group(1))
            title = heading_match.group(2).strip()
            list_open = False
            if level == 1:
                if not result.title:
                    result.title = title
                continue
            section = ParsedSection(level=level, title=title)
            if level == 2 or current_top is None:
                result.sections.append(section)
                if level == 2:
                    current_top = section
            else:
                current_top.children.append(section)
            current = section
            continue

        # -- Lists --------------------------------------------------------
        item_match = _LIST_ITEM_RE.match(line)
        if item_match:
            indented = bool(item_match.group(1))
            item = item_match.group(2).strip()
            if list_open and (indented or not after_blank) and result.lists:
                result.lists[-1].append(item)
            else:
                result.lists.append([item])
            list_open = True
            after_blank = False
            _append_body(line)
            continue

        # -- Body text ----------------------------------------------------
        if not line.strip():
            after_blank = True
            continue
        list_open = False
        after_blank = False
        _append_body(line)

    # Unterminated constructs are closed at end of input.
    if state is _State.IN_CODE_BLOCK:
        logger.debug("Unterminated code fence closed at end of document")
        result.code_blocks.append(
            CodeBlock(language=code_lang, content="\n".join(code_lines).strip())
        )
    elif state is _State.IN_TABLE:
        _flush_table()

    result.preamble = "\n".join(preamble)
    return result


def iter_sections(parsed: ParsedMarkdown) -> list[ParsedSection]:
    """Return every section (roots and children) in document order."""
    ordered: list[ParsedSection] = []
    for section in parsed.sections:
        ordered.append(section)
        ordered.extend(section.children)
    return ordered


def find_section(parsed: ParsedMarkdown, title: str) -> ParsedSection | None:
    """Return the first root section whose title contains *title* (case-insensitive)."""
    needle = title.lower()
    return next(
        (s for s in parsed.sections if needle in s.title.lower()),
        None,
    )


def render_text(parsed: ParsedMarkdown) -> str:
    """Render the parsed structure back to plain Markdown-like text."""
    parts: list[str] = [parsed.title, ""]

    def _render(section: ParsedSection) -> None:
        parts.append("#" * section.level + " " + section.title)
        parts.append(section.body)
        for child in section.children:
            _render(child)

    for section in parsed.sections:
        _render(section)
    return "\n".join(parts)


def split_table_row(row: str) -> list[str]:
    """Split a pipe-table row into trimmed cells."""
    return [cell.strip() for cell in row.strip().strip("|").split("|")]
