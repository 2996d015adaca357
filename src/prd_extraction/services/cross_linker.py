"""Cross-linker and orphan resolver.

Attaches extracted business rules and screens to their owning functional
requirement.  Ownership is resolved per item, in this order:

  Rules:   1. number correlation (``BR-012-A`` -> ``FR-012``)
           2. explicit back-reference found near the rule
           3. a requirement whose local section mentions the rule id
  Screens: 1. explicit back-reference found near the screen
           2. a requirement whose local section mentions the screen id
           3. number correlation (``SCR-012`` -> ``FR-012``)

Anything still unresolved is an orphan and goes to the first requirement
in document order.  Every extracted item therefore ends up in exactly
one requirement.  With no requirement identifiers at all a single
placeholder ``FR-001`` owns everything.
"""
from __future__ import annotations

import logging
import re

from src.prd_extraction.services.identifier_extractor import RequirementCandidate
from src.shared.constants import PLACEHOLDER_FR_ID
from src.shared.models.prd import (
    AcceptanceCriterion,
    BusinessRule,
    BusinessRuleType,
    FunctionalRequirement,
    Priority,
    Screen,
)

logger = logging.getLogger(__name__)

_WORKFLOW_KEYWORDS: tuple[str, ...] = ("workflow", "approval", "state machine")

_ENTITY_LABEL_RE = re.compile(
    r"\b(?i:entity|entities|tables?|models?)\s*:\s*([A-Z][A-Za-z0-9_, ]*)"
)
_AC_LABEL_RE = re.compile(r"acceptance\s+criteria", re.IGNORECASE)
_GHERKIN_START_RE = re.compile(
    r"^\s*(?:[-*+]|\d+[.)])?\s*[*_]*given\b", re.IGNORECASE
)
_GHERKIN_CONT_RE = re.compile(
    r"^\s*(?:[-*+]|\d+[.)])?\s*[*_]*(?:when|then|and|but)\b", re.IGNORECASE
)
_BULLET_PREFIX_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])?\s*(?:\[[ xX]\]\s*)?")
_NUMBER_RE = re.compile(r"-(\d{3})")


def link_requirements(
    candidates: list[RequirementCandidate],
    rules: list[BusinessRule],
    screens: list[Screen],
) -> list[FunctionalRequirement]:
    """Assemble ``FunctionalRequirement`` records with their rules and screens.

    Args:
        candidates: Requirement candidates in document order.
        rules: Extracted business rules in document order.
        screens: Extracted screens in document order.

    Returns:
        One requirement per candidate (or the single placeholder), each
        owning its rules and screens in extraction order.  The inputs are
        not modified; attached items are copies whose ``related_fr``
        names their owner.
    """
    if not candidates:
        logger.debug(
            "No requirement identifiers; placeholder %s owns %d rules and %d screens",
            PLACEHOLDER_FR_ID, len(rules), len(screens),
        )
        owned_rules = [_owned(r, PLACEHOLDER_FR_ID) for r in rules]
        return [FunctionalRequirement(
            id=PLACEHOLDER_FR_ID,
            title="Main Requirement",
            description="Extracted from PRD",
            priority=Priority.MUST,
            business_rules=owned_rules,
            screens=[_owned(s, PLACEHOLDER_FR_ID) for s in screens],
            is_workflow=any(r.type is BusinessRuleType.WORKFLOW for r in owned_rules),
        )]

    fallback = candidates[0].id
    rules_by_fr: dict[str, list[BusinessRule]] = {c.id: [] for c in candidates}
    screens_by_fr: dict[str, list[Screen]] = {c.id: [] for c in candidates}
    orphans = 0

    for rule in rules:
        owner = resolve_rule_owner(rule, candidates)
        if owner is None:
            orphans += 1
            owner = fallback
        rules_by_fr[owner].append(_owned(rule, owner))

    for screen in screens:
        owner = resolve_screen_owner(screen, candidates)
        if owner is None:
            orphans += 1
            owner = fallback
        screens_by_fr[owner].append(_owned(screen, owner))

    if orphans:
        logger.debug("Attached %d orphan rules/screens to %s", orphans, fallback)

    requirements: list[FunctionalRequirement] = []
    for candidate in candidates:
        owned_rules = rules_by_fr[candidate.id]
        lower_section = candidate.section_text.lower()
        requirements.append(FunctionalRequirement(
            id=candidate.id,
            title=candidate.title,
            description=candidate.description,
            priority=candidate.priority,
            acceptance_criteria=extract_acceptance_criteria(
                candidate.id, candidate.section_text
            ),
            business_rules=owned_rules,
            screens=screens_by_fr[candidate.id],
            involved_entities=extract_involved_entities(candidate.section_text),
            is_workflow=(
                any(k in lower_section for k in _WORKFLOW_KEYWORDS)
                or any(r.type is BusinessRuleType.WORKFLOW for r in owned_rules)
            ),
        ))
    return requirements


def resolve_rule_owner(
    rule: BusinessRule, candidates: list[RequirementCandidate]
) -> str | None:
    """Return the owning requirement id for *rule*, or ``None`` for an orphan."""
    ids = {c.id for c in candidates}
    if rule.id.startswith("BR-"):
        by_number = _fr_for_number(rule.id)
        if by_number in ids:
            return by_number
    if rule.related_fr in ids:
        return rule.related_fr
    return _first_mentioning(rule.id, candidates)


def resolve_screen_owner(
    screen: Screen, candidates: list[RequirementCandidate]
) -> str | None:
    """Return the owning requirement id for *screen*, or ``None`` for an orphan."""
    ids = {c.id for c in candidates}
    if screen.related_fr in ids:
        return screen.related_fr
    mentioned = _first_mentioning(screen.id, candidates)
    if mentioned is not None:
        return mentioned
    by_number = _fr_for_number(screen.id)
    return by_number if by_number in ids else None


def extract_acceptance_criteria(fr_id: str, section_text: str) -> list[AcceptanceCriterion]:
    """Extract acceptance criteria from a requirement's local section.

    A block following an "Acceptance Criteria" label is preferred; each of
    its lines is one criterion.  Otherwise Given/When/Then scenarios are
    collected, one criterion per ``Given`` line with its continuation
    lines joined.
    """
    lines = section_text.split("\n")
    texts: list[str] = []

    label_idx = next((i for i, l in enumerate(lines) if _AC_LABEL_RE.search(l)), None)
    if label_idx is not None:
        for line in lines[label_idx + 1:]:
            if not line.strip():
                if texts:
                    break
                continue
            if line.lstrip().startswith("#"):
                break
            texts.append(_BULLET_PREFIX_RE.sub("", line).strip().strip("*_ "))
    else:
        for line in lines:
            cleaned = _BULLET_PREFIX_RE.sub("", line).strip().strip("*_ ")
            if _GHERKIN_START_RE.match(line):
                texts.append(cleaned)
            elif texts and _GHERKIN_CONT_RE.match(line):
                texts[-1] = f"{texts[-1]} {cleaned}"

    criteria: list[AcceptanceCriterion] = []
    for text in texts:
        if len(text) > 5:
            criteria.append(AcceptanceCriterion(
                id=f"{fr_id}-AC{len(criteria) + 1:02d}",
                description=text,
            ))
    return criteria


def extract_involved_entities(section_text: str) -> list[str]:
    """Return entity names listed after ``Entity:``/``Entities:``/``Table:``/``Model:`` labels."""
    names: list[str] = []
    for m in _ENTITY_LABEL_RE.finditer(section_text):
        for token in re.split(r"[,\s]+", m.group(1)):
            if len(token) > 1 and token[:1].isupper() and token not in names:
                names.append(token)
    return names


def _fr_for_number(item_id: str) -> str | None:
    m = _NUMBER_RE.search(item_id)
    return f"FR-{m.group(1)}" if m else None


def _first_mentioning(item_id: str, candidates: list[RequirementCandidate]) -> str | None:
    pattern = re.compile(rf"(?<![A-Za-z0-9]){re.escape(item_id)}(?![A-Za-z0-9])")
    return next(
        (c.id for c in candidates if pattern.search(c.section_text)),
        None,
    )


def _owned(item, owner: str):
    return item.model_copy(update={"related_fr": owner})
