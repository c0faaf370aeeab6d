from __future__ import annotations

from typing import Optional

from .models import Heading, Section, SectionCategory

# Ordered: first keyword contained in the heading wins.
SECTION_KEYWORDS: tuple[tuple[str, SectionCategory], ...] = (
    ("introduction", SectionCategory.INTRODUCTION),
    ("définition", SectionCategory.DEFINITION),
    ("definition", SectionCategory.DEFINITION),
    ("théorème", SectionCategory.THEOREM),
    ("theoreme", SectionCategory.THEOREM),
    ("theorem", SectionCategory.THEOREM),
    ("propriété", SectionCategory.THEOREM),
    ("formule", SectionCategory.FORMULA),
    ("formula", SectionCategory.FORMULA),
    ("exemple", SectionCategory.EXAMPLE),
    ("example", SectionCategory.EXAMPLE),
    ("exercice", SectionCategory.EXERCISE),
    ("exercise", SectionCategory.EXERCISE),
    ("résumé", SectionCategory.SUMMARY),
    ("resume", SectionCategory.SUMMARY),
    ("summary", SectionCategory.SUMMARY),
    ("erreur", SectionCategory.ALERT),
    ("alert", SectionCategory.ALERT),
    ("attention", SectionCategory.ALERT),
)

SECTION_HEADING_LEVELS = frozenset({2, 3})


def categorize_heading(title: str) -> SectionCategory:
    lower = (title or "").casefold()
    for keyword, category in SECTION_KEYWORDS:
        if keyword in lower:
            return category
    return SectionCategory.GENERIC


def _is_section_start(node) -> bool:
    return getattr(node, "kind", None) == "heading" and node.level in SECTION_HEADING_LEVELS


def sectionize(nodes: list) -> list:
    """
    Group each level-2/3 heading with the nodes that follow it, up to the next
    such heading, into a flat Section. Content before the first eligible
    heading stays at the top level. Section nodes are never headings, so a
    second pass over the output changes nothing.
    """
    out: list = []
    current: Optional[Section] = None
    for node in nodes:
        if _is_section_start(node):
            if current is not None:
                out.append(current)
            heading: Heading = node
            current = Section(category=categorize_heading(heading.text), children=[heading])
        elif current is not None:
            current.children.append(node)
        else:
            out.append(node)
    if current is not None:
        out.append(current)
    return out
