"""
Render orchestrator: authored document -> tree -> HTML.

Stage order is fixed:
    projection -> math delimiters -> macros -> parse -> images -> sections

Every stage is a pure function over its input, so one document can be
rendered from any number of threads with no shared mutable state.
"""
from __future__ import annotations

import html
from typing import Optional

from ..capture.agent import build_agent_script
from ..config import Settings
from .html import to_html
from .images import expand_image_macros
from .macros import normalize_macros
from .math_delimiters import normalize_math_delimiters
from .models import AuthoredDocument, Document
from .projection import project_document
from .sectionize import sectionize
from .tree import parse_markdown
from .typeset import typeset_tree

DEFAULT_UPLOADS_PREFIX = "/uploads/"


def prepare_text(document: AuthoredDocument) -> str:
    text = project_document(document)
    text = normalize_math_delimiters(text)
    return normalize_macros(text)


def build_tree(document: AuthoredDocument, uploads_prefix: str = DEFAULT_UPLOADS_PREFIX) -> Document:
    doc = parse_markdown(prepare_text(document))
    expand_image_macros(doc, uploads_prefix)
    doc.children = sectionize(doc.children)
    return doc


def render_document(document: AuthoredDocument, uploads_prefix: str = DEFAULT_UPLOADS_PREFIX) -> str:
    doc = typeset_tree(build_tree(document, uploads_prefix))
    return f'<div class="markdown-content">\n{to_html(doc)}</div>\n'


# Border/background per section category; same palette on screen and paper.
_SECTION_COLORS = {
    "introduction": ("#3b82f6", "rgba(59, 130, 246, 0.1)"),
    "definition": ("#22c55e", "rgba(34, 197, 94, 0.1)"),
    "theorem": ("#a855f7", "rgba(168, 85, 247, 0.1)"),
    "formula": ("#ef4444", "rgba(239, 68, 68, 0.1)"),
    "example": ("#eab308", "rgba(234, 179, 8, 0.1)"),
    "exercise": ("#f97316", "rgba(249, 115, 22, 0.1)"),
    "summary": ("#6b7280", "rgba(107, 114, 128, 0.08)"),
    "alert": ("#dc2626", "rgba(220, 38, 38, 0.08)"),
}

_BASE_CSS = """
@page { size: A4; margin: 0; }
html, body { margin: 0; padding: 0; background: #fff; color: #111; }
body { font-family: "Latin Modern Roman", "Times New Roman", serif; font-size: 12pt; line-height: 1.5; }
.page { padding: 15mm 15mm; }
.markdown-content h1 { font-size: 20pt; }
.markdown-content h2 { font-size: 15pt; margin: 0 0 0.5em; }
.markdown-content h3 { font-size: 13pt; margin: 0 0 0.5em; }
.lesson-box { border-left: 4px solid #d1d5db; border-radius: 4px; padding: 0.75em 1em; margin: 1em 0; break-inside: avoid-page; }
.image-wrapper { display: block; text-align: center; margin: 0.75em 0; }
.latex-image { display: inline-block; }
.math-display { display: block; text-align: center; margin: 0.5em 0; overflow-x: auto; }
.math-error { font-family: monospace; color: #b91c1c; }
details { margin: 0.5em 0; }
details > summary { font-weight: bold; cursor: pointer; }
table { border-collapse: collapse; margin: 0.75em auto; }
th, td { border: 1px solid #9ca3af; padding: 0.25em 0.6em; }
pre { background: #f3f4f6; padding: 0.5em; overflow-x: auto; }
@media print {
  * { -webkit-print-color-adjust: exact; print-color-adjust: exact; }
  details > summary { list-style: none; }
}
"""


def page_css() -> str:
    rules = [_BASE_CSS.strip()]
    for cat, (border, background) in _SECTION_COLORS.items():
        rules.append(f".box-{cat} {{ border-left-color: {border}; background: {background}; }}")
    return "\n".join(rules) + "\n"


def render_page(
    document: AuthoredDocument,
    *,
    title: str = "Document",
    settings: Optional[Settings] = None,
) -> str:
    """Standalone HTML page carrying the print CSS and the readiness agent; the capture target."""
    if settings is not None:
        uploads_prefix = settings.uploads_prefix
        agent = build_agent_script(settings.settle_ms, settings.final_ms)
    else:
        uploads_prefix = DEFAULT_UPLOADS_PREFIX
        agent = build_agent_script()
    body = render_document(document, uploads_prefix)
    # Agent runs after the content is in the DOM.
    return (
        "<!DOCTYPE html>\n"
        '<html lang="fr" class="light">\n'
        "<head>\n"
        '<meta charset="utf-8" />\n'
        f"<title>{html.escape(title)}</title>\n"
        f"<style>\n{page_css()}</style>\n"
        "</head>\n"
        "<body>\n"
        f'<main class="page">\n<h1>{html.escape(title)}</h1>\n{body}</main>\n'
        f"<script>{agent}</script>\n"
        "</body>\n"
        "</html>\n"
    )
