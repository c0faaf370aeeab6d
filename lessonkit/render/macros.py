from __future__ import annotations

import re

from .text_utils import protect_math, restore_math

# Innermost list block first: the body may not open another list.
_LIST_BLOCK_RE = re.compile(
    r"\\begin\{(itemize|enumerate)\}"
    r"((?:(?!\\begin\{(?:itemize|enumerate)\}).)*?)"
    r"\\end\{\1\}",
    flags=re.DOTALL,
)
_ITEM_SPLIT_RE = re.compile(r"\\item(?![A-Za-z])\s*")

_INLINE_MACROS: tuple[tuple[re.Pattern, str, str], ...] = (
    (re.compile(r"\\textbf\{([^{}]*)\}"), "**", "**"),
    (re.compile(r"\\textit\{([^{}]*)\}"), "*", "*"),
    (re.compile(r"\\emph\{([^{}]*)\}"), "*", "*"),
    (re.compile(r"\\underline\{([^{}]*)\}"), "<u>", "</u>"),
)

_HEADING_MACROS: tuple[tuple[re.Pattern, int], ...] = (
    (re.compile(r"\\subsubsection\*?\{([^{}]+)\}"), 4),
    (re.compile(r"\\subsection\*?\{([^{}]+)\}"), 3),
    (re.compile(r"\\section\*?\{([^{}]+)\}"), 2),
)

# "\\" (optionally with a spacing argument such as \\[2pt]) and \newline.
_LINE_BREAK_RE = re.compile(r"\\\\(?:\[[^\]\n]*\])?|\\newline(?![A-Za-z])")
LINE_BREAK_MARKER = "<br/>"


def _render_list(body: str, ordered: bool) -> str:
    items = [it.strip() for it in _ITEM_SPLIT_RE.split(body)]
    items = [it for it in items if it]
    if not items:
        return "\n"
    lines: list[str] = []
    for i, item in enumerate(items, 1):
        marker = f"{i}. " if ordered else "- "
        first, *rest = item.split("\n")
        lines.append(marker + first)
        for ln in rest:
            lines.append(" " * len(marker) + ln if ln.strip() else "")
    # Trailing blank line: following text must not become a lazy continuation.
    return "\n" + "\n".join(lines) + "\n\n"


def convert_lists(text: str) -> str:
    while True:
        new = _LIST_BLOCK_RE.sub(lambda m: _render_list(m.group(2), m.group(1) == "enumerate"), text)
        if new == text:
            return new
        text = new


def convert_inline_macros(text: str) -> str:
    # Nested macros (\textbf{\textit{x}}) resolve innermost first.
    while True:
        new = text
        for pattern, left, right in _INLINE_MACROS:
            new = pattern.sub(lambda m, l=left, r=right: f"{l}{m.group(1).strip()}{r}" if m.group(1).strip() else "", new)
        if new == text:
            return new
        text = new


def convert_headings(text: str) -> str:
    for pattern, level in _HEADING_MACROS:
        text = pattern.sub(lambda m, lv=level: "\n" + "#" * lv + " " + m.group(1).strip() + "\n", text)
    return text


def convert_line_breaks(text: str) -> str:
    return _LINE_BREAK_RE.sub(LINE_BREAK_MARKER, text)


def normalize_macros(text: str) -> str:
    """
    Rewrite document-structure macros into Markdown.

    Math spans are swapped for placeholders first, so nothing between
    canonical delimiters is ever touched; they are restored in order at the end.
    Running this on its own output is a no-op.
    """
    if not text:
        return ""
    protected, store = protect_math(text)
    # A block macro inside an inline one (\textbf{\section{x}}) only frees the
    # outer macro once its braces are gone; repeat until stable.
    while True:
        new = convert_lists(protected)
        new = convert_inline_macros(new)
        new = convert_headings(new)
        new = convert_line_breaks(new)
        if new == protected:
            break
        protected = new
    return restore_math(protected, store)
