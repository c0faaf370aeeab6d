from __future__ import annotations

import re
from typing import NamedTuple

# Canonical delimiters after normalization: $$...$$ (display) and $...$ (inline).
# An escaped dollar (\$) never opens or closes a span, and inline spans do not
# cross a blank line so a stray "$5" cannot swallow the rest of a document.
_MATH_SPAN_RE = re.compile(
    r"(?<!\\)\$\$(?:\\.|[^\\])*?\$\$"
    r"|(?<![\\$])\$(?!\$)(?:\\.|(?!\n[ \t]*\n)[^\\$])+?\$",
    flags=re.DOTALL,
)

# Private-use code points; never produced by authors or by the macro grammar.
_PLACEHOLDER_OPEN = "\ue000"
_PLACEHOLDER_CLOSE = "\ue001"
_PLACEHOLDER_RE = re.compile(_PLACEHOLDER_OPEN + r"(\d+)" + _PLACEHOLDER_CLOSE)


# Literal backslash-n, except where it starts a LaTeX command (\nabla, \neq, \newline...).
_LITERAL_NEWLINE_RE = re.compile(
    r"(?<!\\)\\n(?!(?:abla|eq|eg|ewline|ewpage|exists|i|otin|ot|oindent|u|mid|leq|geq|subseteq)(?![A-Za-z]))"
)


class TextSegment(NamedTuple):
    is_math: bool
    value: str


def split_math_segments(text: str) -> list[TextSegment]:
    """
    Split text into alternating [non-math, math, non-math, ...] segments.

    The first and last segments are always non-math (possibly empty), so
    concatenating every `value` in order gives back the input unchanged.
    """
    if not text:
        return [TextSegment(False, "")]
    out: list[TextSegment] = []
    last = 0
    for m in _MATH_SPAN_RE.finditer(text):
        out.append(TextSegment(False, text[last:m.start()]))
        out.append(TextSegment(True, m.group(0)))
        last = m.end()
    out.append(TextSegment(False, text[last:]))
    return out


def join_segments(segments: list[TextSegment]) -> str:
    return "".join(seg.value for seg in segments)


def math_spans(text: str) -> list[str]:
    return [seg.value for seg in split_math_segments(text) if seg.is_math]


def protect_math(text: str) -> tuple[str, list[str]]:
    """Swap every math span for an opaque placeholder; returns (text, store)."""
    store: list[str] = []
    parts: list[str] = []
    for seg in split_math_segments(text):
        if seg.is_math:
            parts.append(f"{_PLACEHOLDER_OPEN}{len(store)}{_PLACEHOLDER_CLOSE}")
            store.append(seg.value)
        else:
            parts.append(seg.value)
    return "".join(parts), store


def restore_math(text: str, store: list[str]) -> str:
    if not store:
        return text

    def _repl(m: re.Match) -> str:
        idx = int(m.group(1))
        if 0 <= idx < len(store):
            return store[idx]
        return m.group(0)

    return _PLACEHOLDER_RE.sub(_repl, text)


def normalize_newlines(text: str) -> str:
    """Convert literal "\\n" escapes and CR/CRLF to newlines; collapse 3+ newlines."""
    if not text:
        return ""
    text = _LITERAL_NEWLINE_RE.sub("\n", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return re.sub(r"\n{3,}", "\n\n", text)


def count_unescaped(text: str, ch: str) -> int:
    """Count occurrences of `ch` that are not preceded by an odd run of backslashes."""
    total = 0
    backslashes = 0
    for c in text:
        if c == "\\":
            backslashes += 1
            continue
        if c == ch and backslashes % 2 == 0:
            total += 1
        backslashes = 0
    return total


def brace_balance(text: str) -> int:
    """Net count of unescaped '{' minus unescaped '}'."""
    return count_unescaped(text, "{") - count_unescaped(text, "}")
