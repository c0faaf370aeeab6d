from __future__ import annotations

import re

from .text_utils import split_math_segments

# Upstream delimiter variants -> canonical $...$ / $$...$$.
# "\\[2pt]" is a LaTeX line break with spacing, not a display opener.
_DELIMITER_RULES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"(?<!\\)\\\["), "$$"),
    (re.compile(r"(?<!\\)\\\]"), "$$"),
    (re.compile(r"(?<!\\)\\\("), "$"),
    (re.compile(r"(?<!\\)\\\)"), "$"),
    (re.compile(r"\\begin\{equation\*?\}"), "$$"),
    (re.compile(r"\\end\{equation\*?\}"), "$$"),
)

# Column spec may carry one level of nested braces, e.g. {|c|p{3cm}|}.
_TABULAR_BEGIN_RE = re.compile(r"\\begin\{tabular\}(\{(?:[^{}]|\{[^{}]*\})*\})?")
_TABULAR_END_RE = re.compile(r"\\end\{tabular\}")
_ARRAY_ENV_RE = re.compile(r"\\begin\{array\}.*?\\end\{array\}", flags=re.DOTALL)

# Garbled tokens seen repeatedly in generated lessons (geometric series ratio).
# Fixed lookup, applied in order; not a grammar repair.
_TOKEN_REPAIRS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"\(où\s*qeq1\)"), "(où $q \\neq 1$)"),
    (re.compile(r"qeq1"), "q \\neq 1"),
    (re.compile(r"q\\neq1\b"), "q \\neq 1"),
    (re.compile(r"\\neq[ \t]*1"), "\\neq 1"),
)


def _sub_literal(pattern: re.Pattern, replacement: str, text: str) -> str:
    return pattern.sub(lambda _m: replacement, text)


def _convert_tabular_to_array(text: str) -> str:
    def _begin(m: re.Match) -> str:
        return "\\begin{array}" + (m.group(1) or "{c}")

    text = _TABULAR_BEGIN_RE.sub(_begin, text)
    return _sub_literal(_TABULAR_END_RE, "\\end{array}", text)


def _wrap_bare_arrays(text: str) -> str:
    """An array environment outside any math span gets display delimiters."""
    parts: list[str] = []
    for seg in split_math_segments(text):
        if seg.is_math or "\\begin{array}" not in seg.value:
            parts.append(seg.value)
            continue
        parts.append(_ARRAY_ENV_RE.sub(lambda m: "$$" + m.group(0) + "$$", seg.value))
    return "".join(parts)


def repair_known_tokens(text: str) -> str:
    for pattern, replacement in _TOKEN_REPAIRS:
        text = _sub_literal(pattern, replacement, text)
    return text


def normalize_math_delimiters(text: str) -> str:
    """
    Canonicalize math delimiters and table macros.

    - \\[..\\], \\begin{equation}..\\end{equation} -> $$..$$
    - \\(..\\) -> $..$
    - tabular -> array (column spec kept verbatim, {c} when missing)
    - a short list of known garbled tokens is repaired

    Unknown or unmatched sequences are left as they are.
    """
    if not text:
        return ""
    for pattern, replacement in _DELIMITER_RULES:
        text = _sub_literal(pattern, replacement, text)
    text = _convert_tabular_to_array(text)
    text = repair_known_tokens(text)
    return _wrap_bare_arrays(text)
