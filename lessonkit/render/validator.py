"""
Integrity checks and best-effort repair for generator-produced lesson text.

`validate` and `sanitize` share no state. The usual chain is
sanitize -> validate, see `lessonkit.generation.check_generated`.
"""
from __future__ import annotations

import re

from .models import FindingKind, SanitizeResult, ValidationFinding, ValidationReport
from .text_utils import brace_balance

DEFAULT_MIN_SENTENCE_LENGTH = 20
DEFAULT_MALFORMED_MATH_THRESHOLD = 5

# Nonsense tokens the generator has been observed to emit. Any hit rejects.
CORRUPTED_TOKEN_CATALOG: tuple[tuple[str, re.Pattern], ...] = (
    ("nonsense words", re.compile(r"uéglin|teintze|Vivérification|Établissement|cognatrice", re.IGNORECASE)),
    ("garbled macros", re.compile(r"S_3\s*e\s*1|Slim\(.*?\)|SDf|equitimptique", re.IGNORECASE)),
    ("parser error text", re.compile(r"Extra-close branc|missing open brace", re.IGNORECASE)),
    ("garbage variables", re.compile(r"Sx\d|S\d\s+Sx\d")),
    ("garbled limit", re.compile(r"\\to\s*\\\+\s*\\ln\(nx\)")),
    ("misspelled frac", re.compile(r"Vrac\{")),
    ("truncated command", re.compile(r"\\frac\{[^}]*$|\\lim_\{[^}]*$")),
    ("unbalanced nested fraction", re.compile(r"\\frac\{5-\\frac\{5\+\\frac\{5\+8\}4")),
)

# Mathematically false identities. Any hit rejects.
FALSE_IDENTITY_CATALOG: tuple[tuple[str, re.Pattern], ...] = (
    ("ln(ab) = ln(a + b)", re.compile(r"\\ln\(ab\)\s*=\s*\\ln\(a\s*\+\s*b\)")),
    ("ln of a sum as a product", re.compile(r"\\ln\([^)]*\s*\+\s*[^)]*\)\s*=\s*\\ln\([^)]*\)\s*\\cdot\s*\\ln\([^)]*\)", re.IGNORECASE)),
    ("ln(ab) = ln(a + b) ln(b)", re.compile(r"\\ln\(ab\)\s*=\s*\\ln\(a\s*\+\s*b\)\\ln\(b\)", re.IGNORECASE)),
    ("change of base", re.compile(r"\\log_a x = \\frac\{\\ln x\}\{\\ln a\\ln b\}")),
)

# sanitize(): deletions/rewrites, applied in order. Deliberately a subset of
# CORRUPTED_TOKEN_CATALOG: tokens without a safe rewrite are left to reject.
_GARBAGE_REWRITES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"uéglin\(teintze\)"), ""),
    (re.compile(r"Vivérification légale"), ""),
    (re.compile(r"Établissement d'étude"), ""),
    (re.compile(r"cognatrice"), ""),
    (re.compile(r"S_3\s*e\s*1"), ""),
    (re.compile(r"Slim\([^)]*\)"), ""),
    (re.compile(r"SDf"), ""),
    (re.compile(r"equitimptique"), ""),
    (re.compile(r"Extra-close branc or missing open brace"), ""),
    (re.compile(r"Sx\d"), "x"),
    (re.compile(r"S\d\s+Sx\d"), "Si x"),
)

_LN_PRODUCT_RE = re.compile(r"\\ln\(ab\)\s*=\s*\\ln\(a\s*\+\s*b\)\\ln\(b\)")
_LN_PRODUCT_FIXED = "\\ln(ab) = \\ln a + \\ln b"

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

# Math spans as generated: $$..$$, $..$, \[..\], \(..\), legacy \latex{..}
_GENERATED_MATH_RE = re.compile(
    r"\$\$.+?\$\$|\$[^$]+\$|\\\[.+?\\\]|\\\(.+?\\\)|\\latex\{[^}]*\}",
    flags=re.DOTALL,
)


def _snippet(s: str, n: int = 50) -> str:
    s = " ".join(s.split())
    return s if len(s) <= n else s[:n] + "..."


def _catalog_findings(text: str, catalog, kind: FindingKind) -> list[ValidationFinding]:
    out: list[ValidationFinding] = []
    for label, pattern in catalog:
        m = pattern.search(text)
        if m:
            out.append(ValidationFinding(kind=kind, detail=f"{label}: {_snippet(m.group(0))}"))
    return out


def _repeated_sentences(text: str, min_length: int) -> list[ValidationFinding]:
    sentences = [s.strip() for s in _SENTENCE_SPLIT_RE.split(text)]
    sentences = [s for s in sentences if len(s) > min_length]
    seen: set[str] = set()
    reported: set[str] = set()
    out: list[ValidationFinding] = []
    for s in sentences:
        if s in seen and s not in reported:
            reported.add(s)
            out.append(ValidationFinding(kind=FindingKind.REPEATED_SENTENCE, detail=f"repeated sentence: {_snippet(s)}"))
        seen.add(s)
    return out


def check_math_span(span: str) -> list[str]:
    problems: list[str] = []
    if brace_balance(span) != 0:
        problems.append(f"unbalanced braces in {_snippet(span)}")
    if "\\frac{" in span and "}{" not in span:
        problems.append(f"malformed fraction in {_snippet(span)}")
    if "\\lim_" in span and "\\to" not in span:
        problems.append(f"malformed limit in {_snippet(span)}")
    return problems


def _malformed_math(text: str) -> list[ValidationFinding]:
    out: list[ValidationFinding] = []
    for m in _GENERATED_MATH_RE.finditer(text):
        for problem in check_math_span(m.group(0)):
            out.append(ValidationFinding(kind=FindingKind.MALFORMED_MATH, detail=problem))
    return out


def validate(
    text: str,
    *,
    min_sentence_length: int = DEFAULT_MIN_SENTENCE_LENGTH,
    malformed_math_threshold: int = DEFAULT_MALFORMED_MATH_THRESHOLD,
) -> ValidationReport:
    text = text or ""
    findings: list[ValidationFinding] = []
    findings += _catalog_findings(text, CORRUPTED_TOKEN_CATALOG, FindingKind.CORRUPTED_TOKEN)
    findings += _catalog_findings(text, FALSE_IDENTITY_CATALOG, FindingKind.FALSE_IDENTITY)
    findings += _repeated_sentences(text, min_sentence_length)
    findings += _malformed_math(text)
    return ValidationReport(findings=findings, malformed_math_threshold=malformed_math_threshold)


def _rewrite_once(text: str) -> str:
    for pattern, replacement in _GARBAGE_REWRITES:
        text = pattern.sub(lambda _m, r=replacement: r, text)
    return _LN_PRODUCT_RE.sub(lambda _m: _LN_PRODUCT_FIXED, text)


def sanitize(text: str) -> SanitizeResult:
    original = text or ""
    cleaned = original
    # Every rewrite shortens the text, so this terminates; looping makes the
    # result stable when a deletion exposes a new match ("SDSDff" -> "SDf").
    while True:
        nxt = _rewrite_once(cleaned)
        if nxt == cleaned:
            break
        cleaned = nxt

    missing = brace_balance(cleaned)
    if missing > 0:
        # A trailing backslash would escape the first appended brace.
        if cleaned.endswith("\\"):
            cleaned += " "
        cleaned += "}" * missing

    return SanitizeResult(text=cleaned, was_modified=cleaned != original)
