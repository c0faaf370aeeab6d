"""
Generation boundary: generator response -> checked lesson/exercise record.

Generated text is sanitized, then validated. A report that says reject
discards the response and asks the generator again, up to
`Settings.max_attempts` times.
"""
from __future__ import annotations

import json
import re
from typing import Any, Callable, Optional

from .config import Settings, load_settings
from .exceptions import ContentRejectedError, GenerationError
from .llm import LessonChat
from .render.models import ExerciseRecord, LessonRecord, ValidationReport
from .render.validator import sanitize, validate

# LaTeX commands whose first letter collides with a JSON escape (\b \f \n \r \t \u).
_COLLIDING_COMMANDS = (
    "begin", "beta", "bar", "binom", "big", "bigcap", "bigcup", "boxed",
    "frac", "forall",
    "neq", "nabla", "notin", "nexists", "neg", "not", "nu",
    "rho", "right", "rightarrow", "rangle", "rfloor", "rceil",
    "times", "text", "textbf", "textit", "theta", "tan", "tau", "top", "to",
    "triangle", "tfrac", "tilde",
    "underline", "uparrow", "upsilon",
)
_COLLIDING_RE = re.compile(
    r"(?:%s)(?![A-Za-z])" % "|".join(sorted(_COLLIDING_COMMANDS, key=len, reverse=True))
)
_HEX4_RE = re.compile(r"[0-9a-fA-F]{4}")
_CODE_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)
_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)

LATEX_FORMATTING_RULES = """\
# LaTeX formatting rules (mandatory)
1. Inline math is $expression$ with no inner padding; display math is $$expression$$ on its own line.
   Never mix $ and \\( \\) delimiters.
2. Never split a math expression across Markdown table cells: | Condition | $|q| < 1$ |
3. Every $ has a matching $, every { a matching }, every \\begin a matching \\end.
   No line breaks inside math.
4. Use real line breaks inside JSON strings, never the two characters \\n.
"""

LESSON_JSON_SHAPE = """\
{
  "title": "Titre de la leçon",
  "introduction": "Introduction avec un contexte réel",
  "definitions": [{"term": "...", "definition": "...", "example": "..."}],
  "theorems": [{"name": "...", "statement": "...", "proof": "...", "application": "..."}],
  "formulas": [{"formula": "LaTeX", "explanation": "...", "variables": "..."}],
  "examples": [{"title": "...", "problem": "...", "solution": "...", "explanation": "..."}],
  "exercises": [{"question": "...", "answer": "...", "hints": ["Indice 1", "Indice 2"]}],
  "summary": "...",
  "commonMistakes": ["..."]
}"""

EXERCISE_JSON_SHAPE = """\
{
  "problemText": "Énoncé complet",
  "hints": ["Indice 1", "Indice 2"],
  "solution": "Solution détaillée étape par étape",
  "answer": "Réponse finale",
  "explanation": "Pourquoi cette méthode fonctionne"
}"""


def repair_latex_json_escapes(raw: str) -> str:
    """
    Make generator JSON loadable without touching its structure.

    Inside string literals: LaTeX commands that look like JSON escapes
    (\\frac, \\neq, \\theta...) and any other invalid escape get their
    backslash doubled; raw newlines/tabs become escapes.
    """
    out: list[str] = []
    i, n = 0, len(raw or "")
    in_string = False
    while i < n:
        ch = raw[i]
        if not in_string:
            if ch == '"':
                in_string = True
            out.append(ch)
            i += 1
            continue
        if ch == '"':
            in_string = False
            out.append(ch)
            i += 1
            continue
        if ch == "\\" and i + 1 < n:
            nxt = raw[i + 1]
            if nxt in '\\"/':
                out.append(raw[i:i + 2])
                i += 2
                continue
            m = _COLLIDING_RE.match(raw, i + 1)
            if m:
                out.append("\\\\" + m.group(0))
                i = m.end()
                continue
            if nxt == "u" and _HEX4_RE.match(raw, i + 2):
                out.append(raw[i:i + 6])
                i += 6
                continue
            if nxt in "bfnrt":
                out.append(raw[i:i + 2])
                i += 2
                continue
            out.append("\\\\")
            i += 1
            continue
        if ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def _loads_object(text: str) -> dict:
    data = json.loads(repair_latex_json_escapes(text))
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def parse_generated_json(text: str) -> dict:
    """Direct parse, then without code fences, then the first {...} block."""
    raw = (text or "").strip()
    if not raw:
        raise GenerationError("Generator returned an empty response")
    try:
        return _loads_object(raw)
    except ValueError:
        pass
    try:
        return _loads_object(_CODE_FENCE_RE.sub("", raw).replace("```", "").strip())
    except ValueError:
        pass
    m = _JSON_OBJECT_RE.search(raw)
    if m:
        try:
            return _loads_object(m.group(0))
        except ValueError as e:
            raise GenerationError(f"Could not parse generator JSON: {e}") from e
    raise GenerationError("No JSON object found in generator response")


def map_strings(value: Any, fn: Callable[[str], str]) -> Any:
    if isinstance(value, str):
        return fn(value)
    if isinstance(value, list):
        return [map_strings(v, fn) for v in value]
    if isinstance(value, dict):
        return {k: map_strings(v, fn) for k, v in value.items()}
    return value


def iter_strings(value: Any):
    if isinstance(value, str):
        yield value
    elif isinstance(value, list):
        for v in value:
            yield from iter_strings(v)
    elif isinstance(value, dict):
        for v in value.values():
            yield from iter_strings(v)


def _validate_text(text: str, settings: Optional[Settings]) -> ValidationReport:
    if settings is None:
        return validate(text)
    return validate(
        text,
        min_sentence_length=settings.min_sentence_length,
        malformed_math_threshold=settings.malformed_math_threshold,
    )


def check_generated(text: str, settings: Optional[Settings] = None) -> str:
    """Sanitize, then validate. Returns the cleaned text or raises ContentRejectedError."""
    cleaned = sanitize(text)
    if cleaned.was_modified:
        print("[INFO] Generated content sanitized")
    report = _validate_text(cleaned.text, settings)
    if report.should_reject:
        raise ContentRejectedError(report)
    if not report.is_valid:
        print(f"[WARN] Generated content kept with {len(report.findings)} non-fatal finding(s)")
    return cleaned.text


def check_generated_record(data: dict, settings: Optional[Settings] = None) -> dict:
    """Field-wise `check_generated` for a parsed record; repetitions are checked across fields."""
    cleaned = map_strings(data, lambda s: sanitize(s).text)
    report = _validate_text("\n\n".join(iter_strings(cleaned)), settings)
    if report.should_reject:
        raise ContentRejectedError(report)
    return cleaned


class LessonGenerator:
    def __init__(self, settings: Optional[Settings] = None, chat=None) -> None:
        self._settings = settings or load_settings()
        self._chat = chat if chat is not None else LessonChat(self._settings)

    def _messages(self, instruction: str, shape: str, context: str = "") -> list[dict]:
        system = "Tu es un professeur de mathématiques expérimenté (système éducatif marocain).\n\n" + LATEX_FORMATTING_RULES
        user = f"{instruction}\n\n"
        if context:
            user += f"Contenu source à utiliser :\n{context[:2000]}\n\n"
        user += f"STRUCTURE ATTENDUE (JSON) :\n{shape}\n\nRéponds uniquement avec le JSON."
        return [{"role": "system", "content": system}, {"role": "user", "content": user}]

    def _generate(self, messages: list[dict]) -> dict:
        attempts = max(1, int(self._settings.max_attempts))
        last_report: Optional[ValidationReport] = None
        last_err: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            raw = self._chat.chat(messages)
            try:
                data = parse_generated_json(raw)
                return check_generated_record(data, self._settings)
            except ContentRejectedError as e:
                last_report = e.report
                print(f"[WARN] Generated content rejected (attempt {attempt}/{attempts}): {e}")
            except GenerationError as e:
                last_err = e
                print(f"[WARN] Unusable generator response (attempt {attempt}/{attempts}): {e}")
        if last_report is not None:
            raise ContentRejectedError(last_report, attempts=attempts)
        raise GenerationError(f"No usable content after {attempts} attempt(s): {last_err}")

    def generate_lesson(self, topic: str, *, level: str = "", context: str = "") -> LessonRecord:
        instruction = f'Génère une leçon complète sur le sujet : "{topic}"'
        if level:
            instruction += f"\nNiveau : {level}"
        data = self._generate(self._messages(instruction, LESSON_JSON_SHAPE, context))
        return LessonRecord.model_validate(data["lesson"] if isinstance(data.get("lesson"), dict) else data)

    def generate_exercise(self, topic: str, *, level: str = "", context: str = "") -> ExerciseRecord:
        instruction = f'Génère un exercice de type examen sur le sujet : "{topic}"'
        if level:
            instruction += f"\nNiveau : {level}"
        data = self._generate(self._messages(instruction, EXERCISE_JSON_SHAPE, context))
        return ExerciseRecord.model_validate(data["exercise"] if isinstance(data.get("exercise"), dict) else data)
