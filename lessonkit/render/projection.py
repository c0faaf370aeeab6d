"""
Structured lesson/exercise records -> macro-laden Markdown text.

Everything renders through the same text pipeline, so records are projected
into text once, here, before entering it.
"""
from __future__ import annotations

from typing import Any, Union

from .models import ExerciseRecord, LessonRecord
from .text_utils import normalize_newlines


def _strip_math_delimiters(formula: str) -> str:
    f = (formula or "").strip()
    if f.startswith("$$") and f.endswith("$$") and len(f) >= 4:
        return f[2:-2].strip()
    if f.startswith("\\[") and f.endswith("\\]"):
        return f[2:-2].strip()
    if f.startswith("$") and f.endswith("$") and len(f) >= 2:
        return f[1:-1].strip()
    return f


def _details(summary: str, body: str) -> str:
    return f"<details>\n<summary>{summary}</summary>\n\n{body}\n\n</details>\n\n"


def project_lesson(lesson: LessonRecord) -> str:
    parts: list[str] = []
    n = 0

    def heading(title: str) -> None:
        nonlocal n
        n += 1
        parts.append(f"## {n}. {title}\n\n")

    if lesson.introduction:
        heading("Introduction")
        parts.append(f"{normalize_newlines(lesson.introduction)}\n\n")

    if lesson.definitions:
        heading("Définitions")
        for d in lesson.definitions:
            parts.append(f"**{d.term}**\n\n")
            parts.append(f"{normalize_newlines(d.definition)}\n\n")
            if d.example:
                parts.append(f"*Exemple :* {normalize_newlines(d.example)}\n\n")
            parts.append("---\n\n")

    if lesson.theorems:
        heading("Théorèmes et Propriétés")
        for t in lesson.theorems:
            parts.append(f"**{t.name}**\n\n")
            parts.append(f"_Énoncé :_ {normalize_newlines(t.statement)}\n\n")
            if t.proof:
                parts.append(f"_Démonstration :_ {normalize_newlines(t.proof)}\n\n")
            if t.application:
                parts.append(f"_Application :_ {normalize_newlines(t.application)}\n\n")
            parts.append("---\n\n")

    if lesson.formulas:
        heading("Formules Importantes")
        for f in lesson.formulas:
            parts.append(f"$${_strip_math_delimiters(f.formula)}$$\n\n")
            if f.explanation:
                parts.append(f"{normalize_newlines(f.explanation)}\n\n")
            if f.variables:
                parts.append(f"_Variables :_ {f.variables}\n\n")
            parts.append("---\n\n")

    if lesson.examples:
        heading("Exemples")
        for i, ex in enumerate(lesson.examples, 1):
            title = f" : {ex.title}" if ex.title else ""
            parts.append(f"**Exemple {i}{title}**\n\n")
            if ex.problem:
                parts.append(f"_Problème :_ {normalize_newlines(ex.problem)}\n\n")
            if ex.solution:
                parts.append(f"_Solution :_\n\n{normalize_newlines(ex.solution)}\n\n")
            if ex.explanation:
                parts.append(f"_Explication :_ {normalize_newlines(ex.explanation)}\n\n")
            parts.append("---\n\n")

    if lesson.exercises:
        heading("Exercices d'Application")
        for i, ex in enumerate(lesson.exercises, 1):
            parts.append(f"**Exercice {i}**\n\n")
            parts.append(f"{normalize_newlines(ex.question)}\n\n")
            if ex.hints:
                hints = "\n".join(f"- {normalize_newlines(h)}" for h in ex.hints)
                parts.append(_details("Indices", hints))
            # Either field is shown under the same "Solution" label.
            solution = ex.solution or ex.answer
            if solution:
                parts.append(_details("Solution", normalize_newlines(solution)))
            parts.append("---\n\n")

    if lesson.summary:
        heading("Résumé")
        parts.append(f"{normalize_newlines(lesson.summary)}\n\n")

    if lesson.common_mistakes:
        heading("Erreurs Courantes à Éviter")
        for mistake in lesson.common_mistakes:
            parts.append(f"- {normalize_newlines(mistake)}\n")
        parts.append("\n")

    return "".join(parts)


def project_exercise(exercise: ExerciseRecord) -> str:
    parts: list[str] = []
    if exercise.problem_text:
        parts.append(f"## Énoncé\n\n{normalize_newlines(exercise.problem_text)}\n\n")
    if exercise.hints:
        parts.append("## Indices\n\n")
        for i, hint in enumerate(exercise.hints, 1):
            parts.append(_details(f"Indice {i}", normalize_newlines(hint)))
    if exercise.solution:
        parts.append(_details("Solution", normalize_newlines(exercise.solution)))
    if exercise.answer and exercise.answer != exercise.solution:
        parts.append(_details("Réponse", normalize_newlines(exercise.answer)))
    if exercise.explanation:
        parts.append(_details("Explication", normalize_newlines(exercise.explanation)))
    return "".join(parts)


def coerce_record(data: dict[str, Any]) -> Union[LessonRecord, ExerciseRecord]:
    """Generator JSON -> record. Accepts {"lesson": {...}}, {"exercise": {...}} or a bare record."""
    if isinstance(data.get("lesson"), dict):
        return LessonRecord.model_validate(data["lesson"])
    if isinstance(data.get("exercise"), dict):
        return ExerciseRecord.model_validate(data["exercise"])
    if "problemText" in data or "problem_text" in data:
        return ExerciseRecord.model_validate(data)
    return LessonRecord.model_validate(data)


def project_document(document) -> str:
    if isinstance(document, str):
        return document
    if isinstance(document, dict):
        document = coerce_record(document)
    if isinstance(document, LessonRecord):
        return project_lesson(document)
    if isinstance(document, ExerciseRecord):
        return project_exercise(document)
    raise TypeError(f"Unsupported document type: {type(document).__name__}")
