import dataclasses
import json

import pytest

from lessonkit.config import load_settings
from lessonkit.exceptions import ContentRejectedError, GenerationError
from lessonkit.generation import (
    LessonGenerator,
    check_generated,
    parse_generated_json,
    repair_latex_json_escapes,
)
from lessonkit.render.models import ExerciseRecord, LessonRecord


class FakeChat:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = 0

    def chat(self, messages, **kwargs):
        self.calls += 1
        return self.responses.pop(0)


@pytest.fixture
def settings():
    return dataclasses.replace(load_settings(), max_attempts=3)


def test_repair_latex_commands_colliding_with_json_escapes():
    raw = '{"f": "\\frac{1}{2} \\neq \\theta \\beta"}'
    assert json.loads(repair_latex_json_escapes(raw)) == {"f": "\\frac{1}{2} \\neq \\theta \\beta"}


def test_repair_keeps_valid_escapes():
    assert json.loads(repair_latex_json_escapes('{"f": "\\\\frac{1}{2}"}')) == {"f": "\\frac{1}{2}"}
    assert json.loads(repair_latex_json_escapes('{"a": "x\\ny"}')) == {"a": "x\ny"}
    assert json.loads(repair_latex_json_escapes('{"a": "\\u00e9t\\u00e9"}')) == {"a": "été"}
    assert json.loads(repair_latex_json_escapes('{"a": "dit \\"oui\\""}')) == {"a": 'dit "oui"'}


def test_repair_invalid_escapes_and_raw_newlines():
    assert json.loads(repair_latex_json_escapes('{"a": "\\alpha + \\sqrt{2}"}')) == {"a": "\\alpha + \\sqrt{2}"}
    assert json.loads(repair_latex_json_escapes('{"a": "ligne 1\nligne 2"}')) == {"a": "ligne 1\nligne 2"}


def test_parse_generated_json_strategies():
    assert parse_generated_json('{"a": 1}') == {"a": 1}
    assert parse_generated_json('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_generated_json('Voici la leçon : {"a": 1} Bonne étude') == {"a": 1}


def test_parse_generated_json_failures():
    with pytest.raises(GenerationError):
        parse_generated_json("")
    with pytest.raises(GenerationError):
        parse_generated_json("pas de json ici")
    with pytest.raises(GenerationError):
        parse_generated_json("[1, 2]")


def test_check_generated_sanitizes_then_validates():
    assert check_generated("x SDf y") == "x  y"
    with pytest.raises(ContentRejectedError) as exc:
        check_generated(r"$\ln(ab) = \ln(a + b)$")
    assert exc.value.report.should_reject


GOOD = '{"title": "Logarithme", "introduction": "La fonction $\\ln$ est définie sur $]0, +\\infty[$."}'
BAD = '{"title": "X", "introduction": "Vrac{1}{2}"}'


def test_generator_regenerates_after_rejection(settings, capsys):
    chat = FakeChat([BAD, GOOD])
    lesson = LessonGenerator(settings, chat=chat).generate_lesson("Logarithme")
    assert isinstance(lesson, LessonRecord)
    assert lesson.title == "Logarithme"
    assert lesson.introduction == "La fonction $\\ln$ est définie sur $]0, +\\infty[$."
    assert chat.calls == 2
    assert "rejected" in capsys.readouterr().out


def test_generator_gives_up_after_max_attempts(settings):
    chat = FakeChat([BAD, BAD, BAD])
    with pytest.raises(ContentRejectedError) as exc:
        LessonGenerator(settings, chat=chat).generate_lesson("X")
    assert exc.value.attempts == 3
    assert chat.calls == 3


def test_generator_unparsable_responses(settings):
    chat = FakeChat(["désolé", "toujours rien", "non"])
    with pytest.raises(GenerationError):
        LessonGenerator(settings, chat=chat).generate_lesson("X")


def test_generate_exercise(settings):
    chat = FakeChat(['{"exercise": {"problemText": "Résoudre $x^2=4$.", "hints": ["Factoriser"], "answer": "$\\pm 2$"}}'])
    ex = LessonGenerator(settings, chat=chat).generate_exercise("Équations")
    assert isinstance(ex, ExerciseRecord)
    assert ex.problem_text == "Résoudre $x^2=4$."
    assert ex.answer == "$\\pm 2$"
