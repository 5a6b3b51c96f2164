"""Tests for the answer conversion boundary."""

from __future__ import annotations

from datetime import date

import pytest

from riskform.answers import FileMeta, coerce_answer, is_empty_answer, normalise_values
from riskform.errors import AnswerShapeError
from riskform.schema import Option, Question, load_form_config


def test_is_empty_answer() -> None:
    assert is_empty_answer(None)
    assert is_empty_answer("")
    assert is_empty_answer([])
    assert not is_empty_answer(0)
    assert not is_empty_answer(False)
    assert not is_empty_answer(" ")


def test_file_answers_become_file_meta() -> None:
    question = Question(id="evidence", type="file", label="Evidence")

    single = coerce_answer(question, {"name": "a.pdf", "size": 3, "type": "application/pdf"})
    many = coerce_answer(question, [FileMeta(name="b.png"), {"name": "c.txt", "uploadedAt": "now"}])

    assert single == [FileMeta(name="a.pdf", size=3, type="application/pdf")]
    assert [item.name for item in many] == ["b.png", "c.txt"]
    assert many[1].as_dict()["uploadedAt"] == "now"


@pytest.mark.parametrize(
    "question,value",
    [
        (Question(id="t", type="text", label="T"), 12),
        (Question(id="n", type="number", label="N"), True),
        (Question(id="n", type="number", label="N"), [1]),
        (Question(id="s", type="select", label="S", options=(Option("a", "a"),)), ["a"]),
        (Question(id="c", type="checkbox", label="C"), "a"),
        (Question(id="f", type="file", label="F"), "report.pdf"),
        (Question(id="d", type="date", label="D"), 20240101),
    ],
)
def test_shape_mismatches_are_rejected(question: Question, value) -> None:
    with pytest.raises(AnswerShapeError) as excinfo:
        coerce_answer(question, value)
    assert excinfo.value.question_id == question.id


def test_input_problems_are_left_for_validation() -> None:
    assert coerce_answer(Question(id="n", type="number", label="N"), "abc") == "abc"
    assert coerce_answer(Question(id="d", type="date", label="D"), "tomorrow") == "tomorrow"
    assert coerce_answer(Question(id="d", type="date", label="D"), date(2024, 5, 1)) == "2024-05-01"


def test_multiple_select_accepts_lists() -> None:
    question = Question(id="s", type="select", label="S", multiple=True)

    assert coerce_answer(question, ("a", "b")) == ["a", "b"]


def test_normalise_values_keeps_unknown_keys() -> None:
    config = load_form_config(
        {
            "id": "f",
            "title": "F",
            "sections": [
                {
                    "id": "s",
                    "title": "S",
                    "questions": [{"id": "tags", "type": "checkbox", "label": "Tags", "options": ["x"]}],
                }
            ],
        }
    )

    values = normalise_values(config, {"tags": ("x",), "extra": {"free": "form"}, "blank": None})

    assert values == {"tags": ["x"], "extra": {"free": "form"}, "blank": None}
