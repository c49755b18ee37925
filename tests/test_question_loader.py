from __future__ import annotations

import json

import pytest

from skillquest.core.question_loader import QuestionLoadError, load_questions_from_file, parse_corpus


def _record(**overrides):
    record = {
        "id": "ts-100",
        "category": "typescript",
        "difficulty": "middle",
        "type": "multiple-choice",
        "question": "What does `keyof` produce?",
        "options": ["A union of keys", "An array of keys"],
        "correctAnswer": 0,
        "explanation": "keyof yields a union of property names.",
        "tags": ["types"],
        "weight": 4,
    }
    record.update(overrides)
    return record


def test_parse_corpus_builds_questions():
    corpus = parse_corpus({"questions": [_record(), _record(id="ts-101", correctAnswer=[0, 1])]})

    assert [question.id for question in corpus.questions] == ["ts-100", "ts-101"]
    assert corpus.questions[1].correct_answer == (0, 1)
    assert corpus.categories == ["typescript"]
    assert corpus.source_path is None


def test_explicit_categories_are_kept():
    corpus = parse_corpus({"categories": ["typescript", "react"], "questions": [_record()]})

    assert corpus.categories == ["typescript", "react"]


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"questions": "nope"},
        {"questions": []},
        {"questions": [_record(weight=12)]},
        {"questions": [_record(weight="4")]},
        {"questions": [_record(correctAnswer=5)]},
        {"questions": [_record(category="cobol")]},
        {"questions": [_record(options=["only"])]},
        {"questions": [_record(), _record()]},
        {"categories": "typescript", "questions": [_record()]},
    ],
)
def test_invalid_corpus_rejected(payload):
    with pytest.raises(QuestionLoadError):
        parse_corpus(payload)


def test_load_from_file(tmp_path):
    path = tmp_path / "questions.json"
    path.write_text(json.dumps({"questions": [_record()]}), encoding="utf-8")

    corpus = load_questions_from_file(path)

    assert corpus.source_path == path
    assert corpus.questions[0].weight == 4


def test_load_reports_missing_and_broken_files(tmp_path):
    with pytest.raises(QuestionLoadError):
        load_questions_from_file(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(QuestionLoadError):
        load_questions_from_file(broken)


def test_default_corpus_weights_are_in_range(corpus):
    assert all(1 <= question.weight <= 10 for question in corpus.questions)
    assert len({question.id for question in corpus.questions}) == len(corpus.questions)
