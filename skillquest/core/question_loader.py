"""Utilities for loading the question corpus from a JSON document.

File format::

    {
      "categories": ["react", "typescript", ...],
      "questions": [
        {
          "id": "ts-001",
          "category": "typescript",
          "difficulty": "junior",
          "type": "multiple-choice",
          "question": "Which keyword declares a type alias?",
          "code": null,
          "options": ["interface", "type", "alias", "typedef"],
          "correctAnswer": 1,
          "explanation": "...",
          "tags": ["types"],
          "weight": 2
        }
      ]
    }

``correctAnswer`` is either one option index or a list of indices. Loading is
all-or-nothing: the first malformed record aborts the load.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from skillquest.core.models import EntityValidationError, Question
from skillquest.storage.documents import QuestionRecord

_DEFAULT_CORPUS_PATH = Path(__file__).resolve().parent.parent / "data" / "questions.json"


class QuestionLoadError(Exception):
    """Raised when the question corpus cannot be parsed or validated."""


@dataclass(slots=True)
class LoadedCorpus:
    """Container for the validated corpus and where it came from."""

    source_path: Path | None
    questions: list[Question]
    categories: list[str]


def load_default_corpus() -> LoadedCorpus:
    return load_questions_from_file(_DEFAULT_CORPUS_PATH)


def load_questions_from_file(file_path: Path) -> LoadedCorpus:
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise QuestionLoadError(f"Could not read question corpus at {file_path}: {exc}") from exc
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise QuestionLoadError(f"Question corpus is not valid JSON: {exc}") from exc
    corpus = parse_corpus(payload)
    corpus.source_path = file_path
    return corpus


def parse_corpus(payload: Any) -> LoadedCorpus:
    if not isinstance(payload, dict) or not isinstance(payload.get("questions"), list):
        raise QuestionLoadError("Question corpus must be an object with a 'questions' list.")

    questions: list[Question] = []
    seen_ids: set[str] = set()
    for position, record in enumerate(payload["questions"]):
        question = _parse_record(record, position)
        if question.id in seen_ids:
            raise QuestionLoadError(f"Duplicate question id '{question.id}'.")
        seen_ids.add(question.id)
        questions.append(question)

    if not questions:
        raise QuestionLoadError("Question corpus did not contain any questions.")

    categories = payload.get("categories")
    if categories is None:
        categories = list(dict.fromkeys(question.category.value for question in questions))
    elif not isinstance(categories, list) or not all(isinstance(c, str) for c in categories):
        raise QuestionLoadError("'categories' must be a list of strings.")

    return LoadedCorpus(source_path=None, questions=questions, categories=list(categories))


def _parse_record(record: Any, position: int) -> Question:
    label = record.get("id", f"#{position}") if isinstance(record, dict) else f"#{position}"
    try:
        return QuestionRecord.model_validate(record).to_entity()
    except (ValidationError, EntityValidationError) as exc:
        raise QuestionLoadError(f"Question {label} is invalid: {exc}") from exc
