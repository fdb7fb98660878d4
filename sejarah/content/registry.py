from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from sejarah.api.models import (
    QUESTION_LIST_ADAPTER,
    MultipleChoiceQuestion,
    Question,
    RegionId,
    TrueFalseQuestion,
)


# Repo checkout root; question files live under content/questions/.
DEFAULT_CONTENT_ROOT = Path(__file__).resolve().parents[2]


class ContentLoadError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class QuestionBank:
    """All quiz questions, grouped by region.

    Question ids are canonical (answers are keyed by them).
    """

    by_region: dict[RegionId, tuple[Question, ...]]
    _by_id: dict[str, Question]

    @staticmethod
    def from_questions(questions: list[Question]) -> "QuestionBank":
        by_region_build: dict[RegionId, list[Question]] = {}
        by_id: dict[str, Question] = {}
        for q in questions:
            if q.id in by_id:
                raise ContentLoadError(f"Duplicate question id: {q.id}")
            by_id[q.id] = q
            by_region_build.setdefault(q.state, []).append(q)
        by_region = {k: tuple(v) for k, v in by_region_build.items()}
        return QuestionBank(by_region=by_region, _by_id=by_id)

    def get(self, question_id: str) -> Question | None:
        return self._by_id.get(question_id)

    def require(self, question_id: str) -> Question:
        q = self.get(question_id)
        if q is None:
            raise ValueError(f"Unknown question: {question_id}")
        return q

    def questions_for(self, region: RegionId) -> tuple[Question, ...]:
        return self.by_region.get(region, ())

    def __len__(self) -> int:
        return len(self._by_id)


def load_question_file(path: Path) -> list[Question]:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ContentLoadError(f"Question file not found: {path}") from e

    try:
        return QUESTION_LIST_ADAPTER.validate_json(raw)
    except ValidationError as e:
        raise ContentLoadError(f"Invalid question file {path}: {e}") from e


def _fallback_question_bank() -> QuestionBank:
    """Tiny dataset for tests/CI when the content files are missing."""

    return QuestionBank.from_questions(
        [
            MultipleChoiceQuestion(
                id="perlis_1",
                state=RegionId.perlis,
                question="Siapakah pengasas negeri Melaka?",
                options=("Hang Tuah", "Parameswara", "Tunku Abdul Rahman", "Hang Nadim"),
                correct_answer="Parameswara",
                explanation="Parameswara adalah pengasas Kesultanan Melaka pada tahun 1400.",
            ),
            TrueFalseQuestion(
                id="perlis_2",
                state=RegionId.perlis,
                question="Perlis adalah negeri terkecil di Malaysia?",
                correct_answer=True,
                explanation="Perlis adalah negeri terkecil di Malaysia dengan keluasan 821 km persegi.",
            ),
        ]
    )


def load_question_bank(*, root: Path = DEFAULT_CONTENT_ROOT) -> QuestionBank:
    questions_dir = root / "content" / "questions"

    # Fall back to a tiny built-in bank when files are missing.
    # Force strict behavior with SEJARAH_STRICT_CONTENT=1.
    strict = os.getenv("SEJARAH_STRICT_CONTENT", "").strip().lower() in {"1", "true", "yes"}

    try:
        files = sorted(questions_dir.glob("*.json"))
        if not files:
            raise ContentLoadError(f"No question files in {questions_dir}")
        questions: list[Question] = []
        for path in files:
            questions.extend(load_question_file(path))
        return QuestionBank.from_questions(questions)
    except ContentLoadError:
        if strict:
            raise
        return _fallback_question_bank()
