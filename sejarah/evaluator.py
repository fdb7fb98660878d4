from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from sejarah.api.models import (
    CrosswordQuestion,
    FillBlankQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    TrueFalseQuestion,
)


def _strict_equals(submitted: Any, expected: Any) -> bool:
    # 1 == True in Python; a true/false answer must really be a bool.
    return type(submitted) is type(expected) and submitted == expected


def _check_multiple_choice(question: MultipleChoiceQuestion, answer: Any) -> bool:
    return _strict_equals(answer, question.correct_answer)


def _check_true_false(question: TrueFalseQuestion, answer: Any) -> bool:
    return _strict_equals(answer, question.correct_answer)


def _check_fill_blank(question: FillBlankQuestion, answer: Any) -> bool:
    if not isinstance(answer, str):
        return False

    def norm(s: str) -> str:
        s = s.strip()
        return s if question.case_sensitive else s.lower()

    submitted = norm(answer)
    candidates = (question.correct_answer, *question.acceptable_answers)
    return any(submitted == norm(c) for c in candidates)


def _check_matching(question: MatchingQuestion, answer: Any) -> bool:
    if not isinstance(answer, list):
        return False
    # Duplicates collapse; both partial and over-inclusive picks fail.
    return set(answer) == set(question.correct_answers)


def _check_crossword(question: CrosswordQuestion, answer: Any) -> bool:
    if not isinstance(answer, Mapping) or not question.words:
        return False
    for word in question.words:
        typed = answer.get(word.id)
        if not isinstance(typed, str):
            return False
        if typed.strip().casefold() != word.answer.strip().casefold():
            return False
    return True


_EVALUATORS: dict[str, tuple[type, Callable[[Any, Any], bool]]] = {
    "multipleChoice": (MultipleChoiceQuestion, _check_multiple_choice),
    "trueFalse": (TrueFalseQuestion, _check_true_false),
    "fillBlank": (FillBlankQuestion, _check_fill_blank),
    "matching": (MatchingQuestion, _check_matching),
    "crossword": (CrosswordQuestion, _check_crossword),
}


def evaluate(question: object, answer: Any) -> bool:
    """Return True if `answer` is correct for `question`.

    Pure and total: malformed answers and unrecognised question kinds evaluate
    to False instead of raising, so broken content never grants credit.
    """

    kind = getattr(question, "type", None)
    entry = _EVALUATORS.get(kind) if isinstance(kind, str) else None
    if entry is None:
        return False
    model, check = entry
    if not isinstance(question, model):
        return False
    try:
        return bool(check(question, answer))
    except TypeError:
        # Unhashable members in a matching answer, etc.
        return False
