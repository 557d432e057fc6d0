"""Automatic grading of submitted answers."""

from __future__ import annotations

from lesson_app.core.models import AnswerValue, QuestionBlock, QuestionType

_TRUE_WORDS = {"true", "t", "yes", "y", "1"}
_FALSE_WORDS = {"false", "f", "no", "n", "0"}


def normalize_answer(answer: AnswerValue) -> str:
    """Answers are stored as text."""
    if isinstance(answer, bool):
        return "true" if answer else "false"
    return str(answer).strip()


def _as_bool(value: AnswerValue | None) -> bool | None:
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    return None


def grade_answer(question: QuestionBlock, answer: AnswerValue) -> bool | None:
    """Return whether ``answer`` is correct, or ``None`` when it needs a teacher.

    Multiple choice accepts the option text or its index. True/false accepts
    booleans and common spellings. Free-response answers and questions without
    a correct answer are left pending.
    """

    expected = question.correct_answer
    if expected is None or question.question_type is QuestionType.FREE_RESPONSE:
        return None

    if question.question_type is QuestionType.TRUE_FALSE:
        wanted = _as_bool(expected)
        given = _as_bool(answer)
        if wanted is None or given is None:
            return None if wanted is None else False
        return wanted == given

    submitted = normalize_answer(answer)
    expected_text = _option_text(question, expected)
    submitted_text = _option_text(question, submitted)
    return submitted_text.casefold() == expected_text.casefold()


def _option_text(question: QuestionBlock, value: AnswerValue) -> str:
    """Map an option index to its text; anything else is compared as text."""
    text = normalize_answer(value)
    if text in question.options:
        return text
    if isinstance(value, int) and not isinstance(value, bool):
        index = value
    elif text.isdigit():
        index = int(text)
    else:
        return text
    if 0 <= index < len(question.options):
        return question.options[index]
    return text
