"""Automatic grading rules."""

import pytest

from lesson_app.core.grading import grade_answer, normalize_answer
from lesson_app.core.models import QuestionBlock, QuestionType


def _question(question_type, correct_answer, options=()):
    return QuestionBlock(
        id="q",
        question_type=question_type,
        question="?",
        options=list(options),
        correct_answer=correct_answer,
    )


class TestNormalizeAnswer:
    @pytest.mark.parametrize(
        "value, expected",
        [(True, "true"), (False, "false"), ("  x ", "x"), (3, "3"), (2.5, "2.5")],
    )
    def test_values_become_text(self, value, expected):
        assert normalize_answer(value) == expected


class TestMultipleChoice:
    def test_option_text_case_insensitive(self):
        question = _question(QuestionType.MULTIPLE_CHOICE, "Paris", ["London", "Paris"])
        assert grade_answer(question, "paris") is True
        assert grade_answer(question, "London") is False

    def test_index_answers(self):
        question = _question(QuestionType.MULTIPLE_CHOICE, 1, ["London", "Paris"])
        assert grade_answer(question, "Paris") is True
        assert grade_answer(question, 1) is True
        assert grade_answer(question, "0") is False

    def test_numeric_options_match_by_text(self):
        question = _question(QuestionType.MULTIPLE_CHOICE, "2", ["1", "2", "3"])
        assert grade_answer(question, "2") is True
        assert grade_answer(question, "1") is False


class TestTrueFalse:
    @pytest.mark.parametrize("answer", [True, "true", "Yes", "t", "1"])
    def test_true_spellings(self, answer):
        assert grade_answer(_question(QuestionType.TRUE_FALSE, True), answer) is True

    def test_false_answer(self):
        assert grade_answer(_question(QuestionType.TRUE_FALSE, "false"), "no") is True
        assert grade_answer(_question(QuestionType.TRUE_FALSE, "false"), True) is False

    def test_unreadable_answer_is_wrong(self):
        assert grade_answer(_question(QuestionType.TRUE_FALSE, True), "maybe") is False


class TestPending:
    def test_free_response_is_pending(self):
        assert grade_answer(_question(QuestionType.FREE_RESPONSE, "anything"), "anything") is None

    def test_question_without_answer_is_pending(self):
        assert grade_answer(_question(QuestionType.MULTIPLE_CHOICE, None, ["a"]), "a") is None
