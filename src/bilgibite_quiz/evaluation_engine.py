"""Evaluation Engine: Per-type answer validation."""

import logging
from typing import Any

from bilgibite_quiz.questions import (
    FILL_BLANK,
    MATCHING,
    MULTIPLE_CHOICE,
    ORDERING,
    QUESTION_CLASSES,
    TRUE_FALSE,
    Question,
)

logger = logging.getLogger(__name__)


class EvaluationEngine:
    """Judges a submitted answer against a question's answer key.

    Each question type has its own check. A question whose type is not one of
    the known variants is always judged incorrect instead of raising, so a bad
    record can never abort a running session.
    """

    def __init__(self):
        self._validators = {
            MULTIPLE_CHOICE: self.check_exact_match,
            TRUE_FALSE: self.check_exact_match,
            FILL_BLANK: self.check_fill_blank,
            MATCHING: self.check_matching,
            ORDERING: self.check_ordering,
        }

    @staticmethod
    def normalize_text(text: str) -> str:
        # "İ".casefold() leaves a combining dot above behind.
        return text.strip().casefold().replace("\u0307", "")

    def check_exact_match(self, question: Question, user_answer: Any) -> bool:
        # bool is an int subclass; True must not count as option index 1.
        if isinstance(user_answer, bool) != isinstance(question.correct_answer, bool):
            return False
        return user_answer == question.correct_answer

    def check_fill_blank(self, question: Question, user_answer: Any) -> bool:
        if not isinstance(user_answer, str):
            return False
        normalized = self.normalize_text(user_answer)
        return any(normalized == self.normalize_text(correct)
                   for correct in question.correct_answers)

    def check_matching(self, question: Question, user_answer: Any) -> bool:
        if not isinstance(user_answer, dict):
            return False
        return all(key in user_answer and user_answer[key] == value
                   for key, value in question.correct_pairs.items())

    def check_ordering(self, question: Question, user_answer: Any) -> bool:
        if not isinstance(user_answer, (list, tuple)):
            return False
        return list(user_answer) == question.correct_order

    def evaluate(self, question: Question, user_answer: Any) -> bool:
        """Return True when ``user_answer`` is correct for ``question``."""
        validator = self._validators.get(question.type)
        if validator is None or not isinstance(question, QUESTION_CLASSES[question.type]):
            logger.warning(f"Unknown question type {question.type!r} for {question.id}; "
                           f"judging answer as incorrect")
            return False
        is_correct = validator(question, user_answer)
        logger.debug(f"Evaluation: question={question.id} type={question.type} correct={is_correct}")
        return is_correct
