"""
Answer grading.

Every ``QuestionType`` has exactly one grader in ``GRADERS``. A question type
added without a grader fails at import, and a stored question whose type is
not a ``QuestionType`` raises ``UngradableQuestion`` instead of being skipped.
"""
import logging
from typing import Optional

from django.core.exceptions import ImproperlyConfigured

from quiz.llm_integration import grade_short_answer
from quiz.models import Question, QuestionType
from study_aid.exceptions import OracleGradingFailure, UngradableQuestion

logger = logging.getLogger("study_aid")


def grade_exact_match(question: Question, answer: Optional[str]) -> bool:
    return answer is not None and answer == question.correct_answer


def grade_fill_blank(question: Question, answer: Optional[str]) -> bool:
    if answer is None:
        return False
    return answer.strip().casefold() == question.correct_answer.strip().casefold()


def grade_free_text(question: Question, answer: Optional[str]) -> bool:
    if answer is None or not answer.strip():
        return False

    try:
        return grade_short_answer(question_text=question.question_text, expected_answer=question.correct_answer,
                                  student_answer=answer)
    except OracleGradingFailure as e:
        logger.warning(f"Short answer for question {question.pk} marked incorrect: {e.message}")
        return False


GRADERS = {
    QuestionType.MULTIPLE_CHOICE: grade_exact_match,
    QuestionType.TRUE_FALSE: grade_exact_match,
    QuestionType.FILL_BLANK: grade_fill_blank,
    QuestionType.SHORT_ANSWER: grade_free_text,
}

_missing_graders = set(QuestionType) - set(GRADERS)
if _missing_graders:
    raise ImproperlyConfigured(f"No grader for question types: {sorted(_missing_graders)}")


def grade_answer(question: Question, answer: Optional[str]) -> bool:
    try:
        question_type = QuestionType(question.question_type)
    except ValueError:
        raise UngradableQuestion(f"Question {question.pk} has unknown type {question.question_type!r}")

    return GRADERS[question_type](question, answer)


def compute_score(correct: int, total: int) -> int:
    """Percentage of correct answers, rounded half up. A quiz without questions scores 0."""
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)
