"""
Quiz lifecycle: creating a quiz from a material, starting an attempt,
submitting and grading it, and reading back the results.
"""
import logging

from django.db import transaction
from django.utils import timezone
from pydantic import ValidationError

from materials.models import Material
from quiz.grading import grade_answer, compute_score
from quiz.llm_integration import generate_quiz_questions
from quiz.models import Quiz, Question, QuizAttempt, UserAnswer
from quiz.schemas import AttemptSubmission
from study_aid.exceptions import AlreadyCompleted, InvalidRequest, NotCompleted, NotFound

logger = logging.getLogger("study_aid")


def get_user_material(material_id, user) -> Material:
    try:
        return Material.objects.get(pk=material_id, user=user)
    except Material.DoesNotExist:
        raise NotFound("Material not found")


def get_user_quiz(quiz_id, user) -> Quiz:
    try:
        return Quiz.objects.get(pk=quiz_id, user=user)
    except Quiz.DoesNotExist:
        raise NotFound("Quiz not found")


def get_user_attempt(attempt_id, user) -> QuizAttempt:
    try:
        return QuizAttempt.objects.select_related("quiz").get(pk=attempt_id, user=user)
    except QuizAttempt.DoesNotExist:
        raise NotFound("Attempt not found")


def get_quiz_questions(quiz_id) -> list:
    return list(Question.objects.filter(quiz_id=quiz_id).order_by("question_number", "id"))


def create_quiz_for_material(material_id, user, title, description, difficulty, total_questions,
                             question_type) -> Quiz:
    material = get_user_material(material_id, user)

    if not material.has_content:
        raise NotFound("Material has no extracted content")

    generated = generate_quiz_questions(text=material.content, title=material.title,
                                        question_type=question_type, difficulty=difficulty,
                                        count=total_questions)

    if len(generated) > total_questions:
        logger.warning(f"Generated {len(generated)} questions for material {material.pk}, "
                       f"keeping the first {total_questions}")
        generated = generated[:total_questions]
    elif len(generated) < total_questions:
        logger.warning(f"Requested {total_questions} questions for material {material.pk} "
                       f"but only {len(generated)} were generated")

    # The quiz and its questions are stored together or not at all
    with transaction.atomic():
        quiz = Quiz.objects.create(
            user=material.user,
            material=material,
            title=title or f"Quiz: {material.title}",
            description=description or "",
            difficulty=difficulty,
            total_questions=len(generated),
            question_type=question_type,
        )

        Question.objects.bulk_create([
            Question(
                quiz=quiz,
                question_number=number,
                question_text=item.question_text,
                question_type=item.question_type,
                options=item.options,
                correct_answer=item.correct_answer,
                explanation=item.explanation,
            )
            for number, item in enumerate(generated, start=1)
        ])

    logger.info(f"Quiz {quiz.pk} created from material {material.pk} with {len(generated)} questions")
    return quiz


def start_attempt(quiz_id, user) -> QuizAttempt:
    quiz = get_user_quiz(quiz_id, user)
    attempt = QuizAttempt.objects.create(user=user, quiz=quiz)
    logger.info(f"Attempt {attempt.pk} started on quiz {quiz.pk} by user {user.pk}")
    return attempt


def parse_submission(payload: dict) -> AttemptSubmission:
    if not isinstance(payload.get("answers"), list):
        raise InvalidRequest("Answers must be an array")

    try:
        return AttemptSubmission.model_validate(payload)
    except ValidationError as e:
        logger.debug(e)
        first_error = e.errors()[0]
        location = ".".join(str(part) for part in first_error["loc"])
        raise InvalidRequest(f"Invalid submission at {location}: {first_error['msg']}")


def match_answers(questions: list, submitted: list) -> list:
    """
    Pair every question with the submitted answer text (or None).

    Answers that name a questionId are matched by id, the others by their
    position in the submitted list.
    """
    by_question_id = {a.question_id: a.answer for a in submitted if a.question_id is not None}

    matched = []
    for index, question in enumerate(questions):
        if question.pk in by_question_id:
            answer = by_question_id[question.pk]
        elif index < len(submitted) and submitted[index].question_id is None:
            answer = submitted[index].answer
        else:
            answer = None
        matched.append((question, answer))

    return matched


def submit_attempt(attempt_id, user, payload: dict) -> dict:
    attempt = get_user_attempt(attempt_id, user)

    if attempt.completed:
        raise AlreadyCompleted()

    submission = parse_submission(payload)

    questions = get_quiz_questions(attempt.quiz_id)

    graded = [
        (question, answer, grade_answer(question, answer))
        for question, answer in match_answers(questions, submission.answers)
    ]

    total_correct = sum(1 for _, _, is_correct in graded if is_correct)
    total_answered = len(submission.answers)
    score = compute_score(total_correct, len(questions))

    with transaction.atomic():
        # Only the submission that flips completed from False wins
        updated = QuizAttempt.objects.filter(pk=attempt.pk, completed=False).update(
            completed=True,
            score=score,
            total_time=submission.total_time,
            completed_at=timezone.now(),
        )

        if updated == 0:
            raise AlreadyCompleted()

        UserAnswer.objects.bulk_create([
            UserAnswer(attempt=attempt, question=question, user_answer=answer, is_correct=is_correct)
            for question, answer, is_correct in graded
        ])

    attempt.refresh_from_db()

    logger.info(f"Attempt {attempt.pk} completed with score {score} ({total_correct}/{len(questions)})")

    return {
        "attempt": attempt,
        "score": score,
        "total_answered": total_answered,
        "total_correct": total_correct,
    }


def get_attempt_results(attempt_id, user) -> dict:
    attempt = get_user_attempt(attempt_id, user)

    if not attempt.completed:
        raise NotCompleted()

    questions = get_quiz_questions(attempt.quiz_id)
    answers = {answer.question_id: answer for answer in UserAnswer.objects.filter(attempt=attempt)}

    results = []
    for question in questions:
        user_answer = answers.get(question.pk)
        results.append({
            "question": question,
            "user_answer": user_answer.user_answer if user_answer else None,
            "is_correct": user_answer.is_correct if user_answer else False,
        })

    return {"attempt": attempt, "results": results}
