from study_aid.utils import isoformat_or_none


def serialize_quiz(quiz) -> dict:
    return {
        "id": quiz.pk,
        "userId": quiz.user_id,
        "materialId": quiz.material_id,
        "title": quiz.title,
        "description": quiz.description,
        "difficulty": quiz.difficulty,
        "totalQuestions": quiz.total_questions,
        "questionType": quiz.question_type,
        "createdAt": isoformat_or_none(quiz.created_at),
    }


def serialize_question(question, include_answer=False) -> dict:
    data = {
        "id": question.pk,
        "quizId": question.quiz_id,
        "questionNumber": question.question_number,
        "questionText": question.question_text,
        "questionType": question.question_type,
        "options": question.options,
    }

    # Never sent while an attempt can still be answered
    if include_answer:
        data["correctAnswer"] = question.correct_answer
        data["explanation"] = question.explanation

    return data


def serialize_attempt(attempt) -> dict:
    return {
        "id": attempt.pk,
        "userId": attempt.user_id,
        "quizId": attempt.quiz_id,
        "score": attempt.score,
        "totalTime": attempt.total_time,
        "completed": attempt.completed,
        "startedAt": isoformat_or_none(attempt.started_at),
        "completedAt": isoformat_or_none(attempt.completed_at),
    }


def serialize_submission_result(result: dict) -> dict:
    return {
        "attempt": serialize_attempt(result["attempt"]),
        "score": result["score"],
        "totalAnswered": result["total_answered"],
        "totalCorrect": result["total_correct"],
    }


def serialize_attempt_results(results: dict) -> dict:
    return {
        "attempt": serialize_attempt(results["attempt"]),
        "results": [
            {
                "question": serialize_question(item["question"], include_answer=True),
                "userAnswer": item["user_answer"],
                "isCorrect": item["is_correct"],
            }
            for item in results["results"]
        ],
    }
