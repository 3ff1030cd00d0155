import logging

from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST, require_http_methods

from quiz.forms import QuizForm
from quiz.helpers import (
    create_quiz_for_material,
    get_attempt_results,
    get_quiz_questions,
    get_user_attempt,
    get_user_material,
    get_user_quiz,
    start_attempt,
    submit_attempt,
)
from quiz.models import Quiz, QuizAttempt
from quiz.utils import (
    serialize_attempt,
    serialize_attempt_results,
    serialize_question,
    serialize_quiz,
    serialize_submission_result,
)
from study_aid.decorators import login_required_json, handle_study_aid_errors
from study_aid.utils import check_request_user, parse_json_body, form_error_response_body

logger = logging.getLogger("study_aid")


@require_http_methods(["GET", "POST"])
@login_required_json
@handle_study_aid_errors
def material_quizzes(request, material_id):
    if request.method == "GET":
        material = get_user_material(material_id, request.user)
        quizzes = Quiz.objects.filter(material=material)
        return JsonResponse([serialize_quiz(q) for q in quizzes], safe=False)

    form = QuizForm.from_json(parse_json_body(request))

    if not form.is_valid():
        logger.error(form.errors)
        return JsonResponse(form_error_response_body(form), status=400)

    quiz = create_quiz_for_material(
        material_id=material_id,
        user=request.user,
        title=form.cleaned_data["title"],
        description=form.cleaned_data["description"],
        difficulty=form.cleaned_data["difficulty"],
        total_questions=form.cleaned_data["total_questions"],
        question_type=form.cleaned_data["question_type"],
    )

    return JsonResponse(serialize_quiz(quiz), status=201)


@require_GET
@login_required_json
@handle_study_aid_errors
def quiz_detail(request, pk):
    quiz = get_user_quiz(pk, request.user)
    return JsonResponse(serialize_quiz(quiz))


@require_GET
@login_required_json
@handle_study_aid_errors
def user_quizzes(request, user_id):
    check_request_user(request, user_id)
    quizzes = Quiz.objects.filter(user=request.user)
    return JsonResponse([serialize_quiz(q) for q in quizzes], safe=False)


@require_GET
@login_required_json
@handle_study_aid_errors
def quiz_questions(request, pk):
    quiz = get_user_quiz(pk, request.user)
    questions = get_quiz_questions(quiz.pk)
    return JsonResponse([serialize_question(q) for q in questions], safe=False)


@require_POST
@login_required_json
@handle_study_aid_errors
def create_attempt(request, pk):
    attempt = start_attempt(pk, request.user)
    return JsonResponse(serialize_attempt(attempt), status=201)


@require_GET
@login_required_json
@handle_study_aid_errors
def attempt_detail(request, pk):
    attempt = get_user_attempt(pk, request.user)
    return JsonResponse(serialize_attempt(attempt))


@require_GET
@login_required_json
@handle_study_aid_errors
def user_attempts(request, user_id):
    check_request_user(request, user_id)
    attempts = QuizAttempt.objects.filter(user=request.user)
    return JsonResponse([serialize_attempt(a) for a in attempts], safe=False)


@require_POST
@login_required_json
@handle_study_aid_errors
def submit_quiz_attempt(request, pk):
    result = submit_attempt(pk, request.user, parse_json_body(request))
    return JsonResponse(serialize_submission_result(result))


@require_GET
@login_required_json
@handle_study_aid_errors
def attempt_results(request, pk):
    results = get_attempt_results(pk, request.user)
    return JsonResponse(serialize_attempt_results(results))
