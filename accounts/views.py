import logging

from django.contrib.auth import login, logout
from django.http import JsonResponse
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_POST

from accounts.forms import SignUpForm, CustomAuthenticationForm
from accounts.utils import serialize_user
from study_aid.decorators import login_required_json, handle_study_aid_errors
from study_aid.utils import check_request_user, parse_json_body, form_error_response_body

logger = logging.getLogger("study_aid")


@require_POST
@handle_study_aid_errors
def sign_up(request):
    form = SignUpForm(data=parse_json_body(request))

    if not form.is_valid():
        logger.debug(form.errors)
        return JsonResponse(form_error_response_body(form), status=400)

    user = form.save()
    logger.info(f"Created user {user.pk}")

    return JsonResponse(serialize_user(user), status=201)


@require_POST
@handle_study_aid_errors
def login_user(request):
    form = CustomAuthenticationForm(request, data=parse_json_body(request))

    if not form.is_valid():
        return JsonResponse(form_error_response_body(form), status=400)

    user = form.get_user()
    login(request, user)

    return JsonResponse(serialize_user(user))


@require_POST
def logout_user(request):
    logout(request)
    return JsonResponse({"message": "Logged out"})


@require_GET
@ensure_csrf_cookie
def csrf(request):
    return JsonResponse({"message": "CSRF cookie set"})


@require_GET
@login_required_json
@handle_study_aid_errors
def user_detail(request, pk):
    check_request_user(request, pk)

    return JsonResponse(serialize_user(request.user))
