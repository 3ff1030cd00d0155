import logging
from functools import wraps

from django.http import JsonResponse

from study_aid.exceptions import StudyAidError

logger = logging.getLogger("study_aid")


def login_required_json(view_func):
    """
    Same as django's login_required but answers API clients with a 401
    instead of redirecting them to a login page.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"error": "Authentication required"}, status=401)
        return view_func(request, *args, **kwargs)
    return wrapper


def handle_study_aid_errors(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except StudyAidError as e:
            logger.error(f"{view_func.__name__} failed with {e.__class__.__name__}: {e.message}")
            return JsonResponse({"error": e.message}, status=e.status_code)
    return wrapper
