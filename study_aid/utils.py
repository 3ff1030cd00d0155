import json
import logging

from study_aid.exceptions import InvalidRequest, NotFound

logger = logging.getLogger("study_aid")


def parse_json_body(request) -> dict:
    try:
        body = json.loads(request.body.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error(e)
        raise InvalidRequest("Invalid JSON")

    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")

    return body


def isoformat_or_none(value):
    return value.isoformat() if value else None


def form_error_response_body(form) -> dict:
    form_errors = {
        field: [error["message"] for error in errors]
        for field, errors in form.errors.get_json_data().items()
    }
    return {"error": "Validation error", "form_errors": form_errors}


def check_request_user(request, user_id):
    """Per-user listings are only served to that user."""
    if user_id != request.user.pk:
        raise NotFound("User not found")
