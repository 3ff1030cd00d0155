"""
Errors raised by the study aid workflows.

Each error carries the HTTP status the JSON views answer with, so a view only
has to catch ``StudyAidError`` to turn any of them into a response.
"""


class StudyAidError(Exception):
    status_code = 500
    default_message = "Something went wrong."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequest(StudyAidError):
    status_code = 400
    default_message = "Invalid request."


class NotFound(StudyAidError):
    status_code = 404
    default_message = "Not found."


class AlreadyCompleted(StudyAidError):
    status_code = 409
    default_message = "This attempt has already been completed"


class NotCompleted(StudyAidError):
    status_code = 409
    default_message = "This attempt has not been completed yet"


class ExtractionFailure(StudyAidError):
    status_code = 422
    default_message = "Unable to extract text from the uploaded file."


class GenerationFailure(StudyAidError):
    status_code = 502
    default_message = "Error from llm integration"


class OracleGradingFailure(StudyAidError):
    """Short-answer judgement failed. Graded as incorrect, never returned to the client."""
    status_code = 502
    default_message = "Unable to grade short answer."


class UngradableQuestion(StudyAidError):
    status_code = 500
    default_message = "Question has an unknown type and cannot be graded."
