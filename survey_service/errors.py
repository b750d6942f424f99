"""
Domain errors raised by the survey service.

Each error carries the HTTP status it maps to at the request boundary;
handlers in ``main`` turn them into ``{"error": message}`` bodies.
"""


class SurveyServiceError(Exception):
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class BadRequest(SurveyServiceError):
    """Client input rejected outside of schema validation."""


class DuplicateTitle(SurveyServiceError):
    def __init__(self, message: str = "Survey with this title already exists"):
        super().__init__(message)


class CountMismatch(SurveyServiceError):
    pass


class InvalidAnswerType(SurveyServiceError):
    def __init__(self, question_kind: str):
        super().__init__(f"Invalid answer type for {question_kind}")


class OptionNotFound(SurveyServiceError):
    def __init__(self, message: str = "Option not found"):
        super().__init__(message)


class OptionsNotFound(SurveyServiceError):
    def __init__(self, message: str = "Some options not found"):
        super().__init__(message)


class NotFound(SurveyServiceError):
    status_code = 404


class AlreadySubmitted(SurveyServiceError):
    status_code = 409

    def __init__(self, message: str = "You have already submitted answers for this survey"):
        super().__init__(message)


class Unauthenticated(SurveyServiceError):
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class InvalidToken(Unauthenticated):
    def __init__(self, message: str = "JWT token malformed"):
        super().__init__(message)


class ExpiredToken(Unauthenticated):
    def __init__(self, message: str = "JWT token expired"):
        super().__init__(message)
