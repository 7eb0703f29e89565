"""Exceptions raised by Surveyinator.

Domain code raises SurveyError subclasses; the API layer turns them into
``{"error": message}`` responses with the matching HTTP status.
"""


class SurveyError(Exception):
    """Base error carrying an HTTP status and a user-facing message."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(SurveyError):
    """Malformed or incomplete request payload."""

    status_code = 400


class Forbidden(SurveyError):
    """Access denied (bad code, bad token, disallowed origin)."""

    status_code = 403


class NotFound(SurveyError):
    status_code = 404


class MethodNotAllowed(SurveyError):
    status_code = 405


class ServerError(SurveyError):
    """Server-side data or configuration problem surfaced to the caller."""

    status_code = 500


class TokenError(Forbidden):
    """Session token failed format, signature or expiry checks."""

    pass


class ConfigError(Exception):
    """Exception raised for missing or invalid configuration."""

    pass
