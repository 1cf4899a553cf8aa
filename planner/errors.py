"""Rejections shown to the person using the survey."""


class SurveyError(Exception):
    """Base class for user-visible rejections."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SurveyError):
    """A required field was left blank."""


class DuplicateVolunteerError(SurveyError):
    """The name is already on the volunteer list."""


class NothingToExportError(SurveyError):
    """Export was requested with no events."""
