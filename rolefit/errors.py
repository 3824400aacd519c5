"""
RoleFit Error Hierarchy

All exceptions inherit from AssessmentError so the API layer can
render them uniformly. None of them is fatal: every condition is
recoverable by the user retrying the intent or restarting the session.
"""

from typing import Optional


class AssessmentError(Exception):
    """Base exception for all assessment errors."""

    def __init__(self, message: str, code: str = "ASSESSMENT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to an error response body."""
        return {
            "error": self.message,
            "code": self.code
        }


class InvalidTransition(AssessmentError):
    """Raised when an intent violates the current state's preconditions."""

    def __init__(self, message: str):
        super().__init__(message, "INVALID_TRANSITION")


class GenerationFailed(AssessmentError):
    """Raised when the question gateway cannot produce a question."""

    def __init__(self, message: str = "Failed to generate question", code: str = "GENERATION_FAILED"):
        super().__init__(message, code)


class GenerationParseError(GenerationFailed):
    """Raised when the model reply contains no usable JSON object."""

    def __init__(self, raw_text: str, message: str = "Could not parse JSON from response"):
        super().__init__(message, "GENERATION_PARSE_ERROR")
        self.raw_text = raw_text


class SuggestionDegraded(AssessmentError):
    """Suggestion generation failed; callers resolve this to an empty list."""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message, "SUGGESTION_DEGRADED")
        self.raw_text = raw_text


class SessionNotFound(AssessmentError):
    """Raised when a session cookie doesn't match an active session."""

    def __init__(self, session_id: Optional[str]):
        super().__init__(
            "Session not found. Please start a new session.",
            "SESSION_NOT_FOUND"
        )
        self.session_id = session_id
