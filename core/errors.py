"""Error taxonomy for the wizard and its AI collaborator calls."""

from typing import List, Optional


class WizardError(Exception):
    """Base error with an actionable message."""

    def __init__(self, message: str, cause: str = "", suggestion: str = ""):
        self.cause = cause
        self.suggestion = suggestion
        super().__init__(message)


class PreconditionError(WizardError):
    """Raised when a transition runs before its upstream step has data."""


class RequestInProgressError(WizardError):
    """Raised when a second AI request is started while one is in flight."""

    def __init__(self, message: str = "A request is already in progress. Please wait for it to finish."):
        super().__init__(message, cause="busy", suggestion="Wait for the current request to complete.")


class AnalysisServiceError(WizardError):
    """Network/service failure or unusable response from the AI collaborator."""


class MalformedResponseError(AnalysisServiceError):
    """The AI collaborator answered, but not with the JSON shape we asked for."""

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        self.fields = fields or []
        super().__init__(
            message,
            cause="malformed_response",
            suggestion="Try again; the model occasionally returns incomplete JSON.",
        )


class UnknownError(WizardError):
    """Catch-all for unexpected failures during an AI call."""
