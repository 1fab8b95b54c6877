"""
Error taxonomy for the task agent.

Every error carries the HTTP status it maps to, a short user-facing message
and an optional diagnostic string. The API layer turns them into
``{"message": ..., "error": ...}`` bodies.
"""

from typing import Optional


class TaskAgentError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message if detail is None else f"{self.message}: {detail}")


class ValidationError(TaskAgentError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(TaskAgentError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(TaskAgentError):
    status_code = 404
    default_message = "Not found"


class MethodNotSupported(TaskAgentError):
    status_code = 405
    default_message = "Method not allowed"


class RemoteCallFailed(TaskAgentError):
    """A language-model, delivery or render capability call failed."""

    default_message = "Remote call failed"


class OutputMalformed(TaskAgentError):
    """Remote model output did not match the expected schema."""

    default_message = "Malformed model output"


class ClassificationMalformed(OutputMalformed):
    default_message = "Malformed classification output"


class PresentationContentMalformed(OutputMalformed):
    default_message = "Malformed presentation outline"


class PersistenceFailed(TaskAgentError):
    default_message = "Storage operation failed"


class InternalError(TaskAgentError):
    pass
