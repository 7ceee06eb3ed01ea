"""Error taxonomy for the stream control plane.

ServiceError is raised by the dispatch client for any failed remote call.
SubmitError subclasses are what callers of the SessionController see; each
carries a short message suitable for display.
"""

from __future__ import annotations


class VPMError(Exception):
    """Base class for all control-plane errors."""


class MissingCredentialError(VPMError):
    """No API key configured. Fatal at startup."""


class ServiceError(VPMError):
    """A remote call failed (non-2xx response, transport error or timeout).

    Attributes:
        status: HTTP status code, or None when no response was received
        body: Response body text, or a description of the transport failure
    """

    def __init__(self, status: int | None, body: str, operation: str = ""):
        self.status = status
        self.body = body
        self.operation = operation
        where = f"{operation} " if operation else ""
        code = status if status is not None else "no response"
        super().__init__(f"{where}failed: {code} {body}".strip())


class SubmitError(VPMError):
    """Base class for caller-visible controller failures."""

    user_message = "Request failed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.user_message)


class EmptyPromptError(SubmitError):
    user_message = "Enter a prompt first."


class ControllerBusyError(SubmitError):
    user_message = "A request is already in flight."


class NoActiveSessionError(SubmitError):
    user_message = "No active stream."


class AugmentationError(SubmitError):
    user_message = "Failed to generate visuals from prompt source."


class SessionCreateError(SubmitError):
    """Stream creation failed. Retryable by caller action."""

    user_message = "Stream creation failed. Check API key or connection."

    def __init__(self, service_error: ServiceError):
        self.service_error = service_error
        super().__init__(f"{self.user_message} ({service_error})")


class DispatchError(SubmitError):
    """A patch or clear failed. The session has been rotated."""

    user_message = "Failed to update stream."

    def __init__(self, service_error: ServiceError, message: str | None = None):
        self.service_error = service_error
        super().__init__(f"{message or self.user_message} ({service_error})")
