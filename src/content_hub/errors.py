"""
# Error Taxonomy

Every failure that crosses a component boundary is one of the exceptions below. The HTTP layer
maps them to status codes through the handlers registered in `content_hub.main`.

| Exception | HTTP | Retryable | Notes |
|---|---|---|---|
| `ValidationError` | 400 | no | Message is surfaced verbatim. |
| `Unauthorized` | 401 | no | Generic message, never says whether a resource exists. |
| `NotFound` | 404 | no | Also used for resources owned by another tenant. |
| `Locked` | 409 | no | Mutation blocked by the brief lifecycle state. |
| `CollaboratorFailure` | 502 | yes | Workflow webhook or image service failed or timed out. |
| `StorageError` | 503 | yes | Wraps driver errors so they never reach the transport. |
"""

from typing import Optional


class ContentHubError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    default_message: str = "Server error"
    retryable: bool = False

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ContentHubError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid request"


class Unauthorized(ContentHubError):
    """Missing session or tenant mismatch."""

    status_code = 401
    default_message = "Access denied"


class NotFound(ContentHubError):
    """Resource absent or not visible to the caller's tenant."""

    status_code = 404
    default_message = "Resource not found"


class Locked(ContentHubError):
    """Mutation disallowed by the brief's lifecycle state."""

    status_code = 409
    default_message = "Content is locked once scheduled or published"


class CollaboratorFailure(ContentHubError):
    """An external collaborator returned a non-success response or timed out."""

    status_code = 502
    default_message = "External service failed. Please try again."
    retryable = True

    def __init__(self, message: Optional[str] = None, collaborator: str = "collaborator"):
        self.collaborator = collaborator
        super().__init__(message)


class StorageError(ContentHubError):
    """The document store failed; the driver error is kept as `__cause__`."""

    status_code = 503
    default_message = "Storage temporarily unavailable"
    retryable = True
