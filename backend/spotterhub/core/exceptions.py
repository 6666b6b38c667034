"""
Forum error taxonomy.

Services raise these; a single FastAPI handler in ``main`` turns
them into JSON responses with the matching status code.
"""


class ForumError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class AuthenticationRequired(ForumError):
    """Operation needs an authenticated identity."""

    status_code = 401


class PermissionDenied(ForumError):
    """Actor lacks the capability and does not own the target."""

    status_code = 403


class NotFound(ForumError):
    """Target does not exist or has been soft-deleted."""

    status_code = 404


class ValidationFailed(ForumError):
    """Request violates a business constraint (e.g. missing reason)."""

    status_code = 400


class StateConflict(ForumError):
    """Target exists but its current state forbids the operation."""

    status_code = 409


class PostLocked(StateConflict):
    """Post is locked and accepts no new comments."""

    status_code = 423
