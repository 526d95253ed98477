"""
Service-layer error types.

Services raise these synchronously; the HTTP layer in main.py maps them to
status codes (NotFoundError -> 404, AuthorizationError -> 403,
InvalidInputError -> 400). They are definitive outcomes and are never retried.
"""


class ServiceError(Exception):
    """Base class for expected service failures."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ServiceError):
    """A referenced project, task, comment, notification or user does not exist."""


class AuthorizationError(ServiceError):
    """The caller lacks the relationship (owner, author, assignee, viewer) the operation requires."""


class InvalidInputError(ServiceError):
    """A referenced foreign entity (user, project, status) does not exist or a value is taken."""
