"""Typed outcomes for the interaction engine.

Every rejection leaves the engine as one of these exceptions; storage errors
such as unique violations are translated before they reach callers.
"""

from __future__ import annotations

from enum import Enum

from fastapi import status


class Outcome(str, Enum):
    CREATED = "created"
    REMOVED = "removed"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID_TARGET = "invalid_target"
    INVALID_REASON = "invalid_reason"
    SELF_INTERACTION = "self_interaction"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"


class InteractionError(Exception):
    """Base class for interaction engine errors."""

    outcome: Outcome = Outcome.ERROR
    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "interaction_error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class InvalidTargetError(InteractionError):
    """Raised unless exactly one of post id / comment id is given."""

    outcome = Outcome.INVALID_TARGET
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "exactly_one_target_required"


class InvalidReasonError(InteractionError):
    outcome = Outcome.INVALID_REASON
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "invalid_reason"


class NotFoundError(InteractionError):
    """Thrown when a resource is missing or soft-deleted."""

    outcome = Outcome.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    detail = "not_found"


class SelfInteractionError(InteractionError):
    """Raised when a caller votes on or reports their own content."""

    outcome = Outcome.SELF_INTERACTION
    status_code = status.HTTP_403_FORBIDDEN
    detail = "self_interaction"


class ForbiddenError(InteractionError):
    outcome = Outcome.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN
    detail = "forbidden"


class ConflictError(InteractionError):
    """Raised for duplicate votes or reports."""

    outcome = Outcome.CONFLICT
    status_code = status.HTTP_409_CONFLICT
    detail = "conflict"


class RateLimitedError(InteractionError):
    """Raised when an operation class budget is exhausted for the caller."""

    outcome = Outcome.RATE_LIMITED
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    detail = "rate_limited"

    def __init__(self, operation: str, retry_after_seconds: int, limit: int) -> None:
        super().__init__()
        self.operation = operation
        self.retry_after_seconds = retry_after_seconds
        self.limit = limit
