"""Error taxonomy shared by the core services and the API layer.

Every error carries the HTTP status the API should surface. Conflict/state
errors also carry the current state of the entity they refer to so callers
can inspect it without a second read.
"""

from typing import Any


class TimelineServiceError(Exception):
    """Base class for all service errors."""

    status_code: int = 400

    def __init__(self, message: str, *, current: Any = None):
        super().__init__(message)
        self.message = message
        self.current = current


# Validation errors: rejected before any mutation


class PayloadValidationError(TimelineServiceError):
    """Malformed or missing required input."""


class ApprovalPayloadError(PayloadValidationError):
    """Approval payload is missing a required field."""


class UnsupportedApprovalTypeError(PayloadValidationError):
    """No applier is registered for the approval type."""


class DependencyValidationError(PayloadValidationError):
    """Dependency edge references an item outside the project."""


class DependencyCycleError(PayloadValidationError):
    """Dependency edge set would close a cycle."""


# Authorization errors


class AuthorizationError(TimelineServiceError):
    """Caller identity or role is insufficient."""

    status_code = 403


class AuthenticationRequiredError(AuthorizationError):
    """No actor identity was supplied."""

    status_code = 401


# Lookup errors


class NotFoundError(TimelineServiceError):
    """Referenced entity does not exist or is not visible."""

    status_code = 404


class ApprovalNotFoundError(NotFoundError):
    pass


class LaneNotFoundError(NotFoundError):
    pass


class TimelineItemNotFoundError(NotFoundError):
    pass


class RuleNotFoundError(NotFoundError):
    pass


# Conflict/state errors


class StateConflictError(TimelineServiceError):
    """Operation is not legal in the entity's current state."""

    status_code = 409


class ApprovalAlreadyResolvedError(StateConflictError):
    pass


class LaneInUseError(StateConflictError):
    pass


class LaneSlugConflictError(StateConflictError):
    pass
