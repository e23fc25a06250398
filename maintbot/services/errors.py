"""
Domain errors raised by the maintenance services.

All of them are ValueError subclasses, so callers that only know the
"raise ValueError with a readable message" convention keep working.
"""
from typing import Dict, List, Optional


class MaintenanceError(ValueError):
    """Base class: the message is safe to show to the user."""


class ValidationError(MaintenanceError):
    """Missing field, unresolved reference or illegal transition. Nothing was written."""


class AuthorizationError(MaintenanceError):
    """Actor is outside the ownership rule for this entity. Nothing was written."""


class ConflictError(MaintenanceError):
    """Delete blocked by dependent records."""

    def __init__(self, message: str, blocking: Dict[str, List[str]]):
        super().__init__(message)
        self.blocking = blocking


class PartialCascadeFailure(MaintenanceError):
    """
    A cascade step failed after earlier deletes were committed.

    Completed deletes stay applied. Re-run the plan with
    cascade_service.resume_cascade(session, err.plan).
    """

    def __init__(self, message: str, plan, completed: int, step: Optional[str] = None):
        super().__init__(message)
        self.plan = plan
        self.completed = completed
        self.step = step


class StaleReferenceError(MaintenanceError):
    """Non-fatal: a sync target disappeared. Logged and returned, never raised."""
