"""
Error taxonomy for persistence operations.

Every failure the engine reports is one of these. They are raised inside the
core and caught at the engine entry points, where they are logged and handed
back to the caller inside an ``OperationResult``.
"""

from typing import Optional


class ModelError(Exception):
    """Base class for all persistence errors."""

    def __init__(self, message: str, driver_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.driver_message = driver_message

    def __str__(self) -> str:
        if self.driver_message:
            return f"{self.message}: {self.driver_message}"
        return self.message


class PrepareError(ModelError):
    """Statement is malformed or could not be prepared."""
    pass


class ExecError(ModelError):
    """Statement was rejected by the database on execution."""
    pass


class NotFoundError(ModelError):
    """Load found no row with the requested id."""
    pass


class StateError(ModelError):
    """Operation is not valid for the entity's current save state."""
    pass


class WriteBackError(ModelError):
    """A loaded column value could not be written to its attribute."""
    pass


class RelationError(ModelError):
    """A related entity could not be resolved, loaded or persisted."""

    def __init__(self, message: str, cause: Optional[ModelError] = None):
        super().__init__(message, cause.driver_message if cause else None)
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message
