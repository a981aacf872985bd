"""
Explicit outcome of an engine operation.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from ..errors import ModelError


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome reported by every ``PersistenceEngine`` operation.

    Truthy when the operation succeeded. ``entity`` is the entity the
    operation acted on (for ``load`` with a type, the freshly built one).
    """

    operation: str
    ok: bool
    entity: Any = field(default=None, compare=False)
    error: Optional[ModelError] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, operation: str, entity: Any) -> 'OperationResult':
        return cls(operation=operation, ok=True, entity=entity)

    @classmethod
    def failure(cls, operation: str, entity: Any, error: ModelError) -> 'OperationResult':
        return cls(operation=operation, ok=False, entity=entity, error=error)

    def raise_for_error(self) -> 'OperationResult':
        """Raise the carried error if the operation failed, else return self."""
        if self.error is not None:
            raise self.error
        return self
