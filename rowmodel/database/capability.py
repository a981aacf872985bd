"""
Abstract database capability used by the persistence engine.

The engine never talks to a driver directly. It prepares a statement, binds
named placeholders, executes it and reads back rows or the generated id
through the interfaces below. ``SQLAlchemyDatabase`` in ``base_manager`` is the
shipped implementation; tests may provide their own.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional


class PreparedStatement(ABC):
    """A single prepared statement, scoped to one engine operation."""

    def __init__(self, sql: str):
        self.sql = sql

    @abstractmethod
    def bind(self, placeholder: str, value: Any) -> None:
        """
        Bind a value to a named placeholder.

        Args:
            placeholder: Placeholder name, with or without the leading colon
            value: Value to bind

        Raises:
            PrepareError: If the statement has no such placeholder
        """
        pass

    @property
    @abstractmethod
    def bound_values(self) -> Dict[str, Any]:
        """Return a copy of the values bound so far, keyed by placeholder name."""
        pass

    @abstractmethod
    def execute(self) -> None:
        """
        Execute the statement.

        Raises:
            ExecError: If the database rejects the statement
        """
        pass

    @abstractmethod
    def rows(self) -> List[Mapping[str, Any]]:
        """Return all rows produced by the last execution."""
        pass

    def first(self) -> Optional[Mapping[str, Any]]:
        """Return the first row of the last execution or None."""
        rows = self.rows()
        return rows[0] if rows else None

    def value(self, name: str) -> Any:
        """
        Read a column of the first row by name.

        Raises:
            KeyError: If there is no row or no such column
        """
        row = self.first()
        if row is None:
            raise KeyError(name)
        return row[name]

    @property
    @abstractmethod
    def last_insert_id(self) -> Optional[int]:
        """Id generated by the last executed insert, if any."""
        pass


class DatabaseCapability(ABC):
    """Factory of prepared statements plus driver diagnostics."""

    @abstractmethod
    def prepare(self, sql: str) -> PreparedStatement:
        """
        Prepare a statement with named ``:placeholder`` parameters.

        How much is checked here depends on the implementation.
        ``SQLAlchemyDatabase`` only parses the text and collects its
        placeholders; it never consults the database, so an unknown table or
        column is reported by ``execute`` as ``ExecError`` rather than here.

        Raises:
            PrepareError: If the statement cannot be prepared
        """
        pass

    @property
    @abstractmethod
    def last_error(self) -> Optional[str]:
        """Driver message of the most recent failure, if any."""
        pass

    @property
    def insert_returning(self) -> bool:
        """Whether inserts must use ``RETURNING id`` to obtain the new id."""
        return False
