"""
Database capability implemented with SQLAlchemy Core
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Dict, Any, Mapping, Optional
import logging

from .capability import DatabaseCapability, PreparedStatement
from ..errors import PrepareError, ExecError

logger = logging.getLogger(__name__)

# Dialects whose DBAPI cursor does not report lastrowid for inserts
RETURNING_DIALECTS = {'postgresql', 'duckdb'}


def _driver_message(error: SQLAlchemyError) -> str:
    """Prefer the DBAPI message over SQLAlchemy's wrapped text."""
    orig = getattr(error, 'orig', None)
    return str(orig) if orig is not None else str(error)


class SQLAlchemyStatement(PreparedStatement):
    """Prepared ``text()`` construct bound to a database manager"""

    def __init__(self, database: 'SQLAlchemyDatabase', sql: str, clause, placeholders):
        super().__init__(sql)
        self._database = database
        self._clause = clause
        self._placeholders = frozenset(placeholders)
        self._params: Dict[str, Any] = {}
        self._rows: List[Dict[str, Any]] = []
        self._last_insert_id: Optional[int] = None

    def bind(self, placeholder: str, value: Any) -> None:
        name = placeholder.lstrip(':')
        if name not in self._placeholders:
            raise PrepareError(
                f"Statement has no placeholder named '{name}'",
                f"placeholders are {sorted(self._placeholders)}"
            )
        self._params[name] = value

    @property
    def bound_values(self) -> Dict[str, Any]:
        return dict(self._params)

    def execute(self) -> None:
        logger.debug(f"Executing: {self.sql} with {self._params}")
        try:
            with self._database.engine.begin() as conn:
                result = conn.execute(self._clause, self._params)
                if result.returns_rows:
                    self._rows = [dict(row._mapping) for row in result]
                else:
                    self._rows = []
                self._last_insert_id = self._read_insert_id(result)
        except SQLAlchemyError as e:
            message = _driver_message(e)
            self._database.record_error(message)
            raise ExecError("Unable to execute statement", message) from e

    def _read_insert_id(self, result) -> Optional[int]:
        # RETURNING id takes precedence over the cursor's lastrowid
        if self._rows and 'id' in self._rows[0]:
            return int(self._rows[0]['id'])
        lastrowid = getattr(result, 'lastrowid', None)
        return int(lastrowid) if lastrowid else None

    def rows(self) -> List[Mapping[str, Any]]:
        return list(self._rows)

    @property
    def last_insert_id(self) -> Optional[int]:
        return self._last_insert_id


class SQLAlchemyDatabase(DatabaseCapability):
    """Database capability over a SQLAlchemy Engine"""

    def __init__(self, engine: Engine):
        """
        Initialize database capability with SQLAlchemy engine

        Args:
            engine: SQLAlchemy Engine instance
        """
        self.engine = engine
        self._last_error: Optional[str] = None

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @property
    def insert_returning(self) -> bool:
        return self.dialect_name in RETURNING_DIALECTS

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def record_error(self, message: str) -> None:
        """Remember the driver message of the latest failure"""
        self._last_error = message

    def prepare(self, sql: str) -> SQLAlchemyStatement:
        """
        Prepare a statement with named placeholders

        The statement is compiled against the engine's dialect so that
        malformed placeholders are reported before anything is executed.
        The database itself is not consulted: a missing table or column
        surfaces as ``ExecError`` from ``execute``.

        Args:
            sql: SQL statement text

        Returns:
            Prepared statement ready for binding
        """
        if not sql or not sql.strip():
            self.record_error("empty statement")
            raise PrepareError("Could not prepare statement", "empty statement")

        try:
            clause = text(sql)
            compiled = clause.compile(dialect=self.engine.dialect)
        except SQLAlchemyError as e:
            message = _driver_message(e)
            self.record_error(message)
            raise PrepareError("Could not prepare statement", message) from e

        return SQLAlchemyStatement(self, sql, clause, compiled.params.keys())

    def execute_query(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Execute SELECT query outside of the model layer

        Args:
            query: SQL query string
            params: Optional query parameters

        Returns:
            List of result dictionaries
        """
        with self.engine.connect() as conn:
            result = conn.execute(text(query), params or {})
            return [dict(row._mapping) for row in result]

    def execute_ddl(self, query: str, params: Optional[Dict[str, Any]] = None) -> None:
        """
        Execute DDL (CREATE, DROP, ALTER) statement

        Args:
            query: DDL SQL statement
            params: Optional query parameters
        """
        with self.engine.begin() as conn:
            conn.execute(text(query), params or {})

    def table_exists(self, table_name: str) -> bool:
        """
        Check if table exists in database

        Args:
            table_name: Name of table to check

        Returns:
            True if table exists, False otherwise
        """
        with self.engine.connect() as conn:
            return conn.dialect.has_table(conn, table_name)

    def close(self) -> None:
        """Close database connections"""
        if hasattr(self.engine, 'dispose'):
            self.engine.dispose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
