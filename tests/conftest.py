"""Shared fixtures: an in-memory SQLite database with the test schema."""

import pytest

from rowmodel import PersistenceEngine, SQLAlchemyDatabase, clear_default_engine, set_default_engine
from rowmodel.database.config import DatabaseConfig

from tests.entities import SCHEMA_DDL


class RecordingDatabase(SQLAlchemyDatabase):
    """SQLAlchemy capability that remembers every executed statement."""

    def __init__(self, engine):
        super().__init__(engine)
        self.executed = []

    def prepare(self, sql):
        statement = super().prepare(sql)
        execute = statement.execute

        def recording_execute():
            self.executed.append((statement.sql, statement.bound_values))
            execute()

        statement.execute = recording_execute
        return statement

    def executed_sql(self, prefix: str = ""):
        return [sql for sql, _ in self.executed if sql.startswith(prefix)]


@pytest.fixture
def database():
    """Fresh in-memory SQLite database with all test tables."""
    engine = DatabaseConfig.get_engine('sqlite', {'database': ':memory:'})
    db = RecordingDatabase(engine)
    for ddl in SCHEMA_DDL:
        db.execute_ddl(ddl)
    yield db
    db.close()


@pytest.fixture
def engine(database):
    """Persistence engine over the test database."""
    return PersistenceEngine(database)


@pytest.fixture
def default_engine(engine):
    """Install the engine used by the Model convenience methods."""
    set_default_engine(engine)
    yield engine
    clear_default_engine()
