"""
Tests for database abstraction layer
"""

import pytest

from rowmodel import ExecError, PrepareError
from rowmodel.database.engine_factory import DatabaseFactory
from rowmodel.database.config import DatabaseConfig
from rowmodel.database.base_manager import SQLAlchemyDatabase


class TestDatabaseConfig:
    """Test database configuration"""

    def test_get_engine_sqlite(self):
        """Test SQLite engine creation"""
        config = {
            'database': ':memory:',
            'engine_args': {'echo': False}
        }
        engine = DatabaseConfig.get_engine('sqlite', config)
        assert engine is not None
        assert 'sqlite' in str(engine.url)
        engine.dispose()

    def test_get_engine_invalid_type(self):
        """Test invalid database type"""
        with pytest.raises(ValueError):
            DatabaseConfig.get_engine('invalid_db', {})

    def test_build_url_sqlite_file(self, tmp_path):
        """Test SQLite file URL"""
        path = tmp_path / "app.db"
        assert DatabaseConfig.build_url('sqlite', {'database': str(path)}) == f"sqlite:///{path}"

    def test_build_url_postgresql(self):
        """Test PostgreSQL URL assembly"""
        url = DatabaseConfig.build_url('postgresql', {
            'user': 'app', 'password': 'pw', 'host': 'db', 'port': 5433, 'database': 'shop'
        })
        assert url == "postgresql+psycopg2://app:pw@db:5433/shop"

    def test_connection_string_wins(self):
        """Test explicit connection string takes precedence"""
        url = DatabaseConfig.build_url('sqlite', {
            'connection_string': 'sqlite:///other.db', 'database': 'ignored.db'
        })
        assert url == 'sqlite:///other.db'

    def test_get_default_config(self):
        """Test default configuration generation"""
        config = DatabaseConfig.get_default_config('sqlite')
        assert config['db_type'] == 'sqlite'
        assert config['connection_params']['database'] == ':memory:'

        config = DatabaseConfig.get_default_config('postgresql')
        assert config['connection_params']['port'] == 5432

        with pytest.raises(ValueError):
            DatabaseConfig.get_default_config('oracle')


class TestDatabaseFactory:
    """Test database factory"""

    def test_create_from_config(self):
        """Test creating capability from configuration"""
        database = DatabaseFactory.create_from_config(DatabaseConfig.get_default_config('sqlite'))
        assert isinstance(database, SQLAlchemyDatabase)
        assert database.dialect_name == 'sqlite'
        database.close()

    def test_create_from_config_requires_type(self):
        """Test missing db_type is rejected"""
        with pytest.raises(ValueError):
            DatabaseFactory.create_from_config({'connection_params': {}})

    def test_supported_databases(self):
        """Test supported database listing"""
        assert DatabaseFactory.get_supported_databases() == ['sqlite', 'duckdb', 'postgresql']


class TestSQLAlchemyDatabase:
    """Test the SQLAlchemy database capability"""

    @pytest.fixture
    def sqlite_database(self):
        """Create SQLite capability with one table"""
        config = DatabaseConfig.get_default_config('sqlite')
        database = DatabaseFactory.create_from_config(config)
        database.execute_ddl("CREATE TABLE items (id INTEGER PRIMARY KEY AUTOINCREMENT, label TEXT)")
        yield database
        database.close()

    def test_sqlite_does_not_need_returning(self, sqlite_database):
        """Test SQLite reports lastrowid"""
        assert sqlite_database.insert_returning is False

    def test_insert_reports_generated_id(self, sqlite_database):
        """Test generated id after insert"""
        statement = sqlite_database.prepare("INSERT INTO items (label) VALUES (:label)")
        statement.bind('label', 'first')
        statement.execute()
        assert statement.last_insert_id == 1

        statement = sqlite_database.prepare("INSERT INTO items (label) VALUES (:label)")
        statement.bind(':label', 'second')
        statement.execute()
        assert statement.last_insert_id == 2

    def test_select_rows(self, sqlite_database):
        """Test reading rows back"""
        sqlite_database.execute_ddl("INSERT INTO items (label) VALUES ('a'), ('b')")

        statement = sqlite_database.prepare("SELECT id, label FROM items WHERE id >= :low ORDER BY id")
        statement.bind('low', 1)
        statement.execute()

        assert statement.rows() == [{'id': 1, 'label': 'a'}, {'id': 2, 'label': 'b'}]
        assert statement.first() == {'id': 1, 'label': 'a'}
        assert statement.value('label') == 'a'
        with pytest.raises(KeyError):
            statement.value('missing')

    def test_empty_result(self, sqlite_database):
        """Test statement without rows"""
        statement = sqlite_database.prepare("SELECT id FROM items WHERE id = :id")
        statement.bind('id', 42)
        statement.execute()

        assert statement.rows() == []
        assert statement.first() is None
        with pytest.raises(KeyError):
            statement.value('id')

    def test_bound_values(self, sqlite_database):
        """Test bound values are reported by placeholder name"""
        statement = sqlite_database.prepare("UPDATE items SET label = :label WHERE id = :id")
        statement.bind('label', 'x')
        statement.bind('id', 3)
        assert statement.bound_values == {'label': 'x', 'id': 3}

    def test_unknown_placeholder(self, sqlite_database):
        """Test binding a placeholder the statement does not have"""
        statement = sqlite_database.prepare("SELECT id FROM items WHERE id = :id")
        with pytest.raises(PrepareError):
            statement.bind('other', 1)

    def test_empty_statement(self, sqlite_database):
        """Test empty SQL cannot be prepared"""
        with pytest.raises(PrepareError):
            sqlite_database.prepare("   ")
        assert sqlite_database.last_error == "empty statement"

    def test_exec_error_records_driver_message(self, sqlite_database):
        """Test driver failure surfaces as ExecError"""
        statement = sqlite_database.prepare("SELECT id FROM missing_table WHERE id = :id")
        statement.bind('id', 1)

        with pytest.raises(ExecError) as excinfo:
            statement.execute()

        assert 'missing_table' in excinfo.value.driver_message
        assert sqlite_database.last_error == excinfo.value.driver_message
        assert 'missing_table' in str(excinfo.value)

    def test_prepare_does_not_check_schema(self, sqlite_database):
        """Test unknown tables pass prepare and fail on execute"""
        statement = sqlite_database.prepare("DELETE FROM missing_table WHERE id = :id")
        statement.bind('id', 1)
        assert sqlite_database.last_error is None

        with pytest.raises(ExecError):
            statement.execute()

    def test_table_exists(self, sqlite_database):
        """Test table existence check"""
        assert sqlite_database.table_exists('items')
        assert not sqlite_database.table_exists('nonexistent')

    def test_execute_query(self, sqlite_database):
        """Test query helper"""
        sqlite_database.execute_ddl("INSERT INTO items (label) VALUES (:label)", {'label': 'q'})
        assert sqlite_database.execute_query("SELECT label FROM items") == [{'label': 'q'}]

    def test_file_database_persists(self, tmp_path):
        """Test data survives a reconnect to a file database"""
        config = DatabaseConfig.get_default_config('sqlite', str(tmp_path / "rows.db"))

        with DatabaseFactory.create_from_config(config) as database:
            database.execute_ddl("CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT)")
            database.execute_ddl("INSERT INTO notes (body) VALUES ('kept')")

        with DatabaseFactory.create_from_config(config) as database:
            assert database.execute_query("SELECT body FROM notes") == [{'body': 'kept'}]
