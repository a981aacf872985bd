"""
Database configuration and engine management
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

SUPPORTED_DATABASES = ('sqlite', 'duckdb', 'postgresql')


class DatabaseConfig:
    """Configuration manager for database connections"""

    @staticmethod
    def build_url(db_type: str, connection_params: Dict[str, Any]) -> str:
        """
        Build a SQLAlchemy URL from connection parameters

        An explicit ``connection_string`` wins over the individual fields.

        Args:
            db_type: Database type ('sqlite', 'duckdb', 'postgresql')
            connection_params: Database connection parameters

        Returns:
            SQLAlchemy connection URL
        """
        if connection_params.get('connection_string'):
            return connection_params['connection_string']

        if db_type == 'sqlite':
            database = connection_params.get('database', ':memory:')
            return f"sqlite:///{database}"
        elif db_type == 'duckdb':
            # Requires duckdb-engine
            database = connection_params.get('database', ':memory:')
            return f"duckdb:///{database}"
        elif db_type == 'postgresql':
            user = connection_params.get('user', 'postgres')
            password = connection_params.get('password', '')
            host = connection_params.get('host', 'localhost')
            port = connection_params.get('port', 5432)
            database = connection_params.get('database', 'postgres')
            return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}"

        raise ValueError(f"Unsupported database type: {db_type}")

    @staticmethod
    def get_engine(db_type: str, connection_params: Dict[str, Any]) -> Engine:
        """
        Create SQLAlchemy engine based on database type and parameters

        Args:
            db_type: Database type ('sqlite', 'duckdb', 'postgresql')
            connection_params: Database connection parameters

        Returns:
            SQLAlchemy Engine instance
        """
        conn_string = DatabaseConfig.build_url(db_type, connection_params)

        engine_args = dict(connection_params.get('engine_args', {}))
        engine_args.setdefault('pool_pre_ping', True)
        engine_args.setdefault('echo', False)

        safe_url = conn_string
        if connection_params.get('password'):
            safe_url = conn_string.replace(connection_params['password'], '***')
        logger.info(f"Creating {db_type} engine: {safe_url}")
        return create_engine(conn_string, **engine_args)

    @staticmethod
    def get_default_config(db_type: str, database_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Get default configuration for a database type

        Args:
            db_type: Database type
            database_path: Optional database file path

        Returns:
            Default configuration dictionary
        """
        if db_type in ('sqlite', 'duckdb'):
            return {
                'db_type': db_type,
                'connection_params': {
                    'database': database_path or ':memory:',
                    'engine_args': {
                        'pool_pre_ping': True,
                        'echo': False
                    }
                }
            }
        elif db_type == 'postgresql':
            return {
                'db_type': 'postgresql',
                'connection_params': {
                    'user': 'postgres',
                    'password': '',
                    'host': 'localhost',
                    'port': 5432,
                    'database': 'postgres',
                    'engine_args': {
                        'pool_pre_ping': True,
                        'echo': False
                    }
                }
            }
        else:
            raise ValueError(f"Unsupported database type: {db_type}")
