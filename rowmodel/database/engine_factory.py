"""
Factory for database capabilities backed by SQLAlchemy engines
"""

from typing import Dict, Any, List
import logging

from .config import DatabaseConfig, SUPPORTED_DATABASES
from .base_manager import SQLAlchemyDatabase

logger = logging.getLogger(__name__)


class DatabaseFactory:
    """Factory for creating database capabilities"""

    @staticmethod
    def create_database(db_type: str, connection_params: Dict[str, Any]) -> SQLAlchemyDatabase:
        """
        Create a database capability for the given backend

        Args:
            db_type: Database type ('sqlite', 'duckdb', 'postgresql')
            connection_params: Database connection parameters

        Returns:
            SQLAlchemyDatabase instance
        """
        engine = DatabaseConfig.get_engine(db_type, connection_params)
        database = SQLAlchemyDatabase(engine)

        if database.dialect_name != db_type:
            logger.warning(
                f"Requested {db_type} but connection string selects {database.dialect_name}"
            )

        logger.info(f"Created {database.dialect_name} database capability")
        return database

    @staticmethod
    def create_from_config(config: Dict[str, Any]) -> SQLAlchemyDatabase:
        """
        Create database capability from configuration dictionary

        Args:
            config: Configuration with 'db_type' and 'connection_params' keys

        Returns:
            SQLAlchemyDatabase instance
        """
        db_type = config.get('db_type')
        connection_params = config.get('connection_params', {})

        if not db_type:
            raise ValueError("Configuration must include 'db_type'")

        return DatabaseFactory.create_database(db_type, connection_params)

    @staticmethod
    def get_supported_databases() -> List[str]:
        """
        Get list of supported database types

        Returns:
            List of supported database type strings
        """
        return list(SUPPORTED_DATABASES)
