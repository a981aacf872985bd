"""
Database access layer: the abstract capability used by the persistence
engine and its SQLAlchemy implementation.
"""

from .capability import DatabaseCapability, PreparedStatement
from .base_manager import SQLAlchemyDatabase, SQLAlchemyStatement
from .config import DatabaseConfig
from .engine_factory import DatabaseFactory

__all__ = [
    'DatabaseCapability',
    'PreparedStatement',
    'SQLAlchemyDatabase',
    'SQLAlchemyStatement',
    'DatabaseConfig',
    'DatabaseFactory',
]
