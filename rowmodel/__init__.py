"""
rowmodel: entities that persist themselves to a relational table.

Components:
- model: ``Model`` base class for entities, with dirty tracking and save state
- core.schema: per-type descriptors of persistent attributes
- core.query_builder: INSERT/UPDATE/DELETE/SELECT synthesis
- core.relations: eager and lazy loading of related entities
- core.engine: ``PersistenceEngine`` and the default engine used by ``Model``
- database: abstract database capability and its SQLAlchemy implementation
- config_manager: YAML configuration with schema validation
"""

__version__ = "1.0.0"

from .errors import (
    ModelError, PrepareError, ExecError, NotFoundError,
    StateError, RelationError, WriteBackError
)
from .model import Model, SaveState, side_key
from .core.schema import AttributeDescriptor, SchemaDescriptor, column, describe
from .core.results import OperationResult
from .core.engine import (
    PersistenceEngine, set_default_engine, get_default_engine, clear_default_engine
)
from .database import DatabaseCapability, PreparedStatement, SQLAlchemyDatabase, DatabaseFactory

__all__ = [
    'ModelError', 'PrepareError', 'ExecError', 'NotFoundError',
    'StateError', 'RelationError', 'WriteBackError',
    'Model', 'SaveState', 'side_key',
    'AttributeDescriptor', 'SchemaDescriptor', 'column', 'describe',
    'OperationResult',
    'PersistenceEngine', 'set_default_engine', 'get_default_engine', 'clear_default_engine',
    'DatabaseCapability', 'PreparedStatement', 'SQLAlchemyDatabase', 'DatabaseFactory',
]
