"""
Persistence engine: orchestrates schema description, statement synthesis and
relation resolution against a database capability.

Save-state transitions::

    UNSAVED --insert--> SAVED --update--> SAVED
    UNSAVED/SAVED --delete--> GONE
    UNSAVED/SAVED --load--> SAVED

Every public operation returns an ``OperationResult``. Failures are logged
once, with the driver message, at the operation the caller invoked; nested
failures (related entities) arrive wrapped in ``RelationError``. Nothing is
retried. The dirty set is cleared after each successful insert, update and
load.
"""

import logging
from contextlib import contextmanager
from typing import Optional, Set, Type, Union

from pydantic import ValidationError

from ..database.capability import DatabaseCapability
from ..errors import ExecError, ModelError, NotFoundError, RelationError, StateError, WriteBackError
from ..logging_config import EntityLoggerAdapter
from ..model import Model
from .query_builder import prepare_delete, prepare_insert, prepare_select, prepare_update
from .relations import DEFAULT_MAX_EAGER_DEPTH, LoadPath, RelationResolver
from .results import OperationResult
from .schema import AttributeDescriptor, SchemaDescriptor, describe

logger = logging.getLogger(__name__)


class PersistenceEngine:
    """
    Inserts, updates, deletes and loads ``Model`` entities.

    The engine keeps no per-entity state between calls; callers own their
    entities. Statements are prepared per call and never cached.
    """

    def __init__(self, database: DatabaseCapability,
                 max_eager_depth: int = DEFAULT_MAX_EAGER_DEPTH):
        """
        Args:
            database: Capability used to prepare and execute statements
            max_eager_depth: Longest chain of related entities an eager load follows
        """
        self.database = database
        self.relations = RelationResolver(max_eager_depth)

    def _log(self, schema: SchemaDescriptor) -> EntityLoggerAdapter:
        return EntityLoggerAdapter(logger, {'table': schema.table_name})

    def _failed(self, operation: str, entity: Optional[Model],
                error: ModelError, target: Union[Model, type]) -> OperationResult:
        table = getattr(target, '__tablename__', type(target).__name__)
        EntityLoggerAdapter(logger, {'table': table}).failure(operation, error)
        return OperationResult.failure(operation, entity, error)

    # -- insert -------------------------------------------------------------

    def insert(self, entity: Model) -> OperationResult:
        """
        Insert an unsaved entity and assign it the generated id.

        Unsaved related entities are inserted first, modified ones updated.
        """
        try:
            self._insert(entity, set())
        except ModelError as e:
            return self._failed('insert', entity, e, entity)
        return OperationResult.success('insert', entity)

    def _insert(self, entity: Model, in_progress: Set[int]) -> None:
        if entity.is_gone():
            raise StateError(f"{type(entity).__name__} was deleted and cannot be inserted")
        if entity.is_saved():
            raise StateError(f"{type(entity).__name__} id={entity.id} is already saved")

        schema = describe(entity)
        log = self._log(schema)
        with _saving(entity, in_progress):
            statement = prepare_insert(self.database, schema, entity, self._binder(in_progress))
            log.query(statement.sql, statement.bound_values)
            statement.execute()

            new_id = statement.last_insert_id
            if not new_id:
                raise ExecError("Insert did not report a generated id", self.database.last_error)

        entity._set_id(new_id)
        entity._clear_modified()
        log.debug(f"Inserted {schema.table_name} id={new_id}")

    # -- update -------------------------------------------------------------

    def update(self, entity: Model) -> OperationResult:
        """
        Write the modified attributes of a saved entity.

        An entity without modifications succeeds without touching the database.
        """
        try:
            self._update(entity, set())
        except ModelError as e:
            return self._failed('update', entity, e, entity)
        return OperationResult.success('update', entity)

    def _update(self, entity: Model, in_progress: Set[int]) -> None:
        if entity.is_gone():
            raise StateError(f"{type(entity).__name__} was deleted and cannot be updated")
        if not entity.is_saved():
            raise StateError(f"{type(entity).__name__} is not saved")
        if not entity.is_modified():
            return

        schema = describe(entity)
        log = self._log(schema)
        with _saving(entity, in_progress):
            statement = prepare_update(self.database, schema, entity, self._binder(in_progress))
            log.query(statement.sql, statement.bound_values)
            statement.execute()

        entity._clear_modified()
        log.debug(f"Updated {schema.table_name} id={entity.id}")

    def _binder(self, in_progress: Set[int]):
        def update_related(related: Model) -> None:
            # A saved entity further up this call already has its id and
            # writes its own columns when the recursion unwinds
            if id(related) in in_progress:
                return
            self._update(related, in_progress)

        def bind(attribute: AttributeDescriptor, entity: Model) -> Optional[int]:
            return self.relations.bind_for_save(
                attribute, entity,
                insert=lambda related: self._insert(related, in_progress),
                update=update_related,
            )
        return bind

    # -- delete -------------------------------------------------------------

    def delete(self, entity: Model) -> OperationResult:
        """
        Delete the entity's row. Related rows are left alone.

        On success the entity is GONE and refuses further operations.
        """
        try:
            if entity.is_gone():
                raise StateError(f"{type(entity).__name__} was already deleted")

            schema = describe(entity)
            log = self._log(schema)
            statement = prepare_delete(self.database, schema, entity)
            log.query(statement.sql, statement.bound_values)
            statement.execute()
        except ModelError as e:
            return self._failed('delete', entity, e, entity)

        entity._mark_gone()
        log.debug(f"Deleted {schema.table_name} id={entity.id}")
        return OperationResult.success('delete', entity)

    # -- load ---------------------------------------------------------------

    def load(self, target: Union[Model, Type[Model]], id: int,
             eager_load: bool = True) -> OperationResult:
        """
        Fill an entity from the row with the given id.

        Args:
            target: Entity to fill, or an entity type to build a fresh one
            id: Row id
            eager_load: Load related entities now instead of deferring them

        Returns:
            Result whose ``entity`` is the loaded entity (None if a fresh
            entity could not be loaded)
        """
        fresh = isinstance(target, type)
        entity = target.model_construct() if fresh else target
        try:
            self._load(entity, id, eager_load, ((type(entity), id),))
        except ModelError as e:
            return self._failed('load', None if fresh else entity, e, target)
        return OperationResult.success('load', entity)

    def _load(self, entity: Model, id: int, eager_load: bool, path: LoadPath) -> None:
        if entity.is_gone():
            raise StateError(f"{type(entity).__name__} was deleted and cannot be loaded")

        schema = describe(entity)
        log = self._log(schema)
        statement = prepare_select(self.database, schema, id)
        log.query(statement.sql, statement.bound_values)
        statement.execute()

        row = statement.first()
        if row is None:
            raise NotFoundError(f"No {schema.table_name} row with id={id}")

        values, deferred = self.relations.values_from_row(
            schema, row, eager_load, path, self._load
        )
        _write_back(entity, schema, values)
        entity._reset_lazy_keys(deferred)
        entity._set_id(id)
        entity._clear_modified()
        log.debug(f"Loaded {schema.table_name} id={id} (eager={eager_load})")

    def load_related(self, entity: Model, name: str, eager_load: bool = True) -> OperationResult:
        """
        Resolve a relation whose foreign key was deferred by a lazy load.

        Args:
            entity: Entity loaded with ``eager_load=False``
            name: Relation attribute name
            eager_load: Whether the related entity loads its own relations eagerly
        """
        try:
            if entity.is_gone():
                raise StateError(f"{type(entity).__name__} was deleted")
            self.relations.resolve_lazy(entity, name, eager_load, self._load)
        except ModelError as e:
            return self._failed('load_related', entity, e, entity)
        return OperationResult.success('load_related', entity)


@contextmanager
def _saving(entity: Model, in_progress: Set[int]):
    """Mark an entity as being saved for the duration of one save call."""
    key = id(entity)
    if key in in_progress:
        raise RelationError(
            f"Unsaved {type(entity).__name__} is already being inserted; "
            f"circular references between unsaved entities cannot be ordered"
        )
    in_progress.add(key)
    try:
        yield
    finally:
        in_progress.discard(key)


def _write_back(entity: Model, schema: SchemaDescriptor, values: dict) -> None:
    """Validate every loaded value, then write them all without marking them modified."""
    try:
        validated = schema.model_class.model_validate(values)
    except ValidationError as e:
        raise WriteBackError(
            f"Row does not fit {schema.model_class.__name__}",
            "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        ) from e

    for attribute in schema.attributes:
        try:
            attribute.write(entity, getattr(validated, attribute.name))
        except ValidationError as e:
            raise WriteBackError(f"Could not set '{attribute.name}'", str(e)) from e


_default_engine: Optional[PersistenceEngine] = None


def set_default_engine(engine: Union[PersistenceEngine, DatabaseCapability],
                       max_eager_depth: int = DEFAULT_MAX_EAGER_DEPTH) -> PersistenceEngine:
    """
    Install the engine used by the ``Model`` convenience methods.

    Args:
        engine: An engine, or a database capability to wrap in one

    Returns:
        The installed engine
    """
    global _default_engine
    if not isinstance(engine, PersistenceEngine):
        engine = PersistenceEngine(engine, max_eager_depth=max_eager_depth)
    _default_engine = engine
    return engine


def get_default_engine() -> PersistenceEngine:
    if _default_engine is None:
        raise RuntimeError("No default engine. Call rowmodel.set_default_engine() first.")
    return _default_engine


def clear_default_engine() -> None:
    global _default_engine
    _default_engine = None
