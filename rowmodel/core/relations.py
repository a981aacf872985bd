"""
Relation resolution for entities referencing other entities by foreign key.

Loading either materialises related entities immediately (eager) or only
remembers their foreign key in the entity's side-map under ``"<name>Id"``
(lazy) for a later ``resolve_lazy`` call. Saving binds the related entity's
id, inserting or updating it first when required.

Eager loading carries the chain of ``(type, id)`` pairs currently being
loaded. Meeting a pair already on the chain, or a chain longer than
``max_eager_depth``, fails the load with ``RelationError``.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type

from ..errors import ModelError, RelationError, StateError
from ..model import Model, side_key
from .schema import AttributeDescriptor, SchemaDescriptor, describe

logger = logging.getLogger(__name__)

DEFAULT_MAX_EAGER_DEPTH = 16

LoadPath = Tuple[Tuple[type, int], ...]
# (entity, id, eager_load, path) -> None, raising ModelError on failure
Loader = Callable[[Model, int, bool, LoadPath], None]
Persister = Callable[[Model], None]


def foreign_key(value: Any) -> Optional[int]:
    """Normalise a foreign key column value; NULL and 0 mean no relation."""
    if value is None:
        return None
    key = int(value)
    return key if key != 0 else None


class RelationResolver:
    """Eager/lazy loading and save-time binding of relation attributes."""

    def __init__(self, max_eager_depth: int = DEFAULT_MAX_EAGER_DEPTH):
        if max_eager_depth < 1:
            raise ValueError("max_eager_depth must be at least 1")
        self.max_eager_depth = max_eager_depth

    # -- loading ------------------------------------------------------------

    def values_from_row(self, schema: SchemaDescriptor, row: Mapping[str, Any],
                        eager_load: bool, path: LoadPath,
                        load: Loader) -> Tuple[Dict[str, Any], Dict[str, int]]:
        """
        Turn a selected row into attribute values.

        Args:
            schema: Descriptor of the loaded type
            row: Selected row keyed by column name
            eager_load: Materialise related entities now
            path: Chain of (type, id) pairs being loaded, ending with this row
            load: Engine callback that fills an entity from its row

        Returns:
            Attribute values by name, and deferred foreign keys by relation name
        """
        values: Dict[str, Any] = {}
        deferred: Dict[str, int] = {}

        for attribute in schema.attributes:
            raw = row[attribute.column]
            if not attribute.is_relation:
                values[attribute.name] = raw
                continue

            key = foreign_key(raw)
            if key is None:
                values[attribute.name] = None
            elif eager_load:
                values[attribute.name] = self._load_eager(attribute, key, path, load)
            else:
                values[attribute.name] = None
                deferred[attribute.name] = key

        return values, deferred

    def _load_eager(self, attribute: AttributeDescriptor, key: int,
                    path: LoadPath, load: Loader) -> Model:
        related_type: Type[Model] = attribute.related_type
        if (related_type, key) in path:
            chain = " -> ".join(f"{t.__name__}({i})" for t, i in path)
            raise RelationError(
                f"Cycle while eager loading '{attribute.name}': {chain} -> {related_type.__name__}({key})"
            )
        if len(path) >= self.max_eager_depth:
            raise RelationError(
                f"Eager load of '{attribute.name}' exceeds max depth {self.max_eager_depth}"
            )

        related = related_type.model_construct()
        try:
            load(related, key, True, path + ((related_type, key),))
        except RelationError:
            raise
        except ModelError as e:
            raise RelationError(
                f"Could not load {related_type.__name__} id={key} for '{attribute.name}'", e
            ) from e
        return related

    def resolve_lazy(self, entity: Model, name: str, eager_load: bool, load: Loader) -> Model:
        """
        Load a relation whose foreign key was deferred by a lazy load.

        The side-map is left as it is whether or not the load succeeds.

        Returns:
            The loaded related entity, also assigned to the attribute
        """
        if side_key(name) not in entity.lazy_keys:
            raise RelationError(f"'{name}' is not a lazy-loadable relation")

        attribute = describe(entity).attribute(name)
        key = entity.lazy_key(name)
        related = attribute.related_type.model_construct()
        path: LoadPath = ((type(entity), entity.id), (attribute.related_type, key))

        try:
            load(related, key, eager_load, path)
        except RelationError:
            raise
        except ModelError as e:
            raise RelationError(
                f"Could not load {attribute.related_type.__name__} id={key} for '{name}'", e
            ) from e

        attribute.write(entity, related)
        return related

    # -- saving -------------------------------------------------------------

    def bind_for_save(self, attribute: AttributeDescriptor, entity: Model,
                      insert: Persister, update: Persister) -> Optional[int]:
        """
        Return the foreign key to bind for a relation attribute.

        An unsaved related entity is inserted and a modified one updated
        before its id is returned. ``update`` may skip a saved entity that is
        already being written higher up the same save. A relation never
        resolved from a lazy load keeps its deferred key.
        """
        related = attribute.read(entity)
        if related is None:
            return entity.lazy_key(attribute.name)

        try:
            if related.is_gone():
                raise StateError(f"Related {type(related).__name__} was deleted")
            if not related.is_saved():
                insert(related)
            elif related.is_modified():
                update(related)
        except RelationError:
            raise
        except ModelError as e:
            raise RelationError(
                f"Could not persist related {type(related).__name__} for '{attribute.name}'", e
            ) from e

        return related.id
