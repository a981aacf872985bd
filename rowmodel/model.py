"""
Base class for entities persisted to a relational table.

Concrete entities are pydantic models that name their table and declare
their persistent attributes as ordinary fields::

    class Customer(Model):
        __tablename__ = "customers"
        name: str = ""

    class Order(Model):
        __tablename__ = "orders"
        total: float = 0.0
        customer: Optional[Customer] = None

A field whose annotation is another ``Model`` subclass is a relation and is
stored as that entity's id. The ``id`` itself is managed by the engine and is
never a declared field.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Dict, FrozenSet, Mapping, Optional

from pydantic import BaseModel, ConfigDict, PrivateAttr

from .core.dirty_tracker import DirtyTracker
from .security import IdentifierValidator


class SaveState(str, Enum):
    """Save state derived from the entity's id and deletion flag."""
    UNSAVED = "unsaved"
    SAVED = "saved"
    GONE = "gone"


def side_key(name: str) -> str:
    """Key under which a deferred foreign key of relation ``name`` is kept."""
    return f"{name}Id"


class _EntityRef:
    """Short stand-in for a related entity inside a repr."""

    __slots__ = ('entity',)

    def __init__(self, entity: 'Model'):
        self.entity = entity

    def __repr__(self) -> str:
        return f"{type(self.entity).__name__}(id={self.entity.id})"


class Model(BaseModel):
    """
    An object mapped to one table row.

    Attribute assignment marks the attribute as modified; ``update`` then
    writes only those columns. Subclasses must define ``__tablename__``
    unless they set ``__abstract__ = True``.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        arbitrary_types_allowed=True,
        revalidate_instances='never',
        extra='forbid',
    )

    __tablename__: ClassVar[str]

    _id: int = PrivateAttr(default=0)
    _gone: bool = PrivateAttr(default=False)
    _tracker: DirtyTracker = PrivateAttr(default_factory=DirtyTracker)
    _lazy_keys: Dict[str, int] = PrivateAttr(default_factory=dict)

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        if cls.__dict__.get('__abstract__', False):
            return

        table = getattr(cls, '__tablename__', None)
        if not table:
            raise TypeError(
                f"{cls.__name__} does not declare __tablename__ and cannot be persisted"
            )
        IdentifierValidator.validate_table_name(table)

        if 'id' in cls.model_fields:
            raise TypeError(f"{cls.__name__} declares 'id'; the id is assigned by the engine")

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        if name in type(self).model_fields:
            self._tracker.mark_modified(name)
            # An assigned relation supersedes a deferred foreign key
            self._lazy_keys.pop(side_key(name), None)

    def __repr_args__(self):
        # Related entities show as Type(id=N) so reference cycles stay printable
        for name, value in super().__repr_args__():
            if isinstance(value, Model):
                yield name, _EntityRef(value)
            else:
                yield name, value

    # -- identity and state -------------------------------------------------

    @property
    def id(self) -> int:
        """Database id, 0 while the entity is not saved."""
        return self._id

    @property
    def state(self) -> SaveState:
        if self._gone:
            return SaveState.GONE
        return SaveState.SAVED if self._id != 0 else SaveState.UNSAVED

    def is_saved(self) -> bool:
        return self._id != 0 and not self._gone

    def is_gone(self) -> bool:
        return self._gone

    def _set_id(self, value: int) -> None:
        self._id = int(value)

    def _mark_gone(self) -> None:
        self._gone = True

    # -- dirty tracking -----------------------------------------------------

    def mark_modified(self, name: str) -> None:
        """
        Record that a persistent attribute changed.

        Assignment does this automatically; call it after mutating a value in
        place (e.g. appending to a list field).
        """
        if name not in type(self).model_fields:
            raise KeyError(f"{type(self).__name__} has no persistent attribute '{name}'")
        self._tracker.mark_modified(name)

    def is_modified(self) -> bool:
        return self._tracker.is_modified()

    def modified_attributes(self) -> FrozenSet[str]:
        return self._tracker.modified_attributes()

    def _clear_modified(self) -> None:
        self._tracker.clear()

    def _write_loaded(self, name: str, value: Any) -> None:
        # Validated write that does not count as a modification
        BaseModel.__setattr__(self, name, value)

    # -- deferred relations -------------------------------------------------

    @property
    def lazy_keys(self) -> Mapping[str, int]:
        """Deferred foreign keys keyed by ``"<relation>Id"``."""
        return MappingProxyType(self._lazy_keys)

    def lazy_key(self, name: str) -> Optional[int]:
        """Foreign key remembered for relation ``name`` by a lazy load."""
        return self._lazy_keys.get(side_key(name))

    def _reset_lazy_keys(self, keys: Mapping[str, int]) -> None:
        self._lazy_keys = {side_key(name): key for name, key in keys.items()}

    # -- persistence through the default engine -----------------------------

    def insert(self):
        """Insert this entity using the default engine."""
        from .core.engine import get_default_engine
        return get_default_engine().insert(self)

    def update(self):
        """Write the modified attributes using the default engine."""
        from .core.engine import get_default_engine
        return get_default_engine().update(self)

    def delete_from_database(self):
        """
        Delete this entity's row using the default engine.

        After success the object must not be used for persistence again.
        Related rows are not deleted.
        """
        from .core.engine import get_default_engine
        return get_default_engine().delete(self)

    def load(self, id: int, eager_load: bool = True):
        """Fill this entity from the row with the given id."""
        from .core.engine import get_default_engine
        return get_default_engine().load(self, id, eager_load=eager_load)

    def load_related(self, name: str, eager_load: bool = True):
        """Resolve a relation deferred by a lazy load."""
        from .core.engine import get_default_engine
        return get_default_engine().load_related(self, name, eager_load=eager_load)
