"""
Schema descriptors for entity types.

A ``SchemaDescriptor`` is built once per ``Model`` subclass, on first use, and
then shared by every instance. It lists the persistent attributes in
declaration order (inherited fields first), without the id, together with the
column each one maps to and whether it references another entity.
"""

import types
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Type, Union, get_args, get_origin

from pydantic import Field
from pydantic.fields import FieldInfo

from ..model import Model
from ..security import IdentifierValidator

_registry: Dict[type, 'SchemaDescriptor'] = {}


def column(name: str, default: Any = ..., **kwargs: Any) -> Any:
    """
    Declare a persistent attribute stored under a different column name.

    Example:
        customer: Optional[Customer] = column("customer_id", default=None)

    Args:
        name: Column name used in generated SQL
        default: Field default (required when omitted)
        **kwargs: Passed through to ``pydantic.Field``
    """
    extra = dict(kwargs.pop('json_schema_extra', None) or {})
    extra['column'] = name
    return Field(default, json_schema_extra=extra, **kwargs)


@dataclass(frozen=True)
class AttributeDescriptor:
    """One persistent attribute of an entity type."""

    name: str
    column: str
    value_type: Any
    related_type: Optional[Type[Model]] = None

    @property
    def is_relation(self) -> bool:
        return self.related_type is not None

    def read(self, entity: Model) -> Any:
        return getattr(entity, self.name)

    def write(self, entity: Model, value: Any) -> None:
        """Validated write-back that does not mark the attribute modified."""
        entity._write_loaded(self.name, value)


@dataclass(frozen=True)
class SchemaDescriptor:
    """Table name plus ordered persistent attributes of one entity type."""

    model_class: Type[Model]
    table_name: str
    attributes: Tuple[AttributeDescriptor, ...]

    def attribute(self, name: str) -> AttributeDescriptor:
        for attribute in self.attributes:
            if attribute.name == name:
                return attribute
        raise KeyError(f"{self.model_class.__name__} has no persistent attribute '{name}'")

    @property
    def relations(self) -> Tuple[AttributeDescriptor, ...]:
        return tuple(a for a in self.attributes if a.is_relation)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(a.name for a in self.attributes)


def _related_type(annotation: Any) -> Optional[Type[Model]]:
    """Return the entity type referenced by an annotation, unwrapping Optional."""
    candidates = [annotation]
    if get_origin(annotation) in (Union, types.UnionType):
        candidates = [a for a in get_args(annotation) if a is not type(None)]

    if len(candidates) != 1:
        return None
    candidate = candidates[0]
    if isinstance(candidate, type) and issubclass(candidate, Model):
        return candidate
    return None


def _column_name(name: str, field: FieldInfo) -> str:
    extra = field.json_schema_extra
    if isinstance(extra, dict) and extra.get('column'):
        return str(extra['column'])
    return name


def describe(model: Any) -> SchemaDescriptor:
    """
    Return the schema descriptor of an entity type or instance.

    Args:
        model: ``Model`` subclass or instance

    Returns:
        Cached SchemaDescriptor for the type

    Raises:
        TypeError: If the type is not a persistable entity
    """
    model_class = type(model) if isinstance(model, Model) else model

    cached = _registry.get(model_class)
    if cached is not None:
        return cached

    if not (isinstance(model_class, type) and issubclass(model_class, Model)):
        raise TypeError(f"{model_class!r} is not a Model subclass")
    if model_class.__dict__.get('__abstract__', False) or model_class is Model:
        raise TypeError(f"{model_class.__name__} is abstract and has no table")

    # Resolve forward references such as self-referencing relations
    if not model_class.__pydantic_complete__:
        model_class.model_rebuild()

    attributes = []
    for name, field in model_class.model_fields.items():
        column_name = IdentifierValidator.validate_column_name(_column_name(name, field))
        related = _related_type(field.annotation)
        if related is not None and related.__dict__.get('__abstract__', False):
            raise TypeError(
                f"{model_class.__name__}.{name} references abstract entity {related.__name__}"
            )
        attributes.append(AttributeDescriptor(
            name=name,
            column=column_name,
            value_type=field.annotation,
            related_type=related,
        ))

    descriptor = SchemaDescriptor(
        model_class=model_class,
        table_name=model_class.__tablename__,
        attributes=tuple(attributes),
    )
    _registry[model_class] = descriptor
    return descriptor
