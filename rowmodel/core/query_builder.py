"""
SQL synthesis for entity persistence.

The ``render_*`` functions are pure: they turn a schema descriptor (and, for
updates, the modified attribute names) into statement text. The
``prepare_*`` functions prepare that text against a database capability and
bind the entity's values.

Columns appear in schema order for insert and select, and in the dirty set's
iteration order for update. Placeholders are always named after attributes.
"""

from enum import Enum
from typing import Any, Callable, Iterable, Optional

from ..database.capability import DatabaseCapability, PreparedStatement
from ..model import Model
from .schema import AttributeDescriptor, SchemaDescriptor

# Returns the id to bind for a relation attribute, persisting the related
# entity first when needed
RelationBinder = Callable[[AttributeDescriptor, Model], Optional[int]]


def render_insert(schema: SchemaDescriptor, returning: bool = False) -> str:
    if schema.attributes:
        columns = ",".join(a.column for a in schema.attributes)
        values = ",".join(f":{a.name}" for a in schema.attributes)
        sql = f"INSERT INTO {schema.table_name} ({columns}) VALUES ({values})"
    else:
        sql = f"INSERT INTO {schema.table_name} DEFAULT VALUES"

    if returning:
        sql += " RETURNING id"
    return sql


def render_update(schema: SchemaDescriptor, names: Iterable[str]) -> str:
    assignments = [f"{schema.attribute(name).column} = :{name}" for name in names]
    if not assignments:
        raise ValueError("UPDATE needs at least one modified attribute")
    return f"UPDATE {schema.table_name} SET {', '.join(assignments)} WHERE id = :id"


def render_delete(schema: SchemaDescriptor) -> str:
    return f"DELETE FROM {schema.table_name} WHERE id = :id"


def render_select(schema: SchemaDescriptor) -> str:
    columns = ",".join(a.column for a in schema.attributes) or "id"
    return f"SELECT {columns} FROM {schema.table_name} WHERE id = :id"


def column_value(value: Any) -> Any:
    """Convert an attribute value to something the driver can bind."""
    if isinstance(value, Enum):
        return value.value
    return value


def _bind_attribute(statement: PreparedStatement, attribute: AttributeDescriptor,
                    entity: Model, bind_relation: RelationBinder) -> None:
    if attribute.is_relation:
        value = bind_relation(attribute, entity)
    else:
        value = column_value(attribute.read(entity))
    statement.bind(attribute.name, value)


def prepare_insert(database: DatabaseCapability, schema: SchemaDescriptor,
                   entity: Model, bind_relation: RelationBinder) -> PreparedStatement:
    """
    Prepare an insert over all persistent attributes.

    Args:
        database: Database capability
        schema: Descriptor of the entity's type
        entity: Entity being inserted
        bind_relation: Resolves the id bound for each relation attribute

    Returns:
        Statement ready to execute
    """
    statement = database.prepare(render_insert(schema, database.insert_returning))
    for attribute in schema.attributes:
        _bind_attribute(statement, attribute, entity, bind_relation)
    return statement


def prepare_update(database: DatabaseCapability, schema: SchemaDescriptor,
                   entity: Model, bind_relation: RelationBinder) -> Optional[PreparedStatement]:
    """
    Prepare an update of the modified attributes only.

    Returns None when nothing is modified.
    """
    names = list(entity.modified_attributes())
    if not names:
        return None

    statement = database.prepare(render_update(schema, names))
    for name in names:
        _bind_attribute(statement, schema.attribute(name), entity, bind_relation)
    statement.bind('id', entity.id)
    return statement


def prepare_delete(database: DatabaseCapability, schema: SchemaDescriptor,
                   entity: Model) -> PreparedStatement:
    statement = database.prepare(render_delete(schema))
    statement.bind('id', entity.id)
    return statement


def prepare_select(database: DatabaseCapability, schema: SchemaDescriptor,
                   id: int) -> PreparedStatement:
    statement = database.prepare(render_select(schema))
    statement.bind('id', id)
    return statement
