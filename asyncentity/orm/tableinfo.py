"""
Checks the tables in the database against the model metadata.

.. code-block:: python3

    async def check():
        await compare_entity_metadata_with_table(Student)

    await db.transaction(check)

"""
import collections
import logging
import typing

from asyncentity.exc import SchemaError
from asyncentity.orm.query import query
from asyncentity.transaction import get_transaction

logger = logging.getLogger(__name__)

#: A column of a table, as read from the database.
TableColumn = collections.namedtuple("TableColumn",
                                     "name type char_length default is_nullable")

# information_schema data types -> the types rendered by ColumnType.sql()
_TYPE_NAMES = {
    "integer": "INT",
    "smallint": "SMALLINT",
    "bigint": "BIGINT",
    "real": "REAL",
    "boolean": "BOOLEAN",
    "text": "TEXT",
    "timestamp with time zone": "TIMESTAMP WITH TIME ZONE",
}

_SERIAL_NAMES = {
    "integer": "SERIAL",
    "bigint": "BIGSERIAL",
}


async def get_table_columns(model) -> typing.List[TableColumn]:
    """
    Reads the columns of a model's table from the database, in the current transaction.
    """
    table = model.metadata.get_sql_entity(model)
    rows = await query.execute_sql(*table.describe(get_transaction()))
    return [TableColumn(row["name"], row["type"], row["char_length"], row["default"],
                        row["is_nullable"]) for row in rows]


def get_table_column_type(dialect, table_column: TableColumn) -> str:
    """
    Gets the type of a table column, in the form rendered for a column of the model.
    """
    if not dialect.has_information_schema:
        # sqlite reports the type as it was declared
        return table_column.type.upper()

    data_type = table_column.type.lower()
    default = table_column.default or ""
    if data_type in _SERIAL_NAMES and default.startswith("nextval"):
        return _SERIAL_NAMES[data_type]

    if data_type == "character varying":
        if table_column.char_length is None:
            return "VARCHAR"
        return "VARCHAR({})".format(table_column.char_length)

    return _TYPE_NAMES.get(data_type, data_type.upper())


def compare_column(dialect, table_column: TableColumn, column) -> bool:
    """
    Compares the name, nullability and type of a table column with a model column.
    """
    if table_column.name != column.name:
        return False

    if (table_column.is_nullable == "NO") != column.not_null:
        logger.warning("Column {} nullability differs, table has is_nullable={}"
                       .format(column.name, table_column.is_nullable))
        return False

    table_type = get_table_column_type(dialect, table_column)
    model_type = dialect.transform_type(column.data_type)
    if table_type != model_type:
        logger.warning("Column {} type differs, table has {} but the model has {}"
                       .format(column.name, table_type, model_type))
        return False

    return True


async def compare_columns(model) -> bool:
    """
    Compares every column of a model's table with the model metadata.

    :return: True if every column matches.
    :raises SchemaError: If the table has a column the model does not know about.
    """
    dialect = get_transaction().dialect
    columns = model.metadata.get_entity_metadata(model).columns
    table_columns = await get_table_columns(model)
    if not table_columns:
        logger.warning("Table of {} does not exist".format(model.__name__))
        return False

    matches = True
    for table_column in table_columns:
        column = columns.get(table_column.name)
        if column is None:
            raise SchemaError("Column {} not found".format(table_column.name))

        if not compare_column(dialect, table_column, column):
            matches = False

    missing = set(columns) - {c.name for c in table_columns}
    for name in sorted(missing):
        logger.warning("Column {} is missing from the table of {}".format(name, model.__name__))
        matches = False

    return matches


async def compare_entity_metadata_with_table(model):
    """
    Compares a model's metadata with its table in the database.

    :raises SchemaError: If the table does not match the metadata.
    """
    if not await compare_columns(model):
        raise SchemaError("Columns do not match for {}".format(model.__name__))
