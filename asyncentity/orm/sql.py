"""
SQL rendering.

Every statement is rendered against a *bind*, anything with a ``dialect`` and an ``emit_param``
(a :class:`.BaseTransaction` or a :class:`.DatabaseInterface`), and is returned as a two-item
tuple of ``(sql, params)``.

.. code-block:: python3

    sql, params = table.select(tr, where=[(table["name"], "ginger")])
    rows = await tr.fetch(sql, params)

"""
import io
import itertools
import typing
from collections import OrderedDict

from asyncentity.backends.base import BaseDialect
from asyncentity.exc import NoSuchColumnError
from asyncentity.orm.schema import column as md_column

Statement = typing.Tuple[str, typing.Dict[str, typing.Any]]


class _Params(object):
    """
    Collects the parameters of a single statement.
    """

    def __init__(self, bind):
        self.emit = bind.emit_param
        self.values = OrderedDict()
        self._counter = itertools.count()

    def add(self, value: typing.Any) -> str:
        name = "param_{}".format(next(self._counter))
        self.values[name] = value
        return self.emit(name)


class SQLColumn(object):
    """
    A column of a :class:`.SQLTable`, used to refer to the column in a statement.
    """

    def __init__(self, table: 'SQLTable', column: 'md_column.Column'):
        self.table = table
        self.column = column

    def __repr__(self):
        return "<SQLColumn {}.{}>".format(self.table.name, self.name)

    @property
    def name(self) -> str:
        return self.column.name

    def render(self, dialect: BaseDialect) -> str:
        return "{}.{}".format(dialect.quote(self.table.name), dialect.quote(self.name))


class Join(object):
    """
    A chain of LEFT JOINs starting from a table.
    """

    def __init__(self, table: 'SQLTable'):
        self.table = table
        self.joins = []  # type: typing.List[typing.Tuple[SQLTable, SQLColumn, SQLColumn]]

    def left_join(self, other: 'SQLTable', left: SQLColumn, right: SQLColumn) -> 'Join':
        """
        Adds a LEFT JOIN of another table on ``left = right``.
        """
        new = Join(self.table)
        new.joins = self.joins + [(other, left, right)]
        return new

    def render(self, dialect: BaseDialect) -> str:
        buf = io.StringIO()
        buf.write(self.table.render(dialect))
        for table, left, right in self.joins:
            buf.write(" LEFT JOIN {} ON {} = {}".format(table.render(dialect), left.render(dialect),
                                                       right.render(dialect)))

        return buf.getvalue()


def _render_where(dialect: BaseDialect, params: _Params,
                  where: 'typing.Iterable[typing.Tuple[SQLColumn, typing.Any]]') -> str:
    clauses = []
    for column, value in where:
        if value is None:
            clauses.append("{} IS NULL".format(column.render(dialect)))
        else:
            clauses.append("{} = {}".format(column.render(dialect), params.add(value)))

    if not clauses:
        return ""

    return " WHERE " + " AND ".join(clauses)


class SQLTable(object):
    """
    The rendered description of a model's table.
    """

    def __init__(self, name: str, schema: str, columns: 'typing.Iterable[md_column.Column]'):
        #: The name of this table.
        self.name = name

        #: The schema this table is in.
        self.schema = schema

        #: A mapping of column name -> :class:`.Column`.
        self.columns = OrderedDict((c.name, c) for c in columns)

    def __repr__(self):
        return "<SQLTable {}.{} columns={}>".format(self.schema, self.name, list(self.columns))

    def __getitem__(self, item: str) -> SQLColumn:
        try:
            return SQLColumn(self, self.columns[item])
        except KeyError:
            raise NoSuchColumnError("Table {} has no column {}".format(self.name, item)) from None

    def __contains__(self, item: str) -> bool:
        return item in self.columns

    def render(self, dialect: BaseDialect) -> str:
        return dialect.quote_table(self.name, self.schema)

    def left_join(self, other: 'SQLTable', left: SQLColumn, right: SQLColumn) -> Join:
        """
        Starts a chain of LEFT JOINs from this table.
        """
        return Join(self).left_join(other, left, right)

    def render_star(self, dialect: BaseDialect, prefix: str = None) -> str:
        """
        Renders every column of this table for a select.

        :param prefix: If provided, every column is aliased as ``prefix + name``.
        """
        if prefix is None:
            return "{}.*".format(dialect.quote(self.name))

        return ", ".join("{} AS {}".format(self[name].render(dialect), dialect.quote(prefix + name))
                         for name in self.columns)

    # DDL

    def _render_column_definition(self, dialect: BaseDialect, column: 'md_column.Column') -> str:
        buf = io.StringIO()
        buf.write(dialect.quote(column.name))
        buf.write(" ")
        buf.write(dialect.transform_type(column.data_type))

        if not column.nullable:
            buf.write(" NOT NULL")

        if column.primary_key:
            buf.write(" PRIMARY KEY")

        if column.unique:
            buf.write(" UNIQUE")

        fk = column.foreign_key
        if fk is not None:
            buf.write(" REFERENCES {} ({}) ON DELETE {}".format(
                dialect.quote_table(fk.table, fk.schema or self.schema), dialect.quote(fk.column),
                fk.on_delete.upper()
            ))

        return buf.getvalue()

    def create(self, bind) -> Statement:
        """
        Renders a CREATE TABLE IF NOT EXISTS statement.
        """
        dialect = bind.dialect
        definitions = ", ".join(self._render_column_definition(dialect, column)
                                for column in self.columns.values())
        sql = "CREATE TABLE IF NOT EXISTS {} ({});".format(self.render(dialect), definitions)
        return sql, {}

    def drop(self, bind) -> Statement:
        """
        Renders a DROP TABLE IF EXISTS statement.
        """
        return "DROP TABLE IF EXISTS {};".format(self.render(bind.dialect)), {}

    def create_index(self, bind, column: str) -> Statement:
        """
        Renders a CREATE INDEX statement for a single column.
        """
        dialect = bind.dialect
        index_name = dialect.get_index_name(self.name, self[column].name)
        sql = "CREATE INDEX {} ON {} ({});".format(dialect.quote(index_name), self.render(dialect),
                                                   dialect.quote(column))
        return sql, {}

    def drop_index(self, bind, column: str) -> Statement:
        """
        Renders a DROP INDEX IF EXISTS statement for a single column.
        """
        dialect = bind.dialect
        index_name = dialect.get_index_name(self.name, self[column].name)
        return "DROP INDEX IF EXISTS {};".format(dialect.quote_table(index_name, self.schema)), {}

    def describe(self, bind) -> Statement:
        """
        Renders a query for the columns of this table as they exist in the database.

        Every row has the keys ``name``, ``type``, ``char_length``, ``default`` and
        ``is_nullable`` (``YES`` or ``NO``), in column order.
        """
        dialect = bind.dialect
        params = _Params(bind)
        q = dialect.quote
        buf = io.StringIO()
        if dialect.has_information_schema:
            buf.write("SELECT {} AS {}, {} AS {}, {} AS {}, {} AS {}, {} FROM {} ".format(
                q("column_name"), q("name"), q("data_type"), q("type"),
                q("character_maximum_length"), q("char_length"), q("column_default"), q("default"),
                q("is_nullable"), dialect.quote_table("columns", "information_schema")
            ))
            buf.write("WHERE {} = {} AND {} = {} ".format(q("table_name"), params.add(self.name),
                                                          q("table_schema"),
                                                          params.add(self.schema)))
            buf.write("ORDER BY {};".format(q("ordinal_position")))
        else:
            # an INTEGER PRIMARY KEY is reported as nullable by the pragma
            buf.write("SELECT {}, {}, NULL AS {}, {} AS {}, CASE WHEN {} = 1 OR {} > 0 "
                      "THEN 'NO' ELSE 'YES' END AS {} ".format(
                          q("name"), q("type"), q("char_length"), q("dflt_value"), q("default"),
                          q("notnull"), q("pk"), q("is_nullable")
                      ))
            buf.write("FROM pragma_table_info({}) ORDER BY {};".format(params.add(self.name),
                                                                       q("cid")))

        return buf.getvalue(), params.values

    # DML

    def select(self, bind, *,
               from_: 'typing.Union[SQLTable, Join]' = None,
               stars: 'typing.Iterable[typing.Tuple[SQLTable, typing.Optional[str]]]' = None,
               where: 'typing.Iterable[typing.Tuple[SQLColumn, typing.Any]]' = (),
               order_by: 'typing.Iterable[SQLColumn]' = ()) -> Statement:
        """
        Renders a SELECT statement.

        :param from_: The table or :class:`.Join` to select from. Defaults to this table.
        :param stars: Pairs of (table, prefix) to select every column of. Defaults to this table,
            unprefixed.
        :param where: Pairs of (column, value) that are ANDed together as equality predicates.
        :param order_by: The columns to order by.
        """
        dialect = bind.dialect
        params = _Params(bind)
        from_ = from_ or self
        stars = stars or [(self, None)]

        buf = io.StringIO()
        buf.write("SELECT ")
        buf.write(", ".join(table.render_star(dialect, prefix) for table, prefix in stars))
        buf.write(" FROM ")
        buf.write(from_.render(dialect))
        buf.write(_render_where(dialect, params, where))

        order_by = list(order_by)
        if order_by:
            buf.write(" ORDER BY ")
            buf.write(", ".join(column.render(dialect) for column in order_by))

        buf.write(";")
        return buf.getvalue(), params.values

    def count(self, bind, where: 'typing.Iterable[typing.Tuple[SQLColumn, typing.Any]]' = ()) \
            -> Statement:
        """
        Renders a SELECT COUNT(*) statement, with the count aliased as ``count``.
        """
        dialect = bind.dialect
        params = _Params(bind)
        sql = "SELECT COUNT(*) AS {} FROM {}{};".format(dialect.quote("count"),
                                                       self.render(dialect),
                                                       _render_where(dialect, params, where))
        return sql, params.values

    def insert(self, bind, rows: 'typing.Iterable[typing.Mapping[str, typing.Any]]',
               returning: str = "id") -> Statement:
        """
        Renders a multi-row INSERT statement.

        The inserted columns are every column provided by any row. A row missing one of them gets
        DEFAULT where the dialect supports it, and NULL otherwise. Rows that provide no columns at
        all insert the primary key's default.

        :param rows: Mappings of column name -> value.
        :param returning: The column to return from each inserted row, if the dialect supports it.
        """
        dialect = bind.dialect
        params = _Params(bind)
        rows = list(rows)

        keys = []
        for row in rows:
            for key in row:
                if key not in keys:
                    # raises for unknown columns
                    keys.append(self[key].name)

        if not keys:
            keys = [name for name, column in self.columns.items() if column.primary_key][:1]

        missing = "DEFAULT" if dialect.has_default else "NULL"
        values = []
        for row in rows:
            rendered = [params.add(row[key]) if key in row else missing for key in keys]
            values.append("({})".format(", ".join(rendered)))

        buf = io.StringIO()
        buf.write("INSERT INTO {} ({}) VALUES ".format(self.render(dialect),
                                                     ", ".join(dialect.quote(k) for k in keys)))
        buf.write(", ".join(values))
        if returning is not None and dialect.has_returns:
            buf.write(" RETURNING {}".format(dialect.quote(returning)))

        buf.write(";")
        return buf.getvalue(), params.values

    def update(self, bind, values: 'typing.Mapping[str, typing.Any]',
               where: 'typing.Iterable[typing.Tuple[SQLColumn, typing.Any]]' = ()) -> Statement:
        """
        Renders an UPDATE statement.

        :param values: A mapping of column name -> new value.
        :param where: Pairs of (column, value) that are ANDed together as equality predicates.
        """
        dialect = bind.dialect
        params = _Params(bind)
        sets = ", ".join("{} = {}".format(dialect.quote(self[key].name), params.add(value))
                         for key, value in values.items())
        sql = "UPDATE {} SET {}{};".format(self.render(dialect), sets,
                                          _render_where(dialect, params, where))
        return sql, params.values

    def delete(self, bind, where: 'typing.Iterable[typing.Tuple[SQLColumn, typing.Any]]' = ()) \
            -> Statement:
        """
        Renders a DELETE statement. With no predicates, every row is deleted.
        """
        dialect = bind.dialect
        params = _Params(bind)
        sql = "DELETE FROM {}{};".format(self.render(dialect),
                                         _render_where(dialect, params, where))
        return sql, params.values
