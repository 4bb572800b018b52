"""
The query engine.

Translates models and plain attribute mappings into SQL, and runs it inside the transaction
published in the current execution context.
"""
import logging
import time
import typing

from asyncentity import transaction as md_transaction
from asyncentity.exc import AmbiguousAttributeError, NoSuchColumnError, UnresolvedAttributeError
from asyncentity.orm import sql as md_sql

logger = logging.getLogger(__name__)

Where = typing.Optional[typing.Mapping[str, typing.Any]]


class QueryEngine(object):
    """
    Runs model queries. Every method runs in the current transaction, see
    :func:`.get_transaction`.
    """

    async def execute_sql(self, sql: str, params: typing.Mapping[str, typing.Any] = None) -> list:
        """
        Executes a statement in the current transaction.

        :return: A list of :class:`.DictRow` returned by the statement.
        """
        tr = md_transaction.get_transaction()
        logger.debug("Executing query {} with params {}".format(sql, params))
        start = time.perf_counter()
        rows = await tr.fetch(sql, params)
        logger.debug("Query took {:.3f}ms".format((time.perf_counter() - start) * 1000))
        return rows

    @staticmethod
    def _bind():
        return md_transaction.get_transaction()

    @staticmethod
    def get_matching_column(models: list, attribute_name: str) -> 'md_sql.SQLColumn':
        """
        Resolves an attribute name to a column on one of the models.

        ``id`` always resolves to the first model's primary key. Any other name is matched against
        the column names and properties of every model.

        :raises UnresolvedAttributeError: If no model has a matching column.
        :raises AmbiguousAttributeError: If more than one model has a matching column.
        """
        metadata = models[0].metadata
        if attribute_name == "id":
            return metadata.get_sql_entity(models[0])["id"]

        matches = []
        for model in models:
            table = metadata.get_sql_entity(model)
            for column in metadata.get_entity_metadata(model).columns.values():
                if attribute_name in (column.name, column.property):
                    matches.append(table[column.name])
                    break

        if not matches:
            raise UnresolvedAttributeError("No attribute match found for {}".format(attribute_name))

        if len(matches) > 1:
            raise AmbiguousAttributeError(attribute_name,
                                          ("{}.{}".format(m.table.name, m.name) for m in matches))

        return matches[0]

    def _where(self, models: list, where: Where) -> list:
        return [(self.get_matching_column(models, key), value)
                for key, value in (where or {}).items()]

    @staticmethod
    def _to_column_names(model, attributes: typing.Mapping[str, typing.Any]) -> dict:
        columns = model.metadata.get_entity_metadata(model).columns
        by_property = {c.property: c.name for c in columns.values()}

        result = {}
        for key, value in attributes.items():
            if key in columns:
                result[key] = value
            elif key in by_property:
                result[by_property[key]] = value
            else:
                raise NoSuchColumnError("Model {} has no column {}".format(model.__name__, key))

        return result

    @staticmethod
    def get_included_associations(model, includes: typing.Iterable[str] = None) -> list:
        """
        Gets the associations of a model to join in a select: every eager association, plus the
        ones named in ``includes``.
        """
        includes = set(includes or ())
        associations = model.metadata.get_entity_metadata(model).associations.values()
        return [a for a in associations if a.eager or a.name in includes]

    async def select(self, model, where: Where = None, includes: typing.Iterable[str] = None) \
            -> list:
        """
        Selects the rows of a model, joined with its included associations.

        Every column of an included association's target is aliased as ``association.column``,
        so that the rows can be grouped with :func:`.group_data`.
        """
        metadata = model.metadata
        table = metadata.get_sql_entity(model)
        associations = self.get_included_associations(model, includes)

        stars = [(table, None)]
        from_ = table
        for association in associations:
            stars.append((metadata.get_sql_entity(association.target),
                          "{}.".format(association.name)))
            from_ = association.join(from_)

        models = [model] + [a.target for a in associations]
        sql, params = table.select(self._bind(), from_=from_, stars=stars,
                                   where=self._where(models, where), order_by=[table["id"]])
        return await self.execute_sql(sql, params)

    async def insert(self, model, attributes: typing.Mapping[str, typing.Any] = None) -> int:
        """
        Inserts a single row.

        :return: The id of the new row.
        """
        ids = await self.insert_all(model, [attributes or {}])
        return ids[0]

    async def insert_all(self, model, rows: typing.Iterable[typing.Mapping[str, typing.Any]]) \
            -> typing.List[int]:
        """
        Inserts many rows in a single statement.

        :return: The ids of the new rows, in order. Nothing is executed for no rows.
        """
        rows = [self._to_column_names(model, row) for row in rows]
        if not rows:
            return []

        table = model.metadata.get_sql_entity(model)
        sql, params = table.insert(self._bind(), rows, returning="id")
        result = await self.execute_sql(sql, params)
        return [row["id"] for row in result]

    async def modify(self, model, attributes: typing.Mapping[str, typing.Any]):
        """
        Updates a single row, identified by the ``id`` in the attributes.

        :raises ValueError: If the attributes have no id.
        """
        values = self._to_column_names(model, attributes)
        id_ = values.pop("id", None)
        if id_ is None:
            raise ValueError("Cannot modify a {} without an id".format(model.__name__))

        if not values:
            logger.debug("Nothing to modify on {} {}".format(model.__name__, id_))
            return

        table = model.metadata.get_sql_entity(model)
        sql, params = table.update(self._bind(), values, where=[(table["id"], id_)])
        await self.execute_sql(sql, params)

    async def delete(self, model, where: Where = None):
        """
        Deletes the rows of a model matching the predicates. With no predicates, every row is
        deleted.
        """
        table = model.metadata.get_sql_entity(model)
        sql, params = table.delete(self._bind(), where=self._where([model], where))
        await self.execute_sql(sql, params)

    async def count(self, model, where: Where = None) -> int:
        table = model.metadata.get_sql_entity(model)
        sql, params = table.count(self._bind(), where=self._where([model], where))
        rows = await self.execute_sql(sql, params)
        return int(rows[0]["count"])

    async def create_table_if_not_exists(self, model):
        """
        Creates the table of a model, then drops and re-creates the index of every indexed column.
        """
        bind = self._bind()
        table = model.metadata.get_sql_entity(model)
        await self.execute_sql(*table.create(bind))

        indexed = [c.name for c in table.columns.values() if c.indexed]
        for name in indexed:
            await self.execute_sql(*table.drop_index(bind, name))

        for name in indexed:
            await self.execute_sql(*table.create_index(bind, name))

    async def drop_table_if_exists(self, model):
        table = model.metadata.get_sql_entity(model)
        await self.execute_sql(*table.drop(self._bind()))


#: The query engine used by models.
query = QueryEngine()
