"""
The :ref:`asyncpg` connector for PostgreSQL databases.
"""
import functools
import logging
import re
import typing
import warnings

import asyncpg
from asyncpg import Record
from asyncpg.cursor import Cursor
from asyncpg.transaction import Transaction

from asyncentity.backends.base import BaseConnector, BaseResultSet, BaseTransaction, DictRow
from asyncentity.exc import DatabaseException, IntegrityError, OperationalError

logger = logging.getLogger(__name__)

_PARAM_RE = re.compile(r"\{(\w+)\}")


def get_param_query(sql: str, params: dict) -> typing.Tuple[str, tuple]:
    """
    Re-does a SQL query so that it uses asyncpg's special query format.

    :param sql: The SQL statement to use.
    :param params: The dict of parameters to use.
    :return: A two-item tuple of (new_query, arguments)
    """
    if not params:
        return sql, ()

    items = []
    numbers = {}

    # number each key in the order it was emitted
    for n, (k, v) in enumerate(params.items(), start=1):
        numbers[k] = "${}".format(n)
        items.append(v)

    # only known placeholders are replaced, so braces inside quoted names survive
    sql_statement = _PARAM_RE.sub(lambda m: numbers.get(m.group(1), m.group(0)), sql)

    return sql_statement, tuple(items)


def _translate_errors(func):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except asyncpg.IntegrityConstraintViolationError as e:
            raise IntegrityError(*e.args) from e
        except asyncpg.ObjectNotInPrerequisiteStateError as e:
            raise OperationalError(*e.args) from e
        except asyncpg.SyntaxOrAccessError as e:
            raise DatabaseException(*e.args) from e

    return wrapper


def _log_termination(connection: 'asyncpg.connection.Connection'):
    logger.warning("Connection {} was terminated".format(connection))


class AsyncpgResultSet(BaseResultSet):
    def __init__(self, cur: Cursor):
        self.cur = cur

    async def fetch_row(self):
        row = await self.cur.fetchrow()  # type: Record
        if row is not None:
            return DictRow(row)

    async def close(self):
        pass


class AsyncpgTransaction(BaseTransaction):
    """
    A transaction that uses the `asyncpg <https://github.com/MagicStack/asyncpg>`_ library.
    """

    def __init__(self, conn: 'AsyncpgConnector'):
        super().__init__(conn)

        #: The acquired connection from the connection pool.
        self.acquired_connection = None  # type: asyncpg.connection.Connection

        #: The asyncpg internal transaction.
        self.transaction = None  # type: Transaction

    async def _begin(self, **transaction_options):
        logger.debug("Acquiring new connection...")
        self.acquired_connection = \
            await self.connector.pool.acquire()  # type: asyncpg.connection.Connection
        self.transaction = self.acquired_connection.transaction(**transaction_options)
        await self.transaction.start()

    async def _commit(self):
        await self.transaction.commit()

    async def _rollback(self, checkpoint: str = None):
        if checkpoint is not None:
            # execute the ROLLBACK TO
            await self.acquired_connection.execute("ROLLBACK TO SAVEPOINT {}".format(checkpoint))
        else:
            await self.transaction.rollback()

    async def close(self):
        if self.acquired_connection is None:
            return

        await self.connector.pool.release(self.acquired_connection)
        logger.debug("Released connection for transaction {}".format(self.id))
        self.acquired_connection = None

    @_translate_errors
    async def execute(self, sql: str, params: typing.Mapping[str, typing.Any] = None):
        """
        Executes SQL inside the transaction.

        :param sql: The SQL to execute.
        :param params: The parameters to execute with.
        """
        query, params = get_param_query(sql, params)
        return await self.acquired_connection.execute(query, *params)

    @_translate_errors
    async def cursor(self, sql: str, params: typing.Mapping[str, typing.Any] = None) \
            -> AsyncpgResultSet:
        """
        Executes a SQL statement and returns a cursor to iterate over the rows of the result.
        """
        query, params = get_param_query(sql, params)
        cur = await self.acquired_connection.cursor(query, *params)
        return AsyncpgResultSet(cur)

    @_translate_errors
    async def fetch(self, sql: str, params: typing.Mapping[str, typing.Any] = None):
        """
        Executes a SQL statement and fetches every row.
        """
        query, params = get_param_query(sql, params)
        rows = await self.acquired_connection.fetch(query, *params)
        return [DictRow(r) for r in rows]

    async def create_savepoint(self, name: str):
        await self.acquired_connection.execute("SAVEPOINT {};".format(name))

    async def release_savepoint(self, name: str):
        await self.acquired_connection.execute("RELEASE SAVEPOINT {};".format(name))


class AsyncpgConnector(BaseConnector):
    """
    A connector that uses the `asyncpg <https://github.com/MagicStack/asyncpg>`_ library.
    """

    def __init__(self, parsed, *, dialect=None, **kwargs):
        super().__init__(parsed, dialect=dialect)

        #: Extra keyword arguments for :func:`asyncpg.create_pool`.
        self.pool_kwargs = kwargs

        #: The :class:`asyncpg.pool.Pool` connection pool.
        self.pool = None  # type: asyncpg.pool.Pool

    def __del__(self):
        if self.pool is not None and not self.pool._closed:
            warnings.warn("Unclosed asyncpg pool {}".format(self.pool))

    async def close(self):
        await self.pool.close()

    def emit_param(self, name: str) -> str:
        # note: asyncpg doesn't support DBAPI params
        # so get_param_query renumbers these into $n params before executing
        return "{{{name}}}".format(name=name)

    async def _init_connection(self, connection: 'asyncpg.connection.Connection'):
        # a connection dying in the pool is logged, not raised
        connection.add_termination_listener(_log_termination)

    async def connect(self) -> 'BaseConnector':
        # create our connection pool
        port = self.port or 5432
        logger.debug("Connecting to {}".format(self.dsn))
        self.pool = await asyncpg.create_pool(host=self.host, port=port, user=self.username,
                                              password=self.password, database=self.db,
                                              init=self._init_connection, **self.params,
                                              **self.pool_kwargs)
        return self

    def get_transaction(self) -> 'AsyncpgTransaction':
        return AsyncpgTransaction(self)


# define the asyncpg connector as the connector type to make an instance of
CONNECTOR_TYPE = AsyncpgConnector
