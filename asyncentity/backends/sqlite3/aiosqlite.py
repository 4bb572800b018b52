"""
A backend using the `aiosqlite <https://github.com/omnilib/aiosqlite>`_ driver.
"""
import asyncio
import functools
import logging
import sqlite3
import typing

import aiosqlite

from asyncentity.backends.base import BaseConnector, BaseResultSet, BaseTransaction, DictRow
from asyncentity.exc import DatabaseException, IntegrityError, OperationalError

logger = logging.getLogger(__name__)


def _translate_errors(func):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except sqlite3.IntegrityError as e:
            raise IntegrityError(*e.args) from e
        except sqlite3.OperationalError as e:
            raise OperationalError(*e.args) from e
        except sqlite3.DatabaseError as e:
            raise DatabaseException(*e.args) from e

    return wrapper


class _SqlitePool:
    """
    A connection pool for aiosqlite connections.
    """

    def __init__(self, max_size: int = 12, **kwargs):
        """
        :param max_size: The maximum size of the pool.
        """
        self.queue = asyncio.Queue(maxsize=max_size)

        self.connection_args = kwargs

    async def _new_connection(self) -> aiosqlite.Connection:
        # isolation_level None means BEGIN/COMMIT are issued by the transaction, not the driver
        conn = await aiosqlite.connect(**self.connection_args, isolation_level=None)
        # this allows dict-like access
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys=ON")
        return conn

    async def connect(self):
        """
        Connects this pool.
        """
        for x in range(0, self.queue.maxsize):
            conn = await self._new_connection()
            self.queue.put_nowait(conn)

        return self

    async def acquire(self) -> aiosqlite.Connection:
        """
        Acquires a connection from the pool.
        """
        return await self.queue.get()

    async def release(self, conn: aiosqlite.Connection):
        """
        Releases a connection back to the pool of available connections.
        """
        # anything stale left in the DB is rolled back
        if conn.in_transaction:
            logger.warning("Connection released with an open transaction, rolling back")
            await conn.rollback()

        self.queue.put_nowait(conn)

    async def close(self):
        """
        Closes the pool.
        """
        while True:
            try:
                conn = self.queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            await conn.close()


class AiosqliteConnector(BaseConnector):
    """
    A connector powered by aiosqlite.
    """

    def __init__(self, parsed, *, dialect=None, max_size: int = 12):
        super().__init__(parsed, dialect=dialect)

        self.max_size = int(self.params.pop("max_size", max_size))
        self.pool = None  # type: _SqlitePool

    async def connect(self) -> 'BaseConnector':
        """
        Creates the new pool of sqlite3 connections.
        """
        logger.debug("Opening {} connections to {}".format(self.max_size, self.db))
        self.pool = _SqlitePool(max_size=self.max_size, database=self.db, **self.params)
        await self.pool.connect()
        return self

    async def close(self):
        """
        Closes this connector.
        """
        await self.pool.close()

    def get_transaction(self) -> 'AiosqliteTransaction':
        return AiosqliteTransaction(self)

    def emit_param(self, name: str) -> str:
        return ":{}".format(name)


class AiosqliteTransaction(BaseTransaction):
    """
    Represents a sqlite3 transaction.
    """

    def __init__(self, connector: 'AiosqliteConnector'):
        super().__init__(connector)

        #: The connection for this transaction.
        self.connection = None  # type: aiosqlite.Connection

        self._lock = asyncio.Lock()

    async def _begin(self):
        self.connection = await self.connector.pool.acquire()
        await self.connection.execute("BEGIN")

    @_translate_errors
    async def execute(self, sql: str, params: typing.Union[typing.Mapping, typing.Iterable] = None):
        """
        Executes SQL in the current transaction.
        """
        # lock to ensure nothing else is using the connection at once
        async with self._lock:
            cur = await self.connection.execute(sql, params)
            await cur.close()

        return cur.rowcount

    async def _commit(self):
        async with self._lock:
            await self.connection.execute("COMMIT")

    async def _rollback(self, checkpoint: str = None):
        if checkpoint is not None:
            await self.execute("ROLLBACK TO SAVEPOINT {};".format(checkpoint))
            return

        async with self._lock:
            await self.connection.execute("ROLLBACK")

    async def create_savepoint(self, name: str):
        """
        Creates a savepoint for this transaction.
        """
        await self.execute("SAVEPOINT {};".format(name))

    async def release_savepoint(self, name: str):
        """
        Releases a savepoint in this transaction.
        """
        await self.execute("RELEASE SAVEPOINT {};".format(name))

    @_translate_errors
    async def cursor(self, sql: str, params: typing.Union[typing.Mapping, typing.Iterable] = None) \
            -> 'AiosqliteResultSet':
        """
        Gets a cursor for the specified SQL.
        """
        async with self._lock:
            cur = await self.connection.execute(sql, params)

        return AiosqliteResultSet(cur)

    async def close(self):
        """
        Releases the connection of this transaction.
        """
        if self.connection is None:
            return

        await self.connector.pool.release(self.connection)
        logger.debug("Released connection for transaction {}".format(self.id))
        self.connection = None


class AiosqliteResultSet(BaseResultSet):
    """
    A result set for a sqlite3 database.
    """

    def __init__(self, cursor: aiosqlite.Cursor):
        self.cursor = cursor

    async def close(self):
        await self.cursor.close()

    async def fetch_row(self) -> typing.Mapping[str, typing.Any]:
        """
        Fetches one row.
        """
        row = await self.cursor.fetchone()
        return DictRow(row) if row is not None else None


CONNECTOR_TYPE = AiosqliteConnector
