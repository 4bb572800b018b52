"""
The base implementation of a backend. This provides some ABC classes.
"""
import collections.abc
import enum
import functools
import logging
import typing
import uuid
from abc import abstractmethod
from collections import OrderedDict
from urllib.parse import ParseResult, parse_qs

from asyncentity.meta import AsyncABC

logger = logging.getLogger(__name__)


class BaseDialect:
    """
    The base class for a SQL dialect describer.

    This class signifies what features the SQL dialect can use, and as such is used to customize
    the SQL rendered for each server.

    By default, all ``has_`` properties will default to False, so that none of them need be
    implemented. Regular methods will raise NotImplementedError, however.
    """

    @property
    def has_returns(self) -> bool:
        """
        Returns True if this dialect has RETURNING.
        """
        return False

    @property
    def has_default(self) -> bool:
        """
        Returns True if this dialect can use DEFAULT as a value in an INSERT.
        """
        return False

    @property
    def has_schemas(self) -> bool:
        """
        Returns True if tables in this dialect can be qualified with a schema.
        """
        return False

    @property
    def has_information_schema(self) -> bool:
        """
        Returns True if the columns of a table can be read from ``information_schema.columns``.
        """
        return False

    def quote(self, name: str) -> str:
        """
        Quotes an identifier.
        """
        return '"{}"'.format(name.replace('"', '""'))

    def quote_table(self, name: str, schema: str = None) -> str:
        """
        Quotes a table name, qualifying it with the schema if the dialect supports schemas.
        """
        if schema and self.has_schemas:
            return "{}.{}".format(self.quote(schema), self.quote(name))

        return self.quote(name)

    def transform_type(self, data_type: str) -> str:
        """
        Transforms a rendered column type into the type used by this dialect.
        """
        return data_type

    def get_index_name(self, table_name: str, column_name: str) -> str:
        """
        Gets the name of the plain index created for an indexed column.
        """
        return "{}_{}".format(table_name, column_name)


class BaseResultSet(collections.abc.AsyncIterator, AsyncABC):
    """
    The base class for a result set. This represents the results from a database query, as an async
    iterable.

    Children classes must implement:

        - :attr:`.BaseResultSet.fetch_row`
        - :attr:`.BaseResultSet.close`
    """

    @abstractmethod
    async def fetch_row(self) -> typing.Mapping[str, typing.Any]:
        """
        Fetches the **next row** in this query.

        This should return None if the row could not be fetched.
        """

    @abstractmethod
    async def close(self):
        """
        Closes this result set.
        """

    async def flatten(self) -> typing.List[typing.Mapping[str, typing.Any]]:
        """
        Fetches every remaining row into a list.
        """
        return [row async for row in self]

    async def __anext__(self):
        res = await self.fetch_row()
        if res is None:
            raise StopAsyncIteration

        return res

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False


class TransactionState(enum.Enum):
    NOT_STARTED = 0
    BEGUN = 1
    COMMITTED = 2
    ROLLED_BACK = 3


def enforce_begun(func):
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        if self.state is not TransactionState.BEGUN:
            raise RuntimeError("Transaction {} is {}, not begun".format(self.id, self.state.name))
        return await func(self, *args, **kwargs)

    return wrapper


class BaseTransaction(AsyncABC):
    """
    The base class for a transaction. This represents a database transaction (i.e SQL statements
    guarded with a BEGIN and a COMMIT/ROLLBACK).

    A transaction owns one connection from the connector's pool, from :meth:`.begin` until
    :meth:`.close`.

    Children classes must implement:

        - :meth:`.BaseTransaction._begin`
        - :meth:`.BaseTransaction._rollback`
        - :meth:`.BaseTransaction._commit`
        - :meth:`.BaseTransaction.execute`
        - :meth:`.BaseTransaction.cursor`
        - :meth:`.BaseTransaction.close`

    Additionally, some extra methods can be implemented:

        - :meth:`.BaseTransaction.create_savepoint`
        - :meth:`.BaseTransaction.release_savepoint`

    These methods are not required to be implemented, but will raise :class:`NotImplementedError` if
    they are not.

    This class takes one parameter in the constructor: the :class:`.BaseConnector` used to connect
    to the DB server.
    """

    def __init__(self, connector: 'BaseConnector'):
        self.connector = connector

        #: The unique ID of this transaction.
        self.id = str(uuid.uuid4())

        #: The current :class:`.TransactionState` of this transaction.
        self.state = TransactionState.NOT_STARTED

    def __repr__(self):
        return "<{} id='{}' state={}>".format(type(self).__name__, self.id, self.state.name)

    async def __aenter__(self) -> 'BaseTransaction':
        await self.begin()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is not None:
                await self.rollback()
                return False

            await self.commit()
            return False
        finally:
            await self.close()

    @property
    def dialect(self) -> BaseDialect:
        """
        :return: The :class:`.BaseDialect` of the server this transaction is connected to.
        """
        return self.connector.dialect

    def emit_param(self, name: str) -> str:
        """
        Emits a parameter in the format of the underlying driver.
        """
        return self.connector.emit_param(name)

    async def begin(self) -> 'BaseTransaction':
        """
        Begins the transaction, acquiring a connection and emitting a BEGIN instruction.
        """
        if self.state is not TransactionState.NOT_STARTED:
            raise RuntimeError("Transaction {} has already been begun".format(self.id))

        await self._begin()
        self.state = TransactionState.BEGUN
        logger.debug("Began transaction {}".format(self.id))
        return self

    @enforce_begun
    async def commit(self):
        """
        Commits the current transaction, emitting a COMMIT instruction.
        """
        await self._commit()
        self.state = TransactionState.COMMITTED
        logger.debug("Committed transaction {}".format(self.id))

    @enforce_begun
    async def rollback(self, checkpoint: str = None):
        """
        Rolls back the transaction.

        :param checkpoint: If provided, the checkpoint to rollback to. Otherwise, the entire \
            transaction will be rolled back.
        """
        await self._rollback(checkpoint)
        if checkpoint is None:
            self.state = TransactionState.ROLLED_BACK
            logger.debug("Rolled back transaction {}".format(self.id))

    @abstractmethod
    async def _begin(self):
        """
        Acquires a connection and emits BEGIN.
        """

    @abstractmethod
    async def _commit(self):
        """
        Emits COMMIT.
        """

    @abstractmethod
    async def _rollback(self, checkpoint: str = None):
        """
        Emits ROLLBACK, or ROLLBACK TO the checkpoint.
        """

    @abstractmethod
    async def execute(self, sql: str, params: typing.Union[typing.Mapping, typing.Iterable] = None):
        """
        Executes SQL in the current transaction.

        :param sql: The SQL statement to execute.
        :param params: Any parameters to pass to the query.
        """

    @abstractmethod
    async def close(self):
        """
        Called at the end of a transaction to release the connection.
        """

    @abstractmethod
    async def cursor(self, sql: str, params: typing.Union[typing.Mapping, typing.Iterable] = None) \
            -> 'BaseResultSet':
        """
        Executes SQL and returns a database cursor for the rows.

        :param sql: The SQL statement to execute.
        :param params: Any parameters to pass to the query.
        :return: The :class:`.BaseResultSet` returned from the query, if applicable.
        """

    async def fetch(self, sql: str, params: typing.Mapping[str, typing.Any] = None) \
            -> typing.List['DictRow']:
        """
        Executes SQL and fetches every row it returns.

        :param sql: The SQL statement to execute.
        :param params: Any parameters to pass to the query.
        :return: A list of :class:`.DictRow`.
        """
        cursor = await self.cursor(sql, params)
        async with cursor:
            return await cursor.flatten()

    def create_savepoint(self, name: str):
        """
        Creates a savepoint in the current transaction.

        .. warning::
            This is not supported in all DB engines. If so, this will raise
            :class:`NotImplementedError`.

        :param name: The name of the savepoint to create.
        """
        raise NotImplementedError

    def release_savepoint(self, name: str):
        """
        Releases a savepoint in the current transaction.

        :param name: The name of the savepoint to release.
        """
        raise NotImplementedError


class BaseConnector(AsyncABC):
    """
    The base class for a connector. This should be used for all connector classes as the parent
    class.

    Children classes must implement:

        - :meth:`.BaseConnector.connect`
        - :meth:`.BaseConnector.close`
        - :meth:`.BaseConnector.emit_param`
        - :meth:`.BaseConnector.get_transaction`
    """

    def __init__(self, dsn: ParseResult, *, dialect: BaseDialect = None):
        """
        :param dsn: The :class:`urllib.parse.ParseResult` created from parsing a DSN.
        :param dialect: The :class:`.BaseDialect` of the server being connected to.
        """
        self._parse_result = dsn
        self.dsn = dsn.geturl()
        self.host = dsn.hostname
        self.port = dsn.port
        self.username = dsn.username
        self.password = dsn.password
        self.db = dsn.path[1:]
        self.params = {k: v[0] for k, v in parse_qs(dsn.query).items()}

        #: The dialect of the server.
        self.dialect = dialect

    @abstractmethod
    async def connect(self) -> 'BaseConnector':
        """
        Connects the current connector to the database server. This is called automatically by the
        :class:`.DatabaseInterface`.

        :return: The original BaseConnector instance.
        """

    @abstractmethod
    async def close(self):
        """
        Closes the current Connector.
        """

    @abstractmethod
    def get_transaction(self) -> BaseTransaction:
        """
        Gets a new transaction object for this connection.

        :return: A new :class:`~.BaseTransaction` object attached to this connection.
        """

    @abstractmethod
    def emit_param(self, name: str) -> str:
        """
        Emits a parameter that can be used as a substitute during a query.

        :param name: The name of the parameter.
        :return: A string that represents the substitute to be placed in the query.
        """


class DictRow(OrderedDict):
    """
    Represents a row returned from a base result set, in dict form.

    This class allows for accessing both via key and index.
    """
    def __getitem__(self, item):
        if isinstance(item, int):
            try:
                return list(self.values())[item]
            except IndexError:
                raise KeyError(item)

        return super().__getitem__(item)
