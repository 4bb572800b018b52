"""
py.test configuration
"""
import os

import pytest

from asyncentity import DatabaseInterface
from asyncentity.backends.base import BaseTransaction
from asyncentity.backends.postgresql import PostgresqlDialect
from asyncentity.backends.sqlite3 import Sqlite3Dialect


class RecordingTransaction(object):
    """
    A stand-in transaction that records every statement instead of running it.

    Rows to return are queued in :attr:`results`, one list of rows per statement.
    """

    def __init__(self, dialect=None):
        self.dialect = dialect or PostgresqlDialect()
        self.statements = []
        self.results = []

    def emit_param(self, name: str) -> str:
        return ":{}".format(name)

    @property
    def sql(self) -> list:
        return [sql for sql, params in self.statements]

    async def fetch(self, sql: str, params: dict = None) -> list:
        self.statements.append((sql, params))
        if self.results:
            return self.results.pop(0)

        return []


class FakeTransaction(BaseTransaction):
    """
    A transaction that records its lifecycle events instead of talking to a server.
    """

    def __init__(self, connector):
        super().__init__(connector)
        self.events = []

    async def _begin(self):
        self.events.append("begin")

    async def _commit(self):
        self.events.append("commit")

    async def _rollback(self, checkpoint: str = None):
        self.events.append("rollback" if checkpoint is None else "rollback " + checkpoint)

    async def execute(self, sql, params=None):
        self.events.append(sql)

    async def cursor(self, sql, params=None):
        raise NotImplementedError

    async def close(self):
        self.events.append("close")


class FakeConnector(object):
    def __init__(self):
        self.transactions = []

    def get_transaction(self) -> FakeTransaction:
        tr = FakeTransaction(self)
        self.transactions.append(tr)
        return tr


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def recorder() -> RecordingTransaction:
    return RecordingTransaction()


@pytest.fixture
def sqlite_recorder() -> RecordingTransaction:
    return RecordingTransaction(Sqlite3Dialect())


@pytest.fixture
def dsn(tmp_path) -> str:
    return os.environ.get("ASYNCENTITY_DSN") or "sqlite3:///{}".format(tmp_path / "asyncentity.db")


@pytest.fixture
async def db(dsn: str) -> DatabaseInterface:
    iface = DatabaseInterface(dsn)
    await iface.connect()
    yield iface
    await iface.close()
