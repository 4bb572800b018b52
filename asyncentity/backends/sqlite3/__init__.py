"""
SQLite3 backends.

.. autosummary::
    :toctree:

    aiosqlite
"""

from pkgutil import extend_path

from asyncentity.backends.base import BaseDialect

__path__ = extend_path(__path__, __name__)

DEFAULT_CONNECTOR = "aiosqlite"


class Sqlite3Dialect(BaseDialect):
    """
    The dialect for SQLite3.
    """

    @property
    def has_returns(self):
        # RETURNING is available from SQLite 3.35
        return True

    @property
    def has_default(self):
        return False

    @property
    def has_schemas(self):
        return False

    def transform_type(self, data_type: str) -> str:
        # an INTEGER PRIMARY KEY is an alias for the rowid, which auto-increments
        if data_type in ("SERIAL", "BIGSERIAL"):
            return "INTEGER"

        return data_type
