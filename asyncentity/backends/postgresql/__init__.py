"""
PostgreSQL backends.

.. currentmodule:: asyncentity.backends.postgresql

.. autosummary::
    :toctree:

    asyncpg
"""

# used for namespace packages
from pkgutil import extend_path

from asyncentity.backends.base import BaseDialect

__path__ = extend_path(__path__, __name__)


DEFAULT_CONNECTOR = "asyncpg"


class PostgresqlDialect(BaseDialect):
    """
    The dialect for Postgres.
    """

    @property
    def has_returns(self):
        return True

    @property
    def has_default(self):
        return True

    @property
    def has_schemas(self):
        return True

    @property
    def has_information_schema(self):
        return True
