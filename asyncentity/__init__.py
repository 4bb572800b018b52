"""
Main package for asyncentity - an asyncio ORM with ambient transactions.

.. currentmodule:: asyncentity

.. autosummary::
    :toctree:

    db
    orm
    backends

    context
    transaction
    middleware
    exc
    meta
    utils
"""

__status__ = "Development"

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version(__name__)
except PackageNotFoundError:
    # package is not installed
    pass

from asyncentity.backends.base import BaseConnector, BaseDialect, BaseResultSet, BaseTransaction
# import helpers
from asyncentity.db import DatabaseInterface, end, get_interface, init, sync, transaction
from asyncentity.exc import *
# orm
from asyncentity.orm.metadata import EntityMetadata, MetadataRegistry
from asyncentity.orm.query import QueryEngine, query
from asyncentity.orm.registry import ModelRegistry
from asyncentity.orm.schema.association import ManyToMany, ManyToOne, OneToOne, \
    define_many_to_many, define_many_to_one, define_one_to_one
from asyncentity.orm.schema.attribute import Attribute
from asyncentity.orm.schema.column import Column, DerivedColumn, ForeignKey, define_derived_column
from asyncentity.orm.schema.model import BaseModel, model_base
from asyncentity.orm.schema.types import BigInt, Boolean, ColumnType, Integer, Real, SmallInt, \
    String, Text, Timestamp, get_column_type  # int types; misc; string types; dt types
from asyncentity.orm.tableinfo import compare_columns, compare_entity_metadata_with_table, \
    get_table_columns
from asyncentity.transaction import ResponseLifecycle, get_transaction, \
    start_response_managed_transaction, start_transaction
from asyncentity.utils import group_data
