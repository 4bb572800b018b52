"""
The core code for the ORM.

.. currentmodule:: asyncentity.orm

.. autosummary::
    :toctree:

    schema

    metadata
    registry
    query
    sql
    tableinfo

"""
