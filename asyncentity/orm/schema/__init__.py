"""
Code for ORM schema objects.

.. currentmodule:: asyncentity.orm.schema

.. autosummary::
    :toctree:

    model
    column
    association
    attribute

    types

"""
