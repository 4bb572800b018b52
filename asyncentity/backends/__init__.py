"""
SQL driver backends for asyncentity.

.. currentmodule:: asyncentity.backends

.. autosummary::
    :toctree:

    postgresql
    sqlite3

"""
from pkgutil import extend_path

__path__ = extend_path(__path__, __name__)
