"""
Tests column types and column declarations.
"""
import pytest

from asyncentity.backends.postgresql import PostgresqlDialect
from asyncentity.backends.sqlite3 import Sqlite3Dialect
from asyncentity.exc import ColumnValidationError, UnresolvableColumnTypeError
from asyncentity.orm.schema.column import Column, DerivedColumn, ForeignKey, define_derived_column
from asyncentity.orm.schema.model import model_base
from asyncentity.orm.schema.types import BigInt, Boolean, Integer, Real, SmallInt, String, Text, \
    Timestamp, get_column_type


def test_string_size_is_limited():
    assert String(255).sql() == "VARCHAR(255)"
    assert String().sql() == "VARCHAR"
    with pytest.raises(ColumnValidationError):
        String(300)


@pytest.mark.parametrize("type_, sql", [
    (Integer, "INT"),
    (SmallInt, "SMALLINT"),
    (BigInt, "BIGINT"),
    (Real, "REAL"),
    (Boolean, "BOOLEAN"),
    (Text, "TEXT"),
    (Timestamp, "TIMESTAMP WITH TIME ZONE"),
])
def test_type_sql(type_, sql):
    assert Column(type_).data_type == sql


def test_autoincrement_integers_are_serial():
    assert Column(Integer, autoincrement=True).data_type == "SERIAL"
    assert Column(BigInt(), autoincrement=True).data_type == "BIGSERIAL"


def test_column_type_by_name():
    assert get_column_type("int") is Integer
    assert get_column_type("STRING") is String
    assert get_column_type("timestamp") is Timestamp
    assert get_column_type("geometry") is None

    assert Column("boolean").data_type == "BOOLEAN"
    assert isinstance(Column("text").type, Text)


def test_unresolvable_type():
    with pytest.raises(UnresolvableColumnTypeError):
        Column("geometry").type

    with pytest.raises(UnresolvableColumnTypeError):
        Column(None).type


def test_unresolvable_type_fails_at_declaration():
    Model = model_base()

    with pytest.raises(UnresolvableColumnTypeError):
        class Shape(Model):
            outline = Column("geometry")


def test_column_names_default_to_lower_case_property():
    Model = model_base()

    class Person(Model):
        FirstName = Column(String(32))
        last = Column(String(32), name="surname")

    assert Person.FirstName.name == "firstname"
    assert Person.FirstName.property == "FirstName"
    assert Person.FirstName.model is Person
    assert Person.last.name == "surname"
    assert Person.last.property == "last"


def test_column_flags():
    column = Column(String(32), nullable=False, unique=True, index=True)
    assert column.not_null
    assert column.unique
    assert column.indexed
    assert column.references is None


def test_foreign_key_policy():
    assert ForeignKey("school", on_delete="SET NULL").on_delete == "set null"
    with pytest.raises(ValueError):
        ForeignKey("school", on_delete="explode")


def test_sqlite_serial_is_integer():
    assert Sqlite3Dialect().transform_type("SERIAL") == "INTEGER"
    assert Sqlite3Dialect().transform_type("BIGSERIAL") == "INTEGER"
    assert Sqlite3Dialect().transform_type("VARCHAR(32)") == "VARCHAR(32)"
    assert PostgresqlDialect().transform_type("SERIAL") == "SERIAL"


def test_derived_column():
    Derived = model_base()

    class Programmer(Derived):
        first_name = Column(String(64))
        last_name = Column(String(64))

        @DerivedColumn
        def full_name(self):
            return "{} {}".format(self.first_name, self.last_name)

    programmer = Programmer(first_name="Joe", last_name="Bloggs", full_name="ignored")
    assert programmer.full_name == "Joe Bloggs"
    programmer.last_name = "Smith"
    assert programmer.full_name == "Joe Smith"

    with pytest.raises(AttributeError):
        programmer.full_name = "Jane"

    entity = Programmer.get_entity_metadata()
    assert entity.derived == {"full_name": Programmer.full_name}
    assert "full_name" not in entity.columns
    assert "full_name" not in programmer.get_dirty_data()
    assert programmer.to_json() == {"first_name": "Joe", "last_name": "Smith",
                                    "full_name": "Joe Smith"}


def test_define_derived_column_is_inherited():
    Derived = model_base()

    class Account(Derived):
        balance = Column(Integer)

    class Savings(Account):
        rate = Column(Integer)

    derived = define_derived_column(Account, "overdrawn", lambda account: account.balance < 0)
    assert derived.model is Account
    assert Account(balance=-5).overdrawn is True
    assert Savings(balance=5).overdrawn is False
    assert Savings.get_entity_metadata().derived == {"overdrawn": derived}

    Derived.metadata.build()
    table = Derived.metadata.get_sql_entity(Savings)
    assert "overdrawn" not in table
