"""
Tests comparing model metadata with the tables in the database.
"""
import pytest

from asyncentity import context
from asyncentity.db import DatabaseInterface
from asyncentity.exc import SchemaError, TransactionError
from asyncentity.orm.schema.column import Column
from asyncentity.orm.schema.model import model_base
from asyncentity.orm.schema.types import Integer, String
from asyncentity.orm.tableinfo import TableColumn, compare_columns, \
    compare_entity_metadata_with_table, get_table_column_type, get_table_columns

Model = model_base()


class Student(Model):
    name = Column(String(64), nullable=False)
    age = Column(Integer)


Model.metadata.build()

# the same table, declared differently
Narrow = model_base()


class NarrowStudent(Narrow, table_name="student"):
    name = Column(String(32), nullable=False)
    age = Column(Integer)


Narrow.metadata.build()

Partial = model_base()


class PartialStudent(Partial, table_name="student"):
    name = Column(String(64), nullable=False)


Partial.metadata.build()


def _information_schema_rows():
    return [
        {"name": "id", "type": "integer", "char_length": None,
         "default": "nextval('student_id_seq'::regclass)", "is_nullable": "NO"},
        {"name": "name", "type": "character varying", "char_length": 64, "default": None,
         "is_nullable": "NO"},
        {"name": "age", "type": "integer", "char_length": None, "default": None,
         "is_nullable": "YES"},
    ]


def test_describe_postgres(recorder):
    sql, params = Model.metadata.get_sql_entity(Student).describe(recorder)
    assert sql == (
        'SELECT "column_name" AS "name", "data_type" AS "type", '
        '"character_maximum_length" AS "char_length", "column_default" AS "default", '
        '"is_nullable" FROM "information_schema"."columns" '
        'WHERE "table_name" = :param_0 AND "table_schema" = :param_1 '
        'ORDER BY "ordinal_position";'
    )
    assert params == {"param_0": "student", "param_1": "public"}


def test_describe_sqlite(sqlite_recorder):
    sql, params = Model.metadata.get_sql_entity(Student).describe(sqlite_recorder)
    assert sql.startswith('SELECT "name", "type", NULL AS "char_length"')
    assert sql.endswith('FROM pragma_table_info(:param_0) ORDER BY "cid";')
    assert params == {"param_0": "student"}


@pytest.mark.parametrize("data_type, char_length, default, expected", [
    ("integer", None, "nextval('student_id_seq'::regclass)", "SERIAL"),
    ("integer", None, None, "INT"),
    ("bigint", None, "nextval('big_id_seq'::regclass)", "BIGSERIAL"),
    ("character varying", 64, None, "VARCHAR(64)"),
    ("character varying", None, None, "VARCHAR"),
    ("timestamp with time zone", None, None, "TIMESTAMP WITH TIME ZONE"),
    ("numeric", None, None, "NUMERIC"),
])
def test_information_schema_types(recorder, data_type, char_length, default, expected):
    column = TableColumn("x", data_type, char_length, default, "YES")
    assert get_table_column_type(recorder.dialect, column) == expected


def test_sqlite_types_are_declared_types(sqlite_recorder):
    column = TableColumn("x", "varchar(64)", None, None, "YES")
    assert get_table_column_type(sqlite_recorder.dialect, column) == "VARCHAR(64)"


async def test_get_table_columns(recorder):
    recorder.results.append(_information_schema_rows())
    with context.scope(transaction=recorder):
        columns = await get_table_columns(Student)

    assert [c.name for c in columns] == ["id", "name", "age"]
    assert columns[1] == TableColumn("name", "character varying", 64, None, "NO")


async def test_matching_table(recorder):
    recorder.results.append(_information_schema_rows())
    with context.scope(transaction=recorder):
        await compare_entity_metadata_with_table(Student)


async def test_type_mismatch(recorder):
    recorder.results.append(_information_schema_rows())
    with context.scope(transaction=recorder):
        assert not await compare_columns(NarrowStudent)


async def test_nullability_mismatch(recorder):
    rows = _information_schema_rows()
    rows[1]["is_nullable"] = "YES"
    recorder.results.append(rows)
    with context.scope(transaction=recorder):
        with pytest.raises(SchemaError, match="Columns do not match for Student"):
            await compare_entity_metadata_with_table(Student)


async def test_unknown_table_column(recorder):
    recorder.results.append(_information_schema_rows())
    with context.scope(transaction=recorder):
        with pytest.raises(SchemaError, match="Column age not found"):
            await compare_columns(PartialStudent)


async def test_missing_table_column(recorder):
    recorder.results.append(_information_schema_rows()[:2])
    with context.scope(transaction=recorder):
        assert not await compare_columns(Student)


async def test_missing_table(recorder):
    with context.scope(transaction=recorder):
        assert not await compare_columns(Student)


@pytest.fixture
async def student_db(db: DatabaseInterface):
    db.bind_models(Model)
    await db.sync()
    yield db
    await db.drop_all()


async def test_synced_table_matches(student_db: DatabaseInterface):
    async def work():
        await compare_entity_metadata_with_table(Student)
        return await compare_columns(NarrowStudent)

    assert await student_db.transaction(work) is False


async def test_synced_table_has_unknown_column(student_db: DatabaseInterface):
    async def work():
        await compare_columns(PartialStudent)

    with pytest.raises(TransactionError) as e:
        await student_db.transaction(work)

    assert isinstance(e.value.original, SchemaError)
