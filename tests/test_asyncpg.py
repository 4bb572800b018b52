"""
Tests the asyncpg parameter renumbering.
"""
from asyncentity.backends.postgresql.asyncpg import get_param_query


def test_params_are_numbered_in_emit_order():
    sql, args = get_param_query(
        'SELECT * FROM "person" WHERE "name" = {param_1} AND "age" > {param_0};',
        {"param_1": "Ann", "param_0": 30}
    )
    assert sql == 'SELECT * FROM "person" WHERE "name" = $1 AND "age" > $2;'
    assert args == ("Ann", 30)


def test_no_params_leaves_sql_untouched():
    assert get_param_query('SELECT "{weird}" FROM "t";', {}) == ('SELECT "{weird}" FROM "t";', ())


def test_braces_in_quoted_identifiers_survive():
    sql, args = get_param_query(
        'INSERT INTO "odd{table}" ("a{b}", "c}") VALUES ({param_0}, {param_1});',
        {"param_0": 1, "param_1": 2}
    )
    assert sql == 'INSERT INTO "odd{table}" ("a{b}", "c}") VALUES ($1, $2);'
    assert args == (1, 2)
