"""
Tests grouping joined rows.
"""
from asyncentity.utils import group_data


def test_empty_data_is_grouped():
    assert group_data([]) == []


def test_falsey_data_is_kept():
    given = [{"id": 1, "active": False, "child.id": 1, "child.active": False}]
    assert group_data(given) == [
        {"id": 1, "active": False, "child": [{"id": 1, "active": False}]}
    ]


def test_none_association_values_are_dropped():
    given = [{"id": 1, "active": None, "child.id": 1, "child.active": None}]
    assert group_data(given) == [{"id": 1, "active": None, "child": [{"id": 1}]}]


def test_unmatched_left_join_has_no_association():
    given = [{"id": 1, "name": "parent1", "child.id": None, "child.name": None}]
    assert group_data(given) == [{"id": 1, "name": "parent1"}]


def test_duplicated_children_collapse():
    given = [
        {"id": 1, "name": "parent1", "child.id": 1, "child.name": "child1"},
        {"id": 1, "name": "parent1", "child.id": 1, "child.name": "child1"},
        {"id": 1, "name": "parent1", "child.id": 2, "child.name": "child2"},
        {"id": 1, "name": "parent1", "child.id": 2, "child.name": "child2"},
    ]
    grouped = group_data(given)
    assert len(grouped) == 1
    assert grouped[0]["child"] == [{"id": 1, "name": "child1"}, {"id": 2, "name": "child2"}]


def test_data_is_grouped():
    given = [
        {"id": 1, "name": "parent1", "child.id": 1, "child.name": "child1"},
        {"id": 1, "name": "parent1", "child.id": 2, "child.name": "child2"},
        {"id": 2, "name": "parent2", "child.id": 1, "child.name": "child1"},
        {"id": 2, "name": "parent2", "child.id": 2, "child.name": "child2"},
        {"id": 1, "name": "parent1", "child.id": 3, "child.name": "child3",
         "child.grandchild.id": 1, "child.grandchild.name": "grandchild1"},
    ]
    assert group_data(given) == [
        {
            "id": 1, "name": "parent1",
            "child": [
                {"id": 1, "name": "child1"},
                {"id": 2, "name": "child2"},
                {"id": 3, "name": "child3",
                 "grandchild": [{"id": 1, "name": "grandchild1"}]},
            ],
        },
        {
            "id": 2, "name": "parent2",
            "child": [{"id": 1, "name": "child1"}, {"id": 2, "name": "child2"}],
        },
    ]


def test_input_is_not_mutated():
    given = [{"id": 1, "child.id": 1}]
    group_data(given)
    assert given == [{"id": 1, "child.id": 1}]
