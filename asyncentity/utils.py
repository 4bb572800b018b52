"""
Miscellaneous utilities used throughout the library.
"""
import typing

SEPARATOR = "."


def group_data(rows: typing.Iterable[typing.Mapping[str, typing.Any]],
               separator: str = SEPARATOR) -> typing.List[dict]:
    """
    Groups flat, joined rows back into nested objects.

    Each row may contain keys in ``association.column`` format, as produced by a joined select.
    Rows sharing the same ``id`` are merged into one object, and each association becomes a list of
    its distinct (by ``id``) child objects.

    .. code-block:: python3

        rows = [
            {"id": 1, "name": "parent1", "child.id": 1, "child.name": "child1"},
            {"id": 1, "name": "parent1", "child.id": 2, "child.name": "child2"},
        ]
        group_data(rows)
        # [{"id": 1, "name": "parent1", "child": [{"id": 1, "name": "child1"},
        #                                         {"id": 2, "name": "child2"}]}]

    A dotted key with a value of ``None`` is dropped, so an association that matched nothing in a
    left join does not show up at all.

    :param rows: The rows to group.
    :param separator: The separator between association names and column names.
    :return: A list of nested dicts, one per distinct top-level ``id``.
    """
    grouped = {}
    for row in rows:
        _merge_into_group(grouped, _split_into_nested(row, separator))

    return _keyed_to_lists(grouped)


def _split_into_nested(row: typing.Mapping[str, typing.Any], separator: str) -> dict:
    """
    Converts a row with dotted keys into nested dicts.
    """
    nested = {}
    for key, value in row.items():
        if separator not in key:
            nested[key] = value
            continue

        if value is None:
            continue

        *path, last = key.split(separator)
        current = nested
        for part in path:
            current = current.setdefault(part, {})
        current[last] = value

    return nested


def _merge_into_group(group: dict, obb: dict):
    """
    Merges a nested object into a group keyed by ``id``, recursing into nested objects.
    """
    local = group.setdefault(obb.get("id"), {})
    for key, value in obb.items():
        if isinstance(value, dict):
            _merge_into_group(local.setdefault(key, {}), value)
        else:
            local[key] = value


def _keyed_to_lists(group: dict) -> typing.List[dict]:
    result = []
    for obb in group.values():
        for key, value in obb.items():
            if isinstance(value, dict):
                obb[key] = _keyed_to_lists(value)

        result.append(obb)

    return result
