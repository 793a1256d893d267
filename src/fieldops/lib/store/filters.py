"""In-process evaluation of Mongo-style query filters.

Supports the subset the access and migration layers produce: field
equality, ``$and``, ``$or``, and the field operators ``$eq``, ``$ne``,
``$in``, ``$exists`` and ``$type`` (``"string"`` / ``"number"``). Field
names may use dot notation.
"""

from collections.abc import Mapping
from typing import Any

_MISSING = object()


def _lookup(document: Mapping[str, Any], path: str) -> Any:
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _equals(actual: Any, expected: Any) -> bool:
    if actual is _MISSING:
        return expected is None
    # True == 1 in Python; documents keep them distinct.
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    if isinstance(actual, list) and not isinstance(expected, list):
        return any(_equals(item, expected) for item in actual)
    return actual == expected


def _type_matches(value: Any, type_name: str) -> bool:
    if value is _MISSING:
        return False
    if type_name == "string":
        return isinstance(value, str)
    if type_name == "number":
        return isinstance(value, int | float) and not isinstance(value, bool)
    if type_name == "null":
        return value is None
    msg = f"Unsupported $type: {type_name!r}"
    raise ValueError(msg)


def _match_operators(actual: Any, operators: Mapping[str, Any]) -> bool:
    for op, operand in operators.items():
        if op == "$eq":
            ok = _equals(actual, operand)
        elif op == "$ne":
            ok = not _equals(actual, operand)
        elif op == "$in":
            ok = any(_equals(actual, candidate) for candidate in operand)
        elif op == "$exists":
            ok = (actual is not _MISSING) == bool(operand)
        elif op == "$type":
            ok = _type_matches(actual, operand)
        else:
            msg = f"Unsupported filter operator: {op}"
            raise ValueError(msg)
        if not ok:
            return False
    return True


def _is_operator_mapping(value: Any) -> bool:
    return isinstance(value, Mapping) and bool(value) and all(str(k).startswith("$") for k in value)


def matches(document: Mapping[str, Any], filter: Mapping[str, Any] | None) -> bool:  # noqa: A002
    """Return True if the document satisfies the filter.

    Args:
        document: The document to test.
        filter: Mongo-style filter; None or empty matches everything.

    Raises:
        ValueError: If the filter uses an unsupported operator.
    """
    if not filter:
        return True
    for key, condition in filter.items():
        if key == "$and":
            if not all(matches(document, clause) for clause in condition):
                return False
        elif key == "$or":
            if not any(matches(document, clause) for clause in condition):
                return False
        elif key.startswith("$"):
            msg = f"Unsupported top-level operator: {key}"
            raise ValueError(msg)
        elif _is_operator_mapping(condition):
            if not _match_operators(_lookup(document, key), condition):
                return False
        elif not _equals(_lookup(document, key), condition):
            return False
    return True
