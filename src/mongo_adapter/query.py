"""
Query and update translation for MongoDB.

This module provides:
1. `normalize_query` - convert operator-tagged conditions to native query syntax
2. `filter_update_unset` - split an update payload into `$set` / `$unset` groups
3. `strip_unset` - drop fields explicitly marked absent before an insert
4. `UNSET` - the sentinel marking a field as explicitly absent

Operator-tagged conditions use the framework's operator names:

    {'age': {'$greaterEqual': 30}, 'name': {'$diff': 'Bob'}}

which translate to

    {'age': {'$gte': 30}, 'name': {'$ne': 'Bob', '$exists': True}}
"""
import logging
from collections.abc import Mapping
from typing import Any

from mongo_adapter.exceptions import QueryError

__all__ = [
    'UNSET',
    'OPERATOR_MAP',
    'LOGICAL_OPERATORS',
    'is_operator_dict',
    'normalize_condition',
    'normalize_query',
    'filter_update_unset',
    'strip_unset',
]

logger = logging.getLogger(__name__)


class _Unset:
    """Marker for a field whose value is explicitly absent.

    Distinct from None, which MongoDB stores as null.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'UNSET'

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_Unset, ())


UNSET = _Unset()

OPERATOR_MAP = {
    '$equal': '$eq',
    '$less': '$lt',
    '$lessEqual': '$lte',
    '$greater': '$gt',
    '$greaterEqual': '$gte',
}

# Top-level operators whose operand is a list of sub-queries
LOGICAL_OPERATORS = ('$and', '$or', '$nor')


def is_operator_dict(value: Any) -> bool:
    """Check if a value is a mapping of `$`-prefixed operators.

    A mapping with plain keys is an embedded document, not a condition.
    """
    return (isinstance(value, Mapping) and len(value) > 0
            and all(isinstance(k, str) and k.startswith('$') for k in value))


def normalize_condition(value: Any) -> Any:
    """Translate a single field condition to native syntax.
    """
    if not is_operator_dict(value):
        value = {'$equal': value}

    native: dict[str, Any] = {}
    for op, operand in value.items():
        if op == '$equal' and operand is UNSET:
            native['$exists'] = False
        elif op == '$diff':
            if operand is UNSET:
                native['$exists'] = True
            else:
                native['$ne'] = operand
                native['$exists'] = True
        elif op in OPERATOR_MAP:
            if operand is UNSET:
                raise QueryError(f'Operator {op} cannot compare against UNSET')
            native[OPERATOR_MAP[op]] = operand
        else:
            native[op] = operand
    return native


def normalize_query(query: Mapping[str, Any] | None) -> dict[str, Any]:
    """Convert an operator-tagged query to MongoDB query syntax.

    Unknown operators pass through verbatim, so normalizing an already
    native query leaves it unchanged.
    """
    if not query:
        return {}

    normalized: dict[str, Any] = {}
    for key, value in query.items():
        if key in LOGICAL_OPERATORS:
            if not isinstance(value, list | tuple):
                raise QueryError(f'{key} expects a list of queries, got {type(value).__name__}')
            normalized[key] = [normalize_query(sub) for sub in value]
        elif key.startswith('$'):
            normalized[key] = value
        else:
            normalized[key] = normalize_condition(value)
    return normalized


def filter_update_unset(update: Mapping[str, Any] | None) -> dict[str, dict[str, Any]]:
    """Split an update payload into `$set` and `$unset` groups.

    Fields valued UNSET go to `$unset`; all others to `$set`. Empty groups
    are omitted. A payload made only of native update operators is returned
    as a copy.
    """
    if not update:
        return {}

    if is_operator_dict(update):
        return dict(update)

    to_set: dict[str, Any] = {}
    to_unset: dict[str, bool] = {}
    for key, value in update.items():
        if key.startswith('$'):
            raise QueryError(f'Cannot mix update operator {key} with field values')
        if value is UNSET:
            to_unset[key] = True
        else:
            to_set[key] = value

    native: dict[str, dict[str, Any]] = {}
    if to_unset:
        native['$unset'] = to_unset
    if to_set:
        native['$set'] = to_set
    logger.debug(f'Update split into {len(to_set)} set / {len(to_unset)} unset fields')
    return native


def strip_unset(entity: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of an entity without UNSET fields.
    """
    return {k: v for k, v in entity.items() if v is not UNSET}
