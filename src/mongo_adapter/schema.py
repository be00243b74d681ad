"""
Per-collection field remapping and value conversion.

Each collection has a `CollectionConfig` describing:
- remaps: framework field name -> store field name (always `id` -> `_id`)
- input converters keyed by framework field, applied to values going to the store
- output converters keyed by store field, applied to values coming back

Input converters are operator-aware: for a condition such as
`{'id': {'$in': [a, b]}}` the converter is applied to `a` and `b`.
"""
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from mongo_adapter.entity import MongoEntity
from mongo_adapter.exceptions import QueryError
from mongo_adapter.query import LOGICAL_OPERATORS, UNSET, is_operator_dict

__all__ = [
    'IDENTITY_FIELD',
    'NATIVE_IDENTITY_FIELD',
    'CollectionConfig',
    'make_collection_config',
    'to_object_id',
    'remap_input',
    'remap_output',
]

logger = logging.getLogger(__name__)

Converter = Callable[[Any], Any]

IDENTITY_FIELD = 'id'
NATIVE_IDENTITY_FIELD = '_id'

# Operators whose operand is not a field value
_LITERAL_OPERATORS = {'$exists', '$type', '$size', '$regex', '$options'}


def to_object_id(value: Any) -> ObjectId:
    """Convert an identity value to a native ObjectId.
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as err:
        raise QueryError(f'Invalid identity value {value!r}: {err}') from err


DEFAULT_REMAPS: Mapping[str, str] = MappingProxyType({IDENTITY_FIELD: NATIVE_IDENTITY_FIELD})
DEFAULT_INPUT: Mapping[str, Converter] = MappingProxyType({IDENTITY_FIELD: to_object_id})
DEFAULT_OUTPUT: Mapping[str, Converter] = MappingProxyType({NATIVE_IDENTITY_FIELD: str})


@dataclass(frozen=True)
class CollectionConfig:
    """Remapping and conversion rules for one collection.
    """
    table: str
    remaps: Mapping[str, str] = field(default_factory=lambda: DEFAULT_REMAPS)
    input: Mapping[str, Converter] = field(default_factory=lambda: DEFAULT_INPUT)
    output: Mapping[str, Converter] = field(default_factory=lambda: DEFAULT_OUTPUT)

    @property
    def reverse_remaps(self) -> dict[str, str]:
        """Store field name -> framework field name."""
        return {store: framework for framework, store in self.remaps.items()}


def make_collection_config(table: str, remaps: Mapping[str, str] | None = None,
                           filters: Mapping[str, Mapping[str, Converter]] | None = None) -> CollectionConfig:
    """Merge caller remaps and converters with the identity defaults.

    The identity remap always wins; caller converters override the defaults.
    """
    filters = filters or {}
    merged_remaps = {**(remaps or {}), **DEFAULT_REMAPS}
    merged_input = {**DEFAULT_INPUT, **filters.get('input', {})}
    merged_output = {**DEFAULT_OUTPUT, **filters.get('output', {})}
    return CollectionConfig(
        table=table,
        remaps=MappingProxyType(merged_remaps),
        input=MappingProxyType(merged_input),
        output=MappingProxyType(merged_output),
    )


def _convert_operand(converter: Converter, value: Any) -> Any:
    if value is None or value is UNSET:
        return value
    if is_operator_dict(value):
        converted = {}
        for op, operand in value.items():
            if op in _LITERAL_OPERATORS or operand is None or operand is UNSET:
                converted[op] = operand
            elif isinstance(operand, list | tuple):
                converted[op] = [_convert_operand(converter, v) for v in operand]
            else:
                converted[op] = _convert_operand(converter, operand)
        return converted
    return converter(value)


def remap_input(config: CollectionConfig, mapping: Mapping[str, Any] | None) -> dict[str, Any]:
    """Rename framework fields to store fields and apply input converters.
    """
    if not mapping:
        return {}

    remapped: dict[str, Any] = {}
    for key, value in mapping.items():
        if key in LOGICAL_OPERATORS and isinstance(value, list | tuple):
            remapped[key] = [remap_input(config, sub) for sub in value]
            continue
        if key.startswith('$'):
            remapped[key] = value
            continue
        converter = config.input.get(key)
        if converter is not None:
            value = _convert_operand(converter, value)
        remapped[config.remaps.get(key, key)] = value
    return remapped


def remap_output(config: CollectionConfig, document: Mapping[str, Any],
                 data_source: str | None = None) -> MongoEntity:
    """Apply output converters and rename store fields to framework fields.

    The entity records the name of the adapter it came from as `data_source`.
    """
    reverse = config.reverse_remaps
    entity = MongoEntity(data_source=data_source)
    for key, value in document.items():
        converter = config.output.get(key)
        if converter is not None and value is not None:
            value = converter(value)
        entity[reverse.get(key, key)] = value
    return entity
