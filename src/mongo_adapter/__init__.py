"""
MongoDB adapter for the data store adapter contract.

The adapter can be created directly:
- adapter = MongoAdapter({'database': 'app'}); await adapter.connect()
- adapter = await connect({'database': 'app'})

or through a registry:
- default_registry.create('mongo', {'database': 'app'})

All CRUD operations are coroutines: insert_one/insert_many, find_one/find_many,
update_one/update_many, delete_one/delete_many.
"""
__version__ = '0.1.0'

from mongo_adapter.adapter import MongoAdapter, connect
from mongo_adapter.base import DataStoreAdapter
from mongo_adapter.connection import build_connection_url, redact_url
from mongo_adapter.entity import MongoEntity
from mongo_adapter.exceptions import ConnectionFailure, DatabaseError
from mongo_adapter.exceptions import DbConnectionError, IntegrityError
from mongo_adapter.exceptions import NotFoundError, OperationalError
from mongo_adapter.exceptions import QueryError, ValidationError
from mongo_adapter.options import MongoOptions, QueryOptions
from mongo_adapter.query import UNSET, filter_update_unset, normalize_query
from mongo_adapter.registry import AdapterRegistry, autoregister_enabled
from mongo_adapter.registry import default_registry, get_adapter_registry

if autoregister_enabled():
    default_registry.register('mongo', MongoAdapter)

__all__ = [
    'connect',
    'MongoAdapter',
    'DataStoreAdapter',
    'MongoEntity',
    'MongoOptions',
    'QueryOptions',
    'UNSET',
    'normalize_query',
    'filter_update_unset',
    'build_connection_url',
    'redact_url',
    'AdapterRegistry',
    'default_registry',
    'get_adapter_registry',
    'DatabaseError',
    'ConnectionFailure',
    'QueryError',
    'ValidationError',
    'NotFoundError',
    'DbConnectionError',
    'IntegrityError',
    'OperationalError',
]
