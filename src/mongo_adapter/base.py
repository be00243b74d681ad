"""
Base adapter interface for data store operations.

Defines the abstract base class every data store adapter implements. The
framework works against this interface only: the standard CRUD coroutines
plus `configure_collection`. Remapping and option normalization are shared
here so concrete adapters only deal with their driver.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from mongo_adapter.entity import MongoEntity
from mongo_adapter.options import QueryOptions, normalize_options
from mongo_adapter.schema import CollectionConfig, make_collection_config
from mongo_adapter.schema import remap_input, remap_output

logger = logging.getLogger(__name__)

Query = Mapping[str, Any]
Options = QueryOptions | dict[str, Any] | None


class DataStoreAdapter(ABC):
    """Base class for data store adapters.

    States: `preparing` -> `ready` | `error`, and `ready` -> `disconnected`.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.state = 'preparing'
        self._collections: dict[str, CollectionConfig] = {}

    def configure_collection(self, table: str, remaps: Mapping[str, str] | None = None,
                             filters: Mapping[str, Mapping[str, Any]] | None = None) -> CollectionConfig:
        """Register field remaps and value converters for a collection.

        Calling again for the same table replaces the previous configuration.
        """
        config = make_collection_config(table, remaps, filters)
        self._collections[table] = config
        logger.debug(f'Configured collection {table} with remaps {dict(config.remaps)}')
        return config

    def collection_config(self, table: str) -> CollectionConfig:
        """Return the configuration for a table, or the defaults."""
        config = self._collections.get(table)
        if config is None:
            config = make_collection_config(table)
        return config

    def remap_input(self, table: str, mapping: Query | None) -> dict[str, Any]:
        return remap_input(self.collection_config(table), mapping)

    def remap_output(self, table: str, document: Query) -> MongoEntity:
        return remap_output(self.collection_config(table), document, data_source=self.name)

    @staticmethod
    def normalize_options(options: Options = None, **overrides: Any) -> QueryOptions:
        return normalize_options(options, **overrides)

    @abstractmethod
    async def insert_one(self, table: str, entity: Query,
                         options: Options = None) -> MongoEntity | None:
        """Insert a single entity and return it as stored.

        Args:
            table: Name of the collection to insert into
            entity: Field values of the entity
            options: Per-call options
        """

    async def insert_many(self, table: str, entities: list[Query],
                          options: Options = None) -> list[MongoEntity]:
        """Insert entities one after the other and return them as stored.

        Not atomic: an error leaves the earlier entities inserted.
        """
        inserted = []
        for entity in entities:
            inserted.append(await self.insert_one(table, entity, options))
        logger.debug(f'Inserted {len(inserted)} entities into {table}')
        return inserted

    @abstractmethod
    async def find_one(self, table: str, query: Query | None = None,
                       options: Options = None) -> MongoEntity | None:
        """Find the first entity matching the query, or None.
        """

    @abstractmethod
    async def find_many(self, table: str, query: Query | None = None,
                        options: Options = None) -> list[MongoEntity]:
        """Find all entities matching the query, or an empty list.
        """

    @abstractmethod
    async def update_one(self, table: str, query: Query | None, update: Query,
                         options: Options = None) -> MongoEntity | None:
        """Update the first entity matching the query and return it refreshed.
        """

    @abstractmethod
    async def update_many(self, table: str, query: Query | None, update: Query,
                          options: Options = None) -> list[MongoEntity]:
        """Update all entities matching the query and return them refreshed.
        """

    @abstractmethod
    async def delete_one(self, table: str, query: Query | None = None,
                         options: Options = None) -> None:
        """Delete the first entity matching the query.
        """

    @abstractmethod
    async def delete_many(self, table: str, query: Query | None = None,
                          options: Options = None) -> None:
        """Delete all entities matching the query.
        """
