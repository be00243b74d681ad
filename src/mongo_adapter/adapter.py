"""
MongoDB data store adapter.

This module provides:
1. The `MongoAdapter` class implementing the CRUD coroutines against Motor
2. The `connect()` function for creating a connected adapter

Every operation is a short pipeline:

    remap input -> translate query / split update -> driver call -> remap output

Updates have no atomic update-and-return at the driver calls used, so they
resolve the target ids with a find, update by id, then find again. Inserts
stamp the identity-hash with a second update. Neither sequence is atomic
against concurrent writers, and a failure between the steps is not
compensated.
"""
import asyncio
import logging
from collections.abc import Callable
from dataclasses import fields, replace
from typing import Any, Self

from motor.motor_asyncio import AsyncIOMotorClient
from mongo_adapter.base import DataStoreAdapter, Options, Query
from mongo_adapter.connection import build_connection_url, create_client, ping
from mongo_adapter.connection import redact_text, redact_url
from mongo_adapter.entity import ID_HASH_FIELD, MongoEntity
from mongo_adapter.exceptions import ConnectionFailure, NotFoundError, QueryError
from mongo_adapter.options import MongoOptions, QueryOptions
from mongo_adapter.query import filter_update_unset, normalize_query, strip_unset
from mongo_adapter.schema import NATIVE_IDENTITY_FIELD
from pymongo.errors import PyMongoError

from libb import load_options

__all__ = ['MongoAdapter', 'connect']

logger = logging.getLogger(__name__)

# Sub-calls work on native documents
RAW = QueryOptions(remap_input=False, remap_output=False)


class MongoAdapter(DataStoreAdapter):
    """Data store adapter for MongoDB.

    Construction validates the options and touches no network. Call
    `await adapter.connect()` (or use `async with`) before any operation.
    One client is shared by all operations of the adapter; there is no
    adapter-level locking.
    """

    def __init__(self, options: MongoOptions | dict[str, Any],
                 client_factory: Callable[..., Any] | None = None, **kw: Any) -> None:
        if not isinstance(options, MongoOptions):
            options = MongoOptions(**{**dict(options or {}), **kw})
        elif kw:
            options = replace(options, **kw)
        super().__init__(options.name)
        self.options = options
        self.client = None
        self.db = None
        self._client_factory = client_factory
        self._connect_task: asyncio.Future | None = None
        logger.debug(f'Adapter {self.name} prepared for {self.url}')

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.name!r} {self.url} state={self.state}>'

    async def __aenter__(self) -> Self:
        return await self.connect()

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None,
                        exc_tb: Any | None) -> None:
        self.close()

    @property
    def url(self) -> str:
        """Connection URL with the password redacted."""
        return redact_url(build_connection_url(self.options))

    async def connect(self) -> Self:
        """Open the client and verify the server is reachable.

        Concurrent callers share one attempt. A failed attempt is final:
        every later call raises the same ConnectionFailure.
        """
        if self.state == 'disconnected':
            raise ConnectionFailure(f'Adapter {self.name} is closed')
        if self._connect_task is None:
            self._connect_task = asyncio.ensure_future(self._open())
        await self._connect_task
        return self

    async def wait_ready(self) -> Self:
        """Wait for a pending connect() to finish.
        """
        if self.state == 'disconnected':
            raise ConnectionFailure(f'Adapter {self.name} is closed')
        if self._connect_task is None:
            raise ConnectionFailure(f'Adapter {self.name} has not been connected')
        await self._connect_task
        return self

    async def _open(self) -> None:
        client = None
        try:
            client = create_client(self.options, self._client_factory or AsyncIOMotorClient)
            if self.options.check_connection:
                await ping(client)
        except PyMongoError as err:
            self.state = 'error'
            if client is not None:
                client.close()
            message = redact_text(str(err), self.options)
            logger.error(f'Connection to {self.url} failed: {message}')
            raise ConnectionFailure(f'Could not connect to {self.url}: {message}') from err

        if self.state == 'disconnected':
            client.close()
            raise ConnectionFailure(f'Adapter {self.name} was closed while connecting')

        self.client = client
        self.db = client[self.options.database]
        self.state = 'ready'
        logger.info(f'Adapter {self.name} connected to {self.url}')

    def close(self) -> None:
        """Close the client and release the database handle.
        """
        if self.client is not None:
            self.client.close()
            logger.info(f'Adapter {self.name} disconnected from {self.url}')
        self.client = None
        self.db = None
        self.state = 'disconnected'

    def collection(self, table: str) -> Any:
        """Return the driver collection for a table.
        """
        if self.state != 'ready':
            raise ConnectionFailure(f'Adapter {self.name} is not ready (state: {self.state})')
        return self.db[table]

    async def insert_one(self, table: str, entity: Query,
                         options: Options = None) -> MongoEntity | None:
        """Insert an entity, then stamp this adapter's id into its identity-hash.

        Returns the refreshed entity. If the stamping update fails, the
        inserted document stays without the stamp.
        """
        options = self.normalize_options(options)
        document = strip_unset(entity)
        if options.remap_input:
            document = self.remap_input(table, document)

        result = await self.collection(table).insert_one(document)
        new_id = result.inserted_id
        logger.debug(f'Inserted document {new_id} into {table}')

        id_hash = {**(document.get(ID_HASH_FIELD) or {}), self.name: str(new_id)}
        return await self.update_one(
            table,
            {NATIVE_IDENTITY_FIELD: new_id},
            {'$set': {ID_HASH_FIELD: id_hash}},
            replace(RAW, remap_output=options.remap_output),
        )

    async def find_one(self, table: str, query: Query | None = None,
                       options: Options = None) -> MongoEntity | dict[str, Any] | None:
        """Find the first matching document.

        Returns None when nothing matches.
        """
        options = self.normalize_options(options)
        if options.remap_input:
            query = self.remap_input(table, query)
        query = normalize_query(query)

        document = await self.collection(table).find_one(query, **options.driver_kwargs())
        if document is None:
            logger.debug(f'No document in {table} matches {query}')
            return None
        if options.remap_output:
            return self.remap_output(table, document)
        return document

    async def find_many(self, table: str, query: Query | None = None,
                        options: Options = None) -> list[MongoEntity | dict[str, Any]]:
        """Find all matching documents, honoring skip and limit.
        """
        options = self.normalize_options(options)
        if options.remap_input:
            query = self.remap_input(table, query)
        query = normalize_query(query)

        cursor = self.collection(table).find(query, **options.driver_kwargs())
        documents = await cursor.to_list(length=None)
        logger.debug(f'Found {len(documents)} documents in {table}')
        if options.remap_output:
            return [self.remap_output(table, document) for document in documents]
        return documents

    def _prepare_update(self, table: str, query: Query | None, update: Query,
                        options: QueryOptions) -> tuple[dict[str, Any], dict[str, Any]]:
        if options.remap_input:
            query = self.remap_input(table, query)
            update = filter_update_unset(self.remap_input(table, update))
        if not update:
            raise QueryError(f'Empty update for {table}')
        return normalize_query(query), dict(update)

    async def update_one(self, table: str, query: Query | None, update: Query,
                         options: Options = None) -> MongoEntity | dict[str, Any] | None:
        """Update the first matching document and return it refreshed.

        Raises NotFoundError when nothing matches.
        """
        options = self.normalize_options(options)
        query, update = self._prepare_update(table, query, update, options)

        found = await self.find_one(table, query, replace(options, remap_input=False, remap_output=False))
        if found is None:
            raise NotFoundError(f'No document in {table} matches {query}')
        target_id = found[NATIVE_IDENTITY_FIELD]

        await self.collection(table).update_one({NATIVE_IDENTITY_FIELD: target_id}, update)
        logger.debug(f'Updated document {target_id} in {table}')

        return await self.find_one(
            table,
            {NATIVE_IDENTITY_FIELD: target_id},
            replace(RAW, remap_output=options.remap_output),
        )

    async def update_many(self, table: str, query: Query | None, update: Query,
                          options: Options = None) -> list[MongoEntity | dict[str, Any]]:
        """Update every matching document, one id at a time.

        Returns the refreshed documents. An error partway through leaves the
        earlier documents updated.
        """
        options = self.normalize_options(options)
        query, update = self._prepare_update(table, query, update, options)

        found = await self.find_many(table, query, replace(options, remap_input=False, remap_output=False))
        target_ids = [document[NATIVE_IDENTITY_FIELD] for document in found]
        if not target_ids:
            logger.debug(f'No document in {table} matches {query}')
            return []

        collection = self.collection(table)
        for target_id in target_ids:
            await collection.update_one({NATIVE_IDENTITY_FIELD: target_id}, update)
        logger.debug(f'Updated {len(target_ids)} documents in {table}')

        return await self.find_many(
            table,
            {NATIVE_IDENTITY_FIELD: {'$in': target_ids}},
            replace(RAW, remap_output=options.remap_output),
        )

    async def delete_one(self, table: str, query: Query | None = None,
                         options: Options = None) -> None:
        """Delete the first matching document.
        """
        options = self.normalize_options(options)
        if options.remap_input:
            query = self.remap_input(table, query)
        query = normalize_query(query)

        result = await self.collection(table).delete_one(query)
        logger.debug(f'Deleted {result.deleted_count} document from {table}')

    async def delete_many(self, table: str, query: Query | None = None,
                          options: Options = None) -> None:
        """Delete exactly the documents a find with the same query matches.

        Ids are resolved first, then deleted by id.
        """
        options = self.normalize_options(options)
        if options.remap_input:
            query = self.remap_input(table, query)
        query = normalize_query(query)

        found = await self.find_many(table, query, replace(options, remap_input=False, remap_output=False))
        target_ids = [document[NATIVE_IDENTITY_FIELD] for document in found]
        if not target_ids:
            logger.debug(f'No document in {table} matches {query}')
            return

        result = await self.collection(table).delete_many({NATIVE_IDENTITY_FIELD: {'$in': target_ids}})
        logger.debug(f'Deleted {result.deleted_count} documents from {table}')


@load_options(cls=MongoOptions)
async def connect(options: MongoOptions | dict[str, Any] | str,
                  config: Any | None = None, **kw: Any) -> MongoAdapter:
    """Create a MongoAdapter and connect it

    Args:
        options: Can be:
                - MongoOptions object
                - Name of a setting in the config object
                - Dictionary of options
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        Connected MongoAdapter
    """
    if isinstance(options, MongoOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=MongoOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    adapter = MongoAdapter(options)
    return await adapter.connect()
