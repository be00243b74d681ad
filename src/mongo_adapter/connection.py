"""
MongoDB connection utilities.

This module provides:
1. Connection URL generation from MongoOptions
2. Password redaction for anything that ends up in logs or error messages
3. Client creation and connection verification

URL format:

    mongodb://[user[:password]@]host:port/database[?authSource=value]

with every component percent-encoded.
"""
import logging
import re
from collections.abc import Callable
from typing import Any
from urllib.parse import quote_plus

from motor.motor_asyncio import AsyncIOMotorClient
from mongo_adapter.options import MongoOptions

__all__ = [
    'build_connection_url',
    'redact_url',
    'redact_text',
    'create_client',
    'ping',
]

logger = logging.getLogger(__name__)

REDACTED = '***'

_URL_PASSWORD = re.compile(r'^(?P<prefix>mongodb(?:\+srv)?://[^:/@]*):(?P<password>[^@]*)@')


def build_connection_url(options: MongoOptions) -> str:
    """Convert MongoOptions to a MongoDB connection URL.
    """
    auth = ''
    if options.username:
        auth = quote_plus(str(options.username))
        if options.password:
            auth += f':{quote_plus(str(options.password))}'
        auth += '@'

    host = quote_plus(str(options.hostname))
    database = quote_plus(str(options.database))
    url = f'mongodb://{auth}{host}:{options.port}/{database}'

    if options.auth_source:
        url += f'?authSource={quote_plus(str(options.auth_source))}'

    return url


def redact_url(url: str) -> str:
    """Replace the password component of a connection URL.
    """
    return _URL_PASSWORD.sub(rf'\g<prefix>:{REDACTED}@', url)


def redact_text(text: str, options: MongoOptions) -> str:
    """Remove the raw and percent-encoded password from arbitrary text.

    Driver error messages can echo the connection string back.
    """
    text = redact_url(text)
    if options.password:
        for secret in {str(options.password), quote_plus(str(options.password))}:
            text = text.replace(secret, REDACTED)
    return text


def create_client(options: MongoOptions,
                  client_factory: Callable[..., Any] = AsyncIOMotorClient) -> Any:
    """Create a driver client for the given options.

    Motor clients connect lazily; use `ping` to verify the server is reachable.
    """
    url = build_connection_url(options)
    logger.debug(f'Creating client for {redact_url(url)}')
    return client_factory(url, **options.client_options)


async def ping(client: Any) -> None:
    """Force server selection by issuing a `ping` command.
    """
    await client.admin.command('ping')
