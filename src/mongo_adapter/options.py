from dataclasses import dataclass, field, fields, replace
from typing import Any

from mongo_adapter.exceptions import ValidationError

from libb import ConfigOptions

__all__ = [
    'MongoOptions',
    'QueryOptions',
    'normalize_options',
    'DRIVER_OPTIONS',
]

# Per-call options forwarded to the driver; everything else is adapter-only
DRIVER_OPTIONS = ('skip', 'limit')


@dataclass
class MongoOptions(ConfigOptions):
    """Options

    `database` is required. `name` is the data source name written into each
    document's identity-hash. `client_options` is passed verbatim to the
    Motor client (e.g. `serverSelectionTimeoutMS`, `tls`).

    check_connection: ping the server on connect so that an unreachable
    server fails the connect call instead of the first operation (default: True)
    """
    hostname: str = 'localhost'
    port: int = 27017
    username: str = None
    password: str = field(default=None, repr=False)
    auth_source: str = None
    database: str = None
    name: str = 'mongo'
    check_connection: bool = True
    client_options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.database:
            raise ValidationError('Missing required string parameter "database".')
        if not self.hostname:
            raise ValidationError('field hostname cannot be None or empty')
        self.port = int(self.port)
        if self.password and not self.username:
            raise ValidationError('password given without username')
        self.client_options = dict(self.client_options or {})


@dataclass
class QueryOptions:
    """Per-call options for CRUD operations.

    `page` is converted to `skip` (page * limit) by `normalize_options`.
    `remap_input` controls field remapping, value converters and the
    set/unset split of updates; `remap_output` controls conversion of
    returned documents to entities.
    """
    skip: int | None = None
    limit: int | None = None
    page: int | None = None
    remap_input: bool = True
    remap_output: bool = True

    def driver_kwargs(self) -> dict[str, int]:
        """Return only the options the driver understands."""
        return {k: getattr(self, k) for k in DRIVER_OPTIONS if getattr(self, k) is not None}


def _check_non_negative_int(name: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'Expected "{name}" to be an integer, got {value!r}')
    if value < 0:
        raise ValidationError(f'Expected "{name}" to be >= 0, got {value}')


def normalize_options(options: 'QueryOptions | dict[str, Any] | None' = None,
                      **overrides: Any) -> QueryOptions:
    """Build a validated QueryOptions from a dataclass, a dict or keywords.

    Returns a new object; the caller's options are never mutated.
    """
    if options is None:
        options = QueryOptions()
    elif isinstance(options, dict):
        known = {f.name for f in fields(QueryOptions)}
        unknown = set(options) - known
        if unknown:
            raise ValidationError(f'Unknown query options: {sorted(unknown)}')
        options = QueryOptions(**options)
    options = replace(options, **overrides)

    for name in ('skip', 'limit', 'page'):
        _check_non_negative_int(name, getattr(options, name))

    if options.page is not None:
        if options.skip is not None:
            raise ValidationError('Use either "page" or "skip", not both')
        if options.limit is None:
            raise ValidationError('Usage of "page" requires "limit"')
        options = replace(options, skip=options.page * options.limit, page=None)

    return options
