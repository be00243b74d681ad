"""
Registry of adapter classes by label.

Registries are plain objects: a framework (or a test) can build its own and
register adapters explicitly. The package also keeps a default registry in
which `MongoAdapter` is registered as `'mongo'` on import, unless the
`AUTOLOAD_MONGO_ADAPTERS` environment variable is set.
"""
import logging
import os
from typing import Any

from mongo_adapter.base import DataStoreAdapter

__all__ = [
    'AdapterRegistry',
    'default_registry',
    'get_adapter_registry',
    'autoregister_enabled',
    'AUTOLOAD_ENV_VAR',
]

logger = logging.getLogger(__name__)

AUTOLOAD_ENV_VAR = 'AUTOLOAD_MONGO_ADAPTERS'


class AdapterRegistry:
    """Mapping of labels to adapter classes.
    """

    def __init__(self) -> None:
        self._adapters: dict[str, type[DataStoreAdapter]] = {}

    def __contains__(self, label: str) -> bool:
        return label in self._adapters

    def register(self, label: str, cls: type[DataStoreAdapter] | None = None):
        """Register an adapter class under a label.

        Usage:
            registry.register('mongo', MongoAdapter)

            @registry.register('mongo')
            class MongoAdapter(DataStoreAdapter):
                ...
        """
        def decorator(cls: type[DataStoreAdapter]) -> type[DataStoreAdapter]:
            if not (isinstance(cls, type) and issubclass(cls, DataStoreAdapter)):
                raise TypeError(f'{cls!r} is not a DataStoreAdapter subclass')
            if label in self._adapters and self._adapters[label] is not cls:
                logger.warning(f'Replacing adapter registered as {label}')
            self._adapters[label] = cls
            logger.debug(f'Registered adapter {cls.__name__} as {label}')
            return cls

        if cls is None:
            return decorator
        return decorator(cls)

    def unregister(self, label: str) -> None:
        self._adapters.pop(label, None)

    def get(self, label: str) -> type[DataStoreAdapter]:
        """Return the adapter class registered under a label."""
        if label not in self._adapters:
            raise KeyError(f'Unknown adapter: {label}. Available: {self.labels()}')
        return self._adapters[label]

    def create(self, label: str, options: Any, **kw: Any) -> DataStoreAdapter:
        """Instantiate the adapter registered under a label."""
        return self.get(label)(options, **kw)

    def labels(self) -> list[str]:
        """Return the registered labels."""
        return list(self._adapters.keys())


default_registry = AdapterRegistry()


def get_adapter_registry() -> AdapterRegistry:
    """Get the default adapter registry."""
    return default_registry


def autoregister_enabled() -> bool:
    """Check whether adapters should register themselves on import."""
    return not os.environ.get(AUTOLOAD_ENV_VAR)
