"""
Entity rows returned by the adapter.
"""
import copy
from typing import Any

from libb import attrdict

__all__ = ['MongoEntity', 'ID_HASH_FIELD']

ID_HASH_FIELD = 'idHash'


class MongoEntity(attrdict):
    """A document in framework shape, with attribute access to its fields.

    `data_source` names the adapter that produced the entity. It is kept
    outside the mapping, so it never reaches the store or equality checks.
    The adapter keeps no reference to returned entities.
    """

    __slots__ = ('_data_source',)

    def __init__(self, *args: Any, data_source: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        object.__setattr__(self, '_data_source', data_source)

    @property
    def data_source(self) -> str | None:
        return self._data_source

    def __reduce__(self):
        return _rebuild_entity, (dict(self), self._data_source)

    def __reduce_ex__(self, protocol):
        return self.__reduce__()

    def __copy__(self):
        return MongoEntity(self, data_source=self._data_source)

    def __deepcopy__(self, memo):
        return MongoEntity(copy.deepcopy(dict(self), memo), data_source=self._data_source)

    @property
    def id_hash(self) -> dict[str, Any]:
        """Mapping of data source name to that source's identity value."""
        return dict(self.get(ID_HASH_FIELD) or {})

    def identity_for(self, source_name: str) -> Any | None:
        """Return the identity this entity has in the named data source."""
        return self.id_hash.get(source_name)


def _rebuild_entity(data: dict[str, Any], data_source: str | None) -> MongoEntity:
    return MongoEntity(data, data_source=data_source)
