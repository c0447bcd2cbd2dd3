"""Database wrapper with a mutable read preference."""

import logging
from typing import Any, Dict, Mapping, Optional, Sequence

from pymongo.database import Database as PymongoDatabase
from pymongo.read_preferences import _ServerMode

from querydispatch.driver.read_preference import describe, server_mode

logger = logging.getLogger(__name__)


class Database:
    """
    Wraps a pymongo database.

    pymongo databases carry an immutable read preference. This wrapper keeps
    its own, which can be swapped at any time and applies to every command
    run through :meth:`command`, including the group, mapReduce, distinct
    and geoNear operations of collections obtained from it.

    Example:
        >>> db = Database(MongoClient()["app"])
        >>> db.set_read_preference("secondary", [{"dc": "east"}])
        >>> db.get_read_preference()
        {'type': 'secondary', 'tagsets': [{'dc': 'east'}]}
    """

    def __init__(self, database: PymongoDatabase):
        self._database = database
        self._read_preference: _ServerMode = database.read_preference

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    @property
    def name(self) -> str:
        return self._database.name

    @property
    def read_preference(self) -> _ServerMode:
        return self._read_preference

    def get_pymongo_database(self) -> PymongoDatabase:
        return self._database

    def get_read_preference(self) -> Dict[str, Any]:
        return describe(self._read_preference)

    def set_read_preference(
        self, read_preference: Any, tags: Optional[Sequence[Mapping[str, Any]]] = None
    ) -> None:
        self._read_preference = server_mode(read_preference, tags)

    def command(self, command: Any, value: Any = 1, **kwargs: Any) -> Dict[str, Any]:
        """Run a database command under the current read preference."""
        logger.debug("Running %r on %s", command, self.name)
        return self._database.command(
            command, value, read_preference=self._read_preference, **kwargs
        )

    def get_collection(self, name: str):
        from querydispatch.driver.collection import Collection

        return Collection(self._database[name], database=self)

    __getitem__ = get_collection
