"""
Lazy find cursor over a pymongo collection.

A ``Cursor`` only records its configuration until it is iterated. The first
iteration builds a pymongo cursor from the recorded options; from then on the
configuration is frozen, as with pymongo itself:

    cursor = collection.find({"status": "active"})
    cursor.sort({"created": -1}).skip(20).limit(10)     # recorded
    for doc in cursor:                                   # pymongo find() runs here
        ...
    cursor.limit(5)                                      # InvalidOperation

``rewind()`` discards the running pymongo cursor so the query can be
reconfigured and executed again. ``count()`` and ``get_single_result()`` run
their own commands and never disturb iteration.
"""

import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from pymongo.collection import Collection as PymongoCollection
from pymongo.cursor import Cursor as PymongoCursor
from pymongo.errors import InvalidOperation
from pymongo.read_preferences import ReadPreference, _ServerMode

from querydispatch.driver.read_preference import describe, server_mode

logger = logging.getLogger(__name__)

IndexSpec = Union[str, List[Tuple[str, Any]]]


def index_spec(fields: Any) -> Optional[IndexSpec]:
    """
    Normalize a sort or hint specification for pymongo.

    Mappings keep their key order; index names and pair lists pass through.
    """
    if fields is None:
        return None
    if isinstance(fields, Mapping):
        return list(fields.items())
    if isinstance(fields, str):
        return fields
    return [tuple(pair) for pair in fields]


def sort_spec(fields: Any) -> Optional[List[Tuple[str, Any]]]:
    """Like index_spec, but a bare field name sorts ascending on that field."""
    if isinstance(fields, str):
        return [(fields, 1)]
    return index_spec(fields)


class Cursor:
    """
    Find cursor with deferred execution.

    Args:
        collection: pymongo collection to query
        query: Filter document
        fields: Projection; empty or None returns whole documents
        read_preference: Initial read preference; defaults to the collection's
    """

    def __init__(
        self,
        collection: PymongoCollection,
        query: Optional[Mapping[str, Any]] = None,
        fields: Optional[Mapping[str, Any]] = None,
        read_preference: Optional[_ServerMode] = None,
    ):
        self._collection = collection
        self._query: Dict[str, Any] = dict(query or {})
        self._fields: Optional[Dict[str, Any]] = dict(fields) if fields else None
        if read_preference is None:
            read_preference = collection.read_preference
        self._read_preference = read_preference
        self._hint: Optional[IndexSpec] = None
        self._immortal = False
        self._limit = 0
        self._skip = 0
        self._sort: Optional[List[Tuple[str, Any]]] = None
        self._snapshot = False
        self._cursor: Optional[PymongoCursor] = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._collection.full_name} {self._query!r}>"

    def _check_not_started(self) -> None:
        if self._cursor is not None:
            raise InvalidOperation("cannot set options after executing query")

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def set_read_preference(
        self, read_preference: Any, tags: Optional[Sequence[Mapping[str, Any]]] = None
    ) -> "Cursor":
        self._check_not_started()
        self._read_preference = server_mode(read_preference, tags)
        return self

    def hint(self, index: Any) -> "Cursor":
        self._check_not_started()
        self._hint = index_spec(index)
        return self

    def immortal(self, immortal: bool = True) -> "Cursor":
        """Disable the server's idle cursor timeout."""
        self._check_not_started()
        self._immortal = bool(immortal)
        return self

    def limit(self, limit: int) -> "Cursor":
        self._check_not_started()
        self._limit = int(limit)
        return self

    def skip(self, skip: int) -> "Cursor":
        self._check_not_started()
        self._skip = int(skip)
        return self

    def slave_okay(self, ok: bool = True) -> "Cursor":
        """
        Allow or forbid reads from secondaries.

        Allowing relaxes a primary read preference to secondaryPreferred;
        forbidding resets it to primary. Any other mode is left alone when
        allowing.
        """
        self._check_not_started()
        if not ok:
            self._read_preference = ReadPreference.PRIMARY
        elif self._read_preference.mongos_mode == "primary":
            self._read_preference = ReadPreference.SECONDARY_PREFERRED
        return self

    def sort(self, fields: Any) -> "Cursor":
        self._check_not_started()
        self._sort = sort_spec(fields)
        return self

    def snapshot(self) -> "Cursor":
        """
        Isolate the query from concurrent writes moving documents.

        Traverses the ``_id`` index unless another hint was given.
        """
        self._check_not_started()
        self._snapshot = True
        return self

    def rewind(self) -> "Cursor":
        """Discard the running query so the cursor can be reconfigured."""
        if self._cursor is not None:
            self._cursor.close()
        self._cursor = None
        return self

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def _effective_hint(self) -> Optional[IndexSpec]:
        if self._hint is None and self._snapshot:
            return [("_id", 1)]
        return self._hint

    def _reader(self) -> PymongoCollection:
        return self._collection.with_options(read_preference=self._read_preference)

    def _build(self, limit: Optional[int] = None) -> PymongoCursor:
        return self._reader().find(
            self._query,
            self._fields,
            skip=self._skip,
            limit=self._limit if limit is None else limit,
            sort=self._sort,
            hint=self._effective_hint(),
            no_cursor_timeout=self._immortal,
        )

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        # An exhausted pymongo cursor yields nothing; run the query again
        if self._cursor is None or not self._cursor.alive:
            logger.debug("Running find on %s: %r", self._collection.full_name, self._query)
            self._cursor = self._build()
        return iter(self._cursor)

    def count(self, found_only: bool = False) -> int:
        """
        Count matching documents.

        Args:
            found_only: Apply this cursor's skip and limit to the count
        """
        kwargs: Dict[str, Any] = {}
        if found_only:
            if self._skip:
                kwargs["skip"] = self._skip
            if self._limit:
                kwargs["limit"] = self._limit
        hint = self._effective_hint()
        if hint is not None:
            kwargs["hint"] = hint
        return self._reader().count_documents(self._query, **kwargs)

    def to_list(self) -> List[Dict[str, Any]]:
        """
        Run the query from the start and return every document.

        Uses a separate pymongo cursor, so an iteration in progress over this
        cursor is not disturbed.
        """
        return list(self._build())

    def get_single_result(self) -> Optional[Dict[str, Any]]:
        """Return the first document without consuming this cursor."""
        for document in self._build(limit=1):
            return document
        return None

    def info(self) -> Dict[str, Any]:
        """Describe the recorded configuration."""
        return {
            "ns": self._collection.full_name,
            "query": self._query,
            "fields": self._fields,
            "limit": self._limit,
            "skip": self._skip,
            "sort": self._sort,
            "hint": self._hint,
            "immortal": self._immortal,
            "snapshot": self._snapshot,
            "read_preference": describe(self._read_preference),
            "started_iterating": self._cursor is not None,
        }
