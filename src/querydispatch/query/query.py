"""
Query execution for builder-produced descriptors.

================================================================================
DATA FLOW - DESCRIPTOR TO RESULT
================================================================================

    descriptor + options
          |
          v
    type dispatch (one handler per QueryType)
          |
          v
    collection call  ----(GROUP, MAP_REDUCE, DISTINCT, GEO_NEAR)---->  read
          |                                                        preference
          |          ----(COUNT)------------------------------------>  swapped on
          v                                                        database /
    cursor post-processing (FIND, cursor-shaped MAP_REDUCE)          collection
          |
          v
    result: Cursor | EagerCursor | ArrayIterator | status dict | bool | int

The options bag given to the constructor is never modified: each execution
starts from a fresh copy and merges descriptor-derived keys into it.

EXAMPLE:
--------------------------------------------------------------------------------

    query = Query(collection, {
        "type": QueryType.FIND_AND_UPDATE,
        "query": {"_id": 1},
        "new_obj": {"$set": {"x": 2}},
        "new": True,
    }, {"w": 1})

    query.execute()
    -> collection.find_and_update({"_id": 1}, {"$set": {"x": 2}}, {"w": 1, "new": True})

ITERATOR RESULTS
--------------------------------------------------------------------------------

FIND, GROUP, MAP_REDUCE, DISTINCT and GEO_NEAR produce iterable results.
``get_iterator()`` executes once and caches the result; ``count()``,
``to_list()``, ``get_single_result()`` and iteration over the Query all read
from that cached iterator. Asking any other kind for an iterator raises
UnsupportedOperationError without touching the database.
================================================================================
"""

import logging
import threading
import warnings
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from querydispatch.constants import (
    CURSOR_OPTION_KEYS,
    FIND_AND_REMOVE_OPTION_KEYS,
    FIND_AND_UPDATE_OPTION_KEYS,
    ITERATOR_TYPES,
    UPDATE_OPTION_KEYS,
    QueryType,
)
from querydispatch.exceptions import UnexpectedResultError, UnsupportedOperationError
from querydispatch.protocols import Collection, Cursor, ResultIterator
from querydispatch.query.descriptors import BaseDescriptor, coerce_query_type
from querydispatch.query.options import merge_options, query_options
from querydispatch.query.read_preference import read_preference_override

logger = logging.getLogger(__name__)

EagerCursorFactory = Callable[[Cursor], ResultIterator]


def _default_eager_cursor(cursor: Cursor) -> ResultIterator:
    from querydispatch.driver.iterators import EagerCursor

    return EagerCursor(cursor)


class Query:
    """
    Executes one query descriptor against a collection.

    Example:
        >>> query = Query(collection, {"type": QueryType.FIND, "query": {"a": 1}, "limit": 5})
        >>> for doc in query:
        ...     print(doc)
        >>> query.count()
    """

    _HANDLERS: Dict[QueryType, str] = {
        QueryType.FIND: "_execute_find",
        QueryType.FIND_AND_UPDATE: "_execute_find_and_update",
        QueryType.FIND_AND_REMOVE: "_execute_find_and_remove",
        QueryType.INSERT: "_execute_insert",
        QueryType.UPDATE: "_execute_update",
        QueryType.REMOVE: "_execute_remove",
        QueryType.GROUP: "_execute_group",
        QueryType.MAP_REDUCE: "_execute_map_reduce",
        QueryType.DISTINCT: "_execute_distinct",
        QueryType.GEO_NEAR: "_execute_geo_near",
        QueryType.COUNT: "_execute_count",
    }

    def __init__(
        self,
        collection: Collection,
        query: Union[Mapping[str, Any], BaseDescriptor],
        options: Optional[Mapping[str, Any]] = None,
        eager_cursor_factory: Optional[EagerCursorFactory] = None,
    ):
        """
        Args:
            collection: Collection the query runs against
            query: Descriptor mapping from the query builder, or a typed
                descriptor from ``querydispatch.query.descriptors``
            options: Driver options passed to every call (write concern, ...)
            eager_cursor_factory: Wraps cursors of queries with
                ``eager_cursor`` set; defaults to the driver's EagerCursor

        Raises:
            InvalidDescriptorError: ``query["type"]`` is not a known QueryType
        """
        if isinstance(query, BaseDescriptor):
            query = query.to_dict()

        descriptor = dict(query)
        descriptor["type"] = coerce_query_type(descriptor.get("type"))

        self.collection = collection
        self.query: Mapping[str, Any] = MappingProxyType(descriptor)
        self.options: Mapping[str, Any] = MappingProxyType(dict(options or {}))
        self._eager_cursor_factory = eager_cursor_factory or _default_eager_cursor
        self._iterator: Optional[ResultIterator] = None
        self._iterator_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.get_type().name} on {self.collection!r}>"

    def __iter__(self) -> Iterator[Any]:
        return iter(self.get_iterator())

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_query(self) -> Mapping[str, Any]:
        """Return the descriptor."""
        return self.query

    def get_type(self) -> QueryType:
        return self.query["type"]

    def debug(self, name: Optional[str] = None) -> Any:
        """
        Return the descriptor, or one of its keys when ``name`` is given.

        Raises:
            KeyError: ``name`` is not in the descriptor
        """
        return self.query[name] if name is not None else self.query

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def execute(self) -> Any:
        """
        Execute the query and return its result.

        Finds return a cursor (an EagerCursor when ``eager_cursor`` is set).
        Group, distinct, geoNear and inline mapReduce return the driver's
        command result iterator; mapReduce into a collection returns a cursor
        over that collection. Writes return whatever the driver reports for
        the write concern, typically a status dict or a bool. Count returns
        an int.
        """
        query_type = self.get_type()
        logger.debug("Executing %s query on %r", query_type.name, self.collection)
        handler = getattr(self, self._HANDLERS[query_type])
        return handler(dict(self.options))

    def get_iterator(self) -> ResultIterator:
        """
        Execute the query once and return its iterator.

        Raises:
            UnsupportedOperationError: the query type never yields an iterator;
                raised before anything is executed
            UnexpectedResultError: execution returned something else
        """
        query_type = self.get_type()
        if query_type not in ITERATOR_TYPES:
            raise UnsupportedOperationError(query_type)

        if self._iterator is None:
            with self._iterator_lock:
                if self._iterator is None:
                    result = self.execute()
                    if not isinstance(result, ResultIterator):
                        raise UnexpectedResultError(result)
                    self._iterator = result

        return self._iterator

    def iterate(self) -> ResultIterator:
        """Alias of :meth:`get_iterator`."""
        warnings.warn(
            "Query.iterate() is deprecated, use Query.get_iterator()",
            DeprecationWarning,
            stacklevel=2,
        )
        return self.get_iterator()

    def count(self, found_only: bool = False) -> int:
        """
        Count the results of this query.

        For a cursor, limit and skip are ignored unless ``found_only`` is
        True. In-memory results ignore ``found_only``.
        """
        return self.get_iterator().count(found_only)

    def to_list(self) -> List[Any]:
        return self.get_iterator().to_list()

    def get_single_result(self) -> Optional[Any]:
        """Return the first result, or None when there is none."""
        return self.get_iterator().get_single_result()

    def to_arrow(self):
        """
        Load all results into a ``pyarrow.Table``.

        ObjectIds become hex strings and nested documents become dotted
        columns; see ``querydispatch.storage.documents_to_table``.
        """
        from querydispatch.storage import documents_to_table

        return documents_to_table(self.to_list())

    def to_dataframe(self):
        """Load all results into a pandas DataFrame."""
        return self.to_arrow().to_pandas()

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def _execute_find(self, options: Dict[str, Any]) -> ResultIterator:
        cursor = self.collection.find(self.query["query"], self.query.get("select") or {})
        return self.prepare_cursor(cursor)

    def _execute_find_and_update(self, options: Dict[str, Any]) -> Any:
        return self.collection.find_and_update(
            self.query["query"],
            self.query["new_obj"],
            merge_options(options, query_options(self.query, *FIND_AND_UPDATE_OPTION_KEYS)),
        )

    def _execute_find_and_remove(self, options: Dict[str, Any]) -> Any:
        return self.collection.find_and_remove(
            self.query["query"],
            merge_options(options, query_options(self.query, *FIND_AND_REMOVE_OPTION_KEYS)),
        )

    def _execute_insert(self, options: Dict[str, Any]) -> Any:
        return self.collection.insert(self.query["new_obj"], options)

    def _execute_update(self, options: Dict[str, Any]) -> Any:
        return self.collection.update(
            self.query["query"],
            self.query["new_obj"],
            merge_options(options, query_options(self.query, *UPDATE_OPTION_KEYS)),
        )

    def _execute_remove(self, options: Dict[str, Any]) -> Any:
        return self.collection.remove(self.query["query"], options)

    def _execute_group(self, options: Dict[str, Any]) -> Any:
        if self.query.get("query"):
            options["cond"] = self.query["query"]

        group = self.query["group"]
        database = self.collection.get_database()
        with read_preference_override(database, self.query):
            return self.collection.group(
                group["keys"],
                group["initial"],
                group["reduce"],
                merge_options(options, group.get("options") or {}),
            )

    def _execute_map_reduce(self, options: Dict[str, Any]) -> Any:
        if self.query.get("limit") is not None:
            options["limit"] = self.query["limit"]

        map_reduce = self.query["map_reduce"]
        database = self.collection.get_database()
        with read_preference_override(database, self.query):
            results = self.collection.map_reduce(
                map_reduce["map"],
                map_reduce["reduce"],
                map_reduce["out"],
                self.query["query"],
                merge_options(options, map_reduce.get("options") or {}),
            )

        # Output written to a collection comes back as a cursor over it
        if isinstance(results, Cursor):
            return self.prepare_cursor(results)
        return results

    def _execute_distinct(self, options: Dict[str, Any]) -> Any:
        database = self.collection.get_database()
        with read_preference_override(database, self.query):
            return self.collection.distinct(
                self.query["distinct"], self.query["query"], options
            )

    def _execute_geo_near(self, options: Dict[str, Any]) -> Any:
        if self.query.get("limit") is not None:
            options["num"] = self.query["limit"]

        geo_near = self.query["geo_near"]
        database = self.collection.get_database()
        with read_preference_override(database, self.query):
            return self.collection.near(
                geo_near["near"],
                self.query["query"],
                merge_options(options, geo_near.get("options") or {}),
            )

    def _execute_count(self, options: Dict[str, Any]) -> int:
        # Counts go through the collection, so its own read preference is swapped.
        with read_preference_override(self.collection, self.query):
            return self.collection.count(self.query["query"])

    # =========================================================================
    # CURSOR POST-PROCESSING
    # =========================================================================

    def prepare_cursor(self, cursor: Cursor) -> ResultIterator:
        """
        Apply the descriptor's cursor options to ``cursor``.

        Order matters: the read preference is set before anything else, and
        eager wrapping comes last so the buffered results reflect every
        other option.

        Note: for a cursor over mapReduce output, applying the read preference
        may be undesirable since the output was written to the primary and
        may not have replicated yet.
        """
        if self.query.get("read_preference") is not None:
            cursor.set_read_preference(
                self.query["read_preference"], self.query.get("read_preference_tags")
            )

        for key, value in query_options(self.query, *CURSOR_OPTION_KEYS).items():
            getattr(cursor, key)(value)

        if self.query.get("snapshot"):
            cursor.snapshot()

        if self.query.get("eager_cursor"):
            return self._eager_cursor_factory(cursor)

        return cursor
