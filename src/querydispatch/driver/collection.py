"""
Collection capability implemented on pymongo.

================================================================================
OPERATION MAPPING
================================================================================

    find              -> Cursor (lazy, pymongo find() on first iteration)
    find_and_update   -> find_one_and_update / find_one_and_replace
    find_and_remove   -> find_one_and_delete
    insert            -> insert_one
    update            -> update_one / update_many / replace_one
    remove            -> delete_one / delete_many
    group             -> "group" command               (database read preference)
    map_reduce        -> "mapReduce" command           (database read preference)
    distinct          -> "distinct" command            (database read preference)
    near              -> $geoNear aggregation          (database read preference)
    count             -> count_documents               (collection read preference)

WRITE RESULTS
--------------------------------------------------------------------------------

Writes report a status dict in the shape of the legacy getLastError reply:

    {"ok": 1.0, "n": 3, "err": None, "updatedExisting": True, "nModified": 3}

With an unacknowledged write concern (``w=0``) nothing is known about the
outcome and the write returns True.

Write concern keys (w, wtimeout, j, fsync) are taken out of the options dict
and applied to the collection for that single call.
================================================================================
"""

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from bson.code import Code
from pymongo import ReturnDocument, WriteConcern
from pymongo.collection import Collection as PymongoCollection
from pymongo.read_preferences import _ServerMode

from querydispatch.constants import GEO_NEAR_DISTANCE_FIELD, WRITE_CONCERN_KEYS
from querydispatch.driver.cursor import Cursor, sort_spec
from querydispatch.driver.database import Database
from querydispatch.driver.iterators import ArrayIterator
from querydispatch.driver.read_preference import describe, server_mode

logger = logging.getLogger(__name__)


def is_update_document(document: Mapping[str, Any]) -> bool:
    """True when ``document`` holds update operators rather than a replacement."""
    return any(key.startswith("$") for key in document)


def _write_status(n: int = 0, **extra: Any) -> Dict[str, Any]:
    status: Dict[str, Any] = {"ok": 1.0, "n": n, "err": None}
    status.update(extra)
    return status


class Collection:
    """
    Wraps a pymongo collection.

    Args:
        collection: pymongo collection
        database: Owning database wrapper; created from the collection's
            database when omitted
    """

    def __init__(self, collection: PymongoCollection, database: Optional[Database] = None):
        self._collection = collection
        self._database = database if database is not None else Database(collection.database)
        self._read_preference: _ServerMode = collection.read_preference

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.full_name}>"

    @property
    def name(self) -> str:
        return self._collection.name

    @property
    def full_name(self) -> str:
        return self._collection.full_name

    def get_pymongo_collection(self) -> PymongoCollection:
        return self._collection

    def get_database(self) -> Database:
        return self._database

    def get_read_preference(self) -> Dict[str, Any]:
        return describe(self._read_preference)

    def set_read_preference(
        self, read_preference: Any, tags: Optional[Sequence[Mapping[str, Any]]] = None
    ) -> None:
        self._read_preference = server_mode(read_preference, tags)

    def _reader(self, read_preference: Optional[_ServerMode] = None) -> PymongoCollection:
        if read_preference is None:
            read_preference = self._read_preference
        return self._collection.with_options(read_preference=read_preference)

    def _writer(self, options: Dict[str, Any]) -> Tuple[PymongoCollection, Dict[str, Any]]:
        """Split write concern keys off ``options``; return the collection to write with."""
        remaining = dict(options)
        concern = {
            key: remaining.pop(key) for key in WRITE_CONCERN_KEYS if key in remaining
        }
        if not concern:
            return self._collection, remaining
        return self._collection.with_options(write_concern=WriteConcern(**concern)), remaining

    def _log_ignored(self, operation: str, options: Mapping[str, Any]) -> None:
        if options:
            logger.debug(
                "Ignoring options %s for %s on %s", sorted(options), operation, self.full_name
            )

    # =========================================================================
    # QUERIES
    # =========================================================================

    def find(
        self, query: Optional[Mapping[str, Any]] = None, fields: Optional[Mapping[str, Any]] = None
    ) -> Cursor:
        return Cursor(self._collection, query, fields, read_preference=self._read_preference)

    def count(self, query: Optional[Mapping[str, Any]] = None) -> int:
        return self._reader().count_documents(dict(query or {}))

    # =========================================================================
    # FIND AND MODIFY
    # =========================================================================

    def find_and_update(
        self, query: Mapping[str, Any], new_obj: Mapping[str, Any], options: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Update or replace one document and return it.

        Options:
            new: Return the document after the update instead of before
            select: Projection of the returned document
            sort: Which document to pick when several match
            upsert: Insert when nothing matches
        """
        collection, options = self._writer(options)
        kwargs = {
            "projection": options.pop("select", None) or None,
            "sort": sort_spec(options.pop("sort", None)),
            "upsert": bool(options.pop("upsert", False)),
            "return_document": (
                ReturnDocument.AFTER if options.pop("new", False) else ReturnDocument.BEFORE
            ),
        }
        if is_update_document(new_obj):
            return collection.find_one_and_update(query, new_obj, **kwargs, **options)
        return collection.find_one_and_replace(query, new_obj, **kwargs, **options)

    def find_and_remove(
        self, query: Mapping[str, Any], options: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        collection, options = self._writer(options)
        return collection.find_one_and_delete(
            query,
            projection=options.pop("select", None) or None,
            sort=sort_spec(options.pop("sort", None)),
            **options,
        )

    # =========================================================================
    # WRITES
    # =========================================================================

    def insert(self, new_obj: Mapping[str, Any], options: Mapping[str, Any]) -> Any:
        collection, options = self._writer(options)
        self._log_ignored("insert", options)
        result = collection.insert_one(dict(new_obj))
        if not result.acknowledged:
            return True
        return _write_status(n=1, inserted_id=result.inserted_id)

    def update(
        self, query: Mapping[str, Any], new_obj: Mapping[str, Any], options: Mapping[str, Any]
    ) -> Any:
        """
        Update documents matching ``query``.

        A ``new_obj`` without update operators replaces the single matched
        document. ``multiple`` updates every match and requires operators.
        """
        collection, options = self._writer(options)
        multiple = bool(options.pop("multiple", False))
        upsert = bool(options.pop("upsert", False))
        self._log_ignored("update", options)

        if multiple:
            result = collection.update_many(query, new_obj, upsert=upsert)
        elif is_update_document(new_obj):
            result = collection.update_one(query, new_obj, upsert=upsert)
        else:
            result = collection.replace_one(query, new_obj, upsert=upsert)

        if not result.acknowledged:
            return True

        extra: Dict[str, Any] = {
            "updatedExisting": result.matched_count > 0,
            "nModified": result.modified_count,
        }
        n = result.matched_count
        if result.upserted_id is not None:
            extra["upserted"] = result.upserted_id
            n = 1
        return _write_status(n=n, **extra)

    def remove(self, query: Mapping[str, Any], options: Mapping[str, Any]) -> Any:
        """Delete documents matching ``query``; ``justOne`` stops after the first."""
        collection, options = self._writer(options)
        just_one = bool(options.pop("justOne", False))
        self._log_ignored("remove", options)

        if just_one:
            result = collection.delete_one(query)
        else:
            result = collection.delete_many(query)

        if not result.acknowledged:
            return True
        return _write_status(n=result.deleted_count)

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def group(
        self, keys: Any, initial: Mapping[str, Any], reduce: Any, options: Mapping[str, Any]
    ) -> ArrayIterator:
        """
        Run the group command.

        Args:
            keys: Field names (list or mapping) to group by, or a JavaScript
                key function
            initial: Initial aggregation document
            reduce: JavaScript reduce function
            options: ``cond`` and ``finalize`` go into the command; other
                keys are passed as command options
        """
        options = dict(options)
        group: Dict[str, Any] = {"ns": self.name, "initial": dict(initial), "$reduce": Code(reduce)}
        if isinstance(keys, str):
            group["$keyf"] = Code(keys)
        elif isinstance(keys, Mapping):
            group["key"] = dict(keys)
        else:
            group["key"] = {key: 1 for key in keys}
        if "cond" in options:
            group["cond"] = options.pop("cond")
        if "finalize" in options:
            group["finalize"] = Code(options.pop("finalize"))

        result = self._database.command("group", group, **options)
        return ArrayIterator(result["retval"], command_result=result)

    def map_reduce(
        self,
        map: Any,
        reduce: Any,
        out: Any,
        query: Mapping[str, Any],
        options: Mapping[str, Any],
    ) -> Any:
        """
        Run the mapReduce command.

        Inline output (``{"inline": 1}``) returns an ArrayIterator of the
        results. Any other output target returns a Cursor over the collection
        the results were written to.
        """
        command: Dict[str, Any] = dict(options)
        if "finalize" in command:
            command["finalize"] = Code(command["finalize"])
        command.update(map=Code(map), reduce=Code(reduce), out=out, query=dict(query or {}))

        result = self._database.command("mapReduce", self.name, **command)

        if isinstance(out, Mapping) and out.get("inline"):
            return ArrayIterator(result["results"], command_result=result)

        target = result["result"]
        if isinstance(target, Mapping):
            client = self._database.get_pymongo_database().client
            output = Collection(client[target["db"]][target["collection"]])
        else:
            output = self._database.get_collection(target)
        return output.find()

    def distinct(
        self, field: str, query: Mapping[str, Any], options: Mapping[str, Any]
    ) -> ArrayIterator:
        result = self._database.command(
            "distinct", self.name, key=field, query=dict(query or {}), **options
        )
        return ArrayIterator(result["values"], command_result=result)

    def near(
        self, near: Any, query: Mapping[str, Any], options: Mapping[str, Any]
    ) -> ArrayIterator:
        """
        Find documents ordered by distance from ``near``.

        ``num`` caps the number of results; ``distanceField`` names the output
        field for the distance (default ``dis``). Remaining options become
        $geoNear stage parameters (spherical, maxDistance, key, ...).
        """
        options = dict(options)
        num = options.pop("num", None)
        stage: Dict[str, Any] = {
            "near": near,
            "distanceField": options.pop("distanceField", GEO_NEAR_DISTANCE_FIELD),
            "query": dict(query or {}),
        }
        stage.update(options)

        pipeline = [{"$geoNear": stage}]
        if num is not None:
            pipeline.append({"$limit": num})

        reader = self._reader(self._database.read_preference)
        return ArrayIterator(reader.aggregate(pipeline))
