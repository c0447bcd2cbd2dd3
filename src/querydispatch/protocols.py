"""
Capabilities a ``Query`` needs from the database layer.

``Query`` never imports a driver. It talks to whatever object satisfies these
protocols; ``querydispatch.driver`` provides pymongo-backed implementations,
and tests substitute fakes.

Read preferences travel as a mode name plus a list of tag sets. Reading one
back yields a mapping of the form::

    {"type": "secondaryPreferred", "tagsets": [{"dc": "east"}]}
"""

from __future__ import annotations

from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

Document = Dict[str, Any]
TagSets = Sequence[Mapping[str, Any]]


@runtime_checkable
class ResultIterator(Protocol):
    """Iterable query result with a uniform consumer interface."""

    def __iter__(self) -> Iterator[Any]: ...

    def count(self, found_only: bool = False) -> int: ...

    def to_list(self) -> List[Any]: ...

    def get_single_result(self) -> Optional[Any]: ...


@runtime_checkable
class Cursor(ResultIterator, Protocol):
    """Lazy server-side result set that can be configured before iteration."""

    def set_read_preference(
        self, read_preference: Any, tags: Optional[TagSets] = None
    ) -> "Cursor": ...

    def hint(self, index: Any) -> "Cursor": ...

    def immortal(self, immortal: bool = True) -> "Cursor": ...

    def limit(self, limit: int) -> "Cursor": ...

    def skip(self, skip: int) -> "Cursor": ...

    def slave_okay(self, ok: bool = True) -> "Cursor": ...

    def sort(self, fields: Any) -> "Cursor": ...

    def snapshot(self) -> "Cursor": ...


class ReadPreferenceTarget(Protocol):
    """Anything whose read preference can be read back and replaced."""

    def get_read_preference(self) -> Mapping[str, Any]: ...

    def set_read_preference(
        self, read_preference: Any, tags: Optional[TagSets] = None
    ) -> Any: ...


class Database(ReadPreferenceTarget, Protocol):
    pass


class Collection(ReadPreferenceTarget, Protocol):
    def find(self, query: Mapping[str, Any], fields: Mapping[str, Any]) -> Cursor: ...

    def find_and_update(
        self, query: Mapping[str, Any], new_obj: Mapping[str, Any], options: Mapping[str, Any]
    ) -> Optional[Document]: ...

    def find_and_remove(
        self, query: Mapping[str, Any], options: Mapping[str, Any]
    ) -> Optional[Document]: ...

    def insert(self, new_obj: Mapping[str, Any], options: Mapping[str, Any]) -> Any: ...

    def update(
        self, query: Mapping[str, Any], new_obj: Mapping[str, Any], options: Mapping[str, Any]
    ) -> Any: ...

    def remove(self, query: Mapping[str, Any], options: Mapping[str, Any]) -> Any: ...

    def group(
        self, keys: Any, initial: Mapping[str, Any], reduce: Any, options: Mapping[str, Any]
    ) -> Any: ...

    def map_reduce(
        self,
        map: Any,
        reduce: Any,
        out: Any,
        query: Mapping[str, Any],
        options: Mapping[str, Any],
    ) -> Any: ...

    def distinct(self, field: str, query: Mapping[str, Any], options: Mapping[str, Any]) -> Any: ...

    def near(self, near: Any, query: Mapping[str, Any], options: Mapping[str, Any]) -> Any: ...

    def count(self, query: Mapping[str, Any]) -> int: ...

    def get_database(self) -> Database: ...
