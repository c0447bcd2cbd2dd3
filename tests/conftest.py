"""Pytest configuration and fakes for the database capabilities."""

from typing import Any, Dict, List, Optional

import pytest


class FakeReadPreferenceTarget:
    """Records read preference swaps; starts out on primary."""

    def __init__(self):
        self.read_preference: Dict[str, Any] = {"type": "primary", "tagsets": []}
        self.read_preference_history: List[tuple] = []

    def get_read_preference(self) -> Dict[str, Any]:
        return dict(self.read_preference)

    def set_read_preference(self, read_preference, tags=None):
        self.read_preference_history.append((read_preference, tags))
        self.read_preference = {"type": read_preference, "tagsets": list(tags or [])}


class FakeCursor:
    """Cursor that records every configuration call in order."""

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None):
        self.documents = list(documents or [])
        self.calls: List[tuple] = []
        self.exhausted = False

    def __iter__(self):
        self.calls.append(("iterate",))
        self.exhausted = True
        return iter(self._visible())

    def _visible(self):
        options = {call[0]: call[1] for call in self.calls if len(call) == 2}
        skip = options.get("skip", 0)
        limit = options.get("limit", 0)
        visible = self.documents[skip:]
        return visible[:limit] if limit else visible

    def set_read_preference(self, read_preference, tags=None):
        self.calls.append(("set_read_preference", (read_preference, tags)))
        return self

    def hint(self, index):
        self.calls.append(("hint", index))
        return self

    def immortal(self, immortal=True):
        self.calls.append(("immortal", immortal))
        return self

    def limit(self, limit):
        self.calls.append(("limit", limit))
        return self

    def skip(self, skip):
        self.calls.append(("skip", skip))
        return self

    def slave_okay(self, ok=True):
        self.calls.append(("slave_okay", ok))
        return self

    def sort(self, fields):
        self.calls.append(("sort", fields))
        return self

    def snapshot(self):
        self.calls.append(("snapshot",))
        return self

    def count(self, found_only=False):
        return len(self._visible()) if found_only else len(self.documents)

    def to_list(self):
        return list(self)

    def get_single_result(self):
        visible = self._visible()
        return visible[0] if visible else None

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


class FakeDatabase(FakeReadPreferenceTarget):
    pass


class FakeCollection(FakeReadPreferenceTarget):
    """
    Collection that records each operation.

    ``results[name]`` is returned from operation ``name``; ``raises[name]``
    is raised instead when set. Each call also records the read preference
    of the collection and of its database at the time of the call.
    """

    def __init__(self, database: Optional[FakeDatabase] = None):
        super().__init__()
        self.database = database or FakeDatabase()
        self.calls: List[tuple] = []
        self.results: Dict[str, Any] = {}
        self.raises: Dict[str, BaseException] = {}
        self.seen_read_preferences: List[Dict[str, Any]] = []

    def _call(self, name: str, *args):
        self.calls.append((name, args))
        self.seen_read_preferences.append(
            {
                "collection": self.get_read_preference(),
                "database": self.database.get_read_preference(),
            }
        )
        if name in self.raises:
            raise self.raises[name]
        if name == "find" and name not in self.results:
            return FakeCursor()
        return self.results.get(name)

    def get_database(self):
        return self.database

    def find(self, query, fields):
        return self._call("find", query, fields)

    def find_and_update(self, query, new_obj, options):
        return self._call("find_and_update", query, new_obj, options)

    def find_and_remove(self, query, options):
        return self._call("find_and_remove", query, options)

    def insert(self, new_obj, options):
        return self._call("insert", new_obj, options)

    def update(self, query, new_obj, options):
        return self._call("update", query, new_obj, options)

    def remove(self, query, options):
        return self._call("remove", query, options)

    def group(self, keys, initial, reduce, options):
        return self._call("group", keys, initial, reduce, options)

    def map_reduce(self, map, reduce, out, query, options):
        return self._call("map_reduce", map, reduce, out, query, options)

    def distinct(self, field, query, options):
        return self._call("distinct", field, query, options)

    def near(self, near, query, options):
        return self._call("near", near, query, options)

    def count(self, query):
        return self._call("count", query)


@pytest.fixture
def database():
    return FakeDatabase()


@pytest.fixture
def collection(database):
    return FakeCollection(database)


@pytest.fixture
def documents():
    return [{"_id": i, "name": f"doc-{i}"} for i in range(20)]


@pytest.fixture
def cursor_factory():
    """Build FakeCursor instances: ``cursor_factory(documents)``."""
    return FakeCursor


@pytest.fixture
def collection_factory():
    """Build FakeCollection instances sharing nothing with the ``collection`` fixture."""
    return FakeCollection
