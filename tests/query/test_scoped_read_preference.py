"""
Tests for read_preference.py - temporary read preference override.

Sequence under test:

    1. save target's read preference
    2. apply the descriptor's read preference and tags
    3. run the block
    4. restore the saved read preference, whatever happened in 3
    5. re-raise any error from 3
"""

import logging

import pytest

from querydispatch.query import read_preference_override


class BrokenRestoreTarget:
    """Accepts the override, then fails to switch back."""

    def __init__(self):
        self.sets = []

    def get_read_preference(self):
        return {"type": "primary", "tagsets": []}

    def set_read_preference(self, read_preference, tags=None):
        self.sets.append(read_preference)
        if len(self.sets) > 1:
            raise ConnectionError("restore failed")


def test_without_read_preference_nothing_changes(database):
    with read_preference_override(database, {"query": {}}) as target:
        assert target is database
        assert database.get_read_preference()["type"] == "primary"
    assert database.read_preference_history == []


def test_read_preference_is_applied_inside_and_restored_after(database):
    descriptor = {"read_preference": "secondary", "read_preference_tags": [{"dc": "east"}]}

    with read_preference_override(database, descriptor):
        assert database.get_read_preference() == {
            "type": "secondary",
            "tagsets": [{"dc": "east"}],
        }

    assert database.get_read_preference() == {"type": "primary", "tagsets": []}


def test_empty_saved_tags_restore_as_none(database):
    with read_preference_override(database, {"read_preference": "nearest"}):
        pass
    assert database.read_preference_history[-1] == ("primary", None)


def test_error_in_block_is_reraised_after_restore(database):
    with pytest.raises(KeyError, match="missing"):
        with read_preference_override(database, {"read_preference": "secondary"}):
            raise KeyError("missing")

    assert database.read_preference_history == [("secondary", None), ("primary", None)]


def test_restore_failure_propagates_with_original_error_as_context(caplog):
    target = BrokenRestoreTarget()

    with caplog.at_level(logging.ERROR, logger="querydispatch.query.read_preference"):
        with pytest.raises(ConnectionError, match="restore failed") as excinfo:
            with read_preference_override(target, {"read_preference": "secondary"}):
                raise TimeoutError("count timed out")

    assert isinstance(excinfo.value.__context__, TimeoutError)
    assert "Failed to restore read preference" in caplog.text


def test_restore_failure_after_success_propagates():
    target = BrokenRestoreTarget()

    with pytest.raises(ConnectionError):
        with read_preference_override(target, {"read_preference": "secondary"}):
            pass
