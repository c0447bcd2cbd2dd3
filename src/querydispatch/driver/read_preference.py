"""Conversion between read preference names and pymongo server modes."""

from typing import Any, Dict, Mapping, Optional, Sequence

from pymongo.errors import ConfigurationError
from pymongo.read_preferences import (
    _ServerMode,
    make_read_preference,
    read_pref_mode_from_name,
)


def server_mode(
    read_preference: Any, tag_sets: Optional[Sequence[Mapping[str, Any]]] = None
) -> _ServerMode:
    """
    Build a pymongo read preference from a mode name and tag sets.

    Args:
        read_preference: Mongos mode name ("primary", "primaryPreferred",
            "secondary", "secondaryPreferred", "nearest") or a pymongo
            read preference instance
        tag_sets: Tag sets to apply; None keeps the mode untagged

    Raises:
        ConfigurationError: Unknown mode name, or tags given for primary
    """
    if isinstance(read_preference, _ServerMode):
        if tag_sets is None:
            return read_preference
        read_preference = read_preference.mongos_mode

    try:
        mode = read_pref_mode_from_name(read_preference)
    except ValueError:
        raise ConfigurationError(
            f"Unknown read preference mode: {read_preference!r}"
        ) from None

    tags = [dict(tag_set) for tag_set in tag_sets] if tag_sets else None
    return make_read_preference(mode, tags)


def describe(mode: _ServerMode) -> Dict[str, Any]:
    """
    Describe a pymongo read preference as ``{"type": ..., "tagsets": [...]}``.

    pymongo reports an untagged mode as ``[{}]``; that is returned as an
    empty list so it can be passed back to ``server_mode`` for any mode.
    """
    tag_sets = [dict(tag_set) for tag_set in mode.tag_sets]
    if tag_sets == [{}]:
        tag_sets = []
    return {"type": mode.mongos_mode, "tagsets": tag_sets}
