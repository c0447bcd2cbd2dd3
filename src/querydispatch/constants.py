"""
Constants shared across querydispatch.

QUERY TYPES
===========

Every descriptor produced by the query builder carries a ``type`` field with
one of eleven values. The numbering is part of the builder contract and must
not change:

    FIND             1    cursor
    FIND_AND_UPDATE  2    document or None
    FIND_AND_REMOVE  3    document or None
    INSERT           4    status dict or bool
    UPDATE           5    status dict or bool
    REMOVE           6    status dict or bool
    GROUP            7    ArrayIterator
    MAP_REDUCE       8    ArrayIterator (inline) or cursor (output collection)
    DISTINCT         9    ArrayIterator
    GEO_NEAR        10    ArrayIterator
    COUNT           11    int
"""

from __future__ import annotations

from enum import IntEnum


class QueryType(IntEnum):
    FIND = 1
    FIND_AND_UPDATE = 2
    FIND_AND_REMOVE = 3
    INSERT = 4
    UPDATE = 5
    REMOVE = 6
    GROUP = 7
    MAP_REDUCE = 8
    DISTINCT = 9
    GEO_NEAR = 10
    COUNT = 11


# Kinds whose execution yields something iterable.
ITERATOR_TYPES: frozenset[QueryType] = frozenset(
    {
        QueryType.FIND,
        QueryType.GROUP,
        QueryType.MAP_REDUCE,
        QueryType.DISTINCT,
        QueryType.GEO_NEAR,
    }
)

# =============================================================================
# DESCRIPTOR OPTION KEYS
# =============================================================================
# Descriptor keys copied into the driver options of a single call when they
# are present and not None.

FIND_AND_UPDATE_OPTION_KEYS = ("new", "select", "sort", "upsert")
FIND_AND_REMOVE_OPTION_KEYS = ("select", "sort")
UPDATE_OPTION_KEYS = ("multiple", "upsert")

# Descriptor keys applied to a cursor by calling the cursor method of the
# same name with the value.
CURSOR_OPTION_KEYS = ("hint", "immortal", "limit", "skip", "slave_okay", "sort")

# =============================================================================
# DRIVER DEFAULTS
# =============================================================================

# Rows per Arrow record batch when streaming stored results.
DEFAULT_BATCH_SIZE = 10_000

# Keys of the options bag that configure the write concern of a write.
WRITE_CONCERN_KEYS = ("w", "wtimeout", "j", "fsync")

# Output field for distances computed by a $geoNear stage.
GEO_NEAR_DISTANCE_FIELD = "dis"
