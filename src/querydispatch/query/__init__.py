"""
Query descriptors and their execution.

This module turns builder-produced query descriptors into calls on a
collection and normalizes what comes back.
"""

from .descriptors import (
    DESCRIPTOR_TYPES,
    BaseDescriptor,
    CountDescriptor,
    DistinctDescriptor,
    FindAndRemoveDescriptor,
    FindAndUpdateDescriptor,
    FindDescriptor,
    GeoNearDescriptor,
    GroupDescriptor,
    InsertDescriptor,
    MapReduceDescriptor,
    RemoveDescriptor,
    UpdateDescriptor,
    coerce_query_type,
    descriptor_from_mapping,
)
from .options import merge_options, query_options
from .query import Query
from .read_preference import read_preference_override

__all__ = [
    # query
    "Query",
    # descriptors
    "BaseDescriptor",
    "FindDescriptor",
    "FindAndUpdateDescriptor",
    "FindAndRemoveDescriptor",
    "InsertDescriptor",
    "UpdateDescriptor",
    "RemoveDescriptor",
    "GroupDescriptor",
    "MapReduceDescriptor",
    "DistinctDescriptor",
    "GeoNearDescriptor",
    "CountDescriptor",
    "DESCRIPTOR_TYPES",
    "coerce_query_type",
    "descriptor_from_mapping",
    # options
    "query_options",
    "merge_options",
    # read preference
    "read_preference_override",
]
