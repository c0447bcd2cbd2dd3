"""
querydispatch - execute query builder descriptors against MongoDB.

A ``Query`` takes a collection and a descriptor naming one of eleven query
kinds, runs the matching collection operation and exposes the outcome
through a uniform iterator interface. ``querydispatch.driver`` implements
the collection, database and cursor capabilities on top of pymongo.
"""

import logging

from .constants import QueryType
from .exceptions import (
    InvalidDescriptorError,
    QueryDispatchError,
    UnexpectedResultError,
    UnsupportedOperationError,
)
from .query import Query

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Query",
    "QueryType",
    # exceptions
    "QueryDispatchError",
    "InvalidDescriptorError",
    "UnsupportedOperationError",
    "UnexpectedResultError",
]
