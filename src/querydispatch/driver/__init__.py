"""
pymongo implementations of the collection, database and cursor capabilities.

Example:
    >>> from pymongo import MongoClient
    >>> db = Database(MongoClient()["app"])
    >>> users = db["users"]
    >>> cursor = users.find({"status": "active"}).limit(10)
"""

from .collection import Collection
from .cursor import Cursor
from .database import Database
from .iterators import ArrayIterator, EagerCursor
from .read_preference import describe, server_mode

__all__ = [
    "Collection",
    "Database",
    "Cursor",
    "EagerCursor",
    "ArrayIterator",
    "describe",
    "server_mode",
]
