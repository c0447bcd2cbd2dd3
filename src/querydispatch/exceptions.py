"""Exception hierarchy for querydispatch.

Errors raised by the driver (pymongo) are never wrapped; only misuse of a
``Query`` and contract violations by a collaborator surface as these types.
"""

from typing import Any, Dict, Optional


class QueryDispatchError(Exception):
    """Base exception for all querydispatch errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}


class InvalidDescriptorError(QueryDispatchError, ValueError):
    """The descriptor's ``type`` is not one of the known query types."""

    def __init__(self, query_type: Any) -> None:
        super().__init__(
            f"Invalid query type: {query_type!r}", context={"type": query_type}
        )
        self.query_type = query_type


class UnsupportedOperationError(QueryDispatchError, TypeError):
    """An iterator was requested from a query kind that never produces one."""

    def __init__(self, query_type: Any) -> None:
        super().__init__(
            f"Iterator would not be returned for query type: {query_type!r}",
            context={"type": query_type},
        )
        self.query_type = query_type


class UnexpectedResultError(QueryDispatchError, RuntimeError):
    """Executing the query did not return an iterator."""

    def __init__(self, result: Any) -> None:
        super().__init__(
            "Iterator was not returned from executed query",
            context={"result_type": type(result).__name__},
        )
        self.result = result
