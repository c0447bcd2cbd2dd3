"""In-memory result iterators: command results and eagerly buffered cursors."""

import logging
from typing import Any, Iterable, Iterator, List, Mapping, Optional

from querydispatch.protocols import Cursor

logger = logging.getLogger(__name__)


class ArrayIterator:
    """
    Results already held in memory, such as the output of a command.

    Args:
        items: Result values
        command_result: Raw command response the items were taken from
    """

    def __init__(
        self, items: Iterable[Any] = (), command_result: Optional[Mapping[str, Any]] = None
    ):
        self._items: List[Any] = list(items)
        self.command_result = command_result

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> Any:
        return self._items[index]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} of {len(self._items)} items>"

    def count(self, found_only: bool = False) -> int:
        """Number of results; ``found_only`` has no effect in memory."""
        return len(self._items)

    def to_list(self) -> List[Any]:
        return list(self._items)

    def get_single_result(self) -> Optional[Any]:
        return self._items[0] if self._items else None


class EagerCursor(ArrayIterator):
    """
    Exhausts a cursor on construction and serves its results from memory.

    Every option set on the cursor beforehand (limit, skip, sort, read
    preference, ...) applies to the buffered results.
    """

    def __init__(self, cursor: Cursor):
        self._cursor = cursor
        super().__init__(cursor.to_list())
        logger.debug("Buffered %d documents from %r", len(self), cursor)

    def get_cursor(self) -> Cursor:
        """Return the wrapped cursor."""
        return self._cursor
