"""
Temporary read-preference override around a single database call.

Commands such as group or distinct inherit the read preference of the object
they run through. A descriptor that asks for a specific read preference
therefore swaps it on that object for the duration of the call:

    saved = target.get_read_preference()
    target.set_read_preference(descriptor["read_preference"], tags)
    ... run the call ...
    target.set_read_preference(saved["type"], saved["tagsets"] or None)

The restore runs on every exit path. An error from the call propagates after
the restore. If the restore itself fails, its error propagates with the call's
error (if any) attached as ``__context__``.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from querydispatch.protocols import ReadPreferenceTarget

logger = logging.getLogger(__name__)


@contextmanager
def read_preference_override(
    target: ReadPreferenceTarget, descriptor: Mapping[str, Any]
) -> Iterator[ReadPreferenceTarget]:
    """
    Apply the descriptor's read preference to ``target`` inside the block.

    Does nothing when the descriptor carries no ``read_preference``.

    Args:
        target: Collection or database whose read preference is swapped
        descriptor: Query descriptor; ``read_preference`` and
            ``read_preference_tags`` are read from it

    Yields:
        The target itself
    """
    if descriptor.get("read_preference") is None:
        yield target
        return

    saved = target.get_read_preference()
    target.set_read_preference(
        descriptor["read_preference"], descriptor.get("read_preference_tags")
    )
    logger.debug(
        "Read preference on %r switched from %r to %r",
        target,
        saved.get("type"),
        descriptor["read_preference"],
    )

    try:
        yield target
    finally:
        try:
            target.set_read_preference(saved["type"], saved.get("tagsets") or None)
        except Exception:
            logger.error("Failed to restore read preference %r on %r", saved, target)
            raise
