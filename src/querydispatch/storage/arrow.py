"""
Arrow conversion for query results.

DATA FLOW
=========

STEP 1: NORMALIZE VALUES
------------------------
BSON-specific values have no Arrow equivalent and are converted first:

    ObjectId("507f1f77bcf86cd799439011")  ->  "507f1f77bcf86cd799439011"
    Decimal128("1.5")                     ->  Decimal("1.5")

Results that are not documents (e.g. the values of a distinct query) become
single-column rows: ``"red"`` -> ``{"value": "red"}``.


STEP 2: FLATTEN NESTED DOCUMENTS
--------------------------------
Nested documents become dotted column names:

    Before: {"metadata": {"device_id": "123...", "sensor_id": "456..."}}
    After:  {"metadata.device_id": "123...", "metadata.sensor_id": "456..."}

Arrays are kept as list columns.


STEP 3: BUILD THE TABLE
-----------------------
Columns are the union of every row's keys, in first-seen order; a row
missing a column gets null there. A column whose values Arrow cannot
store as one type (e.g. ints and strings under the same key) is stored as
strings, nulls kept:

    [1, "one", None]  ->  ["1", "one", None]
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Union

import pyarrow as pa
import pyarrow.parquet as pq
from bson import Decimal128, ObjectId

logger = logging.getLogger(__name__)

VALUE_COLUMN = "value"


def _normalize(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, Mapping):
        return {key: _normalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    return value


def flatten_document(document: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested documents into dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in document.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping) and value:
            flat.update(flatten_document(value, prefix=f"{name}."))
        else:
            flat[name] = value
    return flat


def _column_array(name: str, values: List[Any]) -> pa.Array:
    try:
        return pa.array(values)
    except (pa.ArrowInvalid, pa.ArrowTypeError):
        logger.debug("Column %r holds mixed types, storing it as strings", name)
        return pa.array([None if value is None else str(value) for value in values], pa.string())


def documents_to_table(documents: Iterable[Any]) -> pa.Table:
    """
    Build a ``pyarrow.Table`` from query results.

    Args:
        documents: Documents, or scalar results such as distinct values

    Returns:
        Table with one row per result
    """
    rows: List[Dict[str, Any]] = []
    columns: Dict[str, None] = {}
    for document in documents:
        if not isinstance(document, Mapping):
            document = {VALUE_COLUMN: document}
        row = flatten_document(_normalize(document))
        columns.update(dict.fromkeys(row))
        rows.append(row)

    return pa.table(
        {column: _column_array(column, [row.get(column) for row in rows]) for column in columns}
    )


def write_parquet(
    documents: Iterable[Any],
    path: Union[str, Path],
    compression: str = "zstd",
) -> Path:
    """
    Write query results to a Parquet file.

    Args:
        documents: Query results, e.g. ``query.to_list()``
        path: Destination file; parent directories are created
        compression: Parquet compression codec

    Returns:
        The written path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table = documents_to_table(documents)
    pq.write_table(table, path, compression=compression)
    logger.debug("Wrote %d rows to %s", table.num_rows, path)
    return path
