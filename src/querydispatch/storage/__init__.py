"""
Parquet export of query results.

- Arrow: documents_to_table converts results, write_parquet stores them
- Reader: ParquetReader streams stored results back or loads a DataFrame
"""

from .arrow import documents_to_table, flatten_document, write_parquet
from .reader import ParquetReader

__all__ = [
    "documents_to_table",
    "flatten_document",
    "write_parquet",
    "ParquetReader",
]
