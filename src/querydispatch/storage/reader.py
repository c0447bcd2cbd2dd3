"""
Parquet reader for exported query results.

Files written by ``write_parquet`` hold flattened documents: nested fields
appear as dotted column names and ObjectIds as hex strings. The reader hands
them back exactly as stored, either streamed as dicts or loaded into a pandas
DataFrame.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Union

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from querydispatch.constants import DEFAULT_BATCH_SIZE

logger = logging.getLogger(__name__)


class ParquetReader:
    """
    Reads exported query results from a Parquet file or a directory of them.

    Example:
        >>> reader = ParquetReader("exports/active_users")
        >>>
        >>> # Stream all documents
        >>> for doc in reader.iter_documents():
        ...     print(doc)
        >>>
        >>> # Or load to DataFrame
        >>> df = reader.to_dataframe()
    """

    def __init__(self, path: Union[str, Path]):
        """
        Args:
            path: Parquet file, or directory containing parquet files
        """
        self.path = Path(path)

        if not self.path.exists():
            raise FileNotFoundError(f"Export path not found: {path}")

        if self.path.is_dir():
            # May be empty if the query returned no results
            self.parquet_files = sorted(self.path.glob("*.parquet"))
        else:
            self.parquet_files = [self.path]

    def iter_documents(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> Iterator[Dict[str, Any]]:
        """
        Stream documents from all parquet files.

        Reads in batches to avoid loading the entire export into memory.

        Args:
            batch_size: Number of rows to read per batch

        Yields:
            Document dictionaries
        """
        for parquet_file in self.parquet_files:
            parquet_file_obj = pq.ParquetFile(parquet_file)

            for batch in parquet_file_obj.iter_batches(batch_size=batch_size):
                yield from batch.to_pylist()

    def to_table(self) -> pa.Table:
        tables = [pq.read_table(parquet_file) for parquet_file in self.parquet_files]
        if not tables:
            return pa.table({})
        return pa.concat_tables(tables)

    def to_dataframe(self) -> pd.DataFrame:
        if not self.parquet_files:
            logger.debug("No parquet files under %s", self.path)
            return pd.DataFrame()
        return self.to_table().to_pandas()
