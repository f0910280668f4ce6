"""
Vector store for codeask.

A thin layer over LanceDB exposing the operations the pipeline needs:
upsert records, similarity query, exact lookup by file path, delete by id.
Every LanceDB failure surfaces as StoreError.
"""

import logging
import threading
from pathlib import Path
from typing import Optional
import lancedb
import pyarrow as pa
from lancedb.table import Table

from .errors import StoreError
from .models import ChunkedRecord, IndexRecord, IndexStats, QueryMatch, WholeFileRecord, record_row_model

logger = logging.getLogger(__name__)


def _quote(value: str) -> str:
    """Quote a string literal for a LanceDB SQL filter."""
    return "'" + value.replace("'", "''") + "'"


class VectorStore:
    """
    LanceDB-backed index of file records.

    The table is created on first use with a row schema sized for the
    embedding dimension.
    """

    def __init__(
        self,
        db_path: Path,
        dimension: Optional[int] = None,
        table_name: str = "code_records",
        lookup_limit: int = 1000,
    ):
        """
        Initialize the vector store.

        Args:
            db_path: Path to the LanceDB database directory
            dimension: Length of the embedding vectors; required to create the
                table, read from the table when omitted
            table_name: Name of the table to use
            lookup_limit: Maximum records returned by a path lookup
        """
        self.db_path = db_path
        self.dimension = dimension
        self.table_name = table_name
        self.lookup_limit = lookup_limit
        self._db: Optional[lancedb.DBConnection] = None
        self._table: Optional[Table] = None
        # Indexer workers share one store; commits to the table go one at a time
        self._write_lock = threading.Lock()
        self._table_lock = threading.Lock()

    @property
    def db(self) -> lancedb.DBConnection:
        """Lazy-load the database connection."""
        if self._db is None:
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self._db = lancedb.connect(str(self.db_path))
            except Exception as e:
                raise StoreError(f"Cannot open LanceDB at {self.db_path}: {e}") from e
            logger.info(f"Connected to LanceDB at {self.db_path}")
        return self._db

    @property
    def table(self) -> Table:
        """Get or create the records table."""
        if self._table is not None:
            return self._table

        # Indexer workers reach this together on a fresh store; only one may create
        with self._table_lock:
            if self._table is not None:
                return self._table

            try:
                if self.table_name in self.db.table_names():
                    table = self.db.open_table(self.table_name)
                    logger.debug(f"Opened existing table: {self.table_name}")
                elif self.dimension is None:
                    raise StoreError(f"Table {self.table_name} does not exist")
                else:
                    try:
                        table = self.db.create_table(
                            self.table_name,
                            schema=record_row_model(self.dimension),
                            mode="create",
                        )
                        logger.info(f"Created new table: {self.table_name}")
                    except Exception as e:
                        # Another process created it between the check and the create
                        if "already exists" not in str(e):
                            raise
                        table = self.db.open_table(self.table_name)
            except StoreError:
                raise
            except Exception as e:
                raise StoreError(f"Cannot open table {self.table_name}: {e}") from e

            stored_dimension = table.schema.field("vector").type.list_size
            if self.dimension is None:
                self.dimension = stored_dimension
            elif stored_dimension != self.dimension:
                raise StoreError(
                    f"Table {self.table_name} holds {stored_dimension}-dim vectors but the "
                    f"embedding model produces {self.dimension}; run 'codeask clean' first"
                )
            self._table = table
        return self._table

    def upsert(self, records: list[IndexRecord]) -> int:
        """
        Insert records, replacing any with the same id.

        Args:
            records: Records to write; every record must carry a vector

        Returns:
            Number of records written
        """
        if not records:
            return 0

        table = self.table
        row_model = record_row_model(self.dimension)
        try:
            rows = pa.Table.from_pylist(
                [row_model(**self._record_to_row(record)).model_dump() for record in records],
                schema=row_model.to_arrow_schema(),
            )
        except ValueError as e:
            raise StoreError(f"Invalid record for table {self.table_name}: {e}") from e

        try:
            with self._write_lock:
                (
                    table.merge_insert("id")
                    .when_matched_update_all()
                    .when_not_matched_insert_all()
                    .execute(rows)
                )
        except Exception as e:
            logger.error(f"Failed to upsert {rows.num_rows} records: {e}")
            raise StoreError(f"Upsert failed: {e}") from e

        logger.debug(f"Upserted {rows.num_rows} records into {self.table_name}")
        return rows.num_rows

    def query(
        self,
        vector: list[float],
        top_k: int = 10,
        file_path: Optional[str] = None,
    ) -> list[QueryMatch]:
        """
        Similarity search.

        Args:
            vector: Query embedding
            top_k: Maximum number of matches
            file_path: Restrict matches to one file path

        Returns:
            Matches ordered by descending score
        """
        table = self.table
        try:
            builder = table.search(vector).limit(top_k)
            if file_path is not None:
                builder = builder.where(f"file_path = {_quote(file_path)}", prefilter=True)
            rows = builder.to_list()
        except Exception as e:
            logger.error(f"Search failed: {e}")
            raise StoreError(f"Query failed: {e}") from e

        matches = []
        for row in rows:
            # L2 distance to a 0-1 similarity
            score = 1.0 / (1.0 + float(row.get("_distance", 0.0)))
            matches.append(QueryMatch(record=self._row_to_record(row), score=score))
        return matches

    def records_for_path(self, path: str) -> list[IndexRecord]:
        """
        Fetch every record stored for a file path (exact match, no ranking).

        Vectors are not carried on the returned records.
        """
        table = self.table
        try:
            rows = (
                table.search()
                .where(f"file_path = {_quote(path)}")
                .limit(self.lookup_limit)
                .to_list()
            )
        except Exception as e:
            logger.error(f"Failed to look up records for {path}: {e}")
            raise StoreError(f"Lookup failed for {path}: {e}") from e

        return [self._row_to_record(row, with_vector=False) for row in rows]

    def delete(self, ids: list[str]) -> None:
        """Delete records by id."""
        if not ids:
            return

        table = self.table
        id_list = ", ".join(_quote(record_id) for record_id in ids)
        try:
            with self._write_lock:
                table.delete(f"id IN ({id_list})")
        except Exception as e:
            logger.error(f"Failed to delete {len(ids)} records: {e}")
            raise StoreError(f"Delete failed: {e}") from e

        logger.debug(f"Deleted {len(ids)} records from {self.table_name}")

    def count(self) -> int:
        try:
            return self.table.count_rows()
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Count failed: {e}") from e

    def get_stats(self) -> IndexStats:
        """
        Get statistics about the stored records.

        Returns:
            IndexStats object with counts
        """
        total_records = self.count()
        if total_records == 0:
            return IndexStats()

        try:
            df = self.table.to_pandas()
        except Exception as e:
            raise StoreError(f"Failed to read table for stats: {e}") from e

        return IndexStats(
            total_files=int(df["file_path"].nunique()),
            total_records=total_records,
            chunked_files=int(df[df["is_partial"]]["file_path"].nunique()),
            last_indexed=float(df["indexed_at"].max()),
        )

    def clear_all(self) -> None:
        """Drop the records table."""
        try:
            if self.table_name in self.db.table_names():
                self.db.drop_table(self.table_name)
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to clear store: {e}")
            raise StoreError(f"Failed to drop {self.table_name}: {e}") from e
        self._table = None
        logger.info(f"Cleared all data from {self.table_name}")

    @staticmethod
    def _record_to_row(record: IndexRecord) -> dict:
        row = {
            "id": record.id,
            "vector": record.vector,
            "file_path": record.file_path,
            "file_name": record.file_name,
            "file_size": record.file_size,
            "last_modified": record.last_modified,
            "fingerprint": record.fingerprint,
            "is_partial": record.is_partial,
            "text": record.text,
        }
        if isinstance(record, ChunkedRecord):
            row["chunk_index"] = record.chunk_index
            row["total_chunks"] = record.total_chunks
        return row

    @staticmethod
    def _row_to_record(row: dict, with_vector: bool = True) -> IndexRecord:
        common = {
            "id": row["id"],
            "file_path": row["file_path"],
            "file_name": row["file_name"],
            "file_size": row["file_size"],
            "last_modified": row["last_modified"],
            "fingerprint": row["fingerprint"],
        }
        if with_vector and row.get("vector") is not None:
            common["vector"] = [float(x) for x in row["vector"]]

        if row["is_partial"]:
            return ChunkedRecord(
                chunk_index=row["chunk_index"],
                total_chunks=row["total_chunks"],
                chunk_text=row["text"],
                **common,
            )
        return WholeFileRecord(full_text=row["text"], **common)

    def __repr__(self) -> str:
        return f"VectorStore(db_path={self.db_path}, table={self.table_name})"
