"""
Unit tests for the vector store.

Tests the LanceDB layer: upsert, similarity query, path lookup and delete.
"""

import concurrent.futures
import pytest
from codeask.errors import StoreError
from codeask.models import ChunkedRecord, WholeFileRecord, record_id
from codeask.store import VectorStore


def make_whole(path, fingerprint="f1", vector=None, text="print('hello')"):
    return WholeFileRecord(
        id=record_id(path, fingerprint),
        file_path=path,
        file_name=path.rsplit("/", 1)[-1],
        file_size=len(text),
        fingerprint=fingerprint,
        vector=vector or [0.1] * 8,
        full_text=text,
    )


def make_chunk(path, index, total, fingerprint="f1", vector=None):
    return ChunkedRecord(
        id=record_id(path, fingerprint, index),
        file_path=path,
        file_name=path.rsplit("/", 1)[-1],
        fingerprint=fingerprint,
        vector=vector or [0.1 * (index + 1)] * 8,
        chunk_index=index,
        total_chunks=total,
        chunk_text=f"chunk {index} of {path}",
    )


def test_store_initialization(vector_store):
    """The connection is lazy but the parent directory is created on first use."""
    assert vector_store.count() == 0
    assert vector_store.db_path.parent.exists()


def test_upsert_and_lookup_by_path(vector_store):
    written = vector_store.upsert([
        make_whole("src/a.py"),
        make_chunk("src/big.py", 0, 2),
        make_chunk("src/big.py", 1, 2),
    ])

    assert written == 3
    assert vector_store.count() == 3

    records = vector_store.records_for_path("src/big.py")
    assert sorted(r.chunk_index for r in records) == [0, 1]
    assert all(isinstance(r, ChunkedRecord) for r in records)
    assert all(r.vector is None for r in records)

    whole = vector_store.records_for_path("src/a.py")
    assert len(whole) == 1
    assert isinstance(whole[0], WholeFileRecord)
    assert whole[0].full_text == "print('hello')"


def test_upsert_replaces_same_id(vector_store):
    vector_store.upsert([make_whole("a.py", text="old")])
    vector_store.upsert([make_whole("a.py", text="new")])

    records = vector_store.records_for_path("a.py")
    assert len(records) == 1
    assert records[0].full_text == "new"


def test_upsert_empty_list(vector_store):
    assert vector_store.upsert([]) == 0


def test_lookup_path_with_quote(vector_store):
    path = "docs/it's here.md"
    vector_store.upsert([make_whole(path)])
    assert len(vector_store.records_for_path(path)) == 1


def test_query_orders_by_score(vector_store):
    vector_store.upsert([
        make_whole("near.py", vector=[1.0] * 8),
        make_whole("far.py", vector=[-1.0] * 8),
    ])

    matches = vector_store.query([1.0] * 8, top_k=2)

    assert [m.record.file_path for m in matches] == ["near.py", "far.py"]
    assert matches[0].score > matches[1].score
    assert all(0.0 <= m.score <= 1.0 for m in matches)
    assert matches[0].record.vector is not None


def test_query_limited_to_file_path(vector_store):
    vector_store.upsert([
        make_whole("near.py", vector=[1.0] * 8),
        make_chunk("far.py", 0, 1, vector=[-1.0] * 8),
    ])

    matches = vector_store.query([1.0] * 8, top_k=5, file_path="far.py")

    assert len(matches) == 1
    assert matches[0].record.file_path == "far.py"
    assert matches[0].record.chunk_index == 0


def test_delete_by_id(vector_store):
    first = make_whole("a.py", fingerprint="f1")
    second = make_whole("b.py", fingerprint="f1")
    vector_store.upsert([first, second])

    vector_store.delete([first.id])

    assert vector_store.records_for_path("a.py") == []
    assert len(vector_store.records_for_path("b.py")) == 1


def test_get_stats(vector_store):
    vector_store.upsert([
        make_whole("a.py"),
        make_chunk("big.py", 0, 2),
        make_chunk("big.py", 1, 2),
    ])

    stats = vector_store.get_stats()

    assert stats.total_records == 3
    assert stats.total_files == 2
    assert stats.chunked_files == 1
    assert stats.last_indexed is not None
    assert "Total files: 2" in str(stats)


def test_clear_all(vector_store):
    vector_store.upsert([make_whole("a.py")])
    vector_store.clear_all()
    assert vector_store.count() == 0


def test_reopen_reads_dimension(vector_store):
    vector_store.upsert([make_whole("a.py")])

    reopened = VectorStore(vector_store.db_path)
    assert reopened.count() == 1
    assert reopened.dimension == 8


def test_dimension_mismatch(vector_store):
    vector_store.upsert([make_whole("a.py")])

    other = VectorStore(vector_store.db_path, dimension=4)
    with pytest.raises(StoreError, match="8-dim"):
        other.count()


def test_missing_table_without_dimension(temp_dir):
    store = VectorStore(temp_dir / "empty.lance")
    with pytest.raises(StoreError):
        store.count()


def test_concurrent_first_access_creates_table_once(temp_dir):
    store = VectorStore(temp_dir / "fresh.lance", dimension=8)

    with concurrent.futures.ThreadPoolExecutor(max_workers=8) as executor:
        tables = list(executor.map(lambda _: store.table, range(8)))

    assert all(table is tables[0] for table in tables)
    assert store.count() == 0
