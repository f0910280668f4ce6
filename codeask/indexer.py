"""
Core indexing logic for codeask.

Drives classification, change detection, chunking, embedding and storage
for a set of files, in sequential batches with a bounded worker pool per
batch.
"""

import concurrent.futures
import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from .changes import ChangeDetector, fingerprint
from .chunkers import ChunkStrategy, SlidingWindowChunker
from .classifier import FileClassifier
from .config import Config
from .embeddings import EmbeddingClient
from .errors import FileAccessError
from .lister import file_record, list_dir
from .models import ChunkedRecord, FileRecord, IndexRecord, IndexResult, WholeFileRecord, record_id
from .progress import ProgressEvent, ProgressReporter
from .store import VectorStore

logger = logging.getLogger(__name__)


class Indexer:
    """
    Indexes files into the vector store.

    Features:
    - Eligibility filtering and a per-run file cap
    - Incremental indexing (unchanged files cost one lookup, no embedding)
    - Write-then-delete reconciliation of stale records
    - Per-file failure isolation within a batch
    - Cooperative cancellation between batches
    """

    def __init__(
        self,
        store: VectorStore,
        embeddings: EmbeddingClient,
        config: Config,
        classifier: Optional[FileClassifier] = None,
        chunker: Optional[ChunkStrategy] = None,
    ):
        """
        Initialize the indexer.

        Args:
            store: Vector store for persisting records
            embeddings: Client turning text into vectors
            config: Configuration object
            classifier: Eligibility rules (built from config if omitted)
            chunker: Chunking strategy (sliding window from config if omitted)
        """
        self.store = store
        self.embeddings = embeddings
        self.config = config

        self.classifier = classifier or FileClassifier(
            max_file_size=config.get("indexer", "max_file_size", default=5 * 1024 * 1024),
            extra_patterns=config.get("indexer", "exclude", default=[]),
        )
        self.chunker = chunker or SlidingWindowChunker(
            chunk_size=config.get("indexer", "chunk_size", default=2500),
            overlap=config.get("indexer", "chunk_overlap", default=400),
            max_chunks=config.get("indexer", "max_chunks", default=20),
            min_chunk_chars=config.get("indexer", "min_chunk_chars", default=100),
        )
        self.detector = ChangeDetector(store)

        self.max_files = config.get("indexer", "max_files", default=200)
        self.batch_size = config.get("indexer", "batch_size", default=5)
        self.max_input_chars = config.get("embeddings", "max_input_chars", default=8000)
        self.max_workers = config.get("performance", "max_workers", default=min(4, os.cpu_count() or 1))
        self.file_timeout = config.get("performance", "file_timeout", default=120)

        # One run at a time per indexer
        self._run_lock = threading.Lock()

    def index_path(
        self,
        path: Path,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[ProgressEvent], None]] = None,
    ) -> IndexResult:
        """
        Index a file or every file under a directory.

        Args:
            path: File or directory to index
            cancel_event: Set it to stop the run before the next batch
            progress_callback: Optional callback(ProgressEvent) per finished file

        Returns:
            IndexResult with the run's counts

        Raises:
            OSError: If the path cannot be listed
        """
        path = Path(path).resolve()
        if path.is_file():
            files = [file_record(path)]
            root = path.parent
        elif path.is_dir():
            files = list_dir(path)
            root = path
        else:
            raise FileNotFoundError(f"Path does not exist: {path}")

        return self.index_files(files, root=root, cancel_event=cancel_event, progress_callback=progress_callback)

    def index_files(
        self,
        files: list[FileRecord],
        root: Optional[Path] = None,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[ProgressEvent], None]] = None,
    ) -> IndexResult:
        """
        Index a list of files.

        Args:
            files: Snapshot of the files to consider
            root: Directory that path rules are evaluated against
                (full paths are checked if omitted)
            cancel_event: Set it to stop the run before the next batch
            progress_callback: Optional callback(ProgressEvent) per finished file

        Returns:
            IndexResult with the run's counts
        """
        with self._run_lock:
            start_time = time.time()
            result = IndexResult()

            eligible = self.select_files(files, root)
            result.skipped = len(files) - len(eligible)

            if len(eligible) > self.max_files:
                logger.info(f"Limiting run to {self.max_files} of {len(eligible)} eligible files")
                eligible = eligible[:self.max_files]

            batches = [eligible[i:i + self.batch_size] for i in range(0, len(eligible), self.batch_size)]
            reporter = ProgressReporter(len(eligible), len(batches), callback=progress_callback)

            for number, batch in enumerate(batches, 1):
                if cancel_event is not None and cancel_event.is_set():
                    logger.info(f"Indexing cancelled before batch {number} of {len(batches)}")
                    result.cancelled = True
                    break

                self._run_batch(batch, number, result, reporter)
                logger.info(f"Completed batch {number} of {len(batches)}")

            logger.info(
                f"Indexing complete: {result.processed} indexed, {result.unchanged} unchanged, "
                f"{result.skipped} skipped, {result.failed} failed, "
                f"{result.vector_count} vectors written ({time.time() - start_time:.2f}s)"
            )
            return result

    def select_files(self, files: list[FileRecord], root: Optional[Path] = None) -> list[FileRecord]:
        """
        Return the files the classifier accepts, in input order.

        Path rules see each path relative to root when one is given, so the
        location of the indexed folder itself cannot exclude it. Without a
        root they see the full path.
        """
        selected = []
        for file in files:
            if file.is_directory:
                continue
            rule_path = file.path
            if root is not None:
                try:
                    rule_path = Path(file.path).relative_to(root).as_posix()
                except ValueError:
                    pass
            if self.classifier.should_index(rule_path, file.size):
                selected.append(file)

        logger.info(f"Filtered {len(files)} entries down to {len(selected)} indexable files")
        return selected

    def _run_batch(
        self,
        batch: list[FileRecord],
        number: int,
        result: IndexResult,
        reporter: ProgressReporter,
    ) -> None:
        """
        Index one batch on a bounded pool; a failing file never stops its siblings.

        A file that outlives file_timeout is counted as failed and abandoned: it
        writes nothing once its deadline has passed. The batch returns only after
        every worker has stopped, so no work from it overlaps the next batch.
        """
        abandoned = {file.path: threading.Event() for file in batch}
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=min(self.max_workers, len(batch)))
        try:
            futures = [(executor.submit(self.index_file, file, abandoned[file.path]), file) for file in batch]

            for future, file in futures:
                try:
                    status, written = future.result(timeout=self.file_timeout)
                except concurrent.futures.TimeoutError:
                    abandoned[file.path].set()
                    logger.error(f"Timed out indexing {file.path} after {self.file_timeout}s")
                    status, written = "failed", 0
                except Exception as e:
                    logger.error(f"Failed to index {file.path}: {e}")
                    status, written = "failed", 0

                if status == "indexed":
                    result.processed += 1
                    result.vector_count += written
                elif status == "unchanged":
                    result.unchanged += 1
                elif status == "skipped":
                    result.skipped += 1
                else:
                    result.failed += 1

                reporter.update(file.path, status, number)
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    def index_file(self, file: FileRecord, abandoned: Optional[threading.Event] = None) -> tuple[str, int]:
        """
        Index one file.

        Args:
            file: File to index
            abandoned: Once set, the file is dropped before anything is written

        Returns:
            (status, records written) where status is "indexed", "unchanged",
            "skipped" or "failed" (abandoned)

        Raises:
            ProviderError: If embedding fails
            StoreError: If a store call fails
        """
        try:
            content = self.read_content(file)
        except FileAccessError as e:
            logger.warning(str(e))
            return "skipped", 0

        content_fingerprint = fingerprint(content)
        change = self.detector.check(file.path, content_fingerprint)
        if not change.changed:
            logger.debug(f"Skipping unchanged file: {file.path}")
            return "unchanged", 0

        records = []
        if content.strip():
            records = self.build_records(file, content, content_fingerprint)

        if abandoned is not None and abandoned.is_set():
            logger.warning(f"Dropping {file.path}: abandoned before writing")
            return "failed", 0

        if not records:
            # Nothing left worth indexing; earlier versions must not stay retrievable
            if change.existing_ids:
                self.store.delete(change.existing_ids)
                logger.info(f"Removed {len(change.existing_ids)} records for {file.path}: no indexable content")
            logger.debug(f"Skipping file with no indexable content: {file.path}")
            return "skipped", 0

        written = self.store.upsert(records)

        # Only after the fresh records are stored
        new_ids = {record.id for record in records}
        stale_ids = [record_id for record_id in change.existing_ids if record_id not in new_ids]
        if stale_ids:
            self.store.delete(stale_ids)
            logger.info(f"Deleted {len(stale_ids)} outdated records for {file.path}")

        if change.first_index:
            logger.debug(f"Indexed new file {file.path}: {written} records")
        else:
            logger.debug(f"Re-indexed {file.path}: {written} records")
        return "indexed", written

    def read_content(self, file: FileRecord) -> str:
        """
        Read a file as text, ignoring undecodable bytes.

        Raises:
            FileAccessError: If the file cannot be read
        """
        try:
            with open(file.path, "r", encoding="utf-8", errors="ignore") as f:
                return f.read()
        except OSError as e:
            raise FileAccessError(f"Cannot read {file.path}: {e}") from e

    def build_records(self, file: FileRecord, content: str, content_fingerprint: str) -> list[IndexRecord]:
        """Chunk the content and embed each retained chunk."""
        common = {
            "file_path": file.path,
            "file_name": file.name,
            "file_size": file.size,
            "last_modified": file.last_modified,
            "fingerprint": content_fingerprint,
        }

        records: list[IndexRecord] = []
        for chunk in self.chunker.chunk(content, file.path):
            vector = self.embeddings.embed(chunk.text[:self.max_input_chars])
            if chunk.is_partial:
                records.append(ChunkedRecord(
                    id=record_id(file.path, content_fingerprint, chunk.index),
                    vector=vector,
                    chunk_index=chunk.index,
                    total_chunks=chunk.total_chunks,
                    chunk_text=chunk.text,
                    **common,
                ))
            else:
                records.append(WholeFileRecord(
                    id=record_id(file.path, content_fingerprint),
                    vector=vector,
                    full_text=chunk.text,
                    **common,
                ))
        return records

    def __repr__(self) -> str:
        return f"Indexer(store={self.store})"
