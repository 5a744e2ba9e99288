"""Indexing pipeline: parse, chunk, embed, store and link code files."""

from __future__ import annotations

import dataclasses
import hashlib
import logging
import os
import threading
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Protocol

from ragcode.domain import CodeChunk, IndexingJob, SearchResult
from ragcode.errors import ErrorType, not_found_error, wrap
from ragcode.go_parser import detect_language
from ragcode.graph import Graph
from ragcode.graph_builder import Builder

logger = logging.getLogger(__name__)

_SKIPPED_DIRS = frozenset({"node_modules", "vendor"})


class Parser(Protocol):
    def parse(self, file_path: str) -> list[CodeChunk]: ...


class Chunker(Protocol):
    def chunk(self, chunks: list[CodeChunk], max_size: int = 0) -> list[CodeChunk]: ...


class Embedder(Protocol):
    def embed(self, text: str) -> list[float]: ...

    def embed_batch(self, texts: list[str]) -> list[list[float]]: ...


class ChunkStore(Protocol):
    def store(self, chunks: list[CodeChunk]) -> None: ...

    def delete(self, file_path: str) -> None: ...

    def get(self, chunk_id: str) -> CodeChunk: ...

    def search(self, vector: list[float], limit: int) -> list[SearchResult]: ...


class KeywordIndexer(Protocol):
    def add_to_inverted_index(self, chunks: list[CodeChunk]) -> None: ...


@dataclass
class IndexerConfig:
    """Tunable settings of the indexing pipeline."""

    max_chunk_size: int = 1500
    chunk_overlap: int = 150
    batch_size: int = 20
    max_retries: int = 3
    num_workers: int = 4


@dataclass
class IndexMetrics:
    """Counters describing one indexing run."""

    files_indexed: int = 0
    files_skipped: int = 0
    files_errored: int = 0
    chunks_created: int = 0
    chunks_retried: int = 0
    total_duration: float = 0.0
    _start_time: float = field(default_factory=time.monotonic, repr=False, compare=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def _record_file(self, indexed: bool, errored: bool) -> None:
        with self._lock:
            if errored:
                self.files_errored += 1
            elif indexed:
                self.files_indexed += 1
            else:
                self.files_skipped += 1

    def _record_chunks(self, count: int) -> None:
        with self._lock:
            self.chunks_created += count

    def _record_retry(self) -> None:
        with self._lock:
            self.chunks_retried += 1

    def _finish(self) -> None:
        with self._lock:
            self.total_duration = time.monotonic() - self._start_time

    def _snapshot(self) -> IndexMetrics:
        with self._lock:
            return dataclasses.replace(self)

    def log(self) -> None:
        """Emit a one-line summary of the run."""
        with self._lock:
            logger.info(
                "Indexing metrics: files_indexed=%d files_skipped=%d files_errored=%d "
                "chunks_created=%d retries=%d duration_ms=%d",
                self.files_indexed,
                self.files_skipped,
                self.files_errored,
                self.chunks_created,
                self.chunks_retried,
                int(self.total_duration * 1000),
            )


def hash_file(path: str) -> str:
    """Return the hex MD5 digest of a file's content."""
    digest = hashlib.md5()
    with open(path, "rb") as handle:
        for block in iter(lambda: handle.read(65536), b""):
            digest.update(block)
    return digest.hexdigest()


def _skip_dir(name: str) -> bool:
    return name.startswith(".") or name in _SKIPPED_DIRS


def _raise(error: OSError) -> None:
    raise error


def _batches(chunks: Sequence[CodeChunk], size: int):
    for start in range(0, len(chunks), size):
        yield start, chunks[start : start + size]


class Indexer:
    """Coordinates parsing, chunking, embedding, storage and graph updates."""

    def __init__(
        self,
        parser: Parser | None,
        chunker: Chunker | None,
        embedder: Embedder | None,
        store: ChunkStore | None,
        keyword_indexer: KeywordIndexer | None = None,
        graph: Graph | None = None,
        num_workers: int = 0,
        config: IndexerConfig | None = None,
    ) -> None:
        cfg = dataclasses.replace(config) if config is not None else IndexerConfig()
        if num_workers > 0:
            cfg.num_workers = num_workers
        self.parser = parser
        self.chunker = chunker
        self.embedder = embedder
        self.store = store
        self.keyword_indexer = keyword_indexer
        self.graph = graph
        self.num_workers = cfg.num_workers if cfg.num_workers > 0 else 1
        self.batch_size = cfg.batch_size if cfg.batch_size > 0 else 20
        self.max_retries = cfg.max_retries if cfg.max_retries > 0 else 3
        self._lock = threading.RLock()
        self._jobs: dict[str, IndexingJob] = {}
        self._file_hashes: dict[str, str] = {}
        self._metrics = IndexMetrics()

    def index_file(self, file_path: str) -> None:
        """Index one file, skipping it when its content has not changed."""
        logger.info("Indexing file: path=%s", file_path)
        metrics = self._metrics

        if detect_language(file_path) == "unknown":
            logger.debug("Skipping unknown file type: path=%s", file_path)
            metrics._record_file(False, False)
            return

        current_hash = ""
        try:
            current_hash = hash_file(file_path)
        except OSError as exc:
            logger.warning("Failed to hash file, will index anyway: path=%s error=%s", file_path, exc)
        else:
            with self._lock:
                previous = self._file_hashes.get(file_path)
            if previous == current_hash:
                logger.debug("File unchanged, skipping: path=%s", file_path)
                metrics._record_file(False, False)
                return

        try:
            chunks = self.parser.parse(file_path)
        except Exception as exc:
            metrics._record_file(False, True)
            raise wrap(exc, ErrorType.INTERNAL, "failed to parse file") from exc

        if not chunks:
            logger.debug("No chunks extracted from file: path=%s", file_path)
            metrics._record_file(False, False)
            return

        try:
            processed = self.chunker.chunk(chunks, 0)
        except Exception as exc:
            metrics._record_file(False, True)
            raise wrap(exc, ErrorType.INTERNAL, "failed to chunk file") from exc

        try:
            self._embed_chunks_batched(processed)
        except Exception:
            metrics._record_file(False, True)
            raise

        try:
            self.store.delete(file_path)
        except Exception as exc:
            logger.warning("Failed to delete old chunks: path=%s error=%s", file_path, exc)

        try:
            self._store_chunks_batched(processed)
        except Exception:
            metrics._record_file(False, True)
            raise

        if self.keyword_indexer is not None:
            try:
                self.keyword_indexer.add_to_inverted_index(processed)
            except Exception as exc:
                logger.error("Failed to add to keyword index: path=%s error=%s", file_path, exc)

        if self.graph is not None:
            Builder(self.graph).build(processed)

        if current_hash:
            with self._lock:
                self._file_hashes[file_path] = current_hash

        metrics._record_file(True, False)
        metrics._record_chunks(len(processed))
        logger.info("File indexed successfully: path=%s chunks=%d", file_path, len(processed))

    def index(self, path: str) -> None:
        """Index a file or, recursively, a directory; metrics restart for each call."""
        self._metrics = IndexMetrics()
        try:
            try:
                is_dir = os.path.isdir(path)
                os.stat(path)
            except OSError as exc:
                raise wrap(exc, ErrorType.VALIDATION, "failed to stat path") from exc
            if is_dir:
                self.index_directory(path)
            else:
                self.index_file(path)
        finally:
            self._metrics._finish()
            self._metrics.log()

    def index_directory(self, dir_path: str) -> None:
        """Index every known-language file under a directory using worker threads.

        Failures of single files are logged and counted, not raised.
        """
        logger.info("Indexing directory: path=%s", dir_path)
        files: list[str] = []
        if not _skip_dir(os.path.basename(os.path.normpath(dir_path))):
            for root, dirs, names in os.walk(dir_path, onerror=_raise):
                dirs[:] = sorted(d for d in dirs if not _skip_dir(d))
                files.extend(
                    os.path.join(root, name)
                    for name in sorted(names)
                    if detect_language(os.path.join(root, name)) != "unknown"
                )

        def work(file_path: str) -> bool:
            try:
                self.index_file(file_path)
            except Exception as exc:
                logger.error("Failed to index file in directory: path=%s error=%s", file_path, exc)
                return False
            return True

        with ThreadPoolExecutor(max_workers=self.num_workers) as pool:
            failed = sum(1 for ok in pool.map(work, files) if not ok)

        if failed:
            logger.warning("Some files failed to index: failed_count=%d total=%d", failed, len(files))
        logger.info("Directory indexing complete: total_files=%d failed=%d", len(files), failed)

    def delete_file(self, file_path: str) -> None:
        """Remove a file's chunks from the store and forget its hash."""
        logger.info("Deleting file from index: path=%s", file_path)
        with self._lock:
            self._file_hashes.pop(file_path, None)
        self.store.delete(file_path)

    def get_job(self, job_id: str) -> IndexingJob:
        """Return a known indexing job or raise a not-found error."""
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise not_found_error("job not found")
        return job

    def metrics(self) -> IndexMetrics:
        """Return a snapshot of the current metrics."""
        return self._metrics._snapshot()

    def _embed_chunks_batched(self, chunks: list[CodeChunk]) -> None:
        for start, batch in _batches(chunks, self.batch_size):
            try:
                embeddings = self.embedder.embed_batch([c.content for c in batch])
            except Exception as exc:
                raise wrap(exc, ErrorType.EXTERNAL, "failed to generate batch embeddings") from exc
            for chunk, embedding in zip(batch, embeddings):
                chunk.embedding = embedding
            logger.debug(
                "Embedded batch: start=%d end=%d total=%d", start, start + len(batch), len(chunks)
            )

    def _store_chunks_batched(self, chunks: list[CodeChunk]) -> None:
        for start, batch in _batches(chunks, self.batch_size):
            self._store_with_retry(batch)
            logger.debug(
                "Stored batch: start=%d end=%d total=%d", start, start + len(batch), len(chunks)
            )

    def _store_with_retry(self, batch: list[CodeChunk]) -> None:
        last_error: Exception | None = None
        for attempt in range(self.max_retries):
            if attempt > 0:
                backoff = attempt * attempt * 0.1
                logger.warning(
                    "Retrying store: attempt=%d backoff_ms=%d error=%s",
                    attempt + 1,
                    int(backoff * 1000),
                    last_error,
                )
                self._metrics._record_retry()
                time.sleep(backoff)
            try:
                self.store.store(batch)
            except Exception as exc:
                last_error = exc
                continue
            return
        raise wrap(
            last_error,
            ErrorType.INTERNAL,
            f"failed to store chunk batch after {self.max_retries} retries",
        )