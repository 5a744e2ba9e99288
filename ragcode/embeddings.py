"""Embedding generation through an Ollama server."""

from __future__ import annotations

import json
import logging
import re
import threading
import urllib.error
import urllib.request
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from ragcode.errors import ErrorType, new_error, wrap

logger = logging.getLogger(__name__)

MAX_EMBEDDING_CHARS = 384
"""Conservative character limit that fits small embedding models."""

_SURROGATES = re.compile("[\ud800-\udfff]+")


def truncate_for_embedding(text: str) -> str:
    """Replace invalid characters and cut the text to the embedding limit."""
    text = _SURROGATES.sub("\ufffd", text)
    if len(text) <= MAX_EMBEDDING_CHARS:
        return text
    logger.debug(
        "Truncated chunk for embedding: %d -> %d characters", len(text), MAX_EMBEDDING_CHARS
    )
    return text[:MAX_EMBEDDING_CHARS]


def _decode_embedding(body: bytes) -> list[float]:
    try:
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError("response is not a JSON object")
        return [float(x) for x in data.get("embedding") or []]
    except (ValueError, TypeError) as exc:
        raise wrap(exc, ErrorType.INTERNAL, "failed to decode response") from exc


class OllamaEmbedder:
    """Generates embeddings with bounded concurrency against an Ollama server."""

    def __init__(
        self,
        base_url: str,
        model: str,
        num_workers: int = 4,
        max_concurrent: int = 16,
        timeout: float = 30.0,
    ) -> None:
        if num_workers <= 0:
            num_workers = 1
        if max_concurrent <= 0:
            max_concurrent = num_workers * 2
        self.base_url = base_url
        self.model = model
        self.num_workers = num_workers
        self.max_concurrent = max_concurrent
        self.timeout = timeout
        self._semaphore = threading.BoundedSemaphore(max_concurrent)

    def embed(self, text: str) -> list[float]:
        """Return the embedding vector for one text."""
        payload = json.dumps({"model": self.model, "prompt": truncate_for_embedding(text)}).encode()
        request = urllib.request.Request(
            f"{self.base_url}/api/embeddings",
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        with self._semaphore:
            try:
                with urllib.request.urlopen(request, timeout=self.timeout) as response:
                    status = response.status
                    body = response.read()
            except urllib.error.HTTPError as exc:
                detail = exc.read().decode("utf-8", "replace")
                raise new_error(
                    ErrorType.EXTERNAL,
                    f"Ollama returned non-200 status: {exc.code}, body: {detail}",
                ) from exc
            except OSError as exc:
                raise wrap(exc, ErrorType.EXTERNAL, "failed to send request to Ollama") from exc

        if status != 200:
            raise new_error(
                ErrorType.EXTERNAL,
                f"Ollama returned non-200 status: {status}, body: {body.decode('utf-8', 'replace')}",
            )
        return _decode_embedding(body)

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed many texts in parallel; results keep the input order."""
        logger.debug("Generating batch embeddings: count=%d workers=%d", len(texts), self.num_workers)
        if not texts:
            return []

        ordered: list[list[float]] = [[] for _ in texts]
        executor = ThreadPoolExecutor(max_workers=min(self.num_workers, len(texts)))
        try:
            futures: dict[Future[list[float]], int] = {
                executor.submit(self.embed, truncate_for_embedding(text)): index
                for index, text in enumerate(texts)
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    ordered[index] = future.result()
                except Exception as exc:
                    executor.shutdown(wait=False, cancel_futures=True)
                    raise wrap(
                        exc, ErrorType.EXTERNAL, f"embedding worker failed on index {index}"
                    ) from exc
        finally:
            executor.shutdown(wait=True)
        return ordered