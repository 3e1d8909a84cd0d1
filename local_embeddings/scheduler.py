"""
Concurrent embedding of many independent texts.

A single text is embedded on the calling thread.  Several texts are fanned
out to a thread pool that is created on first use and reused for the
lifetime of the scheduler.  Results are collected by input index, so their
order never depends on which worker finishes first.  A batch either
succeeds as a whole or raises; partial results are never returned.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from concurrent.futures import (
    ALL_COMPLETED,
    CancelledError,
    Future,
    ThreadPoolExecutor,
    wait,
)
from typing import Callable, List, Optional, Sequence

from .errors import (
    EmbeddingCancelledError,
    EmbeddingError,
    InferenceError,
    InvalidArgumentError,
    InvalidConfigurationError,
)
from .models import BatchResult, EmbeddingResult

logger = logging.getLogger(__name__)

EmbedFn = Callable[[str], EmbeddingResult]


class BatchScheduler:
    """Runs ``embed_fn`` once per text, in parallel for multi-text batches.

    Parameters
    ----------
    embed_fn : callable
        Embeds one text; typically :meth:`EmbeddingPipeline.embed`.  Must be
        safe to call from several threads at once.
    max_workers : int, optional
        Size of the worker pool.  Defaults to the number of CPUs.
    """

    def __init__(self, embed_fn: EmbedFn, max_workers: Optional[int] = None) -> None:
        if max_workers is None:
            max_workers = os.cpu_count() or 1
        if max_workers < 1:
            raise InvalidConfigurationError(
                f"max_workers must be at least 1, got {max_workers}"
            )
        self._embed_fn = embed_fn
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="local-embed",
                )
            return self._executor

    def embed_all(self, texts: Sequence[str]) -> BatchResult:
        """
        Embed every text in ``texts``.

        Raises:
            InvalidArgumentError: If ``texts`` is empty.
            InferenceError: If any text fails to embed.  Every job is waited
                for first; when several fail, the error of the lowest input
                index is raised, regardless of completion order.
            EmbeddingCancelledError: If a pending job was cancelled.
        """
        texts = list(texts)
        if not texts:
            raise InvalidArgumentError("texts must contain at least one entry")

        if len(texts) == 1:
            try:
                result = self._embed_fn(texts[0])
            except EmbeddingError:
                raise
            except Exception as exc:
                raise InferenceError(f"Embedding failed for text 0: {exc}") from exc
            return BatchResult.from_results([result])

        logger.info(f"Embedding batch of {len(texts)} texts")
        executor = self._get_executor()
        futures: List[Future] = [executor.submit(self._embed_fn, text) for text in texts]
        try:
            wait(futures, return_when=ALL_COMPLETED)
        except KeyboardInterrupt:
            for future in futures:
                future.cancel()
            raise

        results: List[EmbeddingResult] = []
        for index, future in enumerate(futures):
            try:
                results.append(future.result())
            except CancelledError as exc:
                raise EmbeddingCancelledError(
                    f"Embedding of text {index} was cancelled"
                ) from exc
            except EmbeddingError:
                logger.error(f"Embedding failed for text {index} of {len(texts)}")
                raise
            except Exception as exc:
                logger.error(f"Embedding failed for text {index} of {len(texts)}")
                raise InferenceError(f"Embedding failed for text {index}: {exc}") from exc

        return BatchResult.from_results(results)

    async def aembed_all(self, texts: Sequence[str]) -> BatchResult:
        return await asyncio.to_thread(self.embed_all, texts)

    def close(self, cancel_pending: bool = False) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True, cancel_futures=cancel_pending)

    def __enter__(self) -> "BatchScheduler":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
