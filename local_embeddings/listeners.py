"""
Observation hooks for embedding calls.

Listeners are notified once per ``embed``/``embed_all`` call: first
``on_request``, then either ``on_response`` or ``on_error``.  They run in
the order they were added and share an ``attributes`` dict, so one listener
can hand data to another.  A listener that raises is logged and skipped; it
never changes the outcome of the embedding call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .models import BatchResult

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingRequestContext:
    texts: List[str]
    attributes: Dict[Any, Any] = field(default_factory=dict)


@dataclass
class EmbeddingResponseContext:
    texts: List[str]
    result: BatchResult
    attributes: Dict[Any, Any] = field(default_factory=dict)


@dataclass
class EmbeddingErrorContext:
    texts: List[str]
    error: BaseException
    attributes: Dict[Any, Any] = field(default_factory=dict)


class EmbeddingModelListener:
    """Base listener; override the hooks you need."""

    def on_request(self, context: EmbeddingRequestContext) -> None:
        pass

    def on_response(self, context: EmbeddingResponseContext) -> None:
        pass

    def on_error(self, context: EmbeddingErrorContext) -> None:
        pass


class ListenerChain:
    """Dispatches one call's lifecycle events to a list of listeners."""

    def __init__(self, listeners: Optional[Iterable[EmbeddingModelListener]] = None) -> None:
        self._listeners: List[EmbeddingModelListener] = list(listeners or [])

    def add(self, listener: EmbeddingModelListener) -> None:
        self._listeners.append(listener)

    def __len__(self) -> int:
        return len(self._listeners)

    def request(self, texts: List[str]) -> Dict[Any, Any]:
        attributes: Dict[Any, Any] = {}
        context = EmbeddingRequestContext(texts=texts, attributes=attributes)
        self._dispatch("on_request", context)
        return attributes

    def response(self, texts: List[str], result: BatchResult, attributes: Dict[Any, Any]) -> None:
        context = EmbeddingResponseContext(texts=texts, result=result, attributes=attributes)
        self._dispatch("on_response", context)

    def error(self, texts: List[str], error: BaseException, attributes: Dict[Any, Any]) -> None:
        context = EmbeddingErrorContext(texts=texts, error=error, attributes=attributes)
        self._dispatch("on_error", context)

    def _dispatch(self, hook: str, context: Any) -> None:
        for listener in self._listeners:
            try:
                getattr(listener, hook)(context)
            except Exception as e:
                logger.warning(f"Listener {type(listener).__name__}.{hook} failed: {e}")
