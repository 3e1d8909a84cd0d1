"""
In-process embedding model.

``LocalEmbeddingModel`` wires a tokenizer, an inference engine and a pooling
mode into the embedding pipeline, adds the batch scheduler on top and
notifies listeners around every call.

Example usage:

    from local_embeddings import LocalEmbeddingModel

    with LocalEmbeddingModel.from_pretrained(
        "sentence-transformers/all-MiniLM-L6-v2", pooling_mode="mean"
    ) as model:
        batch = model.embed_all(["first text", "second text"])
        for result in batch.results:
            print(result.token_count, result.vector[:4])
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional, Sequence

from pydantic import ValidationError

from .embedding_config import MARKER_COUNT, MAX_SEQUENCE_LENGTH, EncoderConfig
from .errors import InvalidConfigurationError
from .inference import InferenceEngine, TorchInferenceEngine
from .listeners import EmbeddingModelListener, ListenerChain
from .models import BatchResult, EmbeddingResult, PoolingMode
from .partitioner import DEFAULT_CONTINUATION_PREFIX
from .pipeline import EmbeddingPipeline, TransformerPartitionEncoder
from .scheduler import BatchScheduler
from .tokenizer import HuggingFaceTokenizer, Tokenizer

logger = logging.getLogger(__name__)

# Text embedded once to measure the output size when the model config does
# not state it.
DIMENSION_PROBE_TEXT = "test"


class LocalEmbeddingModel:
    """Embeds texts of any length with a local bi-encoder.

    Parameters
    ----------
    tokenizer : Tokenizer
        Sub-word tokenizer matching the engine's vocabulary.
    engine : InferenceEngine
        Produces per-token hidden states for one partition.
    pooling_mode : PoolingMode or str
        ``"cls"`` or ``"mean"``.  Required: it depends on how the model was
        trained.
    max_sequence_length : int, default MAX_SEQUENCE_LENGTH
        Absolute encoder limit including the two marker tokens.
    max_workers : int, optional
        Threads used for multi-text batches; defaults to the CPU count.
    listeners : iterable of EmbeddingModelListener, optional
        Notified around every ``embed``/``embed_all`` call.
    dimension : int, optional
        Output size when known up front.
    """

    def __init__(
        self,
        tokenizer: Tokenizer,
        engine: InferenceEngine,
        *,
        pooling_mode: PoolingMode | str,
        max_sequence_length: int = MAX_SEQUENCE_LENGTH,
        max_workers: Optional[int] = None,
        listeners: Optional[Iterable[EmbeddingModelListener]] = None,
        dimension: Optional[int] = None,
    ) -> None:
        if max_sequence_length <= MARKER_COUNT:
            raise InvalidConfigurationError(
                f"max_sequence_length must be greater than {MARKER_COUNT}, "
                f"got {max_sequence_length}"
            )
        self.pooling_mode = PoolingMode.parse(pooling_mode)
        self.max_sequence_length = max_sequence_length
        self.max_inner_length = max_sequence_length - MARKER_COUNT

        encoder = TransformerPartitionEncoder(
            tokenizer, engine, self.pooling_mode, self.max_inner_length
        )
        self._pipeline = EmbeddingPipeline(tokenizer, encoder, self.max_inner_length)
        self._scheduler = BatchScheduler(self._pipeline.embed, max_workers=max_workers)
        self._listeners = ListenerChain(listeners)
        self._engine = engine
        self._dimension = dimension

    @classmethod
    def from_pretrained(
        cls,
        model_name: str,
        *,
        pooling_mode: PoolingMode | str,
        max_sequence_length: Optional[int] = None,
        max_workers: Optional[int] = None,
        device: Optional[str] = None,
        continuation_prefix: str = DEFAULT_CONTINUATION_PREFIX,
        trust_remote_code: bool = False,
    ) -> "LocalEmbeddingModel":
        """Load tokenizer and encoder weights from the Hugging Face hub or disk."""
        pooling_mode = PoolingMode.parse(pooling_mode)
        tokenizer = HuggingFaceTokenizer.from_pretrained(
            model_name,
            continuation_prefix=continuation_prefix,
            trust_remote_code=trust_remote_code,
        )
        engine = TorchInferenceEngine.from_pretrained(
            model_name, device=device, trust_remote_code=trust_remote_code
        )
        if max_sequence_length is None:
            max_sequence_length = tokenizer.model_max_length or MAX_SEQUENCE_LENGTH
        positions = engine.max_position_embeddings
        if positions is not None and positions < max_sequence_length:
            logger.warning(
                f"Capping max_sequence_length {max_sequence_length} to the "
                f"model's {positions} positions"
            )
            max_sequence_length = positions
        logger.info(
            f"Loaded {model_name} on {engine.device} "
            f"(pooling={pooling_mode.value}, max_sequence_length={max_sequence_length})"
        )
        return cls(
            tokenizer,
            engine,
            pooling_mode=pooling_mode,
            max_sequence_length=max_sequence_length,
            max_workers=max_workers,
            dimension=engine.hidden_size,
        )

    @classmethod
    def from_config(cls, config: EncoderConfig) -> "LocalEmbeddingModel":
        return cls.from_pretrained(
            config.model_name,
            pooling_mode=config.pooling_mode,
            max_sequence_length=config.max_sequence_length,
            max_workers=config.max_workers,
            device=config.device,
        )

    @classmethod
    def from_env(cls, pooling_mode: Optional[str] = None) -> "LocalEmbeddingModel":
        try:
            config = EncoderConfig.from_env(pooling_mode)
        except ValidationError as exc:
            raise InvalidConfigurationError(str(exc)) from exc
        return cls.from_config(config)

    def add_listener(self, listener: EmbeddingModelListener) -> "LocalEmbeddingModel":
        self._listeners.add(listener)
        return self

    def embed(self, text: str) -> EmbeddingResult:
        """Embed one text on the calling thread."""
        texts = [text]
        attributes = self._listeners.request(texts)
        try:
            result = self._pipeline.embed(text)
        except BaseException as exc:
            self._listeners.error(texts, exc, attributes)
            raise
        self._listeners.response(texts, BatchResult.from_results([result]), attributes)
        return result

    def embed_all(self, texts: Sequence[str]) -> BatchResult:
        """Embed several texts, in parallel when there is more than one."""
        texts = list(texts)
        attributes = self._listeners.request(texts)
        try:
            batch = self._scheduler.embed_all(texts)
        except BaseException as exc:
            self._listeners.error(texts, exc, attributes)
            raise
        self._listeners.response(texts, batch, attributes)
        return batch

    async def aembed_all(self, texts: Sequence[str]) -> BatchResult:
        return await asyncio.to_thread(self.embed_all, texts)

    def count_tokens(self, text: str) -> int:
        """Number of tokens ``text`` would consume, markers excluded."""
        return self._pipeline.count_tokens(text)

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            self._dimension = len(self._pipeline.embed(DIMENSION_PROBE_TEXT).vector)
        return self._dimension

    def close(self) -> None:
        self._scheduler.close()

    def __enter__(self) -> "LocalEmbeddingModel":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
