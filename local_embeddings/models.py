"""Data types shared by the tokenizer, partitioner, pooler and scheduler."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from .errors import InvalidConfigurationError


class PoolingMode(str, Enum):
    """How the per-token hidden states of one partition become one vector."""

    CLS = "cls"  # first-token selection
    MEAN = "mean"  # mean over tokens

    @classmethod
    def parse(cls, value: "PoolingMode | str") -> "PoolingMode":
        if isinstance(value, PoolingMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(mode.value for mode in cls)
            raise InvalidConfigurationError(
                f"Unknown pooling mode {value!r}; expected one of: {choices}"
            ) from None


@dataclass(frozen=True)
class TokenSequence:
    """Tokens of one input text, including the start and end markers."""

    tokens: Tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.tokens) < 2:
            raise ValueError(
                "A token sequence must contain the start and end markers"
            )

    @property
    def inner(self) -> Tuple[str, ...]:
        return self.tokens[1:-1]

    @property
    def inner_count(self) -> int:
        return len(self.tokens) - 2

    def __len__(self) -> int:
        return len(self.tokens)


@dataclass(frozen=True)
class Partition:
    """Half-open range ``[start, end)`` of a :class:`TokenSequence`."""

    start: int
    end: int

    @property
    def weight(self) -> int:
        return self.end - self.start

    def slice(self, sequence: TokenSequence) -> Tuple[str, ...]:
        return sequence.tokens[self.start : self.end]


@dataclass(frozen=True)
class EmbeddingResult:
    vector: List[float]
    token_count: int


@dataclass(frozen=True)
class BatchResult:
    """Per-text results in input order plus the summed token count."""

    results: List[EmbeddingResult] = field(default_factory=list)
    token_count: int = 0

    @classmethod
    def from_results(cls, results: List[EmbeddingResult]) -> "BatchResult":
        return cls(
            results=list(results),
            token_count=sum(result.token_count for result in results),
        )

    @property
    def vectors(self) -> List[List[float]]:
        return [result.vector for result in self.results]

    def __len__(self) -> int:
        return len(self.results)
