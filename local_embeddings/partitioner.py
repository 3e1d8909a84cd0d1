"""
Word-safe partitioning of token sequences that exceed the encoder limit.

A partition never ends between a word's first sub-word token and one of its
continuation tokens.  Continuation tokens are recognised by a prefix
(``"##"`` for WordPiece vocabularies).  The start and end markers of the
sequence are never placed inside a partition; the encoder adds its own
markers around every partition.
"""

import logging
from typing import List

from .errors import InvalidConfigurationError
from .models import Partition, TokenSequence

logger = logging.getLogger(__name__)

DEFAULT_CONTINUATION_PREFIX = "##"


def is_continuation(token: str, prefix: str = DEFAULT_CONTINUATION_PREFIX) -> bool:
    return token.startswith(prefix)


def partition(
    tokens: TokenSequence,
    max_len: int,
    continuation_prefix: str = DEFAULT_CONTINUATION_PREFIX,
) -> List[Partition]:
    """
    Split the inner tokens of ``tokens`` into partitions of at most ``max_len``.

    Args:
        tokens: Tokenized text including the start and end markers.
        max_len: Maximum number of inner tokens per partition.
        continuation_prefix: Prefix marking a token that continues a word.

    Returns:
        Contiguous partitions covering every inner token once, in order.  A
        single word longer than ``max_len`` tokens yields one oversized
        partition holding the whole word.

    Raises:
        InvalidConfigurationError: If ``max_len`` is smaller than 1.
    """
    if max_len < 1:
        raise InvalidConfigurationError(f"max_len must be at least 1, got {max_len}")

    seq = tokens.tokens
    # Index of the end marker; inner tokens occupy [1, stop).
    stop = len(seq) - 1
    partitions: List[Partition] = []

    start = 1
    while start < stop:
        end = min(start + max_len, stop)
        # Step back until the token following the partition starts a word.
        while end < stop and end > start and is_continuation(seq[end], continuation_prefix):
            end -= 1

        if end == start:
            # One word is longer than max_len: keep it whole.
            end = start + 1
            while end < stop and is_continuation(seq[end], continuation_prefix):
                end += 1
            logger.warning(
                f"Word of {end - start} tokens exceeds partition limit {max_len}; "
                "emitting an oversized partition"
            )

        partitions.append(Partition(start, end))
        start = end

    return partitions
