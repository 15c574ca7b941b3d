"""Approximate token counting for converted Markdown."""

import math
import re
from typing import Optional

# Rough BPE-style pre-tokenization: contractions, words, numbers,
# punctuation runs and whitespace runs
PRE_TOKENIZE = re.compile(
    r"'(?:[sdmt]|ll|ve|re)| ?[^\W\d_]+| ?\d{1,3}| ?[^\s\w]+|\s+(?!\S)|\s+",
    re.IGNORECASE,
)


class ApproximateTokenEstimator:
    """
    Estimates the token count of a text without a model vocabulary.

    The text is split the way BPE tokenizers pre-tokenize, and each piece
    is assumed to cost one token per four UTF-8 bytes (at least one).
    Intended for "will this fit" checks, not exact billing.
    """

    def estimate(self, text: str) -> int:
        if not text:
            return 0
        pieces = PRE_TOKENIZE.findall(text)
        return 1 + sum(max(1, math.ceil(len(piece.encode("utf-8")) / 4)) for piece in pieces)


def format_token_count(count: int, limit: Optional[int] = None) -> str:
    """
    Format a token count for display.

    Example:
        >>> format_token_count(1234)
        '1,234 tokens'
        >>> format_token_count(1234, limit=4096)
        '1,234 / 4,096 tokens (30%)'
    """
    if limit:
        percent = round(count / limit * 100)
        return f"{count:,} / {limit:,} tokens ({percent}%)"
    return f"{count:,} tokens"
