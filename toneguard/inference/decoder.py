"""Token id to text decoding."""

from __future__ import annotations

import logging
from typing import Iterable

from toneguard.features.vocab import Vocabulary

logger = logging.getLogger(__name__)


class TokenDecoder:
    """
    Maps decoded token ids back to text.

    - Stops at the first end-of-transcript token (not appended)
    - Appends fragments of text tokens as-is, no separators
    - Skips control, timestamp and unknown tokens
    """

    def __init__(self, vocab: Vocabulary) -> None:
        self._vocab = vocab

    def decode(self, tokens: Iterable[int]) -> str:
        return decode(tokens, self._vocab)


def decode(tokens: Iterable[int], vocab: Vocabulary) -> str:
    eot = vocab.eot
    parts: list[str] = []
    for token in tokens:
        token = int(token)
        if token == eot:
            break
        if vocab.is_text(token):
            word = vocab.word(token)
            if word is not None:
                parts.append(word)
        else:
            logger.debug(f"Skipping token: {token}, word: {vocab.word(token)}")
    return "".join(parts)
