"""
Filter bank and vocabulary loader.

Reads the combined ``filters_vocab`` resource: a mel filter bank followed
by the token vocabulary of the acoustic model. Loaded once per init and
shared read-only by the spectrogram extractor and the token decoder.

Layout (native byte order):
    magic      int32   0x5553454E
    n_mel      int32
    n_fft      int32
    filters    float32[n_mel * n_fft]   row-major
    n_vocab    int32
    words      n_vocab x (int32 length, UTF-8 bytes)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
import numpy as np
from numpy.typing import NDArray

from toneguard.core.errors import FormatError, ResourceIOError

logger = logging.getLogger(__name__)

VOCAB_MAGIC = 0x5553454E

N_VOCAB_ENGLISH = 51864
N_VOCAB_MULTILINGUAL = 51865

_INT32 = np.dtype("=i4")
_FLOAT32 = np.dtype("=f4")


@dataclass(frozen=True, slots=True)
class FilterBank:
    """Mel filter bank, ``n_mel x n_fft`` non-negative weights."""
    weights: NDArray[np.float32]

    def __post_init__(self) -> None:
        self.weights.setflags(write=False)

    @property
    def n_mel(self) -> int:
        return int(self.weights.shape[0])

    @property
    def n_fft(self) -> int:
        return int(self.weights.shape[1])


@dataclass(frozen=True, slots=True)
class ControlTokens:
    """Ids of the structural tokens. Multilingual models shift all but the task ids."""
    eot: int = 50256
    sot: int = 50257
    translate: int = 50358
    transcribe: int = 50359
    prev: int = 50360
    solm: int = 50361
    not_: int = 50362
    beg: int = 50363

    @classmethod
    def for_model(cls, multilingual: bool) -> ControlTokens:
        base = cls()
        if not multilingual:
            return base
        return cls(
            eot=base.eot + 1,
            sot=base.sot + 1,
            translate=base.translate,
            transcribe=base.transcribe,
            prev=base.prev + 1,
            solm=base.solm + 1,
            not_=base.not_ + 1,
            beg=base.beg + 1,
        )


class Vocabulary:
    """
    Token id to text fragment table.

    Stored as a fixed-size list indexed by id. Ids strictly below
    ``tokens.eot`` are text; anything at or above is structural.
    """

    def __init__(self, words: list[str | None], tokens: ControlTokens, n_base: int) -> None:
        self._words = words
        self._tokens = tokens
        self._n_base = n_base

    @property
    def tokens(self) -> ControlTokens:
        return self._tokens

    @property
    def eot(self) -> int:
        return self._tokens.eot

    @property
    def n_base(self) -> int:
        """Number of words read from the resource."""
        return self._n_base

    def __len__(self) -> int:
        return len(self._words)

    def word(self, token: int) -> str | None:
        """Return the fragment for ``token`` or None when unknown."""
        if 0 <= token < len(self._words):
            return self._words[token]
        return None

    def is_text(self, token: int) -> bool:
        return 0 <= token < self._tokens.eot


def synthetic_label(token: int, tokens: ControlTokens) -> str:
    """
    Label for an id beyond the loaded base vocabulary.

    The timestamp branch is checked first, so BEG itself only reaches
    its own label because ``token > beg`` is false for it.
    """
    if token > tokens.beg:
        return f"[_TT_{token - tokens.beg}]"
    if token == tokens.eot:
        return "[_EOT_]"
    if token == tokens.sot:
        return "[_SOT_]"
    if token == tokens.prev:
        return "[_PREV_]"
    if token == tokens.not_:
        return "[_NOT_]"
    if token == tokens.beg:
        return "[_BEG_]"
    return f"[_extra_token_{token}]"


class _Reader:
    """Bounds-checked cursor over the resource bytes."""

    def __init__(self, data: bytes, path: str) -> None:
        self._data = data
        self._pos = 0
        self._path = path

    @property
    def size(self) -> int:
        return len(self._data)

    def _take(self, n: int) -> bytes:
        end = self._pos + n
        if n < 0 or end > len(self._data):
            raise ResourceIOError(
                f"Truncated vocab file {self._path}: need {n} bytes at offset "
                f"{self._pos}, have {len(self._data) - self._pos}",
                path=self._path,
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def int32(self) -> int:
        return int(np.frombuffer(self._take(4), dtype=_INT32)[0])

    def count(self, what: str) -> int:
        value = self.int32()
        if value < 0:
            raise FormatError(f"Negative {what} ({value}) in {self._path}")
        return value

    def float32s(self, n: int) -> NDArray[np.float32]:
        return np.frombuffer(self._take(n * 4), dtype=_FLOAT32).astype(np.float32)

    def raw(self, n: int) -> bytes:
        return self._take(n)


def load_filters_and_vocab(
    path: str | Path,
    multilingual: bool = False,
) -> tuple[FilterBank, Vocabulary]:
    """
    Parse a ``filters_vocab`` resource.

    Args:
        path: Resource location on disk
        multilingual: Whether the model uses the multilingual token layout

    Returns:
        (FilterBank, Vocabulary)

    Raises:
        FormatError: Bad magic or negative sizes
        ResourceIOError: Missing, unreadable, or truncated resource
    """
    path = str(path)
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise ResourceIOError(f"Cannot read vocab file {path}: {e}", path=path) from e

    reader = _Reader(data, path)
    logger.debug(f"Vocab file size: {reader.size}")

    magic = reader.int32() & 0xFFFFFFFF
    if magic != VOCAB_MAGIC:
        raise FormatError(f"Invalid vocab file (bad magic: {magic:#010x}), {path}")

    n_mel = reader.count("n_mel")
    n_fft = reader.count("n_fft")
    logger.debug(f"n_mel={n_mel}, n_fft={n_fft}")
    filters = FilterBank(reader.float32s(n_mel * n_fft).reshape(n_mel, n_fft))

    n_vocab = reader.count("n_vocab")
    logger.debug(f"n_vocab={n_vocab}")

    tokens = ControlTokens.for_model(multilingual)
    n_total = N_VOCAB_MULTILINGUAL if multilingual else N_VOCAB_ENGLISH

    words: list[str | None] = [None] * max(n_vocab, n_total)
    for i in range(n_vocab):
        length = reader.count(f"length of word {i}")
        words[i] = reader.raw(length).decode("utf-8", errors="replace")

    for i in range(n_vocab, n_total):
        words[i] = synthetic_label(i, tokens)

    logger.info(
        f"Loaded filters {n_mel}x{n_fft} and {n_vocab} words "
        f"({'multilingual' if multilingual else 'english'}) from {path}"
    )
    return filters, Vocabulary(words, tokens, n_vocab)
