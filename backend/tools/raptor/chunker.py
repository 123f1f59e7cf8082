"""
RAPTOR Chunker - Token-bounded recursive text splitting

Splits flat text into chunks of at most `chunk_size` estimated tokens.

Strategy:
1. Group whole sentences greedily (when sentence preservation is on)
2. Split oversized pieces down a separator hierarchy
   (paragraph -> line -> sentence end -> clause -> word -> characters)
3. Prefix each chunk with a tail of the previous one for context continuity
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from config import get_config
from errors import InvalidInputError

logger = logging.getLogger(__name__)

# Priority order; the character-level fallback follows the last entry
SEPARATORS = ["\n\n", "\n", ". ", "! ", "? ", "; ", ", ", " "]

DEFAULT_OVERLAP_RATIO = 0.1

_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")


class TokenEstimator:
    """Heuristic token counter: ~4 chars per token plus a punctuation penalty."""

    CHARS_PER_TOKEN = 4.0
    PUNCTUATION_WEIGHT = 0.3

    def estimate(self, text: Optional[str]) -> int:
        if text is None or not text.strip():
            return 0

        normalized = _WHITESPACE_RE.sub(" ", text).strip()
        base = len(normalized) / self.CHARS_PER_TOKEN
        punctuation = sum(1 for ch in normalized if not ch.isalnum() and not ch.isspace())

        return max(1, math.ceil(base + punctuation * self.PUNCTUATION_WEIGHT))

    def approx_char_size(self, tokens: int) -> int:
        """Characters that roughly correspond to `tokens` tokens."""
        return int(tokens * self.CHARS_PER_TOKEN)


class SentenceSplitter:
    """Splits on whitespace that follows `.`, `!` or `?`."""

    def split(self, text: Optional[str]) -> List[str]:
        if text is None or not text.strip():
            return []
        sentences = _SENTENCE_BOUNDARY_RE.split(text.strip())
        return [s.strip() for s in sentences if s.strip()]


@dataclass
class SplitConfig:
    """Chunking parameters. Sizes are in estimated tokens."""

    chunk_size: int
    overlap_size: Optional[int] = None  # Defaults to 10% of chunk_size
    preserve_sentences: bool = True
    add_overlap: bool = True

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise InvalidInputError(
                "Chunk size must be positive",
                parameter="chunk_size",
                received=str(self.chunk_size),
                error_type="range",
            )
        if self.overlap_size is None:
            self.overlap_size = int(self.chunk_size * DEFAULT_OVERLAP_RATIO)

    @classmethod
    def from_runtime(cls, chunk_size: int, config=None) -> "SplitConfig":
        """Build from the runtime config's overlap/sentence settings."""
        config = config or get_config()
        return cls(
            chunk_size=chunk_size,
            overlap_size=int(chunk_size * config.overlap_ratio),
            preserve_sentences=config.preserve_sentences,
            add_overlap=config.add_overlap,
        )


@dataclass
class ChunkStats:
    """Token distribution over a list of chunks."""

    chunk_count: int
    average_tokens: float
    min_tokens: int
    max_tokens: int

    def __str__(self) -> str:
        return (
            f"ChunkStats(count={self.chunk_count}, avg={self.average_tokens:.1f}, "
            f"min={self.min_tokens}, max={self.max_tokens})"
        )


def _split_keeping_marks(text: str, separator: str) -> List[str]:
    """Split on separator, leaving its non-whitespace mark on the left piece.

    "A. B. C" with ". " -> ["A.", "B.", "C"], so only whitespace is lost.
    """
    mark = separator.strip()
    pieces = text.split(separator)
    return [p + mark for p in pieces[:-1]] + [pieces[-1]]


class TextChunker:
    """
    Recursive, separator-driven splitter producing token-bounded chunks.

    Chunks never exceed the configured size unless a single unit (a run of
    characters without spaces) cannot be split further.
    """

    def __init__(
        self,
        estimator: Optional[TokenEstimator] = None,
        sentence_splitter: Optional[SentenceSplitter] = None,
    ):
        self.estimator = estimator or TokenEstimator()
        self.sentence_splitter = sentence_splitter or SentenceSplitter()

    def split_text(self, text: str, config: Union[SplitConfig, int]) -> List[str]:
        """
        Split text into ordered chunks.

        Args:
            text: Source text
            config: SplitConfig, or a bare chunk size with default settings

        Returns:
            Non-empty, trimmed chunks in source order

        Raises:
            InvalidInputError: If text is None or blank
        """
        if text is None or not text.strip():
            raise InvalidInputError("Text cannot be null or empty", parameter="text", error_type="empty")

        if isinstance(config, int):
            config = SplitConfig(config)

        if self.estimator.estimate(text) <= config.chunk_size:
            return [text.strip()]

        if config.preserve_sentences:
            raw_chunks = self._split_preserving_sentences(text, config.chunk_size)
        else:
            raw_chunks = self._split_recursively(text, config.chunk_size, 0)

        chunks = [c.strip() for c in raw_chunks if c.strip()]

        if config.add_overlap and config.overlap_size > 0 and len(chunks) > 1:
            chunks = self._add_overlap(chunks, config)

        logger.debug(f"Split {len(text)} chars into {len(chunks)} chunks (chunk_size={config.chunk_size})")
        return chunks

    def chunk_stats(self, chunks: List[str]) -> ChunkStats:
        if not chunks:
            return ChunkStats(0, 0.0, 0, 0)
        counts = [self.estimator.estimate(c) for c in chunks]
        return ChunkStats(
            chunk_count=len(chunks),
            average_tokens=sum(counts) / len(counts),
            min_tokens=min(counts),
            max_tokens=max(counts),
        )

    # -------------------------------------------------------------------------
    # Splitting
    # -------------------------------------------------------------------------

    def _split_preserving_sentences(self, text: str, chunk_size: int) -> List[str]:
        sentences = self.sentence_splitter.split(text)
        if not sentences:
            return self._split_recursively(text, chunk_size, 0)

        chunks = []
        current = ""

        for sentence in sentences:
            if self.estimator.estimate(sentence) > chunk_size:
                if current:
                    chunks.append(current)
                    current = ""
                chunks.extend(self._split_recursively(sentence, chunk_size, 0))
                continue

            candidate = f"{current} {sentence}" if current else sentence
            if current and self.estimator.estimate(candidate) > chunk_size:
                chunks.append(current)
                current = sentence
            else:
                current = candidate

        if current:
            chunks.append(current)
        return chunks

    def _split_recursively(self, text: str, chunk_size: int, separator_index: int) -> List[str]:
        if separator_index >= len(SEPARATORS):
            return self._split_by_characters(text, chunk_size)

        separator = SEPARATORS[separator_index]
        parts = _split_keeping_marks(text, separator)
        if len(parts) <= 1:
            return self._split_recursively(text, chunk_size, separator_index + 1)

        joiner = separator[len(separator.strip()):]
        result = []
        current = ""

        for part in parts:
            if not part.strip():
                continue

            if self.estimator.estimate(part) > chunk_size:
                if current:
                    result.append(current)
                    current = ""
                result.extend(self._split_recursively(part, chunk_size, separator_index + 1))
                continue

            candidate = current + joiner + part if current else part
            if current and self.estimator.estimate(candidate) > chunk_size:
                result.append(current)
                current = part
            else:
                current = candidate

        if current:
            result.append(current)
        return result

    def _split_by_characters(self, text: str, chunk_size: int) -> List[str]:
        """Fixed-width windows, cut at the last space inside a window when possible.

        Windows are sized from the chars-per-token ratio, then shrunk until the
        estimate fits, since punctuation-dense text costs more per character.
        """
        window = max(1, self.estimator.approx_char_size(chunk_size))
        pieces = []
        start = 0

        while start < len(text):
            end = min(start + window, len(text))
            if end < len(text):
                cut = text.rfind(" ", start, end)
                if cut > start:
                    end = cut
            while end - start > 1 and self.estimator.estimate(text[start:end]) > chunk_size:
                end -= 1
            piece = text[start:end]
            if piece.strip():
                pieces.append(piece)
            start = end

        return pieces

    # -------------------------------------------------------------------------
    # Overlap
    # -------------------------------------------------------------------------

    def _add_overlap(self, chunks: List[str], config: SplitConfig) -> List[str]:
        overlapped = [chunks[0]]

        for previous, current in zip(chunks, chunks[1:]):
            overlap = self._extract_overlap(previous, config.overlap_size)
            overlap = self._fit_overlap(overlap, current, config.chunk_size)
            overlapped.append(f"{overlap} {current}" if overlap else current)

        return overlapped

    def _extract_overlap(self, text: str, overlap_tokens: int) -> str:
        """Trailing whole sentences within budget, else the trailing characters."""
        if self.estimator.estimate(text) <= overlap_tokens:
            return text

        sentences = self.sentence_splitter.split(text)
        if len(sentences) > 1:
            taken = []
            for sentence in reversed(sentences):
                if self.estimator.estimate(" ".join([sentence] + taken)) > overlap_tokens:
                    break
                taken.insert(0, sentence)
            if taken:
                return " ".join(taken)

        char_limit = self.estimator.approx_char_size(overlap_tokens)
        if len(text) <= char_limit:
            return text
        return text[len(text) - char_limit:].strip()

    def _fit_overlap(self, overlap: str, current: str, chunk_size: int) -> str:
        """Drop leading words of the overlap until the joined chunk fits."""
        words = overlap.split()
        while words and self.estimator.estimate(" ".join(words) + " " + current) > chunk_size:
            words.pop(0)
        return " ".join(words)
