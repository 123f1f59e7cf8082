"""
Unit tests for the RAPTOR chunker.

Tests:
- Token estimation heuristic
- Sentence splitting
- Size bounds, ordering and the separator hierarchy
- Overlap between consecutive chunks
"""

import pytest

from errors import ErrorCode, InvalidInputError
from tools.raptor.chunker import (
    ChunkStats,
    SentenceSplitter,
    SplitConfig,
    TextChunker,
    TokenEstimator,
    _split_keeping_marks,
)


def _sentences(count: int) -> str:
    return " ".join(f"Sentence number {i} talks about soil." for i in range(count))


class TestTokenEstimator:
    """Tests for the chars/4 + punctuation heuristic."""

    def test_blank_text_is_zero(self):
        estimator = TokenEstimator()
        assert estimator.estimate(None) == 0
        assert estimator.estimate("") == 0
        assert estimator.estimate("   \n\t") == 0

    def test_punctuation_adds_weight(self):
        """13 chars / 4 = 3.25, plus 2 punctuation marks * 0.3 -> 4."""
        assert TokenEstimator().estimate("Hello, world!") == 4

    def test_minimum_is_one(self):
        assert TokenEstimator().estimate("abcd") == 1
        assert TokenEstimator().estimate("a") == 1

    def test_whitespace_is_normalized(self):
        estimator = TokenEstimator()
        assert estimator.estimate("a  \n\n  b") == estimator.estimate("a b")

    def test_approx_char_size(self):
        assert TokenEstimator().approx_char_size(10) == 40


class TestSentenceSplitter:
    """Tests for sentence boundary detection."""

    def test_splits_on_terminal_punctuation(self):
        sentences = SentenceSplitter().split("One. Two! Three? Four")
        assert sentences == ["One.", "Two!", "Three?", "Four"]

    def test_blank_text(self):
        assert SentenceSplitter().split("") == []
        assert SentenceSplitter().split(None) == []

    def test_abbreviation_without_space_is_kept(self):
        assert SentenceSplitter().split("Version 2.5 is out. Done.") == ["Version 2.5 is out.", "Done."]


class TestSplitConfig:
    """Tests for chunking parameters."""

    def test_default_overlap_is_ten_percent(self):
        assert SplitConfig(2000).overlap_size == 200

    def test_non_positive_chunk_size_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            SplitConfig(0)
        assert exc_info.value.code == ErrorCode.VALIDATION_OUT_OF_RANGE

    def test_from_runtime_reads_config(self, runtime_config):
        runtime_config.update(overlap_ratio=0.2, add_overlap=False)

        config = SplitConfig.from_runtime(100)

        assert config.overlap_size == 20
        assert config.add_overlap is False
        assert config.preserve_sentences is True


class TestSplitText:
    """Tests for TextChunker.split_text."""

    def test_blank_text_rejected(self):
        chunker = TextChunker()
        for text in (None, "", "   \n "):
            with pytest.raises(InvalidInputError) as exc_info:
                chunker.split_text(text, 100)
            assert exc_info.value.code == ErrorCode.VALIDATION_EMPTY_TEXT

    def test_short_text_is_single_trimmed_chunk(self):
        assert TextChunker().split_text("  Hello world.  ", 100) == ["Hello world."]

    def test_chunks_respect_size(self):
        chunker = TextChunker()
        chunks = chunker.split_text(_sentences(200), SplitConfig(50))

        assert len(chunks) > 1
        assert all(chunker.estimator.estimate(c) <= 50 for c in chunks)
        assert all(c == c.strip() and c for c in chunks)

    def test_sentence_chunks_preserve_order(self):
        """Without overlap, chunks joined back give the source text."""
        text = _sentences(200)
        chunks = TextChunker().split_text(text, SplitConfig(50, add_overlap=False))

        assert " ".join(chunks) == text

    def test_word_level_split_without_sentences(self):
        text = " ".join(f"word{i}" for i in range(400))
        chunker = TextChunker()
        config = SplitConfig(20, preserve_sentences=False, add_overlap=False)

        chunks = chunker.split_text(text, config)

        assert len(chunks) > 1
        assert all(chunker.estimator.estimate(c) <= 20 for c in chunks)
        assert " ".join(chunks).split() == text.split()

    def test_paragraphs_split_before_words(self):
        paragraphs = [" ".join(["soil"] * 30), " ".join(["rock"] * 30)]
        text = "\n\n".join(paragraphs)
        config = SplitConfig(40, preserve_sentences=False, add_overlap=False)

        chunks = TextChunker().split_text(text, config)

        assert chunks == paragraphs

    def test_character_fallback_for_unbroken_text(self):
        text = "x" * 1000
        chunks = TextChunker().split_text(text, SplitConfig(10, add_overlap=False))

        assert len(chunks) == 25
        assert all(len(c) == 40 for c in chunks)
        assert "".join(chunks) == text

    def test_character_fallback_respects_punctuation_cost(self):
        text = "-" * 1000
        chunker = TextChunker()

        chunks = chunker.split_text(text, SplitConfig(10, add_overlap=False))

        assert all(chunker.estimator.estimate(c) <= 10 for c in chunks)
        assert "".join(chunks) == text

    def test_int_config_uses_defaults(self):
        chunker = TextChunker()
        assert chunker.split_text(_sentences(200), 50) == chunker.split_text(_sentences(200), SplitConfig(50))


class TestOverlap:
    """Tests for overlap between consecutive chunks."""

    @staticmethod
    def _long_sentences(count: int) -> str:
        # ~34 estimated tokens each, so a 50-token chunk holds one sentence
        return " ".join(f"Topic {i} " + " ".join(["word"] * 25) + "." for i in range(count))

    def test_overlap_prefixes_following_chunks(self):
        chunker = TextChunker()
        text = self._long_sentences(5)

        plain = chunker.split_text(text, SplitConfig(50, overlap_size=10, add_overlap=False))
        overlapped = chunker.split_text(text, SplitConfig(50, overlap_size=10))

        assert len(plain) == len(overlapped) == 5
        assert overlapped[0] == plain[0]
        for before, after in zip(plain[1:], overlapped[1:]):
            assert after.endswith(before)
            assert len(after) > len(before)
        assert all(chunker.estimator.estimate(c) <= 50 for c in overlapped)

    def test_zero_overlap_size_disables_overlap(self):
        chunker = TextChunker()
        text = self._long_sentences(5)

        plain = chunker.split_text(text, SplitConfig(50, add_overlap=False))
        zero = chunker.split_text(text, SplitConfig(50, overlap_size=0))

        assert zero == plain

    def test_extract_overlap_takes_trailing_sentences(self):
        overlap = TextChunker()._extract_overlap("First one. Second one. Third one.", 4)
        assert overlap == "Third one."

    def test_extract_overlap_short_text_is_whole(self):
        assert TextChunker()._extract_overlap("Tiny.", 10) == "Tiny."

    def test_fit_overlap_drops_leading_words(self):
        assert TextChunker()._fit_overlap("one two three", "x", 2) == "three"


class TestHelpers:
    """Tests for split helpers and statistics."""

    def test_split_keeping_marks(self):
        assert _split_keeping_marks("A. B. C", ". ") == ["A.", "B.", "C"]
        assert _split_keeping_marks("a b", " ") == ["a", "b"]

    def test_chunk_stats(self):
        stats = TextChunker().chunk_stats(["abcd", "abcdefgh"])

        assert stats == ChunkStats(chunk_count=2, average_tokens=1.5, min_tokens=1, max_tokens=2)

    def test_chunk_stats_empty(self):
        assert TextChunker().chunk_stats([]) == ChunkStats(0, 0.0, 0, 0)
