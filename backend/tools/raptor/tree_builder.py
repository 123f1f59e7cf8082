"""
RAPTOR Tree Builder - Orchestrates hierarchical summary construction

Builds the tree level by level:
- Level 1: clusters of the original chunks, one summary per cluster
- Level 2+: clusters of the previous level's summaries

Stops at max_levels (capped at 10), when a level yields a single summary,
or after a level had to fall back.
"""

import logging
import time
from typing import Dict, List, Optional

from config import get_config
from errors import ClusteringError, InvalidInputError, ProcessingError, log_error
from logging_config import log_level

from .chunker import SplitConfig, TextChunker
from .clusterer import HierarchicalClusterer
from .models import Cluster, ClusterSummary, EmbeddedUnit, LevelResult, RaptorTree, TextUnit
from .providers import EmbeddingProvider, LLMEmbeddingProvider, LLMTextGenerator, TextGenerator
from .summarizer import ClusterSummarizer

logger = logging.getLogger(__name__)

MAX_LEVELS_HARD_CAP = 10

FAILED_LEVEL_SUMMARY = "Processing failed for this level."


class RaptorTreeBuilder:
    """
    Orchestrates RAPTOR tree construction.

    Process:
    1. Split text into token-bounded chunks
    2. Embed the current level's units
    3. Cluster (global -> local -> post-process)
    4. Summarize each cluster
    5. Repeat with the summaries as the next level's units
    """

    def __init__(
        self,
        embedder: Optional[EmbeddingProvider] = None,
        generator: Optional[TextGenerator] = None,
        chunker: Optional[TextChunker] = None,
        clusterer: Optional[HierarchicalClusterer] = None,
        summarizer: Optional[ClusterSummarizer] = None,
        config=None,
    ):
        """
        Args:
            embedder: Embedding provider (default: LLM server embeddings)
            generator: Text generator (default: LLM server chat)
            chunker: TextChunker instance
            clusterer: HierarchicalClusterer instance
            summarizer: ClusterSummarizer instance (wraps generator when omitted)
            config: RuntimeConfig (defaults to the singleton)
        """
        self.config = config or get_config()
        self.embedder = embedder or LLMEmbeddingProvider(config=self.config)
        self.chunker = chunker or TextChunker()
        self.clusterer = clusterer or HierarchicalClusterer(config=self.config)
        self.summarizer = summarizer or ClusterSummarizer(generator or LLMTextGenerator(config=self.config))

    def process_text(
        self,
        text: str,
        chunk_size: Optional[int] = None,
        max_levels: Optional[int] = None,
    ) -> RaptorTree:
        """
        Build a summary tree for text.

        Args:
            text: Source text
            chunk_size: Target chunk size in estimated tokens (default 2000)
            max_levels: Maximum tree depth (default 3, capped at 10)

        Returns:
            RaptorTree with one LevelResult per processed level

        Raises:
            InvalidInputError: If text is blank
            ProcessingError: If chunking could not produce any units
        """
        if text is None or not text.strip():
            raise InvalidInputError("Text cannot be null or empty", parameter="text", error_type="empty")

        chunk_size = chunk_size or self.config.default_chunk_size
        max_levels = max_levels or self.config.default_max_levels

        logger.info(f"Starting RAPTOR processing: chunk_size={chunk_size}, max_levels={max_levels}, chars={len(text)}")
        start_time = time.time()

        chunks = self._chunk(text, chunk_size)
        logger.info(f"Text split into {len(chunks)} chunks")

        levels = self._build_levels(chunks, max_levels)
        tree = RaptorTree.build(chunks, levels)

        logger.info(
            f"RAPTOR tree built: {tree.depth} levels, {len(tree.all_texts)} texts, "
            f"{time.time() - start_time:.1f}s"
        )
        return tree

    def process_level(self, units: List[TextUnit], level: int) -> LevelResult:
        """Embed, cluster and summarize one level. Raises on embedding failure."""
        embedded = self._embed(units)
        clusters = self.clusterer.cluster(embedded)

        if len(units) == 1:
            # Nothing to condense: echo the unit instead of paying for a generator call
            summaries = [
                ClusterSummary(
                    cluster_id=clusters[0].id,
                    level=level,
                    summary=units[0].text,
                    source_ids=[units[0].id],
                    passthrough=True,
                )
            ]
        else:
            summaries = self.summarizer.summarize_all(clusters, level)

        return LevelResult(level=level, embeddings=embedded, clusters=clusters, summaries=summaries)

    def _chunk(self, text: str, chunk_size: int) -> List[str]:
        try:
            chunks = self.chunker.split_text(text, SplitConfig.from_runtime(chunk_size, self.config))
        except InvalidInputError:
            raise
        except Exception as e:
            raise ProcessingError(f"Failed to process text: {e}", details=type(e).__name__) from e

        if not chunks:
            raise ProcessingError("Failed to process text: chunking produced no units")
        return chunks

    def _build_levels(self, chunks: List[str], max_levels: int) -> Dict[int, LevelResult]:
        limit = min(max_levels, MAX_LEVELS_HARD_CAP)
        if max_levels > MAX_LEVELS_HARD_CAP:
            logger.warning(f"max_levels={max_levels} capped at {MAX_LEVELS_HARD_CAP}")

        results: Dict[int, LevelResult] = {}
        units = [TextUnit(id=i, text=chunk) for i, chunk in enumerate(chunks)]
        level = 1

        while level <= limit:
            log_level(logger, level, "start", units=len(units))

            try:
                result = self.process_level(units, level)
            except Exception as e:
                error = ClusteringError(f"Level {level} failed", details=str(e), stage="level", level=level)
                log_error(logger, error, context=f"Level {level}")
                result = self._fallback_level(units, level)

            results[level] = result
            log_level(logger, level, "end", clusters=len(result.clusters), summaries=len(result.summaries))

            if result.fallback:
                logger.warning(f"Level {level} fell back, stopping recursion")
                break

            if len(result.summaries) <= 1:
                break

            units = [TextUnit(id=i, text=s.summary) for i, s in enumerate(result.summaries)]
            level += 1

        return results

    def _embed(self, units: List[TextUnit]) -> List[EmbeddedUnit]:
        vectors = self.embedder.embed([u.text for u in units])
        if vectors is None or len(vectors) != len(units):
            raise InvalidInputError(
                "Embedding provider returned the wrong number of vectors",
                expected=str(len(units)),
                received=str(0 if vectors is None else len(vectors)),
                error_type="embedding",
            )
        return [EmbeddedUnit(id=u.id, text=u.text, vector=v) for u, v in zip(units, vectors)]

    def _fallback_level(self, units: List[TextUnit], level: int) -> LevelResult:
        logger.warning(f"Creating fallback result for level {level} with {len(units)} units")
        member_ids = [u.id for u in units]
        return LevelResult(
            level=level,
            embeddings=[EmbeddedUnit(id=u.id, text=u.text, vector=[]) for u in units],
            clusters=[Cluster(id=0, texts=[u.text for u in units], member_ids=member_ids)],
            summaries=[
                ClusterSummary(
                    cluster_id=0,
                    level=level,
                    summary=FAILED_LEVEL_SUMMARY,
                    source_ids=member_ids,
                    failed=True,
                )
            ],
            fallback=True,
        )
