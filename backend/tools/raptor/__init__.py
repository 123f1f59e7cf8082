"""
RAPTOR - Recursive Abstractive Processing for Tree-Organized Retrieval

Turns flat text into a multi-level tree of abstractive summaries.

Architecture:
- Level 1: Summaries of clusters of the original chunks
- Level 2+: Summaries of clusters of the level below

Usage:
    from tools.raptor import RaptorTreeBuilder

    builder = RaptorTreeBuilder()
    tree = builder.process_text(text, chunk_size=2000, max_levels=3)
    tree.to_dict()
"""

from .chunker import ChunkStats, SentenceSplitter, SplitConfig, TextChunker, TokenEstimator
from .clusterer import EmbeddingValidator, GlobalClusterer, HierarchicalClusterer, LocalClusterer
from .model_selector import ClusterModelSelector, MixtureSelection, ModelCache
from .models import (
    Cluster,
    ClusterSummary,
    EmbeddedUnit,
    GlobalCluster,
    LevelResult,
    RaptorTree,
    TextUnit,
)
from .postprocess import ClusterPostProcessor
from .summarizer import ClusterSummarizer
from .task_pool import TaskPool
from .tree_builder import RaptorTreeBuilder

__all__ = [
    "ChunkStats",
    "SentenceSplitter",
    "SplitConfig",
    "TextChunker",
    "TokenEstimator",
    "EmbeddingValidator",
    "GlobalClusterer",
    "HierarchicalClusterer",
    "LocalClusterer",
    "ClusterModelSelector",
    "MixtureSelection",
    "ModelCache",
    "Cluster",
    "ClusterSummary",
    "EmbeddedUnit",
    "GlobalCluster",
    "LevelResult",
    "RaptorTree",
    "TextUnit",
    "ClusterPostProcessor",
    "ClusterSummarizer",
    "TaskPool",
    "RaptorTreeBuilder",
]
