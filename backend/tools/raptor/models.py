"""
RAPTOR data model - text units, clusters, summaries and the finished tree.

Level 1 operates on the original chunks; every higher level operates on the
summaries produced by the level below it.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping


@dataclass
class TextUnit:
    """A chunk or a summary, id unique within its level."""

    id: int
    text: str


@dataclass
class EmbeddedUnit:
    """A text unit with its embedding vector."""

    id: int
    text: str
    vector: List[float]

    @property
    def dimension(self) -> int:
        return len(self.vector)


@dataclass
class GlobalCluster:
    """First-stage grouping over a whole level (may be the uncertain bucket)."""

    id: int
    units: List[EmbeddedUnit]

    def __len__(self) -> int:
        return len(self.units)


@dataclass
class Cluster:
    """Final grouping of texts handed to the summarizer."""

    id: int
    texts: List[str]
    member_ids: List[int]
    merged: bool = False  # Built from undersized clusters; member_ids are their cluster ids

    def __post_init__(self):
        if not self.merged and len(self.texts) != len(self.member_ids):
            raise ValueError(
                f"Cluster {self.id}: {len(self.texts)} texts but {len(self.member_ids)} member ids"
            )

    @classmethod
    def from_units(cls, cluster_id: int, units: List[EmbeddedUnit]) -> "Cluster":
        return cls(
            id=cluster_id,
            texts=[u.text for u in units],
            member_ids=[u.id for u in units],
        )

    def __len__(self) -> int:
        return len(self.texts)


@dataclass
class ClusterSummary:
    """Summary produced for one cluster at one level."""

    cluster_id: int
    level: int
    summary: str
    source_ids: List[int] = field(default_factory=list)
    failed: bool = False  # Placeholder text after a generator/level failure
    passthrough: bool = False  # Unit text echoed without a generator call


@dataclass
class LevelResult:
    """Everything computed for one recursion depth."""

    level: int
    embeddings: List[EmbeddedUnit]
    clusters: List[Cluster]
    summaries: List[ClusterSummary]
    fallback: bool = False  # Level failed and was replaced by a single-cluster marker

    def summary_texts(self) -> List[str]:
        return [s.summary for s in self.summaries]


@dataclass(frozen=True)
class RaptorTree:
    """Finished summary tree. Built once per request, never mutated."""

    levels: Mapping[int, LevelResult]
    all_texts: tuple

    @classmethod
    def build(cls, chunks: List[str], levels: Dict[int, LevelResult]) -> "RaptorTree":
        """Assemble the tree: chunks first, then summaries in ascending level order."""
        ordered = {level: levels[level] for level in sorted(levels)}
        all_texts = list(chunks)
        for result in ordered.values():
            all_texts.extend(s.summary for s in result.summaries if not s.passthrough)
        return cls(levels=MappingProxyType(ordered), all_texts=tuple(all_texts))

    @property
    def depth(self) -> int:
        return len(self.levels)

    def to_dict(self, include_vectors: bool = False) -> Dict[str, Any]:
        """Convert to a JSON-ready dict (camelCase keys, as served over HTTP)."""
        level_results = {}
        for level, result in self.levels.items():
            level_results[str(level)] = {
                "level": result.level,
                "fallback": result.fallback,
                "embeddings": [
                    {
                        "id": e.id,
                        "text": e.text,
                        "dimension": e.dimension,
                        **({"vector": list(e.vector)} if include_vectors else {}),
                    }
                    for e in result.embeddings
                ],
                "clusters": [
                    {"id": c.id, "texts": list(c.texts), "textIds": list(c.member_ids), "merged": c.merged}
                    for c in result.clusters
                ],
                "summaries": [
                    {
                        "clusterId": s.cluster_id,
                        "level": s.level,
                        "summary": s.summary,
                        "originalTextIds": list(s.source_ids),
                        "failed": s.failed,
                    }
                    for s in result.summaries
                ],
            }
        return {"levelResults": level_results, "allTexts": list(self.all_texts)}
