"""
RAPTOR Clusterer - Two-stage Gaussian mixture clustering

Groups semantically similar units for summarization:
1. Global: one mixture over the whole level; low-confidence units go to an
   "uncertain" bucket instead of a weak component
2. Local: a smaller mixture inside each global cluster (in parallel)
3. Post-processing: empty clusters dropped, undersized ones merged

Small batches (1 or 2 units) skip the mixtures entirely.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from config import get_config
from errors import ClusteringError, InvalidInputError, log_error

from .model_selector import ClusterModelSelector, ModelCache
from .models import Cluster, EmbeddedUnit, GlobalCluster
from .postprocess import ClusterPostProcessor
from .similarity import cosine_similarity
from .task_pool import TaskPool

logger = logging.getLogger(__name__)


def _to_matrix(units: List[EmbeddedUnit]) -> np.ndarray:
    return np.asarray([u.vector for u in units], dtype=np.float64)


class EmbeddingValidator:
    """Rejects batches that cannot be clustered."""

    def validate(self, units: Optional[List[EmbeddedUnit]]) -> None:
        if units is None:
            raise InvalidInputError("Embeddings list cannot be None", parameter="embeddings", error_type="embedding")
        if not units:
            return

        expected = None
        for i, unit in enumerate(units):
            if unit is None:
                raise InvalidInputError(f"Embedding at index {i} cannot be None", error_type="embedding")
            if unit.vector is None:
                raise InvalidInputError(f"Embedding vector at index {i} cannot be None", error_type="embedding")
            if expected is None:
                expected = len(unit.vector)
            elif len(unit.vector) != expected:
                raise InvalidInputError(
                    f"Inconsistent embedding dimensions at index {i}",
                    expected=str(expected),
                    received=str(len(unit.vector)),
                    error_type="embedding",
                )


class GlobalClusterer:
    """First-stage clustering over an entire level."""

    def __init__(
        self,
        selector: Optional[ClusterModelSelector] = None,
        max_clusters: Optional[int] = None,
        max_iterations: Optional[int] = None,
        threshold: Optional[float] = None,
        config=None,
    ):
        config = config or get_config()
        self.selector = selector or ClusterModelSelector(config=config)
        self.max_clusters = max_clusters or config.max_clusters
        self.max_iterations = max_iterations or config.max_iterations
        self.threshold = config.cluster_threshold if threshold is None else threshold

    def cluster(self, units: List[EmbeddedUnit]) -> List[GlobalCluster]:
        """
        Soft-assign each unit to its most probable component.

        Units whose best responsibility is below the threshold land in the
        uncertain bucket, id = number of fitted components.

        Returns:
            One GlobalCluster per non-empty bucket, ordered by bucket id
        """
        data = _to_matrix(units)
        max_components = min(self.max_clusters, len(units) // 2)
        selection = self.selector.select(data, max_components, self.max_iterations)

        responsibilities = selection.responsibilities(data)
        uncertain_id = responsibilities.shape[1]

        buckets: Dict[int, List[EmbeddedUnit]] = {}
        for unit, row in zip(units, responsibilities):
            best = int(np.argmax(row))
            bucket = uncertain_id if row[best] < self.threshold else best
            buckets.setdefault(bucket, []).append(unit)

        clusters = [GlobalCluster(id=bucket_id, units=buckets[bucket_id]) for bucket_id in sorted(buckets)]

        uncertain = len(buckets.get(uncertain_id, []))
        logger.debug(
            f"Global clustering: {len(units)} units -> {len(clusters)} clusters "
            f"(k={selection.n_components}, uncertain={uncertain})"
        )
        return clusters


class LocalClusterer:
    """
    Second-stage clustering inside each global cluster.

    Cluster ids are assigned after every task has joined, walking the global
    clusters in order, so they are contiguous and unique across the pass.
    """

    SMALL_CLUSTER_SIZE = 3  # At or below this, a global cluster is kept whole

    def __init__(
        self,
        selector: Optional[ClusterModelSelector] = None,
        max_clusters: Optional[int] = None,
        max_iterations: Optional[int] = None,
        pool: Optional[TaskPool] = None,
        config=None,
    ):
        config = config or get_config()
        self.selector = selector or ClusterModelSelector(config=config)
        self.max_clusters = max_clusters or config.max_clusters
        self.max_iterations = max_iterations or config.local_max_iterations
        self.pool = pool or TaskPool(max_workers=config.local_workers, name="local-cluster")

    def split(self, units: List[EmbeddedUnit]) -> List[List[EmbeddedUnit]]:
        """Partition one global cluster's units; raises on fit failure."""
        if len(units) <= self.SMALL_CLUSTER_SIZE:
            return [units]

        data = _to_matrix(units)
        max_components = min(self.max_clusters, len(units) // 3)
        selection = self.selector.select(data, max_components, self.max_iterations)

        labels = np.argmax(selection.responsibilities(data), axis=1)
        groups: Dict[int, List[EmbeddedUnit]] = {}
        for unit, label in zip(units, labels):
            groups.setdefault(int(label), []).append(unit)

        return [groups[label] for label in sorted(groups)]

    def cluster(self, global_clusters: List[GlobalCluster]) -> List[Cluster]:
        tasks = [lambda gc=gc: self.split(gc.units) for gc in global_clusters]

        def fallback(index: int, error: BaseException) -> List[List[EmbeddedUnit]]:
            return [global_clusters[index].units]

        outcomes = self.pool.run_all(tasks, fallback)

        clusters = []
        next_id = 0
        for outcome in outcomes:
            for group in outcome.value:
                clusters.append(Cluster.from_units(next_id, group))
                next_id += 1

        logger.debug(f"Local clustering: {len(global_clusters)} global -> {len(clusters)} local clusters")
        return clusters


class HierarchicalClusterer:
    """
    Entry point for clustering one level's embeddings.

    Usage:
        clusterer = HierarchicalClusterer()
        clusters = clusterer.cluster(embedded_units)
    """

    def __init__(
        self,
        global_clusterer: Optional[GlobalClusterer] = None,
        local_clusterer: Optional[LocalClusterer] = None,
        post_processor: Optional[ClusterPostProcessor] = None,
        validator: Optional[EmbeddingValidator] = None,
        threshold: Optional[float] = None,
        config=None,
    ):
        config = config or get_config()
        if global_clusterer is None or local_clusterer is None:
            selector = ClusterModelSelector(config=config, cache=ModelCache(config.model_cache_size))
            global_clusterer = global_clusterer or GlobalClusterer(selector=selector, config=config)
            local_clusterer = local_clusterer or LocalClusterer(selector=selector, config=config)

        self.global_clusterer = global_clusterer
        self.local_clusterer = local_clusterer
        self.post_processor = post_processor or ClusterPostProcessor(config=config)
        self.validator = validator or EmbeddingValidator()
        self.threshold = config.cluster_threshold if threshold is None else threshold

    def cluster(self, units: List[EmbeddedUnit]) -> List[Cluster]:
        """
        Cluster a level's embedded units.

        Raises:
            InvalidInputError: On a None batch, None entries or mixed dimensions
        """
        self.validator.validate(units)

        if not units:
            logger.info("Empty embeddings list provided")
            return []

        if len(units) == 1:
            return [Cluster.from_units(0, units)]

        if len(units) == 2:
            return self._cluster_pair(units)

        try:
            logger.info(f"Starting hierarchical clustering for {len(units)} embeddings")
            global_clusters = self.global_clusterer.cluster(units)
            local_clusters = self.local_clusterer.cluster(global_clusters)
            clusters = self.post_processor.process(local_clusters)
        except Exception as e:
            error = e if isinstance(e, ClusteringError) else ClusteringError(
                "Clustering pass failed", details=str(e), stage="pass", n_units=len(units)
            )
            log_error(logger, error, context="single-cluster fallback")
            return [Cluster.from_units(0, units)]

        logger.info(f"Clustering completed: {len(clusters)} final clusters")
        return clusters

    def _cluster_pair(self, units: List[EmbeddedUnit]) -> List[Cluster]:
        similarity = cosine_similarity(units[0].vector, units[1].vector)
        if similarity > self.threshold:
            return [Cluster.from_units(0, units)]
        return [Cluster.from_units(0, units[:1]), Cluster.from_units(1, units[1:])]
