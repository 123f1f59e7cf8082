"""
Cluster post-processing: drop empty clusters, merge undersized ones.
"""

import logging
from typing import List, Optional

from config import get_config

from .models import Cluster

logger = logging.getLogger(__name__)


class ClusterPostProcessor:
    """
    Cleans up a clustering pass before summarization.

    All clusters below `min_cluster_size` are merged into exactly one cluster
    appended after the large ones. The merged cluster's `member_ids` holds the
    ids of the clusters that were merged, not their members' unit ids.
    """

    def __init__(self, min_cluster_size: Optional[int] = None, config=None):
        config = config or get_config()
        self.min_cluster_size = config.min_cluster_size if min_cluster_size is None else min_cluster_size

    def process(self, clusters: List[Cluster]) -> List[Cluster]:
        valid = [c for c in clusters if len(c) > 0]

        if self.min_cluster_size > 1:
            valid = self._merge_small(valid)

        logger.info(f"Post-processing: {len(clusters)} -> {len(valid)} clusters")
        return valid

    def _merge_small(self, clusters: List[Cluster]) -> List[Cluster]:
        large = [c for c in clusters if len(c) >= self.min_cluster_size]
        small = [c for c in clusters if len(c) < self.min_cluster_size]

        if not small:
            return large

        merged_id = max((c.id for c in large), default=-1) + 1
        merged = Cluster(
            id=merged_id,
            texts=[text for c in small for text in c.texts],
            member_ids=[c.id for c in small],
            merged=True,
        )

        logger.debug(f"Merged {len(small)} small clusters into cluster {merged_id}")
        return large + [merged]
