"""
RAPTOR Summarizer - one abstractive summary per cluster

A failed generator call never fails the tree: the cluster gets a
placeholder summary flagged as failed.
"""

import logging
from typing import List

from errors import SummarizationError, log_error

from .models import Cluster, ClusterSummary
from .providers import TextGenerator

logger = logging.getLogger(__name__)

SUMMARY_PROMPT = """Here is a subset of documentation that needs to be summarized.

The documentation provides detailed information about a specific topic.

Give a detailed summary of the documentation provided, maintaining key concepts and important details.

Documentation:
{context}

Summary:"""

TEXT_SEPARATOR = "\n--- --- \n --- --- \n"

FAILED_CLUSTER_SUMMARY = "Summary generation failed for this cluster."


class ClusterSummarizer:
    """Renders the summary prompt for a cluster and calls the text generator."""

    def __init__(self, generator: TextGenerator, prompt_template: str = SUMMARY_PROMPT):
        """
        Args:
            generator: Anything with generate(prompt) -> str
            prompt_template: Template with a {context} placeholder
        """
        self.generator = generator
        self.prompt_template = prompt_template

    def build_prompt(self, texts: List[str]) -> str:
        return self.prompt_template.format(context=TEXT_SEPARATOR.join(texts))

    def summarize(self, cluster: Cluster, level: int) -> ClusterSummary:
        """Summarize one cluster; absorbs generator failures."""
        try:
            summary = self._generate(cluster, level)
        except SummarizationError as e:
            log_error(logger, e, context=f"Level {level} cluster {cluster.id}", include_traceback=False)
            return ClusterSummary(
                cluster_id=cluster.id,
                level=level,
                summary=FAILED_CLUSTER_SUMMARY,
                source_ids=list(cluster.member_ids),
                failed=True,
            )

        return ClusterSummary(
            cluster_id=cluster.id,
            level=level,
            summary=summary,
            source_ids=list(cluster.member_ids),
        )

    def summarize_all(self, clusters: List[Cluster], level: int) -> List[ClusterSummary]:
        summaries = []
        total = len(clusters)

        for i, cluster in enumerate(clusters):
            logger.debug(f"Summarizing cluster {i + 1}/{total} ({len(cluster)} texts)")
            summaries.append(self.summarize(cluster, level))

            # Log progress for large batches
            if total > 10 and (i + 1) % 10 == 0:
                logger.info(f"Summarization progress: {i + 1}/{total}")

        return summaries

    def _generate(self, cluster: Cluster, level: int) -> str:
        prompt = self.build_prompt(cluster.texts)
        try:
            raw = self.generator.generate(prompt)
        except Exception as e:
            raise SummarizationError(
                "Text generator call failed", details=str(e), cluster_id=cluster.id, level=level
            ) from e

        summary = (raw or "").strip()

        # Clean up any thinking tags if present
        if "</think>" in summary:
            summary = summary.split("</think>")[-1].strip()

        if not summary:
            raise SummarizationError("Text generator returned empty output", cluster_id=cluster.id, level=level)
        return summary
