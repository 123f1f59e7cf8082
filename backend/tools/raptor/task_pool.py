"""
Bounded task pool with join-all and per-task failure isolation.

Each task either yields its result or, when it raises, the value produced by
its fallback. One failing task never cancels or blocks its siblings.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class TaskOutcome:
    """Result slot for one submitted task."""

    index: int
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class TaskPool:
    """Runs callables on up to `max_workers` threads and waits for all of them."""

    def __init__(self, max_workers: int = 1, name: str = "task"):
        self.max_workers = max(1, max_workers)
        self.name = name

    def run_all(
        self,
        tasks: List[Callable[[], Any]],
        fallback: Callable[[int, BaseException], Any],
    ) -> List[TaskOutcome]:
        """
        Execute every task and join.

        Args:
            tasks: Zero-argument callables
            fallback: Called as fallback(index, error) for a task that raised;
                its return value becomes that task's value

        Returns:
            Outcomes in submission order
        """
        outcomes = [TaskOutcome(index=i) for i in range(len(tasks))]
        if not tasks:
            return outcomes

        if self.max_workers == 1 or len(tasks) == 1:
            for i, task in enumerate(tasks):
                self._collect(outcomes[i], task, fallback)
            return outcomes

        workers = min(self.max_workers, len(tasks))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=self.name) as executor:
            futures = {executor.submit(task): i for i, task in enumerate(tasks)}

            for future in as_completed(futures):
                i = futures[future]
                try:
                    outcomes[i].value = future.result()
                except Exception as e:
                    self._isolate(outcomes[i], e, fallback)

        failed = sum(1 for o in outcomes if o.failed)
        if failed:
            logger.warning(f"{self.name} pool: {failed}/{len(tasks)} tasks fell back")
        return outcomes

    def _collect(self, outcome: TaskOutcome, task: Callable[[], Any], fallback) -> None:
        try:
            outcome.value = task()
        except Exception as e:
            self._isolate(outcome, e, fallback)

    def _isolate(self, outcome: TaskOutcome, error: Exception, fallback) -> None:
        logger.warning(f"{self.name} task {outcome.index} failed, using fallback: {error}")
        outcome.error = error
        outcome.value = fallback(outcome.index, error)
