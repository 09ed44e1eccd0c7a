"""In-memory registry of background pipeline runs."""

import asyncio
import logging
from collections import OrderedDict
from typing import Optional

from sentiment_backend.core.processing_pipeline import PipelineRun

logger = logging.getLogger(__name__)

DEFAULT_MAX_RUNS = 100


class RunRegistry:
    """
    Keeps runs addressable by ``run_id``.

    When more than ``max_runs`` are held, the oldest finished runs are
    evicted. Runs still in progress are never evicted.
    """

    def __init__(self, max_runs: int = DEFAULT_MAX_RUNS):
        self.max_runs = max_runs
        self._runs: "OrderedDict[str, PipelineRun]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._runs)

    def __contains__(self, run_id: str) -> bool:
        return run_id in self._runs

    def get(self, run_id: str) -> Optional[PipelineRun]:
        return self._runs.get(run_id)

    def start(self, run: PipelineRun) -> PipelineRun:
        """Register ``run`` and start it on a background task."""
        self._runs[run.run_id] = run
        task = run.start()
        task.add_done_callback(lambda t: self._on_done(run.run_id, t))
        self._evict()
        return run

    def remove(self, run_id: str) -> Optional[PipelineRun]:
        return self._runs.pop(run_id, None)

    def _on_done(self, run_id: str, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.warning(f"Run {run_id} task was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Run {run_id} failed: {str(error)}")
        else:
            logger.info(f"Run {run_id} finished with status {task.result().status.value}")

    def _evict(self) -> None:
        for run_id in list(self._runs):
            if len(self._runs) <= self.max_runs:
                return
            if self._runs[run_id].done:
                del self._runs[run_id]
