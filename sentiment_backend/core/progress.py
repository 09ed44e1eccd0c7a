"""
Progress bookkeeping for a pipeline run.

``ProgressTracker`` holds the mutable state of one run and is only touched by
the pipeline. Everything that leaves it is a frozen ``PipelineSnapshot``.
``ProgressPublisher`` hands those snapshots to observers from a background
task so a slow observer never holds up classification.
"""

import asyncio
import inspect
import logging
from typing import AsyncIterator, Awaitable, Callable, Iterable, List, Optional, Union

from sentiment_backend.domain.models.sentiment import (
    AggregatedResult,
    ClassificationSuccess,
    PipelineOutcome,
    PipelineSnapshot,
    PipelineStage,
    PipelineStatus,
    RunTimings,
    SentimentCounts,
)

logger = logging.getLogger(__name__)

Observer = Callable[[PipelineSnapshot], Union[None, Awaitable[None]]]

_CLOSED = object()


class ProgressTracker:
    """Mutable per-run state: stage, position, results, counts and timings."""

    def __init__(self, run_id: str, query: str):
        self.run_id = run_id
        self.query = query
        self._stage = PipelineStage.FETCHING
        self._status = PipelineStatus.RUNNING
        self._current_post = 0
        self._total_posts = 0
        self._results: List = []
        self._counts = SentimentCounts()
        self._timings = RunTimings()
        self._aggregated: Optional[AggregatedResult] = None

    @property
    def current_stage(self) -> PipelineStage:
        return self._stage

    @property
    def status(self) -> PipelineStatus:
        return self._status

    @property
    def counts(self) -> SentimentCounts:
        return self._counts

    @property
    def current_post(self) -> int:
        return self._current_post

    @property
    def total_posts(self) -> int:
        return self._total_posts

    def set_stage(self, stage: PipelineStage) -> None:
        if stage.order < self._stage.order:
            raise ValueError(
                f"Cannot move run {self.run_id} back from "
                f"'{self._stage.value}' to '{stage.value}'"
            )
        self._stage = stage

    def set_status(self, status: PipelineStatus) -> None:
        self._status = status

    def set_total(self, total: int) -> None:
        self._total_posts = total

    def set_current(self, index: int) -> None:
        """Mark the post at 1-based ``index`` as the one being classified."""
        self._current_post = index

    def record_result(self, index: int, result) -> None:
        """Append the result for the post at 1-based ``index``."""
        self._current_post = index
        self._results.append(result)
        if isinstance(result, ClassificationSuccess):
            self._counts = self._counts.increment(result.result.sentiment)

    def set_timings(
        self,
        data_retrieval: Optional[float] = None,
        llm_processing: Optional[float] = None,
    ) -> None:
        update = {}
        if data_retrieval is not None:
            update["data_retrieval"] = data_retrieval
        if llm_processing is not None:
            update["llm_processing"] = llm_processing
        self._timings = self._timings.model_copy(update=update)

    def set_aggregated(self, aggregated: Optional[AggregatedResult]) -> None:
        self._aggregated = aggregated

    def snapshot(self) -> PipelineSnapshot:
        # Results, counts and timings are frozen; copying the list is enough
        return PipelineSnapshot(
            run_id=self.run_id,
            query=self.query,
            stage=self._stage,
            status=self._status,
            current_post=self._current_post,
            total_posts=self._total_posts,
            results=list(self._results),
            counts=self._counts,
            timings=self._timings,
            aggregated=self._aggregated,
        )

    def outcome(self) -> PipelineOutcome:
        return PipelineOutcome(
            run_id=self.run_id,
            query=self.query,
            status=self._status,
            results=list(self._results),
            aggregated=self._aggregated,
            counts=self._counts,
            timings=self._timings,
        )


class ProgressPublisher:
    """
    Delivers snapshots to observers and event streams.

    ``publish`` never blocks: snapshots are queued and a background task
    calls the observers in order. Observer errors are logged and dropped.
    """

    def __init__(self, observers: Iterable[Observer] = ()):
        self._observers: List[Observer] = list(observers)
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._streams: List[asyncio.Queue] = []
        self._latest: Optional[PipelineSnapshot] = None
        self._closed = False

    @property
    def latest(self) -> Optional[PipelineSnapshot]:
        return self._latest

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def start(self) -> None:
        if self._task is None:
            self._queue = asyncio.Queue()
            self._task = asyncio.create_task(self._consume())

    def publish(self, snapshot: PipelineSnapshot) -> None:
        if self._closed:
            raise RuntimeError("Cannot publish on a closed progress publisher")
        self.start()
        self._latest = snapshot
        self._queue.put_nowait(snapshot)
        for stream in self._streams:
            stream.put_nowait(snapshot)

    async def close(self) -> None:
        """Stop accepting snapshots and wait until observers received the backlog."""
        if self._closed:
            return
        self._closed = True
        for stream in self._streams:
            stream.put_nowait(_CLOSED)
        if self._task is not None:
            self._queue.put_nowait(_CLOSED)
            await self._task

    async def events(self) -> AsyncIterator[PipelineSnapshot]:
        """
        Iterate over snapshots published from now on.

        A late subscriber first receives the latest snapshot. The iterator
        ends when the publisher is closed.
        """
        # Register before the first yield so nothing published meanwhile is lost
        stream: asyncio.Queue = asyncio.Queue()
        if self._latest is not None:
            stream.put_nowait(self._latest)
        if self._closed:
            stream.put_nowait(_CLOSED)
        else:
            self._streams.append(stream)
        try:
            while True:
                item = await stream.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            if stream in self._streams:
                self._streams.remove(stream)

    async def _consume(self) -> None:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            for observer in list(self._observers):
                await self._notify(observer, item)

    @staticmethod
    async def _notify(observer: Observer, snapshot: PipelineSnapshot) -> None:
        try:
            result = observer(snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                f"Progress observer failed for run {snapshot.run_id}: {str(e)}",
                exc_info=True,
            )
