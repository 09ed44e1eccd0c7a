"""
Processing pipeline for Reddit sentiment analysis.

A run moves through three stages: fetching posts, classifying them one at a
time, and aggregating the pooled observations into one summary. Only a fetch
failure aborts a run; classification and aggregation failures are recorded
and the run carries on.
"""

import asyncio
import logging
import time
import uuid
from typing import (
    AsyncIterator,
    Awaitable,
    Callable,
    Iterable,
    List,
    Optional,
    Protocol,
)

from sentiment_backend.core.exceptions import FatalFetchError
from sentiment_backend.core.progress import Observer, ProgressPublisher, ProgressTracker
from sentiment_backend.domain.models.sentiment import (
    AggregatedResult,
    ClassificationFailure,
    ClassificationSuccess,
    PipelineOutcome,
    PipelineSnapshot,
    PipelineStage,
    PipelineStatus,
    RedditPost,
    SentimentVerdict,
)
from sentiment_backend.infrastructure.constants.llm_constants import (
    DEFAULT_ITEM_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_POST_LIMIT,
    GEMINI_MODEL_NAME,
)
from sentiment_backend.utils import structured_logger

logger = logging.getLogger(__name__)


class DocumentSource(Protocol):
    async def fetch(self, query: str, limit: int) -> List[RedditPost]: ...


class SentimentClassifier(Protocol):
    async def classify(
        self,
        post: RedditPost,
        keyword: str,
        api_key: str,
        max_retries: int,
        model: str,
    ) -> SentimentVerdict: ...


class SentimentAggregator(Protocol):
    async def aggregate(
        self,
        positives: List[str],
        negatives: List[str],
        keyword: str,
        api_key: str,
        max_retries: int,
        model: str,
    ) -> AggregatedResult: ...


class PipelineRun:
    """
    Handle on a single run.

    Owns the run's tracker, publisher and cancellation flag; nothing is
    shared between runs.
    """

    def __init__(
        self,
        pipeline: "SentimentPipeline",
        query: str,
        api_key: str,
        post_limit: int = DEFAULT_POST_LIMIT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        model: str = GEMINI_MODEL_NAME,
        observers: Iterable[Observer] = (),
        cancel_event: Optional[asyncio.Event] = None,
        run_id: Optional[str] = None,
    ):
        self.run_id = run_id or uuid.uuid4().hex
        self.query = query
        self.api_key = api_key
        self.post_limit = post_limit
        self.max_retries = max_retries
        self.model = model
        self.tracker = ProgressTracker(self.run_id, query)
        self.publisher = ProgressPublisher(observers)
        self._pipeline = pipeline
        self._cancel_event = cancel_event or asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def error(self) -> Optional[BaseException]:
        if not self.done or self._task.cancelled():
            return None
        return self._task.exception()

    def start(self) -> "asyncio.Task[PipelineOutcome]":
        """Run the pipeline on a background task."""
        if self._task is None:
            self._task = asyncio.create_task(self._pipeline.execute(self))
        return self._task

    async def wait(self) -> PipelineOutcome:
        return await self.start()

    def cancel(self) -> None:
        """Ask the run to stop before the next post is classified."""
        self._cancel_event.set()

    def latest(self) -> PipelineSnapshot:
        return self.publisher.latest or self.tracker.snapshot()

    def events(self) -> AsyncIterator[PipelineSnapshot]:
        return self.publisher.events()


class SentimentPipeline:
    """Orchestrates fetching, per-post classification and aggregation."""

    def __init__(
        self,
        source: DocumentSource,
        classifier: SentimentClassifier,
        aggregator: SentimentAggregator,
        item_delay: float = DEFAULT_ITEM_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.classifier = classifier
        self.aggregator = aggregator
        self.item_delay = item_delay
        self._sleep = sleep
        self._clock = clock

    def create_run(
        self,
        query: str,
        api_key: str,
        post_limit: int = DEFAULT_POST_LIMIT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        model: str = GEMINI_MODEL_NAME,
        observer: Optional[Observer] = None,
        cancel_event: Optional[asyncio.Event] = None,
        run_id: Optional[str] = None,
    ) -> PipelineRun:
        return PipelineRun(
            self,
            query=query,
            api_key=api_key,
            post_limit=post_limit,
            max_retries=max_retries,
            model=model,
            observers=[observer] if observer else [],
            cancel_event=cancel_event,
            run_id=run_id,
        )

    async def run(
        self,
        query: str,
        api_key: str,
        post_limit: int = DEFAULT_POST_LIMIT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        model: str = GEMINI_MODEL_NAME,
        observer: Optional[Observer] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PipelineOutcome:
        """
        Run the pipeline to completion.

        Args:
            query: Search keyword
            api_key: Gemini API key
            post_limit: Maximum number of posts to fetch
            max_retries: Attempts per Gemini call
            model: Gemini model name
            observer: Optional callback receiving a snapshot after every change
            cancel_event: Optional event that stops the run between posts

        Returns:
            PipelineOutcome with status completed, no_results or cancelled

        Raises:
            FatalFetchError: If the posts could not be fetched
        """
        run = self.create_run(
            query,
            api_key,
            post_limit=post_limit,
            max_retries=max_retries,
            model=model,
            observer=observer,
            cancel_event=cancel_event,
        )
        return await self.execute(run)

    async def execute(self, run: PipelineRun) -> PipelineOutcome:
        start_time = structured_logger.run_start(
            run.run_id,
            run.query,
            model=run.model,
            post_limit=run.post_limit,
            max_retries=run.max_retries,
        )
        run.publisher.start()

        try:
            outcome = await self._process(run)
        except Exception as e:
            run.tracker.set_status(PipelineStatus.FAILED)
            run.publisher.publish(run.tracker.snapshot())
            structured_logger.run_error(run.run_id, start_time, error=str(e))
            raise
        finally:
            await run.publisher.close()

        structured_logger.run_end(
            run.run_id,
            start_time,
            status=outcome.status.value,
            posts=len(outcome.results),
            failures=len(outcome.failed_results),
            aggregated=outcome.aggregated is not None,
        )
        return outcome

    def _publish(self, run: PipelineRun) -> None:
        run.publisher.publish(run.tracker.snapshot())

    async def _process(self, run: PipelineRun) -> PipelineOutcome:
        tracker = run.tracker

        # Stage 1: fetching
        self._publish(run)
        fetch_started = self._clock()
        try:
            posts = await self.source.fetch(run.query, run.post_limit)
        except Exception as e:
            logger.error(f"Failed to fetch posts for '{run.query}': {str(e)}")
            raise FatalFetchError(
                run.query, f"Failed to fetch posts for '{run.query}': {str(e)}"
            ) from e
        tracker.set_timings(data_retrieval=self._clock() - fetch_started)

        if not posts:
            logger.info(f"No posts found for '{run.query}'")
            tracker.set_status(PipelineStatus.NO_RESULTS)
            self._publish(run)
            return tracker.outcome()

        logger.info(f"Fetched {len(posts)} posts for '{run.query}'")
        tracker.set_total(len(posts))

        # Stage 2: analyzing
        llm_started = self._clock()
        tracker.set_stage(PipelineStage.ANALYZING)
        self._publish(run)

        positives: List[str] = []
        negatives: List[str] = []

        for index, post in enumerate(posts, start=1):
            if run.cancel_requested:
                logger.info(
                    f"Run {run.run_id} cancelled after {index - 1} of {len(posts)} posts"
                )
                tracker.set_timings(llm_processing=self._clock() - llm_started)
                tracker.set_status(PipelineStatus.CANCELLED)
                self._publish(run)
                return tracker.outcome()

            tracker.set_current(index)
            self._publish(run)

            try:
                verdict = await self.classifier.classify(
                    post, run.query, run.api_key, run.max_retries, run.model
                )
            except Exception as e:
                logger.error(
                    f"Error analyzing post {index}/{len(posts)} ({post.id}): {str(e)}"
                )
                result = ClassificationFailure(
                    post=post, reason=str(e) or e.__class__.__name__
                )
            else:
                result = ClassificationSuccess(post=post, result=verdict)
                positives.extend(verdict.positives)
                negatives.extend(verdict.negatives)

            tracker.record_result(index, result)
            self._publish(run)
            await self._sleep(self.item_delay)

        # Stage 3: aggregating
        tracker.set_stage(PipelineStage.AGGREGATING)
        self._publish(run)

        if positives or negatives:
            try:
                aggregated = await self.aggregator.aggregate(
                    positives,
                    negatives,
                    run.query,
                    run.api_key,
                    run.max_retries,
                    run.model,
                )
                tracker.set_aggregated(aggregated)
            except Exception as e:
                logger.error(f"Error aggregating results for '{run.query}': {str(e)}")
        else:
            logger.info(f"No observations to aggregate for '{run.query}'")

        tracker.set_timings(llm_processing=self._clock() - llm_started)
        tracker.set_status(PipelineStatus.COMPLETED)
        self._publish(run)
        return tracker.outcome()
