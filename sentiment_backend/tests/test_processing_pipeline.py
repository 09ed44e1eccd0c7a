import asyncio

import pytest

from conftest import (
    DummyAggregator,
    DummyClassifier,
    DummySource,
    make_post,
    make_verdict,
)
from sentiment_backend.core.exceptions import FatalFetchError
from sentiment_backend.core.processing_pipeline import SentimentPipeline
from sentiment_backend.domain.models.sentiment import (
    ClassificationFailure,
    ClassificationSuccess,
    PipelineStage,
    PipelineStatus,
)


def _pipeline(source, classifier, aggregator, sleep, **kwargs):
    return SentimentPipeline(source, classifier, aggregator, sleep=sleep, **kwargs)


def _stages(snapshots):
    seen = []
    for snapshot in snapshots:
        if not seen or seen[-1] != snapshot.stage:
            seen.append(snapshot.stage)
    return seen


@pytest.mark.asyncio
async def test_three_posts_are_counted_and_aggregated_once(posts, fake_sleep):
    classifier = DummyClassifier(
        {
            "p1": make_verdict("positive", positives=["fast"]),
            "p2": make_verdict("negative", negatives=["loud"]),
            "p3": make_verdict("positive", positives=["cheap"]),
        }
    )
    aggregator = DummyAggregator()
    pipeline = _pipeline(DummySource(posts), classifier, aggregator, fake_sleep)

    outcome = await pipeline.run("demo", "key")

    assert outcome.status == PipelineStatus.COMPLETED
    assert outcome.counts.as_dict() == {
        "positive": 2,
        "negative": 1,
        "mixed": 0,
        "neutral": 0,
    }
    assert len(outcome.results) == 3
    assert len(aggregator.calls) == 1
    assert aggregator.calls[0]["positives"] == ["fast", "cheap"]
    assert aggregator.calls[0]["negatives"] == ["loud"]
    assert outcome.aggregated is not None
    assert outcome.aggregated.overall_sentiment == "positive"


@pytest.mark.asyncio
async def test_failed_post_is_recorded_and_loop_continues(fake_sleep, classification_error):
    first, second = make_post("p1"), make_post("p2")
    classifier = DummyClassifier(
        {
            "p1": classification_error,
            "p2": make_verdict("mixed", positives=["good screen"], negatives=["bad battery"]),
        }
    )
    aggregator = DummyAggregator()
    pipeline = _pipeline(DummySource([first, second]), classifier, aggregator, fake_sleep)

    outcome = await pipeline.run("demo", "key")

    assert outcome.status == PipelineStatus.COMPLETED
    assert isinstance(outcome.results[0], ClassificationFailure)
    assert outcome.results[0].post.id == "p1"
    assert outcome.results[0].verdict is None
    assert "exhausted" in outcome.results[0].reason
    assert isinstance(outcome.results[1], ClassificationSuccess)
    assert outcome.results[1].verdict.sentiment == "mixed"
    assert outcome.counts.as_dict() == {
        "positive": 0,
        "negative": 0,
        "mixed": 1,
        "neutral": 0,
    }
    assert aggregator.calls == [
        {
            "positives": ["good screen"],
            "negatives": ["bad battery"],
            "keyword": "demo",
            "api_key": "key",
            "max_retries": 12,
            "model": "gemini-2.0-flash",
        }
    ]


@pytest.mark.asyncio
async def test_empty_fetch_ends_run_with_no_results(fake_sleep):
    classifier = DummyClassifier({})
    aggregator = DummyAggregator()
    snapshots = []
    pipeline = _pipeline(DummySource([]), classifier, aggregator, fake_sleep)

    outcome = await pipeline.run("demo", "key", observer=snapshots.append)

    assert outcome.status == PipelineStatus.NO_RESULTS
    assert outcome.is_empty
    assert outcome.results == []
    assert outcome.aggregated is None
    assert classifier.calls == []
    assert aggregator.calls == []
    assert fake_sleep.delays == []
    assert _stages(snapshots) == [PipelineStage.FETCHING]
    assert snapshots[-1].status == PipelineStatus.NO_RESULTS


@pytest.mark.asyncio
async def test_fetch_error_is_fatal(fake_sleep, source_error):
    classifier = DummyClassifier({})
    aggregator = DummyAggregator()
    snapshots = []
    pipeline = _pipeline(DummySource(error=source_error), classifier, aggregator, fake_sleep)

    with pytest.raises(FatalFetchError) as exc_info:
        await pipeline.run("demo", "key", observer=snapshots.append)

    assert exc_info.value.__cause__ is source_error
    assert exc_info.value.query == "demo"
    assert classifier.calls == []
    assert aggregator.calls == []
    assert snapshots[-1].status == PipelineStatus.FAILED
    assert snapshots[-1].results == []


@pytest.mark.asyncio
async def test_all_failures_skip_aggregation(posts, fake_sleep):
    classifier = DummyClassifier({p.id: RuntimeError("model overloaded") for p in posts})
    aggregator = DummyAggregator()
    snapshots = []
    pipeline = _pipeline(DummySource(posts), classifier, aggregator, fake_sleep)

    outcome = await pipeline.run("demo", "key", observer=snapshots.append)

    assert outcome.status == PipelineStatus.COMPLETED
    assert len(outcome.results) == 3
    assert all(isinstance(r, ClassificationFailure) for r in outcome.results)
    assert outcome.counts.total == 0
    assert aggregator.calls == []
    assert outcome.aggregated is None
    # The aggregating stage is still entered
    assert snapshots[-1].stage == PipelineStage.AGGREGATING


@pytest.mark.asyncio
async def test_verdicts_without_observations_skip_aggregation(posts, fake_sleep):
    classifier = DummyClassifier({p.id: make_verdict("neutral") for p in posts})
    aggregator = DummyAggregator()
    pipeline = _pipeline(DummySource(posts), classifier, aggregator, fake_sleep)

    outcome = await pipeline.run("demo", "key")

    assert outcome.counts.neutral == 3
    assert aggregator.calls == []
    assert outcome.aggregated is None


@pytest.mark.asyncio
async def test_labels_are_matched_case_insensitively(posts, fake_sleep):
    classifier = DummyClassifier(
        {
            "p1": make_verdict("Positive"),
            "p2": make_verdict("NEUTRAL"),
            "p3": make_verdict("sarcastic"),
        }
    )
    pipeline = _pipeline(DummySource(posts), classifier, DummyAggregator(), fake_sleep)

    outcome = await pipeline.run("demo", "key")

    assert outcome.counts.positive == 1
    assert outcome.counts.neutral == 1
    assert outcome.counts.total == 2
    assert len(outcome.successful_results) == 3
    assert outcome.counts.total <= len(outcome.successful_results)


@pytest.mark.asyncio
async def test_aggregation_failure_keeps_results(posts, fake_sleep, aggregation_error):
    classifier = DummyClassifier(
        {p.id: make_verdict("positive", positives=["works"]) for p in posts}
    )
    aggregator = DummyAggregator(error=aggregation_error)
    pipeline = _pipeline(DummySource(posts), classifier, aggregator, fake_sleep)

    outcome = await pipeline.run("demo", "key")

    assert outcome.status == PipelineStatus.COMPLETED
    assert len(aggregator.calls) == 1
    assert outcome.aggregated is None
    assert len(outcome.successful_results) == 3
    assert outcome.counts.positive == 3


@pytest.mark.asyncio
async def test_delay_follows_every_post_including_last(posts, fake_sleep):
    classifier = DummyClassifier({p.id: make_verdict("positive") for p in posts})
    pipeline = _pipeline(DummySource(posts), classifier, DummyAggregator(), fake_sleep)

    await pipeline.run("demo", "key")

    assert fake_sleep.delays == [1.0, 1.0, 1.0]


@pytest.mark.asyncio
async def test_item_delay_is_configurable(posts, fake_sleep):
    classifier = DummyClassifier({p.id: make_verdict("positive") for p in posts})
    pipeline = _pipeline(
        DummySource(posts), classifier, DummyAggregator(), fake_sleep, item_delay=0.25
    )

    await pipeline.run("demo", "key")

    assert fake_sleep.delays == [0.25, 0.25, 0.25]


@pytest.mark.asyncio
async def test_snapshots_show_monotonic_progress(posts, fake_sleep, classification_error):
    classifier = DummyClassifier(
        {
            "p1": make_verdict("positive", positives=["a"]),
            "p2": classification_error,
            "p3": make_verdict("negative", negatives=["b"]),
        }
    )
    snapshots = []
    pipeline = _pipeline(DummySource(posts), classifier, DummyAggregator(), fake_sleep)

    await pipeline.run("demo", "key", observer=snapshots.append)

    assert _stages(snapshots) == [
        PipelineStage.FETCHING,
        PipelineStage.ANALYZING,
        PipelineStage.AGGREGATING,
    ]
    orders = [s.stage.order for s in snapshots]
    assert orders == sorted(orders)

    analyzing = [s for s in snapshots if s.stage == PipelineStage.ANALYZING]
    in_flight = [s.current_post for s in analyzing if len(s.results) < s.current_post]
    finished = [
        s.current_post for s in analyzing if s.results and len(s.results) == s.current_post
    ]
    assert in_flight == [1, 2, 3]
    assert finished == [1, 2, 3]
    assert all(s.total_posts == 3 for s in analyzing)

    # Results only grow; earlier entries never change
    previous = []
    for snapshot in snapshots:
        ids = [r.post.id for r in snapshot.results]
        assert ids[: len(previous)] == previous
        previous = ids
    assert previous == ["p1", "p2", "p3"]
    assert snapshots[-1].status == PipelineStatus.COMPLETED
    assert snapshots[-1].aggregated is not None


@pytest.mark.asyncio
async def test_current_post_advances_before_classification(fake_sleep):
    started = asyncio.Event()
    release = asyncio.Event()

    class BlockingClassifier(DummyClassifier):
        async def classify(self, post, keyword, api_key, max_retries, model):
            started.set()
            await release.wait()
            return await super().classify(post, keyword, api_key, max_retries, model)

    classifier = BlockingClassifier({"p1": make_verdict("positive", positives=["x"])})
    pipeline = _pipeline(
        DummySource([make_post("p1")]), classifier, DummyAggregator(), fake_sleep
    )
    run = pipeline.create_run("demo", "key")
    run.start()

    await asyncio.wait_for(started.wait(), timeout=1)
    snapshot = run.latest()
    release.set()
    outcome = await run.wait()

    assert snapshot.stage == PipelineStage.ANALYZING
    assert snapshot.current_post == 1
    assert snapshot.total_posts == 1
    assert snapshot.results == []
    assert outcome.status == PipelineStatus.COMPLETED


@pytest.mark.asyncio
async def test_timings_are_measured_per_stage(posts, fake_sleep):
    ticks = iter([100.0, 102.5, 103.0, 110.0])
    classifier = DummyClassifier({p.id: make_verdict("positive", positives=["x"]) for p in posts})
    pipeline = _pipeline(
        DummySource(posts),
        classifier,
        DummyAggregator(),
        fake_sleep,
        clock=lambda: next(ticks),
    )

    outcome = await pipeline.run("demo", "key")

    assert outcome.timings.data_retrieval == pytest.approx(2.5)
    assert outcome.timings.llm_processing == pytest.approx(7.0)


@pytest.mark.asyncio
async def test_parameters_are_passed_to_collaborators(posts, fake_sleep):
    source = DummySource(posts[:1])
    classifier = DummyClassifier({"p1": make_verdict("positive", positives=["ok"])})
    aggregator = DummyAggregator()
    pipeline = _pipeline(source, classifier, aggregator, fake_sleep)

    await pipeline.run(
        "rust", "secret", post_limit=25, max_retries=4, model="gemini-2.5-flash"
    )

    assert source.calls == [("rust", 25)]
    assert classifier.calls == [
        {
            "post_id": "p1",
            "keyword": "rust",
            "api_key": "secret",
            "max_retries": 4,
            "model": "gemini-2.5-flash",
        }
    ]
    assert aggregator.calls[0]["model"] == "gemini-2.5-flash"
    assert aggregator.calls[0]["max_retries"] == 4


@pytest.mark.asyncio
async def test_cancellation_stops_before_next_post(posts, fake_sleep):
    cancel_event = asyncio.Event()

    class CancellingClassifier(DummyClassifier):
        async def classify(self, post, keyword, api_key, max_retries, model):
            verdict = await super().classify(post, keyword, api_key, max_retries, model)
            cancel_event.set()
            return verdict

    classifier = CancellingClassifier(
        {p.id: make_verdict("positive", positives=["x"]) for p in posts}
    )
    aggregator = DummyAggregator()
    pipeline = _pipeline(DummySource(posts), classifier, aggregator, fake_sleep)

    outcome = await pipeline.run("demo", "key", cancel_event=cancel_event)

    assert outcome.status == PipelineStatus.CANCELLED
    assert [r.post.id for r in outcome.results] == ["p1"]
    assert outcome.counts.positive == 1
    assert len(classifier.calls) == 1
    assert aggregator.calls == []
    assert outcome.aggregated is None


@pytest.mark.asyncio
async def test_observer_errors_do_not_break_the_run(posts, fake_sleep):
    received = []

    async def async_observer(snapshot):
        received.append(snapshot)

    def failing_observer(snapshot):
        raise RuntimeError("observer exploded")

    classifier = DummyClassifier({p.id: make_verdict("positive") for p in posts})
    pipeline = _pipeline(DummySource(posts), classifier, DummyAggregator(), fake_sleep)
    run = pipeline.create_run("demo", "key", observer=failing_observer)
    run.publisher.subscribe(async_observer)

    outcome = await run.wait()

    assert outcome.status == PipelineStatus.COMPLETED
    assert received
    assert received[-1].status == PipelineStatus.COMPLETED


@pytest.mark.asyncio
async def test_background_run_streams_events(posts, fake_sleep):
    classifier = DummyClassifier({p.id: make_verdict("negative", negatives=["x"]) for p in posts})
    pipeline = _pipeline(DummySource(posts), classifier, DummyAggregator(), fake_sleep)
    run = pipeline.create_run("demo", "key")

    events = run.events()
    run.start()
    collected = [snapshot async for snapshot in events]
    outcome = await run.wait()

    assert run.done
    assert run.error is None
    assert collected[-1].status == PipelineStatus.COMPLETED
    assert collected[-1].counts.negative == 3
    assert run.latest().status == outcome.status


@pytest.mark.asyncio
async def test_concurrent_runs_are_isolated(fake_sleep):
    first = _pipeline(
        DummySource([make_post("a1"), make_post("a2")]),
        DummyClassifier({"a1": make_verdict("positive"), "a2": make_verdict("positive")}),
        DummyAggregator(),
        fake_sleep,
    )
    second = _pipeline(
        DummySource([make_post("b1")]),
        DummyClassifier({"b1": make_verdict("negative")}),
        DummyAggregator(),
        fake_sleep,
    )

    one, two = await asyncio.gather(first.run("alpha", "k"), second.run("beta", "k"))

    assert one.run_id != two.run_id
    assert one.counts.positive == 2 and one.counts.negative == 0
    assert two.counts.negative == 1 and two.counts.positive == 0
    assert [r.post.id for r in one.results] == ["a1", "a2"]
    assert [r.post.id for r in two.results] == ["b1"]
