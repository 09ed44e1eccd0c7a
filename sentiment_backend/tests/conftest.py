"""
PyTest configuration and fixtures.
"""

from typing import Dict, List, Optional, Sequence, Union

import pytest

from sentiment_backend.domain.models.sentiment import (
    AggregatedResult,
    RedditPost,
    SentimentVerdict,
)
from sentiment_backend.services.external.reddit_client import SourceError
from sentiment_backend.services.llm.exceptions import (
    AggregationError,
    ClassificationError,
)


def make_post(post_id: str, title: Optional[str] = None, selftext: str = "") -> RedditPost:
    return RedditPost(
        id=post_id,
        title=title or f"Post {post_id}",
        selftext=selftext,
        author="someone",
        subreddit="testing",
    )


def make_verdict(
    label: str,
    positives: Sequence[str] = (),
    negatives: Sequence[str] = (),
) -> SentimentVerdict:
    return SentimentVerdict(
        sentiment=label, positives=list(positives), negatives=list(negatives)
    )


class DummySource:
    def __init__(self, posts: Optional[List[RedditPost]] = None, error: Exception = None):
        self._posts = posts or []
        self._error = error
        self.calls = []

    async def fetch(self, query: str, limit: int) -> List[RedditPost]:
        self.calls.append((query, limit))
        if self._error is not None:
            raise self._error
        return list(self._posts)


class DummyClassifier:
    """Returns a scripted verdict (or raises a scripted error) per post id."""

    def __init__(self, outcomes: Dict[str, Union[SentimentVerdict, Exception]]):
        self._outcomes = outcomes
        self.calls = []

    async def classify(self, post, keyword, api_key, max_retries, model):
        self.calls.append(
            {
                "post_id": post.id,
                "keyword": keyword,
                "api_key": api_key,
                "max_retries": max_retries,
                "model": model,
            }
        )
        outcome = self._outcomes[post.id]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class DummyAggregator:
    def __init__(self, result: Optional[AggregatedResult] = None, error: Exception = None):
        self._result = result or AggregatedResult(
            overall_sentiment="positive",
            summary="People mostly like it.",
            key_positives=["fast"],
            key_negatives=["pricey"],
        )
        self._error = error
        self.calls = []

    async def aggregate(self, positives, negatives, keyword, api_key, max_retries, model):
        self.calls.append(
            {
                "positives": list(positives),
                "negatives": list(negatives),
                "keyword": keyword,
                "api_key": api_key,
                "max_retries": max_retries,
                "model": model,
            }
        )
        if self._error is not None:
            raise self._error
        return self._result


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def posts():
    return [make_post("p1"), make_post("p2"), make_post("p3")]


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def source_error():
    return SourceError("connection reset by peer")


@pytest.fixture
def classification_error():
    return ClassificationError("Failed to classify post p1: exhausted 12 attempts")


@pytest.fixture
def aggregation_error():
    return AggregationError("Failed to aggregate: quota exceeded")
