"""
Sentiment analysis domain models.

These models describe one pipeline run: the posts fetched from Reddit, the
verdict Gemini produced for each of them, the running sentiment counters and
the aggregated summary. Every model is immutable; the pipeline replaces
values instead of mutating them so that snapshots handed to observers never
change underneath them.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SentimentLabel(str, Enum):
    """Sentiment labels recognized by the counters."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    MIXED = "mixed"
    NEUTRAL = "neutral"

    @classmethod
    def parse(cls, label: Optional[str]) -> Optional["SentimentLabel"]:
        """Case-insensitive lookup; unknown labels return None."""
        if not isinstance(label, str):
            return None
        try:
            return cls(label.strip().lower())
        except ValueError:
            return None


class PipelineStage(str, Enum):
    """Ordered stages of a run. A run only ever moves forward."""

    FETCHING = "fetching"
    ANALYZING = "analyzing"
    AGGREGATING = "aggregating"

    @property
    def order(self) -> int:
        return list(PipelineStage).index(self)


class PipelineStatus(str, Enum):
    """Lifecycle of a run as seen by callers."""

    RUNNING = "running"
    COMPLETED = "completed"
    NO_RESULTS = "no_results"
    CANCELLED = "cancelled"
    FAILED = "failed"


def _coerce_statements(v: Any) -> List[str]:
    # Gemini occasionally returns a bare string or null instead of a list
    if v is None:
        return []
    if isinstance(v, str):
        v = [v]
    if isinstance(v, (list, tuple)):
        return [str(item).strip() for item in v if item is not None and str(item).strip()]
    return v


class RedditPost(BaseModel):
    """A Reddit submission returned by a search."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    selftext: str = ""
    author: Optional[str] = None
    subreddit: Optional[str] = None
    score: int = 0
    num_comments: int = 0
    created_utc: Optional[float] = None
    permalink: Optional[str] = None
    url: Optional[str] = None

    @property
    def text(self) -> str:
        """Title and body as one block of text for the classifier."""
        if self.selftext.strip():
            return f"{self.title}\n\n{self.selftext}"
        return self.title


class SentimentVerdict(BaseModel):
    """Structured classifier output for one post."""

    model_config = ConfigDict(frozen=True)

    sentiment: str = Field(..., description="Label as returned by the model")
    positives: List[str] = Field(default_factory=list)
    negatives: List[str] = Field(default_factory=list)
    summary: Optional[str] = None

    @field_validator("sentiment", mode="before")
    @classmethod
    def _strip_sentiment(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("positives", "negatives", mode="before")
    @classmethod
    def _coerce_lists(cls, v):
        return _coerce_statements(v)

    @property
    def label(self) -> Optional[SentimentLabel]:
        return SentimentLabel.parse(self.sentiment)


class AggregatedResult(BaseModel):
    """Summary verdict computed once per run over all observations."""

    model_config = ConfigDict(frozen=True)

    overall_sentiment: str
    summary: str
    key_positives: List[str] = Field(default_factory=list)
    key_negatives: List[str] = Field(default_factory=list)

    @field_validator("key_positives", "key_negatives", mode="before")
    @classmethod
    def _coerce_lists(cls, v):
        return _coerce_statements(v)


class ClassificationSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["success"] = "success"
    post: RedditPost
    result: SentimentVerdict

    @property
    def verdict(self) -> Optional[SentimentVerdict]:
        return self.result


class ClassificationFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["failure"] = "failure"
    post: RedditPost
    reason: str

    @property
    def verdict(self) -> Optional[SentimentVerdict]:
        return None


AnalysisResult = Annotated[
    Union[ClassificationSuccess, ClassificationFailure],
    Field(discriminator="status"),
]


class SentimentCounts(BaseModel):
    """Running per-label tallies."""

    model_config = ConfigDict(frozen=True)

    positive: int = 0
    negative: int = 0
    mixed: int = 0
    neutral: int = 0

    def increment(self, label: Optional[str]) -> "SentimentCounts":
        """
        Return counts with ``label`` incremented.

        Unknown labels are dropped silently and the same instance is returned.
        """
        parsed = SentimentLabel.parse(label)
        if parsed is None:
            return self
        return self.model_copy(
            update={parsed.value: getattr(self, parsed.value) + 1}
        )

    @property
    def total(self) -> int:
        return self.positive + self.negative + self.mixed + self.neutral

    def as_dict(self) -> Dict[str, int]:
        return self.model_dump()


class RunTimings(BaseModel):
    """Elapsed seconds for data retrieval and LLM processing."""

    model_config = ConfigDict(frozen=True)

    data_retrieval: float = 0.0
    llm_processing: float = 0.0


class PipelineSnapshot(BaseModel):
    """Immutable view of a run published to observers after every change."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    query: str
    stage: PipelineStage
    status: PipelineStatus = PipelineStatus.RUNNING
    current_post: int = 0
    total_posts: int = 0
    results: List[AnalysisResult] = Field(default_factory=list)
    counts: SentimentCounts = Field(default_factory=SentimentCounts)
    timings: RunTimings = Field(default_factory=RunTimings)
    aggregated: Optional[AggregatedResult] = None


class PipelineOutcome(BaseModel):
    """Final result of a run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    query: str
    status: PipelineStatus
    results: List[AnalysisResult] = Field(default_factory=list)
    aggregated: Optional[AggregatedResult] = None
    counts: SentimentCounts = Field(default_factory=SentimentCounts)
    timings: RunTimings = Field(default_factory=RunTimings)

    @property
    def is_empty(self) -> bool:
        return self.status == PipelineStatus.NO_RESULTS

    @property
    def successful_results(self) -> List[ClassificationSuccess]:
        return [r for r in self.results if isinstance(r, ClassificationSuccess)]

    @property
    def failed_results(self) -> List[ClassificationFailure]:
        return [r for r in self.results if isinstance(r, ClassificationFailure)]
