from .sentiment import (
    AggregatedResult,
    AnalysisResult,
    ClassificationFailure,
    ClassificationSuccess,
    PipelineOutcome,
    PipelineSnapshot,
    PipelineStage,
    PipelineStatus,
    RedditPost,
    RunTimings,
    SentimentCounts,
    SentimentLabel,
    SentimentVerdict,
)

__all__ = [
    "AggregatedResult",
    "AnalysisResult",
    "ClassificationFailure",
    "ClassificationSuccess",
    "PipelineOutcome",
    "PipelineSnapshot",
    "PipelineStage",
    "PipelineStatus",
    "RedditPost",
    "RunTimings",
    "SentimentCounts",
    "SentimentLabel",
    "SentimentVerdict",
]
