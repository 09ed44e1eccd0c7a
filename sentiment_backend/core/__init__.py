from .exceptions import FatalFetchError, PipelineError
from .processing_pipeline import PipelineRun, SentimentPipeline
from .progress import ProgressPublisher, ProgressTracker

__all__ = [
    "FatalFetchError",
    "PipelineError",
    "PipelineRun",
    "ProgressPublisher",
    "ProgressTracker",
    "SentimentPipeline",
]
