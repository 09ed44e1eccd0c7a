"""
LLM services package.

This module provides:
- AsyncGenAIClient: Gemini transport with retry and JSON parsing
- GeminiSentimentClassifier / GeminiSentimentAggregator: the classifier and
  aggregator collaborators of the sentiment pipeline
"""

from .async_genai_client import AsyncGenAIClient
from .exceptions import (
    AggregationError,
    ClassificationError,
    LLMAPIError,
    LLMResponseParseError,
    LLMServiceError,
)
from .gemini_sentiment_service import GeminiSentimentAggregator, GeminiSentimentClassifier
from .retry import RetryConfig, retry_async, with_retry

__all__ = [
    "AsyncGenAIClient",
    "AggregationError",
    "ClassificationError",
    "GeminiSentimentAggregator",
    "GeminiSentimentClassifier",
    "LLMAPIError",
    "LLMResponseParseError",
    "LLMServiceError",
    "RetryConfig",
    "retry_async",
    "with_retry",
]
