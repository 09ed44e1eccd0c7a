"""
Gemini-backed sentiment classification and aggregation.

The API key and model are passed with every call. Clients are cached per key
and the least recently used one is dropped past ``max_clients``.
"""

import logging
from collections import OrderedDict
from typing import Callable, List, Optional

from pydantic import ValidationError

from sentiment_backend.domain.models.sentiment import (
    AggregatedResult,
    RedditPost,
    SentimentVerdict,
)
from sentiment_backend.infrastructure.constants.llm_constants import (
    GEMINI_DEFAULT_TIMEOUT,
    GEMINI_MODEL_NAME,
)
from sentiment_backend.services.llm.async_genai_client import AsyncGenAIClient
from sentiment_backend.services.llm.config.genai_config import TaskType
from sentiment_backend.services.llm.exceptions import (
    AggregationError,
    ClassificationError,
    LLMServiceError,
)
from sentiment_backend.services.llm.prompts.tasks.sentiment_analysis import (
    SentimentAnalysisPrompts,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], AsyncGenAIClient]

DEFAULT_MAX_CLIENTS = 32


class _GeminiService:
    """Keeps a bounded LRU of AsyncGenAIClient instances keyed by API key."""

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        timeout: float = GEMINI_DEFAULT_TIMEOUT,
        max_clients: int = DEFAULT_MAX_CLIENTS,
    ):
        self._client_factory = client_factory or (
            lambda api_key: AsyncGenAIClient(
                api_key=api_key, model=GEMINI_MODEL_NAME, timeout=timeout
            )
        )
        if max_clients < 1:
            raise ValueError("max_clients must be at least 1")
        self.max_clients = max_clients
        self._clients: "OrderedDict[str, AsyncGenAIClient]" = OrderedDict()

    @property
    def cached_clients(self) -> int:
        return len(self._clients)

    def _client_for(self, api_key: str) -> AsyncGenAIClient:
        client = self._clients.get(api_key)
        if client is not None:
            self._clients.move_to_end(api_key)
            return client
        client = self._client_factory(api_key)
        self._clients[api_key] = client
        while len(self._clients) > self.max_clients:
            self._clients.popitem(last=False)
        return client


class GeminiSentimentClassifier(_GeminiService):
    """Classifies the sentiment of a single Reddit post."""

    async def classify(
        self,
        post: RedditPost,
        keyword: str,
        api_key: str,
        max_retries: int,
        model: str,
    ) -> SentimentVerdict:
        """
        Classify one post against the search keyword.

        Raises:
            ClassificationError: If no valid verdict was produced within
                ``max_retries`` attempts
        """
        prompt = SentimentAnalysisPrompts.post_prompt(post, keyword)

        try:
            client = self._client_for(api_key)
            data = await client.generate_content(
                TaskType.SENTIMENT_ANALYSIS,
                prompt,
                model=model,
                max_retries=max_retries,
            )
            verdict = SentimentVerdict.model_validate(data)
        except (LLMServiceError, ValidationError, ValueError) as e:
            raise ClassificationError(
                f"Failed to classify post {post.id}: {str(e)}"
            ) from e

        logger.debug(f"Post {post.id} classified as '{verdict.sentiment}'")
        return verdict


class GeminiSentimentAggregator(_GeminiService):
    """Summarizes observations pooled from every classified post."""

    async def aggregate(
        self,
        positives: List[str],
        negatives: List[str],
        keyword: str,
        api_key: str,
        max_retries: int,
        model: str,
    ) -> AggregatedResult:
        """
        Produce one summary verdict for the run.

        Raises:
            AggregationError: If the summary could not be produced
        """
        prompt = SentimentAnalysisPrompts.aggregation_prompt(positives, negatives, keyword)

        try:
            client = self._client_for(api_key)
            data = await client.generate_content(
                TaskType.SENTIMENT_AGGREGATION,
                prompt,
                model=model,
                max_retries=max_retries,
            )
            return AggregatedResult.model_validate(data)
        except (LLMServiceError, ValidationError, ValueError) as e:
            raise AggregationError(
                f"Failed to aggregate {len(positives)} positive and "
                f"{len(negatives)} negative points: {str(e)}"
            ) from e
