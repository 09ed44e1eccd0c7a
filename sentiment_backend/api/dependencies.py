"""
Shared services for the sentiment routes.

One ``SentimentServices`` instance lives on ``app.state``. It owns the HTTP
client used for Reddit, the Gemini classifier and aggregator, and the run
registry. A fresh ``SentimentPipeline`` is built per request because the
Reddit session comes with the request.
"""

import logging
from typing import Optional

import httpx
from fastapi import HTTPException, Request

from sentiment_backend.core.processing_pipeline import SentimentPipeline
from sentiment_backend.core.run_registry import RunRegistry
from sentiment_backend.infrastructure.config.settings import Settings, settings
from sentiment_backend.infrastructure.constants.llm_constants import REDDIT_DEFAULT_TIMEOUT
from sentiment_backend.schemas import SentimentAnalysisRequest
from sentiment_backend.services.external.reddit_client import RedditSearchClient
from sentiment_backend.services.external.reddit_session import RedditSession
from sentiment_backend.services.llm.gemini_sentiment_service import (
    GeminiSentimentAggregator,
    GeminiSentimentClassifier,
)

logger = logging.getLogger(__name__)


class SentimentServices:
    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient],
        classifier,
        aggregator,
        registry: Optional[RunRegistry] = None,
        item_delay: float = 1.0,
        reddit_user_agent: Optional[str] = None,
        default_api_key: Optional[str] = None,
    ):
        # Shared by every Reddit source built here
        self.http_client = http_client or httpx.AsyncClient(timeout=REDDIT_DEFAULT_TIMEOUT)
        self.classifier = classifier
        self.aggregator = aggregator
        self.registry = registry or RunRegistry()
        self.item_delay = item_delay
        self.reddit_user_agent = reddit_user_agent
        self.default_api_key = default_api_key

    @classmethod
    def from_settings(cls, app_settings: Settings = settings) -> "SentimentServices":
        timeout = app_settings.gemini["timeout"]
        return cls(
            http_client=httpx.AsyncClient(timeout=app_settings.reddit_timeout),
            classifier=GeminiSentimentClassifier(timeout=timeout),
            aggregator=GeminiSentimentAggregator(timeout=timeout),
            item_delay=app_settings.item_delay,
            reddit_user_agent=app_settings.reddit_user_agent,
            default_api_key=app_settings.gemini["api_key"],
        )

    def resolve_api_key(self, body: SentimentAnalysisRequest) -> str:
        api_key = body.api_key or self.default_api_key
        if not api_key:
            raise HTTPException(
                status_code=400,
                detail="A Gemini API key is required (api_key or GEMINI_API_KEY)",
            )
        return api_key

    def build_source(self, body: SentimentAnalysisRequest):
        if body.reddit_access_token:
            session = RedditSession.from_token(
                body.reddit_access_token, expires_at=body.reddit_token_expires_at
            )
        else:
            session = RedditSession.anonymous()

        kwargs = {"http_client": self.http_client}
        if self.reddit_user_agent:
            kwargs["user_agent"] = self.reddit_user_agent
        return RedditSearchClient(session, **kwargs)

    def pipeline_for(self, body: SentimentAnalysisRequest) -> SentimentPipeline:
        return SentimentPipeline(
            source=self.build_source(body),
            classifier=self.classifier,
            aggregator=self.aggregator,
            item_delay=self.item_delay,
        )

    async def aclose(self) -> None:
        await self.http_client.aclose()


def get_services(request: Request) -> SentimentServices:
    return request.app.state.services
