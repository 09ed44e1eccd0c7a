"""
Pydantic models for API request/response validation and documentation.

Domain models (posts, verdicts, snapshots) are returned as-is; this module
only adds the request bodies and the small response envelopes around them.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from sentiment_backend.domain.models.sentiment import (
    PipelineOutcome,
    PipelineSnapshot,
    PipelineStatus,
)
from sentiment_backend.infrastructure.config.settings import settings
from sentiment_backend.infrastructure.constants.llm_constants import (
    MAX_POST_LIMIT,
    MIN_POST_LIMIT,
    SUPPORTED_GEMINI_MODELS,
)


# Request Models


class SentimentAnalysisRequest(BaseModel):
    """
    Request model for starting a sentiment analysis run.
    """

    query: str = Field(..., description="Keyword to search Reddit for")
    api_key: Optional[str] = Field(
        None, description="Gemini API key; falls back to GEMINI_API_KEY when omitted"
    )
    post_limit: int = Field(
        settings.default_post_limit,
        description=f"Number of posts to analyze, clamped to {MIN_POST_LIMIT}-{MAX_POST_LIMIT}",
    )
    max_retries: int = Field(
        settings.default_max_retries, ge=1, description="Attempts per Gemini call"
    )
    model: str = Field(
        default_factory=lambda: settings.gemini["model"],
        validate_default=True,
        description="Gemini model to use",
    )
    reddit_access_token: Optional[str] = Field(
        None, description="Reddit OAuth token; anonymous search when omitted"
    )
    reddit_token_expires_at: Optional[float] = Field(
        None, description="Token expiry as epoch seconds"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "query": "mechanical keyboards",
                "api_key": "AIza...",
                "post_limit": 10,
                "max_retries": 12,
                "model": "gemini-2.0-flash",
            }
        }
    }

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("query must not be empty")
        return v

    @field_validator("post_limit")
    @classmethod
    def _clamp_post_limit(cls, v: int) -> int:
        return max(MIN_POST_LIMIT, min(MAX_POST_LIMIT, v))

    @field_validator("model")
    @classmethod
    def _supported_model(cls, v: str) -> str:
        v = v.strip()
        if v not in SUPPORTED_GEMINI_MODELS:
            raise ValueError(
                f"Unsupported model '{v}'. Supported models: {', '.join(SUPPORTED_GEMINI_MODELS)}"
            )
        return v

    @field_validator("api_key", "reddit_access_token")
    @classmethod
    def _blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


# Response Models


class SentimentAnalysisResponse(BaseModel):
    """
    Response model for a completed run.
    """

    status: PipelineStatus
    message: Optional[str] = None
    outcome: PipelineOutcome


class RunStartedResponse(BaseModel):
    run_id: str
    status: PipelineStatus = PipelineStatus.RUNNING


class RunStatusResponse(BaseModel):
    run_id: str
    done: bool
    error: Optional[str] = None
    snapshot: PipelineSnapshot


class ModelsResponse(BaseModel):
    default_model: str
    models: List[str]


class HealthCheckResponse(BaseModel):
    status: str = "healthy"
    version: str
