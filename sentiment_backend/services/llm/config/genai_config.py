"""
Configuration management for Google GenAI SDK.

This module provides task-specific generation profiles and response schemas
for the two Gemini calls the pipeline makes: per-post sentiment classification
and aggregation of the pooled observations.
"""

import logging
from enum import Enum
from typing import Dict, Any, List, Optional, Union
from pydantic import BaseModel, Field

from google.genai import types
from google.genai.types import GenerateContentConfig, SafetySetting

from sentiment_backend.infrastructure.constants.llm_constants import (
    GEMINI_TEMPERATURE,
    GEMINI_MAX_TOKENS,
    GEMINI_TOP_P,
    GEMINI_TOP_K,
    GEMINI_SAFETY_SETTINGS_BLOCK_NONE,
)

logger = logging.getLogger(__name__)


class TaskType(str, Enum):
    """Enum for different LLM task types."""

    SENTIMENT_ANALYSIS = "sentiment_analysis"
    SENTIMENT_AGGREGATION = "sentiment_aggregation"
    TEXT_GENERATION = "text_generation"
    UNKNOWN = "unknown_task"


class ResponseFormat(str, Enum):
    """Enum for response format types."""

    JSON = "application/json"
    TEXT = "text/plain"


# Response schema models for different task types
class PostSentimentResponse(BaseModel):
    """Schema for the sentiment of a single post."""

    sentiment: str = Field(
        ..., description="One of: positive, negative, mixed, neutral"
    )
    positives: List[str] = Field(
        default_factory=list,
        description="Positive points the post makes about the keyword",
    )
    negatives: List[str] = Field(
        default_factory=list,
        description="Negative points the post makes about the keyword",
    )
    summary: str = Field(default="", description="One sentence summary of the post")


class AggregatedSentimentResponse(BaseModel):
    """Schema for the summary over all analyzed posts."""

    overall_sentiment: str = Field(
        ..., description="One of: positive, negative, mixed, neutral"
    )
    summary: str
    key_positives: List[str] = Field(default_factory=list)
    key_negatives: List[str] = Field(default_factory=list)


class GenAIConfigModel(BaseModel):
    """Pydantic model for GenAI configuration validation."""

    temperature: float = Field(default=GEMINI_TEMPERATURE, ge=0.0, le=1.0)
    max_output_tokens: int = Field(default=GEMINI_MAX_TOKENS, gt=0)
    top_p: float = Field(default=GEMINI_TOP_P, ge=0.0, le=1.0)
    top_k: Optional[int] = Field(default=GEMINI_TOP_K, ge=1)
    response_mime_type: Optional[str] = None
    response_schema: Optional[Any] = None


class GenAIConfigFactory:
    """Factory for creating GenAI configurations based on task type."""

    # Map task types to their corresponding schema models
    TASK_SCHEMA_MAP = {
        TaskType.SENTIMENT_ANALYSIS: PostSentimentResponse,
        TaskType.SENTIMENT_AGGREGATION: AggregatedSentimentResponse,
    }

    JSON_TASKS = [TaskType.SENTIMENT_ANALYSIS, TaskType.SENTIMENT_AGGREGATION]

    @staticmethod
    def create_config(
        task: Union[str, TaskType], custom_params: Optional[Dict[str, Any]] = None
    ) -> GenerateContentConfig:
        """
        Create a GenerateContentConfig for the specified task.

        Args:
            task: Task type (string or TaskType enum)
            custom_params: Optional custom parameters to override defaults

        Returns:
            GenerateContentConfig object
        """
        task = GenAIConfigFactory.resolve_task(task)

        # Start with base configuration
        config_params: Dict[str, Any] = {
            "temperature": GEMINI_TEMPERATURE,
            "max_output_tokens": GEMINI_MAX_TOKENS,
            "top_p": GEMINI_TOP_P,
            "top_k": GEMINI_TOP_K,
        }

        if task in GenAIConfigFactory.JSON_TASKS:
            config_params["response_mime_type"] = ResponseFormat.JSON.value
            config_params["response_schema"] = GenAIConfigFactory.TASK_SCHEMA_MAP[task]
            logger.debug(
                f"Using response schema for task {task.value}: "
                f"{config_params['response_schema'].__name__}"
            )

        if task == TaskType.SENTIMENT_AGGREGATION:
            # The summary has more to say than a single post
            config_params["temperature"] = 0.2

        # Override with custom parameters if provided
        if custom_params:
            config_params.update(custom_params)

        validated_config = GenAIConfigModel(**config_params)

        return GenAIConfigFactory._create_generate_content_config(
            validated_config, GenAIConfigFactory._create_safety_settings()
        )

    @staticmethod
    def resolve_task(task: Union[str, TaskType]) -> TaskType:
        """Convert a string task to the enum, falling back to UNKNOWN."""
        if isinstance(task, TaskType):
            return task
        try:
            return TaskType(task)
        except ValueError:
            logger.warning(f"Unknown task type: {task}, using default configuration")
            return TaskType.UNKNOWN

    @staticmethod
    def is_json_task(task: Union[str, TaskType]) -> bool:
        return GenAIConfigFactory.resolve_task(task) in GenAIConfigFactory.JSON_TASKS

    @staticmethod
    def _create_safety_settings() -> List[SafetySetting]:
        """Create safety settings for the GenerateContentConfig."""
        return [
            types.SafetySetting(
                category=types.HarmCategory(setting["category"]),
                threshold=types.HarmBlockThreshold(setting["threshold"]),
            )
            for setting in GEMINI_SAFETY_SETTINGS_BLOCK_NONE
        ]

    @staticmethod
    def _create_generate_content_config(
        config: GenAIConfigModel, safety_settings: List[SafetySetting]
    ) -> GenerateContentConfig:
        """Create a GenerateContentConfig from validated parameters."""
        config_dict = config.model_dump(exclude_none=True, exclude={"response_schema"})

        generate_content_config = types.GenerateContentConfig(
            temperature=config_dict.get("temperature", GEMINI_TEMPERATURE),
            max_output_tokens=config_dict.get("max_output_tokens", GEMINI_MAX_TOKENS),
            top_k=config_dict.get("top_k", GEMINI_TOP_K),
            top_p=config_dict.get("top_p", GEMINI_TOP_P),
            response_mime_type=config_dict.get("response_mime_type"),
            safety_settings=safety_settings,
            response_schema=config.response_schema,
        )

        return generate_content_config
