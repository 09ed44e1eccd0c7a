from dataclasses import dataclass, field
from typing import List, Optional
import logging

from sentiment_backend.infrastructure.constants.llm_constants import (
    DEFAULT_ITEM_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_POST_LIMIT,
    GEMINI_DEFAULT_TIMEOUT,
    GEMINI_MAX_TOKENS,
    GEMINI_MODEL_NAME,
    GEMINI_TEMPERATURE,
    MAX_POST_LIMIT,
    MIN_POST_LIMIT,
    REDDIT_DEFAULT_TIMEOUT,
    REDDIT_DEFAULT_USER_AGENT,
    SUPPORTED_GEMINI_MODELS,
)

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Base class for configuration related errors"""
    pass


class ModelValidationError(ConfigurationError):
    """Raised when model configuration is invalid"""
    pass


class APIKeyValidationError(ConfigurationError):
    """Raised when API key is missing or invalid"""
    pass


class PipelineConfigError(ConfigurationError):
    """Raised when pipeline configuration is invalid"""
    pass


@dataclass
class LLMConfig:
    model: str = GEMINI_MODEL_NAME
    temperature: float = GEMINI_TEMPERATURE
    max_tokens: int = GEMINI_MAX_TOKENS
    api_key: Optional[str] = None
    timeout: int = GEMINI_DEFAULT_TIMEOUT
    supported_models: List[str] = field(
        default_factory=lambda: list(SUPPORTED_GEMINI_MODELS)
    )

    def __post_init__(self):
        self.validate()

    def validate(self, strict: bool = False):
        """Validate LLM configuration"""
        if strict and not self.api_key:
            raise APIKeyValidationError("Gemini API key is required")

        if self.model not in self.supported_models:
            raise ModelValidationError(
                f"Unsupported model: {self.model}. "
                f"Supported models are: {', '.join(self.supported_models)}"
            )

        if not (0.0 <= self.temperature <= 1.0):
            raise ModelValidationError("Temperature must be between 0.0 and 1.0")

        if self.max_tokens <= 0:
            raise ModelValidationError("max_tokens must be positive")

        if self.timeout <= 0:
            raise ModelValidationError("timeout must be positive")


@dataclass
class PipelineConfig:
    post_limit: int = DEFAULT_POST_LIMIT
    max_retries: int = DEFAULT_MAX_RETRIES
    item_delay: float = DEFAULT_ITEM_DELAY

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Validate pipeline configuration"""
        if not (MIN_POST_LIMIT <= self.post_limit <= MAX_POST_LIMIT):
            raise PipelineConfigError(
                f"post_limit must be between {MIN_POST_LIMIT} and {MAX_POST_LIMIT}"
            )

        if self.max_retries < 1:
            raise PipelineConfigError("max_retries must be at least 1")

        if self.item_delay < 0:
            raise PipelineConfigError("item_delay must be non-negative")


@dataclass
class RedditConfig:
    user_agent: str = REDDIT_DEFAULT_USER_AGENT
    timeout: float = REDDIT_DEFAULT_TIMEOUT

    def __post_init__(self):
        if not self.user_agent.strip():
            raise ConfigurationError("Reddit user agent must not be empty")
        if self.timeout <= 0:
            raise ConfigurationError("Reddit timeout must be positive")


@dataclass
class SystemConfig:
    llm: LLMConfig
    pipeline: PipelineConfig
    reddit: RedditConfig
    debug_mode: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        self.validate()

    def validate(self, strict: bool = False):
        """Validate complete system configuration"""
        self.llm.validate(strict=strict)
        self.pipeline.validate()

        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ConfigurationError(f"Invalid log_level: {self.log_level}")
