"""
Standardized asynchronous client for Google GenAI SDK.

This module provides a standardized async implementation for the Google GenAI SDK,
with proper error handling, retry logic, and response parsing.
"""

import logging
import asyncio
from typing import Dict, Any, Optional, Union

import google.genai as genai

from sentiment_backend.infrastructure.constants.llm_constants import (
    GEMINI_DEFAULT_TIMEOUT,
    GEMINI_MODEL_NAME,
)
from sentiment_backend.services.llm.config.genai_config import GenAIConfigFactory, TaskType
from sentiment_backend.services.llm.exceptions import (
    LLMAPIError,
    LLMResponseParseError,
    LLMServiceError,
)
from sentiment_backend.services.llm.retry import (
    RetryConfig,
    is_rate_limit_error,
    is_transient_error,
    retry_async,
)
from sentiment_backend.utils.json.json_repair import parse_json_object

logger = logging.getLogger(__name__)

# Errors containing these markers will not succeed on a later attempt
NON_RETRYABLE_MARKERS = [
    "api key not valid",
    "api_key_invalid",
    "permission_denied",
    "unauthenticated",
    "401",
    "403",
]


def is_retryable_error(error: Exception) -> bool:
    """Decide whether a failed Gemini call is worth another attempt."""
    if isinstance(error, LLMResponseParseError):
        return True
    if is_rate_limit_error(error) or is_transient_error(error):
        return True
    message = str(error).lower()
    return not any(marker in message for marker in NON_RETRYABLE_MARKERS)


class AsyncGenAIClient:
    """
    Standardized asynchronous client for Google GenAI SDK.

    This class provides a standardized interface for interacting with the Google GenAI SDK
    asynchronously, with proper error handling, retry logic, and response parsing.
    """

    def __init__(
        self,
        api_key: str,
        model: str = GEMINI_MODEL_NAME,
        timeout: float = GEMINI_DEFAULT_TIMEOUT,
        client: Any = None,
    ):
        """
        Initialize the AsyncGenAIClient.

        Args:
            api_key: Google API key
            model: Model name used when a call does not name one
            timeout: Seconds before a single call is abandoned
            client: Pre-built genai client, mainly for tests
        """
        self.default_model = model
        self.timeout = timeout

        if client is not None:
            self.client = client
            return

        try:
            self.client = genai.Client(api_key=api_key)
            logger.info(f"Initialized genai client for model {model}")
        except Exception as e:
            logger.error(
                f"An unexpected error occurred during genai client initialization: {e}"
            )
            raise ValueError(f"Failed to initialize Gemini client: {e}") from e

    async def generate_content(
        self,
        task: Union[str, TaskType],
        prompt: str,
        model: Optional[str] = None,
        max_retries: int = 3,
        custom_config: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Generate content using the GenAI API with retries.

        Args:
            task: Task type (string or TaskType enum)
            prompt: Prompt text
            model: Model name, defaults to the client's model
            max_retries: Total number of attempts before giving up
            custom_config: Optional custom configuration parameters

        Returns:
            Parsed response as a dictionary
        """
        config = GenAIConfigFactory.create_config(task, custom_config)
        effective_model = model or self.default_model
        retry_config = RetryConfig(
            max_attempts=max(1, max_retries),
            should_retry=is_retryable_error,
        )

        try:
            return await retry_async(
                self._generate_once,
                effective_model,
                prompt,
                config,
                task,
                config=retry_config,
            )
        except LLMServiceError:
            raise
        except asyncio.TimeoutError as e:
            raise LLMAPIError(
                f"API call timed out after {retry_config.max_attempts} attempts"
            ) from e
        except Exception as e:
            raise LLMAPIError(
                f"API call failed for task {task}: {str(e)}"
            ) from e

    async def _generate_once(
        self,
        model: str,
        prompt: str,
        config: Any,
        task: Union[str, TaskType],
    ) -> Dict[str, Any]:
        """Make one API call and parse its response."""
        response = await asyncio.wait_for(
            self.client.aio.models.generate_content(
                model=model, contents=prompt, config=config
            ),
            timeout=self.timeout,
        )
        return self._parse_response(response, task)

    def _parse_response(
        self, response: Any, task: Union[str, TaskType]
    ) -> Dict[str, Any]:
        """
        Parse the response from the API.

        Args:
            response: Raw response from the API
            task: Task type

        Returns:
            Parsed response as a dictionary
        """
        # Schema-validated responses come back already parsed
        parsed = getattr(response, "parsed", None)
        if parsed is not None:
            if hasattr(parsed, "model_dump"):
                return parsed.model_dump()
            if isinstance(parsed, dict):
                return parsed

        try:
            text_response = response.text
        except Exception as e:
            logger.warning(f"Could not get response.text: {e}")
            text_response = None

        if not text_response or not text_response.strip():
            finish_reasons = [
                str(getattr(candidate, "finish_reason", "unknown"))
                for candidate in (getattr(response, "candidates", None) or [])
            ]
            raise LLMResponseParseError(
                f"Empty response received for task '{task}' "
                f"(finish reasons: {finish_reasons or 'none'})"
            )

        if not GenAIConfigFactory.is_json_task(task):
            return {"text": text_response}

        try:
            return parse_json_object(text_response)
        except ValueError as e:
            logger.error(
                f"Failed to decode JSON response for task '{task}': {e}. "
                f"Response: {text_response[:500]}"
            )
            raise LLMResponseParseError(f"Failed to parse JSON response: {e}") from e
