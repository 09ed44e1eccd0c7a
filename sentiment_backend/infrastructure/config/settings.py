"""Application settings and configuration"""

import os
import logging
from typing import Dict, Any, Optional, List
import json
from dataclasses import asdict

from dotenv import load_dotenv

from sentiment_backend.infrastructure.constants.llm_constants import (
    GEMINI_MODEL_NAME,
    GEMINI_TEMPERATURE,
    GEMINI_MAX_TOKENS,
    GEMINI_TOP_P,
    GEMINI_TOP_K,
    GEMINI_DEFAULT_TIMEOUT,
    SUPPORTED_GEMINI_MODELS,
    DEFAULT_POST_LIMIT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_ITEM_DELAY,
    REDDIT_DEFAULT_USER_AGENT,
    REDDIT_DEFAULT_TIMEOUT,
    ENV_GEMINI_API_KEY,
    ENV_GEMINI_MODEL,
    ENV_GEMINI_TEMPERATURE,
    ENV_GEMINI_MAX_TOKENS,
    ENV_GEMINI_API_TIMEOUT,
    ENV_REDDIT_USER_AGENT,
    ENV_REDDIT_TIMEOUT,
    ENV_POST_LIMIT,
    ENV_MAX_RETRIES,
    ENV_ITEM_DELAY,
)
from sentiment_backend.infrastructure.data.config import (
    SystemConfig,
    LLMConfig,
    PipelineConfig,
    RedditConfig,
)


class Settings:
    """Manages application settings and configuration"""

    def __init__(self, env_file: Optional[str] = ".env"):
        self.logger = logging.getLogger(__name__)
        self._config: Optional[SystemConfig] = None

        # Values already present in the environment win over the .env file
        if env_file and os.path.exists(env_file):
            load_dotenv(env_file, override=False)

        # LLM configuration
        self.gemini = {
            "api_key": os.getenv(ENV_GEMINI_API_KEY),
            "model": os.getenv(ENV_GEMINI_MODEL, GEMINI_MODEL_NAME),
            "temperature": float(
                os.getenv(ENV_GEMINI_TEMPERATURE, str(GEMINI_TEMPERATURE))
            ),
            "max_tokens": int(os.getenv(ENV_GEMINI_MAX_TOKENS, str(GEMINI_MAX_TOKENS))),
            "timeout": int(os.getenv(ENV_GEMINI_API_TIMEOUT, str(GEMINI_DEFAULT_TIMEOUT))),
            "top_p": GEMINI_TOP_P,
            "top_k": GEMINI_TOP_K,
        }
        self.supported_models: List[str] = list(SUPPORTED_GEMINI_MODELS)

        # Pipeline defaults
        self.default_post_limit = int(os.getenv(ENV_POST_LIMIT, str(DEFAULT_POST_LIMIT)))
        self.default_max_retries = int(
            os.getenv(ENV_MAX_RETRIES, str(DEFAULT_MAX_RETRIES))
        )
        self.item_delay = float(os.getenv(ENV_ITEM_DELAY, str(DEFAULT_ITEM_DELAY)))

        # Reddit
        self.reddit_user_agent = os.getenv(ENV_REDDIT_USER_AGENT, REDDIT_DEFAULT_USER_AGENT)
        self.reddit_timeout = float(
            os.getenv(ENV_REDDIT_TIMEOUT, str(REDDIT_DEFAULT_TIMEOUT))
        )

        # CORS settings
        default_origins = [
            "http://localhost:3000",
            "http://localhost:5173",  # Vite dev server
        ]
        self.cors_origins = self._get_list("CORS_ORIGINS", default_origins)

        # Uvicorn server settings
        self.uvicorn_host = os.getenv("UVICORN_HOST", "0.0.0.0")
        self.uvicorn_port = int(os.getenv("UVICORN_PORT", "8000"))

        self.debug_mode = self._get_bool("DEBUG_MODE", False)
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        # Set default log level for httpx and httpcore to reduce debug noise
        logging.getLogger("httpx").setLevel(logging.INFO)
        logging.getLogger("httpcore").setLevel(logging.INFO)

    def load_config(self) -> SystemConfig:
        """Load system configuration"""
        try:
            self._config = SystemConfig(
                llm=LLMConfig(
                    model=self.gemini["model"],
                    temperature=self.gemini["temperature"],
                    max_tokens=self.gemini["max_tokens"],
                    api_key=self.gemini["api_key"],
                    timeout=self.gemini["timeout"],
                    supported_models=self.supported_models,
                ),
                pipeline=PipelineConfig(
                    post_limit=self.default_post_limit,
                    max_retries=self.default_max_retries,
                    item_delay=self.item_delay,
                ),
                reddit=RedditConfig(
                    user_agent=self.reddit_user_agent,
                    timeout=self.reddit_timeout,
                ),
                debug_mode=self.debug_mode,
                log_level=self.log_level,
            )
            return self._config

        except Exception as e:
            error_msg = f"Error loading config: {str(e)}"
            self.logger.error(error_msg)
            raise ValueError(error_msg) from e

    def get_config(self) -> SystemConfig:
        """Get current configuration"""
        if not self._config:
            return self.load_config()
        return self._config

    def _get_bool(self, key: str, default: bool = False) -> bool:
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def _get_list(self, key: str, default: Optional[list] = None) -> Optional[list]:
        """Get list value from environment, as JSON or comma separated"""
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value.split(",")

    def get_pipeline_config(self) -> Dict[str, Any]:
        """Get default pipeline parameters"""
        return {
            "post_limit": self.default_post_limit,
            "max_retries": self.default_max_retries,
            "item_delay": self.item_delay,
            "model": self.gemini["model"],
        }

    def is_supported_model(self, model: str) -> bool:
        return model in self.supported_models

    def get_settings_summary(self) -> Dict[str, Any]:
        """Get summary of current settings with secrets masked"""
        config = asdict(self.get_config())
        if config["llm"].get("api_key"):
            config["llm"]["api_key"] = "***"
        return {"config": config}


# Global instance
settings = Settings()
