"""
Constants for LLM and pipeline configuration.

This module defines constants used as defaults in settings.py and referenced
by the services that talk to Gemini and Reddit.
"""

# Gemini model constants
# gemini-2.0-flash is the stable default offered by the model selector
GEMINI_MODEL_NAME = "gemini-2.0-flash"
GEMINI_TEMPERATURE = 0.0
GEMINI_MAX_TOKENS = 8192
GEMINI_TOP_P = 0.95
GEMINI_TOP_K = 1

# Models a caller may select for a run
SUPPORTED_GEMINI_MODELS = [
    "gemini-2.0-flash",
    "gemini-2.0-flash-lite",
    "gemini-2.5-flash",
    "gemini-2.5-flash-lite",
    "gemini-2.5-pro",
]

# Timeout for a single Gemini call, in seconds
GEMINI_DEFAULT_TIMEOUT = 60

# Retry backoff for Gemini calls
GEMINI_RETRY_INITIAL_DELAY = 1.0
GEMINI_RETRY_BACKOFF_FACTOR = 2.0
GEMINI_RETRY_MAX_DELAY = 30.0
# Rate limited calls wait at least this long before the next attempt
GEMINI_RATE_LIMIT_DELAY = 5.0

# Pipeline defaults
DEFAULT_POST_LIMIT = 10
MIN_POST_LIMIT = 1
MAX_POST_LIMIT = 100
# The search form always submits 12 retries per post
DEFAULT_MAX_RETRIES = 12
# Pause between two classified posts, in seconds
DEFAULT_ITEM_DELAY = 1.0

# Reddit constants
REDDIT_PUBLIC_BASE_URL = "https://www.reddit.com"
REDDIT_OAUTH_BASE_URL = "https://oauth.reddit.com"
REDDIT_DEFAULT_USER_AGENT = "sentiment-backend/0.1 (by /u/sentiment-backend)"
REDDIT_DEFAULT_TIMEOUT = 15.0
REDDIT_MAX_SEARCH_LIMIT = 100

# Environment variable names
ENV_GEMINI_API_KEY = "GEMINI_API_KEY"
ENV_GEMINI_MODEL = "GEMINI_MODEL"
ENV_GEMINI_TEMPERATURE = "GEMINI_TEMPERATURE"
ENV_GEMINI_MAX_TOKENS = "GEMINI_MAX_TOKENS"
ENV_GEMINI_API_TIMEOUT = "GEMINI_API_TIMEOUT"  # Override default timeout in seconds

ENV_REDDIT_USER_AGENT = "REDDIT_USER_AGENT"
ENV_REDDIT_TIMEOUT = "REDDIT_TIMEOUT"

ENV_POST_LIMIT = "SENTIMENT_POST_LIMIT"
ENV_MAX_RETRIES = "SENTIMENT_MAX_RETRIES"
ENV_ITEM_DELAY = "SENTIMENT_ITEM_DELAY"

# Gemini Safety Settings
# Posts are user content; nothing is blocked
GEMINI_SAFETY_SETTINGS_BLOCK_NONE = [
    {
        "category": "HARM_CATEGORY_HARASSMENT",
        "threshold": "BLOCK_NONE",
    },
    {
        "category": "HARM_CATEGORY_HATE_SPEECH",
        "threshold": "BLOCK_NONE",
    },
    {
        "category": "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "threshold": "BLOCK_NONE",
    },
    {
        "category": "HARM_CATEGORY_DANGEROUS_CONTENT",
        "threshold": "BLOCK_NONE",
    },
]
