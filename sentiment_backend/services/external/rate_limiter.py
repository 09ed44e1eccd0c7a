"""
Rate limiting for the FastAPI application using slowapi.

Limits are applied per endpoint with the ``limiter.limit`` decorator; the
decorated handler must take a ``request: Request`` argument.

    @router.post("/analyze")
    @limiter.limit(ANALYSIS_RATE_LIMIT)
    async def analyze(request: Request, ...):
        ...
"""

import logging
import os

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)

# Environment detection
IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"

# Rate limit settings; each analysis run fans out into one Gemini call per post
ANALYSIS_RATE_LIMIT = "5/minute" if IS_PRODUCTION else "20/minute"
RUN_STATUS_RATE_LIMIT = "120/minute" if IS_PRODUCTION else "600/minute"


def get_client_identifier(request: Request) -> str:
    """
    Get the identifier requests are counted against.

    Args:
        request: The FastAPI request object

    Returns:
        A string identifier for rate limiting
    """
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=get_client_identifier, strategy="fixed-window")


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded exceptions"""
    logger.warning(
        f"Rate limit exceeded: {get_remote_address(request)} - {request.url.path}"
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please try again later.",
            "type": "rate_limit_exceeded",
        },
    )


def configure_rate_limiter(app) -> None:
    """
    Configure the rate limiter for the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    logger.info(
        f"Rate limiter configured (analysis limit {ANALYSIS_RATE_LIMIT}, "
        f"production={IS_PRODUCTION})"
    )
