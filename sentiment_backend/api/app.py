"""
FastAPI application for Reddit sentiment analysis.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sentiment_backend import __version__
from sentiment_backend.api.dependencies import SentimentServices
from sentiment_backend.api.routes.sentiment import router as sentiment_router
from sentiment_backend.infrastructure.config.settings import settings
from sentiment_backend.schemas import HealthCheckResponse
from sentiment_backend.services.external.rate_limiter import configure_rate_limiter

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    owns_services = app.state.services is None
    if owns_services:
        app.state.services = SentimentServices.from_settings(settings)
        logger.info(f"Sentiment services started: {settings.get_pipeline_config()}")
    yield
    if owns_services:
        await app.state.services.aclose()
        app.state.services = None


def create_app(services: Optional[SentimentServices] = None) -> FastAPI:
    """
    Build the application.

    Args:
        services: Pre-built services, mainly for tests. When omitted they are
            created from settings on startup.
    """
    app = FastAPI(
        title="Reddit Sentiment API",
        description="""
        Search Reddit for a keyword, classify each post with Gemini and
        summarize the overall sentiment.
        """,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    configure_rate_limiter(app)

    app.include_router(sentiment_router)

    @app.get("/health", response_model=HealthCheckResponse)
    async def health_check() -> HealthCheckResponse:
        return HealthCheckResponse(version=__version__)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "sentiment_backend.api.app:app",
        host=settings.uvicorn_host,
        port=settings.uvicorn_port,
    )
