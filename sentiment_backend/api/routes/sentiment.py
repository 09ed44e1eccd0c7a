"""
Sentiment analysis API routes.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from sentiment_backend.api.dependencies import SentimentServices, get_services
from sentiment_backend.core.estimates import DurationEstimate, estimate_duration
from sentiment_backend.core.exceptions import FatalFetchError
from sentiment_backend.infrastructure.config.settings import settings
from sentiment_backend.infrastructure.constants.llm_constants import (
    MAX_POST_LIMIT,
    MIN_POST_LIMIT,
    SUPPORTED_GEMINI_MODELS,
)
from sentiment_backend.schemas import (
    ModelsResponse,
    RunStartedResponse,
    RunStatusResponse,
    SentimentAnalysisRequest,
    SentimentAnalysisResponse,
)
from sentiment_backend.services.external.rate_limiter import (
    ANALYSIS_RATE_LIMIT,
    RUN_STATUS_RATE_LIMIT,
    limiter,
)

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = "No posts found for this search. Try a different keyword."

router = APIRouter(
    prefix="/api/sentiment",
    tags=["sentiment"],
    responses={404: {"description": "Not found"}},
)


def _get_run_or_404(services: SentimentServices, run_id: str):
    run = services.registry.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return run


@router.get("/models", response_model=ModelsResponse)
async def list_models() -> ModelsResponse:
    """List the Gemini models a run can use."""
    return ModelsResponse(
        default_model=settings.gemini["model"], models=list(SUPPORTED_GEMINI_MODELS)
    )


@router.get("/estimate", response_model=DurationEstimate)
async def get_estimate(
    post_limit: int = Query(
        settings.default_post_limit,
        ge=MIN_POST_LIMIT,
        le=MAX_POST_LIMIT,
        description="Number of posts the run would analyze",
    ),
) -> DurationEstimate:
    """Estimate how long a run with ``post_limit`` posts takes."""
    return estimate_duration(post_limit)


@router.post("/analyze", response_model=SentimentAnalysisResponse)
@limiter.limit(ANALYSIS_RATE_LIMIT)
async def analyze(
    request: Request,
    body: SentimentAnalysisRequest,
    services: SentimentServices = Depends(get_services),
) -> SentimentAnalysisResponse:
    """
    Run a sentiment analysis to completion and return the outcome.

    Args:
        request: Incoming request, used by the rate limiter
        body: Search parameters
        services: Shared pipeline services

    Returns:
        The run outcome; status ``no_results`` when the search found nothing
    """
    try:
        api_key = services.resolve_api_key(body)
        logger.info(
            f"Analyzing '{body.query}' with {body.model} (post_limit={body.post_limit})"
        )
        pipeline = services.pipeline_for(body)
        outcome = await pipeline.run(
            body.query,
            api_key,
            post_limit=body.post_limit,
            max_retries=body.max_retries,
            model=body.model,
        )
        return SentimentAnalysisResponse(
            status=outcome.status,
            message=NO_RESULTS_MESSAGE if outcome.is_empty else None,
            outcome=outcome,
        )
    except HTTPException:
        raise
    except FatalFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error analyzing '{body.query}': {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Analysis failed: {str(e)}")


@router.post("/runs", response_model=RunStartedResponse, status_code=202)
@limiter.limit(ANALYSIS_RATE_LIMIT)
async def start_run(
    request: Request,
    body: SentimentAnalysisRequest,
    services: SentimentServices = Depends(get_services),
) -> RunStartedResponse:
    """Start a run in the background and return its id."""
    api_key = services.resolve_api_key(body)
    pipeline = services.pipeline_for(body)
    run = pipeline.create_run(
        body.query,
        api_key,
        post_limit=body.post_limit,
        max_retries=body.max_retries,
        model=body.model,
    )
    services.registry.start(run)
    logger.info(f"Started run {run.run_id} for '{body.query}'")
    return RunStartedResponse(run_id=run.run_id)


@router.get("/runs/{run_id}", response_model=RunStatusResponse)
@limiter.limit(RUN_STATUS_RATE_LIMIT)
async def get_run(
    request: Request,
    run_id: str,
    services: SentimentServices = Depends(get_services),
) -> RunStatusResponse:
    """Return the latest snapshot of a run."""
    run = _get_run_or_404(services, run_id)
    error = run.error
    return RunStatusResponse(
        run_id=run_id,
        done=run.done,
        error=str(error) if error is not None else None,
        snapshot=run.latest(),
    )


@router.get("/runs/{run_id}/events")
async def stream_run_events(
    run_id: str,
    services: SentimentServices = Depends(get_services),
) -> StreamingResponse:
    """Stream snapshots of a run as server-sent events."""
    run = _get_run_or_404(services, run_id)

    async def event_generator():
        async for snapshot in run.events():
            yield f"event: snapshot\ndata: {snapshot.model_dump_json()}\n\n"
        yield f"event: end\ndata: {{\"run_id\": \"{run_id}\"}}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.delete("/runs/{run_id}")
async def cancel_run(
    run_id: str,
    services: SentimentServices = Depends(get_services),
) -> Dict[str, Any]:
    """Ask a run to stop before its next post."""
    run = _get_run_or_404(services, run_id)
    run.cancel()
    logger.info(f"Cancellation requested for run {run_id}")
    return {"run_id": run_id, "cancel_requested": True, "done": run.done}
