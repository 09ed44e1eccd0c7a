"""
Rough run duration estimates shown before a run is started.

The per-post rates come from observed runs; classification time varies
with Gemini rate limiting, hence the wide range.
"""

import math

from pydantic import BaseModel, ConfigDict

# Seconds spent fetching, per post and at minimum
DATA_SECONDS_PER_POST_MIN = 0.5
DATA_SECONDS_PER_POST_MAX = 0.7
DATA_SECONDS_FLOOR = 4.9

# Seconds spent in Gemini calls, per post and at minimum
AI_SECONDS_PER_POST_MIN = 3.0
AI_SECONDS_PER_POST_MAX = 6.0
AI_SECONDS_FLOOR = 29.2

# Above this many posts rate limiting usually kicks in
RATE_LIMIT_WARNING_THRESHOLD = 10


class DurationEstimate(BaseModel):
    model_config = ConfigDict(frozen=True)

    post_limit: int
    min_seconds: float
    max_seconds: float
    min_label: str
    max_label: str
    note: str


def format_duration(seconds: float) -> str:
    """Format seconds as ``"Xm Ys"`` or ``"Ys"``."""
    minutes = int(seconds // 60)
    remaining = math.floor(seconds % 60 + 0.5)
    if minutes > 0:
        return f"{minutes}m {remaining}s"
    return f"{remaining}s"


def estimate_duration(post_limit: int) -> DurationEstimate:
    if post_limit <= 0:
        raise ValueError("post_limit must be positive")

    data_min = max(DATA_SECONDS_FLOOR, post_limit * DATA_SECONDS_PER_POST_MIN)
    data_max = max(DATA_SECONDS_FLOOR, post_limit * DATA_SECONDS_PER_POST_MAX)
    ai_min = max(AI_SECONDS_FLOOR, post_limit * AI_SECONDS_PER_POST_MIN)
    ai_max = max(AI_SECONDS_FLOOR, post_limit * AI_SECONDS_PER_POST_MAX)

    total_min = data_min + ai_min
    total_max = data_max + ai_max

    if post_limit > RATE_LIMIT_WARNING_THRESHOLD:
        note = "May take longer due to API rate limits"
    else:
        note = "Estimate may vary with API rate limits"

    return DurationEstimate(
        post_limit=post_limit,
        min_seconds=round(total_min, 1),
        max_seconds=round(total_max, 1),
        min_label=format_duration(total_min),
        max_label=format_duration(total_max),
        note=note,
    )
