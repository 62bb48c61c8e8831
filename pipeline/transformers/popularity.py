"""
Popularity scoring
"""

from datetime import datetime
from typing import Optional
import math

WEIGHTS = {
    "stars": 10,
    "votes": 5,
    "downloads": 0.01,
    "downloads_cap": 1000,
    "repo_enables": 0.1,
    "repo_enables_cap": 500,
    "discourse_likes": 3,
    "discourse_replies": 1,
    "discourse_views": 2,
}

STALENESS = {
    "grace_period_days": 7,
    "decay_rate": 3.0,
    "decay_window_days": 83,  # 90 days minus the grace period
    "min_multiplier": 0.05,
}


def compute_popularity_score(
    stars: int = 0,
    votes: int = 0,
    downloads: int = 0,
    repo_enables: int = 0,
    discourse_likes: int = 0,
    discourse_replies: int = 0,
    discourse_views: int = 0
) -> int:
    """Weighted sum of the seven popularity signals, floored"""
    views_term = (
        math.log(discourse_views) * WEIGHTS["discourse_views"]
        if discourse_views > 0 else 0
    )
    return math.floor(
        stars * WEIGHTS["stars"]
        + votes * WEIGHTS["votes"]
        + min(downloads * WEIGHTS["downloads"], WEIGHTS["downloads_cap"])
        + min(repo_enables * WEIGHTS["repo_enables"], WEIGHTS["repo_enables_cap"])
        + discourse_likes * WEIGHTS["discourse_likes"]
        + discourse_replies * WEIGHTS["discourse_replies"]
        + views_term
    )


def compute_staleness_multiplier(last_build_at: Optional[datetime], now: Optional[datetime] = None) -> float:
    """
    Decay factor based on days since the last build.

    1.0 inside the grace period (and when the build date is unknown),
    then exponential decay floored at min_multiplier.
    """
    if last_build_at is None:
        return 1.0

    now = now or datetime.utcnow()
    days_since_build = (now - last_build_at).total_seconds() / 86400.0
    if days_since_build <= STALENESS["grace_period_days"]:
        return 1.0

    days_past_grace = days_since_build - STALENESS["grace_period_days"]
    return max(
        STALENESS["min_multiplier"],
        math.exp(-STALENESS["decay_rate"] * days_past_grace / STALENESS["decay_window_days"])
    )


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_stored_popularity(
    stars: Optional[int],
    votes: Optional[int],
    downloads: Optional[int],
    repo_enables: Optional[int],
    discourse_likes: Optional[int],
    discourse_replies: Optional[int],
    discourse_views: Optional[int],
    last_build_at: Optional[datetime],
    now: Optional[datetime] = None
) -> int:
    """
    Score persisted by the bulk recompute pass.

    Capped download/enable terms and the views term are rounded to
    integers before summing, then the staleness multiplier is applied
    and the product floored. Missing signals count as zero.
    """
    downloads_term = _round_half_up(
        min((downloads or 0) * WEIGHTS["downloads"], WEIGHTS["downloads_cap"])
    )
    repo_enables_term = _round_half_up(
        min((repo_enables or 0) * WEIGHTS["repo_enables"], WEIGHTS["repo_enables_cap"])
    )
    views_term = _round_half_up(
        math.log(max(discourse_views or 0, 1)) * WEIGHTS["discourse_views"]
    )

    base = (
        (stars or 0) * WEIGHTS["stars"]
        + (votes or 0) * WEIGHTS["votes"]
        + downloads_term
        + repo_enables_term
        + (discourse_likes or 0) * WEIGHTS["discourse_likes"]
        + (discourse_replies or 0) * WEIGHTS["discourse_replies"]
        + views_term
    )
    return math.floor(base * compute_staleness_multiplier(last_build_at, now))
