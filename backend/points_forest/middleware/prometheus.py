"""Prometheus metrics middleware and custom metrics.

Features:
- HTTP request metrics (latency, count, errors)
- Reward metrics (gacha pulls, game plays, points flow)
- Daily-limit rejections and in-process cache efficiency
"""

from fastapi import FastAPI
from prometheus_client import Counter, Histogram, Info
from prometheus_fastapi_instrumentator import Instrumentator, metrics


# =============================================================================
# Custom Metrics
# =============================================================================

APP_INFO = Info("points_forest_app", "Application information")

GACHA_PULLS = Counter(
    "points_forest_gacha_pulls_total",
    "Gacha items drawn",
    ["machine", "rarity"],
)

GAME_PLAYS = Counter(
    "points_forest_game_plays_total",
    "Recorded game sessions",
    ["game_type"],
)

GAME_POINTS = Histogram(
    "points_forest_game_points_earned",
    "Points awarded per game session",
    ["game_type"],
    buckets=[1, 5, 10, 25, 50, 100, 500, 1000, 5000],
)

SPRING_VISITS = Counter(
    "points_forest_spring_visits_total",
    "Lucky spring visits",
    ["spring", "tier"],
)

POINTS_CREDITED = Counter(
    "points_forest_points_credited_total",
    "Points added to balances",
    ["source"],
)

POINTS_DEBITED = Counter(
    "points_forest_points_debited_total",
    "Points removed from balances",
    ["source"],
)

DAILY_LIMIT_REJECTIONS = Counter(
    "points_forest_daily_limit_rejections_total",
    "Actions rejected because the daily allowance was used up",
    ["action"],
)

DAILY_LIMIT_STORE_ERRORS = Counter(
    "points_forest_daily_limit_store_errors_total",
    "Daily-limit checks that could not reach the counter store",
    ["action", "policy"],
)

CACHE_HITS = Counter(
    "points_forest_cache_hits_total",
    "Cache hit count",
    ["cache_type"],
)

CACHE_MISSES = Counter(
    "points_forest_cache_misses_total",
    "Cache miss count",
    ["cache_type"],
)


# =============================================================================
# Instrumentator Setup
# =============================================================================

def setup_prometheus(app: FastAPI, app_version: str = "1.0.0") -> Instrumentator:
    """Setup Prometheus metrics instrumentation.

    Args:
        app: FastAPI application instance
        app_version: Application version string

    Returns:
        Configured Instrumentator instance
    """
    APP_INFO.info({
        "version": app_version,
        "app_name": "points-forest",
    })

    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/health", "/health/live", "/health/ready", "/metrics"],
        inprogress_name="points_forest_http_requests_inprogress",
        inprogress_labels=True,
    )

    instrumentator.add(
        metrics.default(
            metric_namespace="points_forest",
            metric_subsystem="http",
        )
    )

    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint="/metrics", include_in_schema=True, tags=["Monitoring"])

    return instrumentator


# =============================================================================
# Metric Helper Functions
# =============================================================================

def record_gacha_items(machine: str, rarities: list[str]) -> None:
    """Record each item drawn by a pull, labelled by rarity."""
    for rarity in rarities:
        GACHA_PULLS.labels(machine=machine, rarity=rarity).inc()


def record_game_play(game_type: str, points_earned: int) -> None:
    GAME_PLAYS.labels(game_type=game_type).inc()
    GAME_POINTS.labels(game_type=game_type).observe(points_earned)


def record_spring_visit(spring: str, tier: str) -> None:
    SPRING_VISITS.labels(spring=spring, tier=tier).inc()


def record_points_flow(source: str, amount: int) -> None:
    """Record a ledger movement.

    Args:
        source: Ledger source (game, gacha, daily_bonus, ...)
        amount: Signed amount, positive for credits
    """
    if amount > 0:
        POINTS_CREDITED.labels(source=source).inc(amount)
    elif amount < 0:
        POINTS_DEBITED.labels(source=source).inc(-amount)


def record_daily_limit_rejection(action: str) -> None:
    DAILY_LIMIT_REJECTIONS.labels(action=action).inc()


def record_daily_limit_store_error(action: str, fail_open: bool) -> None:
    DAILY_LIMIT_STORE_ERRORS.labels(
        action=action, policy="open" if fail_open else "closed"
    ).inc()


def record_cache_access(cache_type: str, hit: bool) -> None:
    """Record cache access.

    Args:
        cache_type: Cache name
        hit: True if cache hit, False if miss
    """
    if hit:
        CACHE_HITS.labels(cache_type=cache_type).inc()
    else:
        CACHE_MISSES.labels(cache_type=cache_type).inc()
