"""API response schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from points_forest.schemas.common import BaseSchema


# =============================================================================
# Points
# =============================================================================


class BalanceResponse(BaseModel):
    points: int = Field(..., description="Current points balance")
    level: int
    experience: int


class TransactionResponse(BaseSchema):
    id: str
    tx_type: str
    source: str
    amount: int
    balance_before: int
    balance_after: int
    description: str | None = None
    reference_id: str | None = None
    created_at: datetime


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse]
    limit: int
    offset: int


class PointsSummaryResponse(BaseModel):
    total_earned: int
    total_spent: int
    net: int
    transactions: int
    by_source: dict[str, int]
    by_type: dict[str, int]
    balance: int
    level: int
    experience: int
    login_streak: int


# =============================================================================
# Gacha
# =============================================================================


class GachaItemResponse(BaseModel):
    item_id: str
    name: str
    rarity: str
    category: str
    point_value: int | None = None
    icon_emoji: str | None = None
    rarity_color: str
    is_jackpot: bool = False


class GachaMachineResponse(BaseSchema):
    id: str
    name: str
    slug: str
    description: str | None = None
    type: str
    cost_type: str
    cost_amount: int
    pull_rates: dict[str, Any]
    daily_limit: int | None = None
    requires_premium: bool
    is_limited: bool
    available_until: datetime | None = None


class GachaPullResponse(BaseModel):
    success: bool = True
    pull_id: str
    items_received: list[GachaItemResponse]
    total_value: int
    cost_paid: int
    remaining_balance: int
    pulls_today: int
    best_rarity: str


class PullsTodayResponse(BaseModel):
    machine_slug: str
    pulls_today: int
    daily_limit: int | None
    remaining: int | None
    next_reset: datetime
    degraded: bool = False


class GachaPullRecord(BaseModel):
    id: str
    machine_id: str
    machine_name: str | None = None
    cost_paid: int
    currency_type: str
    items_received: list[GachaItemResponse]
    total_value: int
    pull_count: int
    created_at: datetime


class GachaStatsResponse(BaseModel):
    total_pulls: int
    total_spent: int
    total_value_received: int
    items_obtained: int
    rarity_distribution: dict[str, int]
    lucky_streak: int
    last_pull_at: datetime | None = None


# =============================================================================
# Games
# =============================================================================


class GameResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    type: str
    config: dict[str, Any]
    daily_limit: int | None = None
    min_points: int
    max_points: int
    requires_premium: bool
    sort_order: int


class GameSessionResponse(BaseModel):
    success: bool = True
    session_id: str
    points_earned: int
    exp_gained: int
    level_ups: int
    quests_completed: int
    plays_today: int
    remaining_plays: int | None = None
    result: dict[str, Any] | None = None


class RemainingPlaysResponse(BaseModel):
    used: int
    limit: int | None
    remaining: int | None
    next_reset: datetime
    degraded: bool = False


# =============================================================================
# Daily bonus, quests, rank
# =============================================================================


class DailyBonusResponse(BaseModel):
    success: bool = True
    points_earned: int
    streak: int
    reward_type: str
    bonus_rewards: list[dict[str, Any]]
    new_balance: int
    exp_gained: int
    level_ups: int


class DailyBonusStatusResponse(BaseModel):
    can_claim: bool
    streak: int
    next_claim_at: str | None = None
    monthly_claims: list[dict[str, Any]]
    next_bonus: dict[str, int] | None = None
    daily_reward: int


class QuestResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    type: str
    category: str
    difficulty: str
    status: str
    current_value: int
    target_value: int
    progress: float
    reward_points: int
    rewards_claimed: bool
    expires_at: datetime | None = None
    completed_at: datetime | None = None


class QuestClaimResponse(BaseModel):
    success: bool = True
    points_earned: int
    quest_name: str


class RankResponse(BaseModel):
    level: int
    experience: int
    current_level_exp: int
    next_level_exp: int
    exp_to_next_level: int
    progress: float


# =============================================================================
# Lucky springs
# =============================================================================


class SpringStatusResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    theme: str
    level_requirement: int
    premium_only: bool
    daily_visits: int
    visits_today: int
    visits_remaining: int
    accessible: bool
    can_visit_today: bool
    color_scheme: dict[str, Any] = {}


class SpringVisitResponse(BaseModel):
    success: bool = True
    visit_id: str
    spring_name: str
    tier: str
    points_earned: int
    message: str
    balance: int
    visits_today: int
    visits_remaining: int
    next_reset: datetime
    quests_completed: int = 0


# =============================================================================
# Leaderboards
# =============================================================================


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: str
    username: str
    display_name: str
    value: int
    is_current_user: bool


class LeaderboardResponse(BaseModel):
    type: str
    title: str
    period_start: datetime | None = None
    entries: list[LeaderboardEntryResponse]
    my_rank: int | None = None


# =============================================================================
# Admin
# =============================================================================


class AdminAdjustPointsResponse(BaseModel):
    success: bool = True
    transaction_id: str
    user_id: str
    amount: int
    balance_before: int
    balance_after: int


class AuditLogResponse(BaseSchema):
    id: str
    actor_user_id: str | None
    action: str
    context: dict
    created_at: datetime
