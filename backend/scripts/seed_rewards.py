#!/usr/bin/env python3
"""
Reward catalogue seed script.

Creates the default games, the standard gacha machine with its drop table,
the daily quest templates and the lucky springs. Rows are matched by slug,
so running the script again only adds what is missing.

Usage:
    python scripts/seed_rewards.py

    # With specific database URL
    DATABASE_URL=postgresql+asyncpg://... python scripts/seed_rewards.py
"""

import asyncio
import sys
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.engine.roulette import DEFAULT_SEGMENTS
from points_forest.logging_config import configure_logging, get_logger
from points_forest.models.gacha import GachaItem, GachaMachine, GachaPool, GachaType, ItemCategory
from points_forest.models.game import Game, GameType
from points_forest.models.quest import QuestCategory, QuestTemplate, QuestType
from points_forest.models.spring import LuckySpring
from points_forest.utils.db import get_db_session

logger = get_logger(__name__)

GAMES: tuple[dict[str, Any], ...] = (
    {
        "slug": "forest-wheel",
        "name": "Forest Wheel",
        "type": GameType.ROULETTE.value,
        "description": "Spin the wheel for up to 1000 points",
        "daily_limit": 3,
        "config": {
            "segments": [
                {
                    "id": s.id,
                    "label": s.label,
                    "points": s.points,
                    "probability": s.probability,
                    "color": s.color,
                }
                for s in DEFAULT_SEGMENTS
            ]
        },
        "sort_order": 1,
    },
    {
        "slug": "lucky-slots",
        "name": "Lucky Slots",
        "type": GameType.SLOT_MACHINE.value,
        "description": "Three reels, one pull",
        "daily_limit": 5,
        "max_points": 5000,
        "config": {},
        "sort_order": 2,
    },
    {
        "slug": "number-guess",
        "name": "Number Guess",
        "type": GameType.NUMBER_GUESS.value,
        "description": "Guess a number between 1 and 100",
        "daily_limit": 10,
        "config": {},
        "sort_order": 3,
    },
)

# slug, name, category, rarity, point_value, emoji, color, weight
ITEMS: tuple[tuple[str, str, str, str, int | None, str, str, int], ...] = (
    ("acorn-points", "Acorn Pouch", ItemCategory.POINTS.value, "common", 10, "🌰", "#94a3b8", 3),
    ("moss-badge", "Moss Badge", ItemCategory.BADGE.value, "common", None, "🍀", "#94a3b8", 1),
    ("birch-frame", "Birch Frame", ItemCategory.AVATAR_FRAME.value, "uncommon", None, "🪵", "#22c55e", 1),
    ("sprout-boost", "Sprout Boost", ItemCategory.BOOST.value, "rare", None, "🌱", "#3b82f6", 1),
    ("owl-badge", "Night Owl", ItemCategory.BADGE.value, "epic", None, "🦉", "#a855f7", 1),
    ("ancient-oak", "Ancient Oak", ItemCategory.SPECIAL.value, "legendary", 500, "🌳", "#f59e0b", 1),
)

STANDARD_RATES = {
    "common": 0.6,
    "uncommon": 0.25,
    "rare": 0.1,
    "epic": 0.04,
    "legendary": 0.01,
}

QUESTS: tuple[dict[str, Any], ...] = (
    {
        "slug": "daily-login",
        "name": "Morning Walk",
        "description": "Claim the daily bonus",
        "category": QuestCategory.LOGIN.value,
        "conditions": {"count": 1},
        "rewards": {"points": 20},
    },
    {
        "slug": "daily-three-games",
        "name": "Forest Games",
        "description": "Finish three games",
        "category": QuestCategory.GAME.value,
        "conditions": {"action_type": "game_complete", "count": 3},
        "rewards": {"points": 40, "bonus_multiplier": 1.5},
    },
    {
        "slug": "daily-spring-visit",
        "name": "Spring Pilgrim",
        "description": "Visit a lucky spring",
        "category": QuestCategory.SPRING.value,
        "conditions": {"action_type": "spring_visit", "count": 1},
        "rewards": {"points": 15},
    },
)

SPRINGS: tuple[dict[str, Any], ...] = (
    {
        "slug": "clear-spring",
        "name": "Clear Spring",
        "description": "A quiet pool at the edge of the forest",
        "theme": "water",
        "daily_visits": 3,
        "color_scheme": {"primary": "#3b82f6", "secondary": "#93c5fd", "accent": "#1d4ed8"},
        "sort_order": 0,
    },
    {
        "slug": "moss-spring",
        "name": "Moss Spring",
        "description": "Deep in the old grove",
        "theme": "forest",
        "level_requirement": 5,
        "daily_visits": 2,
        "color_scheme": {"primary": "#10b981", "secondary": "#6ee7b7", "accent": "#047857"},
        "sort_order": 1,
    },
    {
        "slug": "moonlit-spring",
        "name": "Moonlit Spring",
        "description": "Only premium members know the way",
        "theme": "mystic",
        "premium_only": True,
        "daily_visits": 1,
        "reward_tiers": [
            {"tier": "rare", "probability": 0.6, "min_points": 40, "max_points": 80},
            {"tier": "epic", "probability": 0.3, "min_points": 80, "max_points": 160},
            {"tier": "legendary", "probability": 0.08, "min_points": 160, "max_points": 300},
            {"tier": "mythical", "probability": 0.02, "min_points": 300, "max_points": 600},
        ],
        "color_scheme": {"primary": "#8b5cf6", "secondary": "#c4b5fd", "accent": "#6d28d9"},
        "sort_order": 2,
    },
)


async def _existing_slugs(session: AsyncSession, model) -> dict[str, Any]:
    result = await session.execute(select(model))
    return {row.slug: row for row in result.scalars().all()}


async def seed_games(session: AsyncSession) -> int:
    existing = await _existing_slugs(session, Game)
    created = 0
    for spec in GAMES:
        if spec["slug"] in existing:
            continue
        session.add(Game(**spec))
        created += 1
    return created


async def seed_gacha(session: AsyncSession) -> int:
    items = await _existing_slugs(session, GachaItem)
    created = 0
    for slug, name, category, rarity, value, emoji, color, _ in ITEMS:
        if slug in items:
            continue
        item = GachaItem(
            slug=slug,
            name=name,
            category=category,
            rarity=rarity,
            point_value=value,
            icon_emoji=emoji,
            rarity_color=color,
        )
        session.add(item)
        items[slug] = item
        created += 1

    machines = await _existing_slugs(session, GachaMachine)
    if "forest-standard" not in machines:
        machine = GachaMachine(
            slug="forest-standard",
            name="Forest Capsule",
            description="The everyday capsule machine",
            type=GachaType.STANDARD.value,
            cost_amount=100,
            pull_rates={"rates": STANDARD_RATES},
            daily_limit=10,
            sort_order=1,
        )
        rarity_weight: dict[str, int] = {}
        for _, _, _, rarity, _, _, _, weight in ITEMS:
            rarity_weight[rarity] = rarity_weight.get(rarity, 0) + weight
        machine.pools = [
            GachaPool(
                item=items[slug],
                drop_rate=STANDARD_RATES[rarity] * weight / rarity_weight[rarity],
                weight=weight,
                is_jackpot=rarity == "legendary",
            )
            for slug, _, _, rarity, _, _, _, weight in ITEMS
        ]
        session.add(machine)
        created += 1
    return created


async def seed_quests(session: AsyncSession) -> int:
    existing = await _existing_slugs(session, QuestTemplate)
    created = 0
    for index, spec in enumerate(QUESTS):
        if spec["slug"] in existing:
            continue
        session.add(QuestTemplate(type=QuestType.DAILY.value, sort_order=index, **spec))
        created += 1
    return created


async def seed_springs(session: AsyncSession) -> int:
    existing = await _existing_slugs(session, LuckySpring)
    created = 0
    for spec in SPRINGS:
        if spec["slug"] in existing:
            continue
        session.add(LuckySpring(**spec))
        created += 1
    return created


async def main():
    """Main entry point."""
    configure_logging()

    try:
        async with get_db_session() as session:
            games = await seed_games(session)
            await session.flush()
            gacha = await seed_gacha(session)
            await session.flush()
            quests = await seed_quests(session)
            springs = await seed_springs(session)
    except SQLAlchemyError as e:
        logger.error("seed_failed", error=str(e))
        sys.exit(1)

    logger.info("seed_complete", games=games, gacha=gacha, quests=quests, springs=springs)


if __name__ == "__main__":
    asyncio.run(main())
