"""Gacha machines, pulls and inventory.

Pull flow:
1. Validate pull count, machine availability and user eligibility
2. Reserve the pulls against the machine's daily limit (Redis, atomic)
3. Debit the cost through the points ledger
4. Draw items, stack them in the inventory and record the pull
5. Release the reservation if anything after step 2 fails
"""

import logging
import random
from collections import Counter
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.engine.gacha import (
    ALLOWED_PULL_COUNTS,
    SINGLE_PULL,
    PoolEntry,
    best_rarity,
    draw_items,
    total_value,
)
from points_forest.middleware.prometheus import record_gacha_items
from points_forest.models.gacha import (
    CostType,
    GachaItem,
    GachaMachine,
    GachaPull,
    GachaType,
    UserItem,
)
from points_forest.models.points import TransactionSource
from points_forest.models.user import User
from points_forest.services.daily_limit import DailyLimitService
from points_forest.services.points import PointsService
from points_forest.services.stats import GachaStats, summarize_gacha_pulls
from points_forest.utils.day_window import utcnow
from points_forest.utils.errors import (
    EmptyOutcomesError,
    ErrorCode,
    InvalidPullCountError,
    MachineNotFoundError,
    PremiumRequiredError,
    PullNotFoundError,
    RewardError,
    UserBannedError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)


def pool_entries(machine: GachaMachine) -> list[PoolEntry]:
    return [
        PoolEntry(
            item_id=pool.gacha_item_id,
            name=pool.item.name,
            rarity=pool.item.rarity,
            category=pool.item.category,
            drop_rate=pool.drop_rate,
            weight=pool.weight,
            point_value=pool.item.point_value,
            icon_emoji=pool.item.icon_emoji,
            rarity_color=pool.item.rarity_color,
            is_jackpot=pool.is_jackpot,
        )
        for pool in machine.pools
    ]


def pull_to_dict(pull: GachaPull) -> dict[str, Any]:
    return {
        "id": pull.id,
        "machine_id": pull.gacha_machine_id,
        "machine_name": pull.machine.name if pull.machine else None,
        "cost_paid": pull.cost_paid,
        "currency_type": pull.currency_type,
        "items_received": pull.items_received,
        "total_value": pull.total_value,
        "pull_count": pull.pull_count,
        "created_at": pull.created_at,
    }


class GachaService:
    RECENT_PULLS_LIMIT = 10

    def __init__(self, session: AsyncSession, rng: random.Random | None = None) -> None:
        self.session = session
        self._rng = rng or random.SystemRandom()
        self._points = PointsService(session)
        self._limits = DailyLimitService(session)

    async def list_machines(self, now: datetime | None = None) -> dict[str, list[GachaMachine]]:
        """Available machines grouped by type, each group in display order."""
        now = now or utcnow()
        result = await self.session.execute(
            select(GachaMachine)
            .where(GachaMachine.is_active.is_(True))
            .order_by(GachaMachine.sort_order, GachaMachine.name)
        )

        grouped: dict[str, list[GachaMachine]] = {t.value: [] for t in GachaType}
        for machine in result.scalars().all():
            if machine.is_available(now):
                grouped.setdefault(machine.type, []).append(machine)
        return grouped

    async def get_machine(self, slug: str, now: datetime | None = None) -> GachaMachine:
        result = await self.session.execute(select(GachaMachine).where(GachaMachine.slug == slug))
        machine = result.scalar_one_or_none()
        if not machine or not machine.is_available(now or utcnow()):
            raise MachineNotFoundError(slug)
        return machine

    async def get_user_pulls_today(
        self,
        user_id: str,
        slug: str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Advisory count of today's pulls on a machine."""
        now = now or utcnow()
        machine = await self.get_machine(slug, now)
        status = await self._limits.remaining(
            machine.daily_limit,
            self._limits.gacha_pulls_counter(user_id, machine.id, now),
            now,
        )
        return {
            "machine_slug": machine.slug,
            "pulls_today": status.used,
            "daily_limit": status.limit,
            "remaining": status.remaining,
            "next_reset": status.next_reset,
            "degraded": status.degraded,
        }

    async def execute_pull(
        self,
        user_id: str,
        slug: str,
        pull_count: int = SINGLE_PULL,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Pay for and resolve a 1x or 10x pull.

        Raises:
            InvalidPullCountError: pull_count not 1/10, or 10 on a daily machine
            MachineNotFoundError: Unknown or unavailable machine
            PremiumRequiredError / UserBannedError
            DailyLimitExceededError / LimitStoreUnavailableError
            InsufficientPointsError: Balance below the cost
        """
        now = now or utcnow()

        if pull_count not in ALLOWED_PULL_COUNTS:
            raise InvalidPullCountError(pull_count, "Pull count must be 1 or 10")

        machine = await self.get_machine(slug, now)
        if machine.type == GachaType.DAILY.value and pull_count != SINGLE_PULL:
            raise InvalidPullCountError(pull_count, "Daily machines allow single pulls only")
        if machine.cost_type != CostType.POINTS.value:
            raise RewardError(
                ErrorCode.FEATURE_UNAVAILABLE,
                "This machine does not accept points",
                {"cost_type": machine.cost_type},
            )

        user = await self.session.get(User, user_id)
        if not user:
            raise UserNotFoundError(user_id)
        if user.is_banned:
            raise UserBannedError(user_id)
        if machine.requires_premium and not user.is_premium:
            raise PremiumRequiredError(f"gacha:{machine.slug}")

        entries = pool_entries(machine)
        if not entries:
            raise EmptyOutcomesError(f"Gacha machine {machine.slug} has no items")

        action = f"gacha:{machine.id}"
        counter = self._limits.gacha_pulls_counter(user_id, machine.id, now)
        reserved = 0
        used_after = None
        if machine.daily_limit is not None:
            used_after = await self._limits.consume(
                action, user_id, machine.daily_limit, counter, n=pull_count, now=now
            )
            reserved = pull_count

        try:
            pull_id = str(uuid4())
            cost = machine.cost_amount * pull_count

            spend_tx = None
            if cost > 0:
                spend_tx = await self._points.spend(
                    user_id,
                    cost,
                    TransactionSource.GACHA,
                    description=f"{machine.name} x{pull_count}",
                    reference_id=pull_id,
                    metadata={"machine": machine.slug, "pull_count": pull_count},
                )

            drawn = draw_items(entries, pull_count, machine.pull_rates, self._rng)
            items = [entry.to_pull_item() for entry in drawn]
            value = total_value(items)

            await self._add_to_inventory(user_id, drawn)

            pull = GachaPull(
                id=pull_id,
                user_id=user_id,
                gacha_machine_id=machine.id,
                cost_paid=cost,
                currency_type=machine.cost_type,
                items_received=items,
                total_value=value,
                pull_count=pull_count,
                created_at=now,
            )
            self.session.add(pull)
            await self.session.flush()
            await self.session.commit()

        except Exception:
            if reserved:
                await self._limits.release(action, user_id, reserved, now)
            raise

        if used_after is None:
            used_after, _ = await self._limits.count_today(counter)

        rarities = [item["rarity"] for item in items]
        record_gacha_items(machine.slug, rarities)
        logger.info(
            f"Gacha pull: user={user_id[:8]}... machine={machine.slug} "
            f"x{pull_count} cost={cost} value={value} best={best_rarity(rarities)}"
        )

        return {
            "success": True,
            "pull_id": pull_id,
            "items_received": items,
            "total_value": value,
            "cost_paid": cost,
            "remaining_balance": spend_tx.balance_after if spend_tx else user.points,
            "pulls_today": used_after,
            "best_rarity": best_rarity(rarities),
        }

    async def _add_to_inventory(self, user_id: str, drawn: list[PoolEntry]) -> None:
        """Stack drawn items, capping each at the item's ``max_stack``."""
        counts = Counter(entry.item_id for entry in drawn)

        result = await self.session.execute(
            select(UserItem).where(
                UserItem.user_id == user_id,
                UserItem.gacha_item_id.in_(list(counts)),
            )
        )
        owned = {row.gacha_item_id: row for row in result.scalars().all()}

        for item_id, count in counts.items():
            item = await self.session.get(GachaItem, item_id)
            max_stack = item.max_stack if item else 99
            existing = owned.get(item_id)
            if existing:
                existing.quantity = min(max_stack, existing.quantity + count)
            else:
                self.session.add(
                    UserItem(
                        id=str(uuid4()),
                        user_id=user_id,
                        gacha_item_id=item_id,
                        quantity=min(max_stack, count),
                        obtained_from="gacha",
                    )
                )

    async def get_recent_pulls(self, user_id: str, limit: int = RECENT_PULLS_LIMIT) -> list[GachaPull]:
        result = await self.session.execute(
            select(GachaPull)
            .where(GachaPull.user_id == user_id)
            .order_by(GachaPull.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_pull(self, user_id: str, pull_id: str) -> GachaPull:
        pull = await self.session.get(GachaPull, pull_id)
        if not pull or pull.user_id != user_id:
            raise PullNotFoundError(pull_id)
        return pull

    async def get_stats(self, user_id: str) -> GachaStats:
        result = await self.session.execute(
            select(GachaPull)
            .where(GachaPull.user_id == user_id)
            .order_by(GachaPull.created_at)
        )
        return summarize_gacha_pulls(
            {
                "cost_paid": p.cost_paid,
                "total_value": p.total_value,
                "items_received": p.items_received,
                "pull_count": p.pull_count,
                "created_at": p.created_at,
            }
            for p in result.scalars().all()
        )
