"""Points ledger service.

The only code path that changes ``users.points``.

Features:
- Atomic credits and debits under a per-user Redis lock and a row lock
- Balance never drops below zero
- Every change recorded as a PointTransaction with an integrity hash
- Redis caching for balance lookups
"""

import hashlib
import logging
from typing import Any
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.middleware.prometheus import record_points_flow
from points_forest.middleware.sentry import capture_ledger_error
from points_forest.models.points import PointTransaction, TransactionSource, TransactionType
from points_forest.models.user import User
from points_forest.services.audit import AuditService
from points_forest.utils.cache import reward_cache
from points_forest.utils.day_window import utcnow
from points_forest.utils.errors import (
    ErrorCode,
    ErrorSeverity,
    InsufficientPointsError,
    InvalidAmountError,
    LockNotAcquiredError,
    RewardError,
    UserBannedError,
    UserNotFoundError,
)
from points_forest.utils.redis_client import get_redis

logger = logging.getLogger(__name__)


class PointsService:
    """Points ledger.

    Features:
    - Concurrency-safe balance operations using Redis distributed locks
    - Transaction logging with SHA-256 integrity hashes
    - Cache invalidation on balance changes
    """

    LOCK_TTL = 10  # Lock timeout in seconds
    BALANCE_CACHE_TTL = 300  # 5 minute cache for balances
    BALANCE_KEY_PREFIX = "points:balance:"
    LOCK_KEY_PREFIX = "points:lock:"

    # Delete the lock only if we still own it
    RELEASE_LOCK_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._redis = get_redis()

    async def get_balance(self, user_id: str) -> int:
        """Get user's points balance (cached for five minutes)."""
        cache_key = f"{self.BALANCE_KEY_PREFIX}{user_id}"
        cached = await self._redis.get(cache_key)
        if cached is not None:
            return int(cached)

        user = await self.session.get(User, user_id)
        if not user:
            raise UserNotFoundError(user_id)

        await self._redis.setex(cache_key, self.BALANCE_CACHE_TTL, str(user.points))
        return user.points

    async def transfer_points(
        self,
        user_id: str,
        amount: int,
        tx_type: TransactionType,
        source: TransactionSource | str,
        *,
        description: str | None = None,
        reference_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        admin_id: str | None = None,
        admin_note: str | None = None,
    ) -> PointTransaction:
        """Credit or debit points.

        Args:
            user_id: User ID
            amount: Signed amount (positive = credit, negative = debit)
            tx_type: Ledger entry type
            source: Feature producing the entry
            description: Human readable description
            reference_id: Related pull/session/quest id
            metadata: Extra JSON context stored with the entry
            admin_id: Acting admin for manual adjustments
            admin_note: Reason for manual adjustments

        Returns:
            PointTransaction record

        Raises:
            InvalidAmountError: If amount is zero
            InsufficientPointsError: If a debit exceeds the balance
            LockNotAcquiredError: If another mutation holds the user's lock
            UserNotFoundError / UserBannedError
        """
        if amount == 0:
            raise InvalidAmountError("Amount cannot be zero")

        source_value = source.value if isinstance(source, TransactionSource) else source
        lock_key = f"{self.LOCK_KEY_PREFIX}{user_id}"
        lock_token = str(uuid4())

        lock_acquired = await self._redis.set(lock_key, lock_token, nx=True, ex=self.LOCK_TTL)
        if not lock_acquired:
            raise LockNotAcquiredError(f"points:{user_id}")

        try:
            # Re-read under the row lock, auth may already hold a stale copy
            user = await self.session.get(User, user_id, with_for_update=True, populate_existing=True)
            if not user:
                raise UserNotFoundError(user_id)
            if user.is_banned and tx_type is not TransactionType.ADMIN:
                raise UserBannedError(user_id)

            balance_before = user.points
            if amount < 0 and balance_before < -amount:
                raise InsufficientPointsError(required=-amount, available=balance_before)

            balance_after = balance_before + amount
            user.points = balance_after

            tx = PointTransaction(
                id=str(uuid4()),
                user_id=user_id,
                tx_type=tx_type,
                source=source_value,
                amount=amount,
                balance_before=balance_before,
                balance_after=balance_after,
                description=description,
                extra_data=metadata or {},
                reference_id=reference_id,
                admin_id=admin_id,
                admin_note=admin_note,
                integrity_hash=self._compute_integrity_hash(
                    user_id=user_id,
                    tx_type=tx_type,
                    amount=amount,
                    balance_before=balance_before,
                    balance_after=balance_after,
                ),
                created_at=utcnow(),
            )

            self.session.add(tx)
            try:
                await self.session.flush()
            except SQLAlchemyError as e:
                capture_ledger_error(e, user_id, source_value, amount, {"tx_type": tx_type.value})
                logger.error(f"Points transfer failed: user={user_id[:8]}... amount={amount:+,}: {e}")
                raise RewardError(
                    ErrorCode.TRANSACTION_FAILED,
                    "Points transaction failed, please retry",
                    {"source": source_value},
                    ErrorSeverity.HIGH,
                ) from e

            await self._redis.delete(f"{self.BALANCE_KEY_PREFIX}{user_id}")
            reward_cache.clear_user(user_id)
            record_points_flow(source_value, amount)

            logger.info(
                f"Points transfer: user={user_id[:8]}... "
                f"type={tx_type.value} source={source_value} amount={amount:+,} "
                f"balance={balance_before:,} -> {balance_after:,}"
            )

            return tx

        finally:
            await self._redis.eval(self.RELEASE_LOCK_SCRIPT, 1, lock_key, lock_token)

    async def earn(
        self,
        user_id: str,
        amount: int,
        source: TransactionSource | str,
        **kwargs: Any,
    ) -> PointTransaction:
        """Credit points won by playing."""
        if amount <= 0:
            raise InvalidAmountError("Earned amount must be positive")
        return await self.transfer_points(user_id, amount, TransactionType.EARN, source, **kwargs)

    async def spend(
        self,
        user_id: str,
        amount: int,
        source: TransactionSource | str,
        **kwargs: Any,
    ) -> PointTransaction:
        """Debit points for a purchase such as a gacha pull."""
        if amount <= 0:
            raise InvalidAmountError("Spent amount must be positive")
        return await self.transfer_points(user_id, -amount, TransactionType.SPEND, source, **kwargs)

    async def grant_bonus(
        self,
        user_id: str,
        amount: int,
        source: TransactionSource | str,
        **kwargs: Any,
    ) -> PointTransaction:
        if amount <= 0:
            raise InvalidAmountError("Bonus amount must be positive")
        return await self.transfer_points(user_id, amount, TransactionType.BONUS, source, **kwargs)

    async def admin_adjust(
        self,
        user_id: str,
        amount: int,
        reason: str,
        admin_id: str,
    ) -> PointTransaction:
        """Manual adjustment by an admin, recorded in the audit log.

        Raises:
            InvalidAmountError: If amount is zero or reason is empty
            InsufficientPointsError: If the deduction exceeds the balance
        """
        if not reason or not reason.strip():
            raise InvalidAmountError("A reason is required for manual adjustments")

        tx = await self.transfer_points(
            user_id,
            amount,
            TransactionType.ADMIN,
            TransactionSource.ADMIN,
            description=f"Admin adjustment: {amount:+,} points",
            admin_id=admin_id,
            admin_note=reason.strip(),
        )

        await AuditService(self.session).record(
            action="admin.adjust_points",
            actor_user_id=admin_id,
            context={
                "target_user_id": user_id,
                "amount": amount,
                "reason": reason.strip(),
                "transaction_id": tx.id,
                "balance_before": tx.balance_before,
                "balance_after": tx.balance_after,
            },
        )
        return tx

    async def get_transactions(
        self,
        user_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
        tx_type: TransactionType | None = None,
        source: str | None = None,
    ) -> list[PointTransaction]:
        """Get user's transaction history, newest first."""
        query = (
            select(PointTransaction)
            .where(PointTransaction.user_id == user_id)
            .order_by(PointTransaction.created_at.desc())
            .offset(offset)
            .limit(limit)
        )

        if tx_type:
            query = query.where(PointTransaction.tx_type == tx_type)
        if source:
            query = query.where(PointTransaction.source == source)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    @staticmethod
    def _compute_integrity_hash(
        user_id: str,
        tx_type: TransactionType,
        amount: int,
        balance_before: int,
        balance_after: int,
    ) -> str:
        """SHA-256 over the fields that define a ledger entry."""
        data = f"{user_id}:{tx_type.value}:{amount}:{balance_before}:{balance_after}"
        return hashlib.sha256(data.encode()).hexdigest()

    @staticmethod
    def verify_integrity(tx: PointTransaction) -> bool:
        expected = PointsService._compute_integrity_hash(
            user_id=tx.user_id,
            tx_type=tx.tx_type,
            amount=tx.amount,
            balance_before=tx.balance_before,
            balance_after=tx.balance_after,
        )
        return tx.integrity_hash == expected
