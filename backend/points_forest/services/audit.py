"""Audit trail for privileged actions.

Each entry is written twice:
1. Database (AuditLog row) - primary record, same transaction as the change
2. Redis Stream - real-time feed for monitoring
"""

import hashlib
import logging
from typing import Any
from uuid import uuid4

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.models.audit import AuditLog
from points_forest.utils.day_window import utcnow
from points_forest.utils.json_utils import json_dumps, json_loads
from points_forest.utils.redis_client import get_redis

logger = logging.getLogger(__name__)


class AuditService:
    REDIS_STREAM_KEY = "audit:rewards"
    REDIS_STREAM_MAX_LEN = 100000  # Keep last 100k entries

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._redis = get_redis()

    async def record(
        self,
        action: str,
        actor_user_id: str | None,
        context: dict[str, Any],
    ) -> AuditLog:
        """Persist an audit entry and mirror it to the Redis stream.

        Args:
            action: Dotted action name, e.g. ``admin.adjust_points``
            actor_user_id: Who performed it (None for system jobs)
            context: JSON-serialisable details

        Returns:
            The AuditLog row (flushed, not committed)
        """
        now = utcnow()
        entry = AuditLog(
            id=str(uuid4()),
            actor_user_id=actor_user_id,
            action=action,
            context=context,
            created_at=now,
        )
        self.session.add(entry)
        await self.session.flush()

        payload = {
            "audit_id": entry.id,
            "timestamp": now.isoformat(),
            "action": action,
            "actor_user_id": actor_user_id or "",
            "context": json_dumps(context, sort_keys=True),
        }
        payload["audit_hash"] = self._compute_audit_hash(payload)

        if self._redis is not None:
            try:
                await self._redis.xadd(
                    self.REDIS_STREAM_KEY,
                    payload,
                    maxlen=self.REDIS_STREAM_MAX_LEN,
                )
            except RedisError as e:
                # The database row is the record of truth
                logger.error(f"Audit stream write failed: id={entry.id} action={action}: {e}")

        logger.info(f"Audit logged: id={entry.id} action={action} actor={actor_user_id}")
        return entry

    async def get_recent_entries(
        self,
        count: int = 100,
        *,
        action: str | None = None,
    ) -> list[dict[str, Any]]:
        """Recent entries from the Redis stream, newest first."""
        if self._redis is None:
            return []

        entries = await self._redis.xrevrange(
            self.REDIS_STREAM_KEY,
            count=count * 2 if action else count,
        )

        result = []
        for entry_id, data in entries:
            if action and data.get("action") != action:
                continue
            parsed = dict(data)
            parsed["stream_id"] = entry_id
            parsed["context"] = json_loads(parsed.get("context") or "{}")
            result.append(parsed)
            if len(result) >= count:
                break

        return result

    async def list_logs(
        self,
        *,
        action: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditLog]:
        query = select(AuditLog).order_by(AuditLog.created_at.desc()).offset(offset).limit(limit)
        if action:
            query = query.where(AuditLog.action == action)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    @staticmethod
    def _compute_audit_hash(payload: dict[str, Any]) -> str:
        data = ":".join(str(payload[k]) for k in sorted(payload))
        return hashlib.sha256(data.encode()).hexdigest()
