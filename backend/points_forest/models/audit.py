"""Audit log model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from points_forest.models.base import Base, UUIDMixin


class AuditLog(Base, UUIDMixin):
    """Audit log for privileged and sensitive actions."""

    __tablename__ = "audit_logs"

    actor_user_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    """
    Action examples:
    - admin.adjust_points
    - admin.view_dashboard
    - points.integrity_failure
    """

    context: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
    )
    """
    Context examples:
    {
        "target_user_id": "...",
        "amount": -100,
        "reason": "refund for duplicated pull",
        "transaction_id": "..."
    }
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        actor = self.actor_user_id[:8] if self.actor_user_id else "system"
        return f"<AuditLog {self.action} by={actor}...>"
