"""
Member activity model.

Append-only audit log of structural changes and lifecycle actions
(create, update, status, restart, extend, payment-adjust, ...).
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import BaseModel, MemberChildMixin

if TYPE_CHECKING:
    from app.models.member import Member


class MemberActivity(MemberChildMixin, BaseModel):
    """Timeline entry for a member."""
    __tablename__ = "member_activities"

    action: Mapped[str] = mapped_column(String(50), nullable=False)
    by_id: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    by_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # {field: {"from": ..., "to": ...}} or action-specific payload
    changes: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    member: Mapped["Member"] = relationship("Member", back_populates="activity_history")

    def __repr__(self) -> str:
        return f"<MemberActivity {self.action} by {self.by_name}>"
