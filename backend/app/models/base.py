"""
Base model with common fields.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional
from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from app.db.base import Base


def generate_id() -> str:
    """Generate a 15-character random hex ID."""
    return uuid.uuid4().hex[:15]


def money_column(nullable: bool = False, default: Optional[Any] = None) -> Mapped[Decimal]:
    """Amount in the gym's currency, stored with two decimals."""
    return mapped_column(Numeric(precision=12, scale=2), default=default, nullable=nullable)


class TimestampMixin:
    """Mixin for created/updated timestamps."""
    created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )


class BaseModel(Base, TimestampMixin):
    """Abstract base model with id and timestamps."""
    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(15),
        primary_key=True,
        default=generate_id
    )


class MemberChildMixin:
    """
    Row of one of a member's ordered collections (cycles, history,
    activity). `position` is maintained by ordering_list on Member.
    """

    @declared_attr
    def member_id(cls) -> Mapped[str]:
        return mapped_column(
            String(15),
            ForeignKey("members.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )

    position: Mapped[int] = mapped_column(Integer, nullable=False)
