"""
Inquiry model (walk-in / phone / social leads).

Inquiries are prospective members. Follow-ups are kept inline as a JSON
list: {date, note, status, by: {id, name}, created_at}.
"""
from typing import Optional
from datetime import date, datetime
from enum import Enum
from sqlalchemy import String, Text, Date, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel


class InquiryStatus(str, Enum):
    """Where the lead is in the funnel."""
    NEW = "New"
    CONTACTED = "Contacted"
    INTERESTED = "Interested"
    NOT_INTERESTED = "Not Interested"
    JOINED = "Joined"
    FOLLOW_UP = "Follow Up"


class FollowUpStatus(str, Enum):
    PLANNED = "Planned"
    DONE = "Done"
    MISSED = "Missed"


class Inquiry(BaseModel):
    """Lead record."""
    __tablename__ = "inquiries"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[InquiryStatus] = mapped_column(
        SQLEnum(
            InquiryStatus,
            name="inquirystatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=InquiryStatus.NEW,
        nullable=False,
        index=True
    )
    next_follow_up_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_contacted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    follow_ups: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    created_by_id: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    created_by_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    updated_by_id: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    updated_by_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<Inquiry {self.name} ({self.status.value})>"
