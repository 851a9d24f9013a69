"""
Member model for gym membership and billing.

A Member is the aggregate the billing engine works on. Its payment-related
columns (paid_amount, remaining_amount, payment_status) are a summary of
payment_cycles and are recomputed by app.services.billing.summary after
every mutation; they are never edited directly.
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, Text, Date, DateTime, Enum as SQLEnum
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import BaseModel, money_column

if TYPE_CHECKING:
    from app.models.payment_cycle import PaymentCycle
    from app.models.payment_entry import PaymentEntry
    from app.models.member_activity import MemberActivity


class MemberStatus(str, Enum):
    """Membership state machine states."""
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class PaymentStatus(str, Enum):
    """Payment state of a member, a cycle or a history snapshot."""
    PAID = "Paid"
    PENDING = "Pending"
    FREE_TRIAL = "Free Trial"


class ReminderStatus(str, Enum):
    """Whether the member promised a future payment date."""
    NONE = "None"
    PROMISED = "Promised"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class PersonalTrainer(str, Enum):
    NOT_ASSIGNED = "Not Assigned"
    ASSIGNED = "Assigned"


def _enum_column(enum_cls, name: str):
    return SQLEnum(
        enum_cls,
        name=name,
        create_constraint=True,
        values_callable=lambda x: [e.value for e in x]
    )


class Member(BaseModel):
    """
    Gym member.

    Owns an ordered chain of payment cycles (the last one is the current
    cycle), an append-only payment history and an activity log.
    """
    __tablename__ = "members"

    # Identity and contact
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    phone: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    dob: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    gender: Mapped[Gender] = mapped_column(
        _enum_column(Gender, "gender"),
        default=Gender.MALE,
        nullable=False
    )
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    emergency_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    emergency_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    health_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    profile_pic: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Plan
    membership_type: Mapped[str] = mapped_column(String(100), default="Basic", nullable=False)
    personal_trainer: Mapped[PersonalTrainer] = mapped_column(
        _enum_column(PersonalTrainer, "personaltrainer"),
        default=PersonalTrainer.NOT_ASSIGNED,
        nullable=False
    )
    assigned_trainer: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    duration: Mapped[str] = mapped_column(String(20), default="1 Month", nullable=False)
    fee: Mapped[Decimal] = money_column(default=Decimal("0"))

    # Dates
    registration_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    inactive_since: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Status
    member_status: Mapped[MemberStatus] = mapped_column(
        _enum_column(MemberStatus, "memberstatus"),
        default=MemberStatus.ACTIVE,
        nullable=False,
        index=True
    )
    reminder_status: Mapped[ReminderStatus] = mapped_column(
        _enum_column(ReminderStatus, "reminderstatus"),
        default=ReminderStatus.NONE,
        nullable=False
    )
    promised_payment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Summary of payment_cycles
    paid_amount: Mapped[Decimal] = money_column(default=Decimal("0"))
    remaining_amount: Mapped[Decimal] = money_column(default=Decimal("0"))
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _enum_column(PaymentStatus, "paymentstatus"),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True
    )

    # Actor stamps
    created_by_id: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    created_by_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    updated_by_id: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    updated_by_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Relationships, ordered by position (insertion order)
    payment_cycles: Mapped[list["PaymentCycle"]] = relationship(
        "PaymentCycle",
        back_populates="member",
        order_by="PaymentCycle.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    payment_history: Mapped[list["PaymentEntry"]] = relationship(
        "PaymentEntry",
        back_populates="member",
        order_by="PaymentEntry.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    activity_history: Mapped[list["MemberActivity"]] = relationship(
        "MemberActivity",
        back_populates="member",
        order_by="MemberActivity.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Member {self.name} ({self.member_status.value})>"
