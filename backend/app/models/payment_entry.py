"""
Payment history entry model.

The user-facing ledger of a member's payments and adjustments. Each entry
keeps a snapshot of the member summary at the time it was written and the
list of cycle windows it funded (`allocations`), which is what reversal and
adjustment operate on.
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, Text, Date, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import BaseModel, MemberChildMixin, money_column
from app.models.member import PaymentStatus

if TYPE_CHECKING:
    from app.models.member import Member


class EntryType(str, Enum):
    """Kind of money movement."""
    PAYMENT = "payment"
    ADJUSTMENT = "adjustment"


class PaymentEntry(MemberChildMixin, BaseModel):
    """One row of a member's payment history."""
    __tablename__ = "payment_entries"

    # Signed: negative for reductions
    amount: Mapped[Decimal] = money_column()
    unapplied_amount: Mapped[Decimal] = money_column(default=Decimal("0"))
    type: Mapped[EntryType] = mapped_column(
        SQLEnum(
            EntryType,
            name="entrytype",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=EntryType.PAYMENT,
        nullable=False
    )

    # Member summary snapshot at the time of the entry
    fee: Mapped[Decimal] = money_column()
    paid_amount: Mapped[Decimal] = money_column()
    remaining_amount: Mapped[Decimal] = money_column()
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(
            PaymentStatus,
            name="paymentstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False
    )

    by_id: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    by_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payment_month: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    payment_mode: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    promise_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # [{start_date, end_date, amount}] as ISO strings / decimal strings
    allocations: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    member: Mapped["Member"] = relationship("Member", back_populates="payment_history")

    def __repr__(self) -> str:
        return f"<PaymentEntry {self.type.value} {self.amount}>"
