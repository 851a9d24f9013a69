"""
Payment cycle model.

One billing period of a member. Cycles are appended to the member's chain
and never deleted; only their amounts, status and end date change.
"""
from typing import TYPE_CHECKING
from datetime import date
from decimal import Decimal
from sqlalchemy import Integer, Date, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import BaseModel, MemberChildMixin, money_column
from app.models.member import PaymentStatus

if TYPE_CHECKING:
    from app.models.member import Member


class PaymentCycle(MemberChildMixin, BaseModel):
    """
    Billing cycle [start_date, end_date).

    `fee` is a snapshot taken when the cycle was created. `payments` holds
    the low-level allocation records as JSON dicts:
    {amount, type, by: {id, name}, at, note}.
    """
    __tablename__ = "payment_cycles"

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    cycle_months: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    fee: Mapped[Decimal] = money_column()
    paid_amount: Mapped[Decimal] = money_column()
    remaining_amount: Mapped[Decimal] = money_column()
    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(
            PaymentStatus,
            name="paymentstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=PaymentStatus.PENDING,
        nullable=False
    )

    payments: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    member: Mapped["Member"] = relationship("Member", back_populates="payment_cycles")

    def __repr__(self) -> str:
        return f"<PaymentCycle {self.start_date}..{self.end_date} paid={self.paid_amount}/{self.fee}>"
