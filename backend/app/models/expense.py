"""
Expense model for gym running costs.
"""
from typing import Optional
from datetime import date as date_type
from decimal import Decimal
from sqlalchemy import String, Text, Date
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel, money_column


class Expense(BaseModel):
    """A single expense (rent, equipment, salaries...)."""
    __tablename__ = "expenses"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = money_column()
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by_id: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    created_by_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<Expense {self.name} {self.amount}>"
