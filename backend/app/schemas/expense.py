"""
Pydantic schemas for Expense endpoints.
"""
from typing import List, Optional
from datetime import date as date_type, datetime
from pydantic import BaseModel, Field

from app.schemas.common import Money, PaginatedResponse, SuccessResponse


class ExpenseCreate(BaseModel):
    """Record a new expense."""
    name: str = Field(..., min_length=1, max_length=200)
    amount: Money = Field(..., ge=0)
    date: date_type
    note: Optional[str] = None


class ExpenseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    amount: Optional[Money] = Field(None, ge=0)
    date: Optional[date_type] = None
    note: Optional[str] = None


class ExpenseResponse(BaseModel):
    id: str
    name: str
    amount: Money
    date: date_type
    note: Optional[str] = None
    created_by_id: Optional[str] = None
    created_by_name: Optional[str] = None
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


class ExpenseEnvelope(SuccessResponse):
    expense: ExpenseResponse


class ExpenseListResponse(PaginatedResponse):
    total_amount: Money
    items: List[ExpenseResponse]
