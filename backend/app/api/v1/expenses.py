"""
Expense endpoints.
"""
import logging
from datetime import date
from typing import Optional
from math import ceil
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.db.base import get_db
from app.core.deps import require_admin, actor_from_user
from app.core.exceptions import NotFoundError, ValidationError
from app.models.user import User
from app.models.expense import Expense
from app.schemas.common import SuccessResponse
from app.schemas.expense import (
    ExpenseCreate, ExpenseUpdate, ExpenseResponse, ExpenseEnvelope, ExpenseListResponse
)
from app.services.billing import to_money

logger = logging.getLogger(__name__)

router = APIRouter()


def expense_to_response(expense: Expense) -> ExpenseResponse:
    """Convert Expense model to ExpenseResponse schema."""
    return ExpenseResponse(
        id=expense.id,
        name=expense.name,
        amount=expense.amount,
        date=expense.date,
        note=expense.note,
        created_by_id=expense.created_by_id,
        created_by_name=expense.created_by_name,
        created=expense.created,
        updated=expense.updated,
    )


async def get_expense_or_404(db: AsyncSession, expense_id: str) -> Expense:
    result = await db.execute(select(Expense).where(Expense.id == expense_id))
    expense = result.scalar_one_or_none()
    if expense is None:
        raise NotFoundError("Expense not found")
    return expense


@router.get("", response_model=ExpenseListResponse)
async def list_expenses(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """List expenses, newest first, with the total of the filtered set."""
    conditions = []
    if date_from is not None:
        conditions.append(Expense.date >= date_from)
    if date_to is not None:
        conditions.append(Expense.date <= date_to)

    totals = await db.execute(
        select(func.count(Expense.id), func.coalesce(func.sum(Expense.amount), 0)).where(*conditions)
    )
    total_items, total_amount = totals.one()

    query = (
        select(Expense)
        .where(*conditions)
        .order_by(Expense.date.desc(), Expense.created.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    expenses = result.scalars().all()

    return ExpenseListResponse(
        page=page,
        limit=limit,
        totalItems=total_items,
        totalPages=ceil(total_items / limit) if total_items > 0 else 1,
        total_amount=to_money(total_amount),
        items=[expense_to_response(e) for e in expenses],
    )


@router.post("", response_model=ExpenseEnvelope, status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense_data: ExpenseCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Record an expense."""
    actor = actor_from_user(current_user)
    expense = Expense(
        name=expense_data.name.strip(),
        amount=to_money(expense_data.amount),
        date=expense_data.date,
        note=expense_data.note,
        created_by_id=actor.id,
        created_by_name=actor.name,
    )
    if not expense.name:
        raise ValidationError("name is required")

    db.add(expense)
    await db.flush()
    logger.info("Expense %s (%s) recorded", expense.id, expense.amount)
    return ExpenseEnvelope(message="Expense created", expense=expense_to_response(expense))


@router.put("/{expense_id}", response_model=ExpenseEnvelope)
async def update_expense(
    expense_id: str,
    expense_data: ExpenseUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Update an expense."""
    expense = await get_expense_or_404(db, expense_id)
    update_data = expense_data.model_dump(exclude_unset=True)
    for field_name in ("name", "amount", "date"):
        if field_name in update_data and update_data[field_name] is None:
            raise ValidationError(f"{field_name} cannot be empty")
    if "amount" in update_data:
        update_data["amount"] = to_money(update_data["amount"])

    for field_name, value in update_data.items():
        setattr(expense, field_name, value)

    await db.flush()
    return ExpenseEnvelope(message="Expense updated", expense=expense_to_response(expense))


@router.delete("/{expense_id}", response_model=SuccessResponse)
async def delete_expense(
    expense_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Delete an expense."""
    expense = await get_expense_or_404(db, expense_id)
    await db.delete(expense)
    await db.flush()
    return SuccessResponse(message="Expense deleted")
