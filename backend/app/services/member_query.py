"""
Member list filtering.

Filters are described as plain FilterSpec values and translated to
SQLAlchemy in one place, so routers never build ad-hoc query conditions.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Sequence

from sqlalchemy import Select, or_

from app.core.exceptions import ValidationError
from app.models.member import Member


class FilterOp(str, Enum):
    EQ = "eq"
    GTE = "gte"
    LTE = "lte"
    SEARCH = "search"


@dataclass(frozen=True)
class FilterSpec:
    """One condition: `field op value`. For SEARCH, field is ignored."""
    field: str
    op: FilterOp
    value: Any


FILTERABLE_FIELDS = {
    "payment_status": Member.payment_status,
    "membership_type": Member.membership_type,
    "personal_trainer": Member.personal_trainer,
    "member_status": Member.member_status,
    "remaining_amount": Member.remaining_amount,
    "fee": Member.fee,
    "paid_amount": Member.paid_amount,
    "start_date": Member.start_date,
}

SEARCH_FIELDS = (Member.name, Member.email, Member.phone, Member.assigned_trainer)

SORTABLE_FIELDS = {
    "created": Member.created,
    "createdAt": Member.created,
    "name": Member.name,
    "fee": Member.fee,
    "paid_amount": Member.paid_amount,
    "remaining_amount": Member.remaining_amount,
    "start_date": Member.start_date,
}


def _range(field: str, low: Any, high: Any) -> List[FilterSpec]:
    specs = []
    if low is not None:
        specs.append(FilterSpec(field, FilterOp.GTE, low))
    if high is not None:
        specs.append(FilterSpec(field, FilterOp.LTE, high))
    return specs


def build_member_filters(
    search: Optional[str] = None,
    payment_status: Optional[str] = None,
    membership_type: Optional[str] = None,
    personal_trainer: Optional[str] = None,
    member_status: Optional[str] = None,
    min_remaining: Optional[Decimal] = None,
    max_remaining: Optional[Decimal] = None,
    min_fee: Optional[Decimal] = None,
    max_fee: Optional[Decimal] = None,
    min_paid: Optional[Decimal] = None,
    max_paid: Optional[Decimal] = None,
    start_from: Optional[date] = None,
    start_to: Optional[date] = None
) -> List[FilterSpec]:
    """Turn list query parameters into filter specs."""
    specs: List[FilterSpec] = []
    if search and search.strip():
        specs.append(FilterSpec("*", FilterOp.SEARCH, search.strip()))
    for name, value in (
        ("payment_status", payment_status),
        ("membership_type", membership_type),
        ("personal_trainer", personal_trainer),
        ("member_status", member_status),
    ):
        if value:
            specs.append(FilterSpec(name, FilterOp.EQ, value))
    specs += _range("remaining_amount", min_remaining, max_remaining)
    specs += _range("fee", min_fee, max_fee)
    specs += _range("paid_amount", min_paid, max_paid)
    specs += _range("start_date", start_from, start_to)
    return specs


def _coerce(column, value: Any) -> Any:
    enum_class = getattr(column.type, "enum_class", None)
    if enum_class is None:
        return value
    try:
        return enum_class(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_class)
        raise ValidationError(f"Invalid value {value!r}. Allowed values: {allowed}")


def apply_filters(query: Select, specs: Sequence[FilterSpec]) -> Select:
    """Translate filter specs into WHERE clauses."""
    for spec in specs:
        if spec.op == FilterOp.SEARCH:
            pattern = f"%{spec.value}%"
            query = query.where(or_(*(column.ilike(pattern) for column in SEARCH_FIELDS)))
            continue

        column = FILTERABLE_FIELDS.get(spec.field)
        if column is None:
            raise ValidationError(f"Cannot filter on '{spec.field}'")
        value = _coerce(column, spec.value)
        if spec.op == FilterOp.EQ:
            query = query.where(column == value)
        elif spec.op == FilterOp.GTE:
            query = query.where(column >= value)
        elif spec.op == FilterOp.LTE:
            query = query.where(column <= value)
    return query


def apply_sort(query: Select, sort_by: Optional[str], sort_order: Optional[str]) -> Select:
    """Unknown sort fields fall back to creation time."""
    column = SORTABLE_FIELDS.get(sort_by or "created", Member.created)
    if str(sort_order or "desc").lower() == "asc":
        return query.order_by(column.asc(), Member.id.asc())
    return query.order_by(column.desc(), Member.id.desc())
