"""
Member payment statistics for the dashboard.

Due-now depends on each member's cycle chain, so totals are computed over
the loaded aggregates rather than in SQL.
"""
from collections import Counter
from datetime import timedelta
from decimal import Decimal
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.db.base import get_db
from app.core.deps import require_admin
from app.models.user import User
from app.models.member import Member, MemberStatus, PaymentStatus
from app.schemas.dashboard import DashboardResponse, ExpiringMember, MemberStats
from app.services.billing import current_cycle, due_now_amount, to_money
from app.services.billing.dates import utcnow

router = APIRouter()

EXPIRING_WINDOW_DAYS = 7
EXPIRING_LIMIT = 8


@router.get("/members", response_model=DashboardResponse)
async def member_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Totals, status breakdowns and members whose cycle ends this week."""
    result = await db.execute(select(Member))
    members = result.scalars().all()

    today = utcnow().date()
    horizon = today + timedelta(days=EXPIRING_WINDOW_DAYS)
    total_fee = total_paid = total_remaining = total_due = Decimal("0")
    by_status: Counter = Counter({s.value: 0 for s in PaymentStatus})
    by_type: Counter = Counter()
    expiring = []

    for member in members:
        total_fee += to_money(member.fee)
        total_paid += to_money(member.paid_amount)
        total_remaining += to_money(member.remaining_amount)
        total_due += due_now_amount(member, today)
        by_status[member.payment_status.value] += 1
        by_type[member.membership_type] += 1

        cycle = current_cycle(member)
        if (
            member.member_status == MemberStatus.ACTIVE
            and cycle is not None
            and today <= cycle.end_date <= horizon
        ):
            expiring.append(ExpiringMember(
                id=member.id,
                name=member.name,
                phone=member.phone,
                end_date=cycle.end_date,
                remaining_amount=member.remaining_amount,
            ))

    expiring.sort(key=lambda m: m.end_date)

    return DashboardResponse(stats=MemberStats(
        total_members=len(members),
        active_members=sum(1 for m in members if m.member_status == MemberStatus.ACTIVE),
        total_fee=to_money(total_fee),
        total_paid=to_money(total_paid),
        total_remaining=to_money(total_remaining),
        total_due_now=to_money(total_due),
        pending_count=by_status[PaymentStatus.PENDING.value],
        by_payment_status=dict(by_status),
        by_membership_type=dict(by_type),
        expiring_soon=expiring[:EXPIRING_LIMIT],
        expiring_soon_count=len(expiring),
    ))
