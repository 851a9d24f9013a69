"""
Dashboard schemas.
"""
from typing import Dict, List
from datetime import date
from pydantic import BaseModel

from app.schemas.common import Money, SuccessResponse


class ExpiringMember(BaseModel):
    id: str
    name: str
    phone: str
    end_date: date
    remaining_amount: Money


class MemberStats(BaseModel):
    total_members: int
    active_members: int
    total_fee: Money
    total_paid: Money
    total_remaining: Money
    total_due_now: Money
    pending_count: int
    by_payment_status: Dict[str, int]
    by_membership_type: Dict[str, int]
    expiring_soon: List[ExpiringMember]
    expiring_soon_count: int


class DashboardResponse(SuccessResponse):
    stats: MemberStats
