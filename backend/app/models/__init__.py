"""
SQLAlchemy models for GymDesk.

- Staff: users
- Members: members and their payment cycles, payment history and
  activity log
- Operations: expenses, inquiries
"""
from app.models.user import User

from app.models.member import (
    Member,
    MemberStatus,
    PaymentStatus,
    ReminderStatus,
    Gender,
    PersonalTrainer,
)
from app.models.payment_cycle import PaymentCycle
from app.models.payment_entry import PaymentEntry, EntryType
from app.models.member_activity import MemberActivity

from app.models.expense import Expense
from app.models.inquiry import Inquiry, InquiryStatus, FollowUpStatus

__all__ = [
    "User",
    "Member",
    "MemberStatus",
    "PaymentStatus",
    "ReminderStatus",
    "Gender",
    "PersonalTrainer",
    "PaymentCycle",
    "PaymentEntry",
    "EntryType",
    "MemberActivity",
    "Expense",
    "Inquiry",
    "InquiryStatus",
    "FollowUpStatus",
]
