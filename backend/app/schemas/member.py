"""
Pydantic schemas for Member and billing endpoints.
"""
from typing import Any, List, Optional
from datetime import date, datetime
from pydantic import BaseModel, Field, EmailStr

from app.models.member import Gender, MemberStatus, PaymentStatus, PersonalTrainer, ReminderStatus
from app.models.payment_entry import EntryType
from app.schemas.common import Money, PaginatedResponse, SuccessResponse


class MemberCreate(BaseModel):
    """Register a new member."""
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=1, max_length=50)
    start_date: date
    email: Optional[EmailStr] = None
    dob: Optional[date] = None
    gender: Gender = Gender.MALE
    address: Optional[str] = None
    emergency_name: Optional[str] = Field(None, max_length=200)
    emergency_phone: Optional[str] = Field(None, max_length=50)
    health_notes: Optional[str] = None
    profile_pic: Optional[str] = Field(None, max_length=500)
    membership_type: str = Field(default="Basic", max_length=100)
    personal_trainer: PersonalTrainer = PersonalTrainer.NOT_ASSIGNED
    assigned_trainer: Optional[str] = Field(None, max_length=200)
    # Raw label, normalized by the billing engine
    duration: Any = "1 Month"
    fee: Money = Field(default=0, ge=0)
    paid_amount: Money = Field(default=0, ge=0)
    payment_status: Optional[PaymentStatus] = None
    payment_note: Optional[str] = None
    payment_mode: Optional[str] = Field(None, max_length=50)


class MemberUpdate(BaseModel):
    """Update a member. Only these fields can change."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    dob: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[str] = None
    emergency_name: Optional[str] = Field(None, max_length=200)
    emergency_phone: Optional[str] = Field(None, max_length=50)
    health_notes: Optional[str] = None
    profile_pic: Optional[str] = Field(None, max_length=500)
    membership_type: Optional[str] = Field(None, max_length=100)
    personal_trainer: Optional[PersonalTrainer] = None
    assigned_trainer: Optional[str] = Field(None, max_length=200)
    duration: Optional[Any] = None
    fee: Optional[Money] = Field(None, ge=0)
    start_date: Optional[date] = None
    payment_status: Optional[PaymentStatus] = None
    adjustment_amount: Optional[Money] = None
    adjustment_note: Optional[str] = None


class PaymentCreate(BaseModel):
    """Record a payment."""
    amount: Money = Field(..., gt=0)
    payment_month: Optional[str] = Field(None, max_length=50)
    payment_mode: Optional[str] = Field(None, max_length=50)
    note: Optional[str] = None
    promise_date: Optional[date] = None


class PaymentAdjust(BaseModel):
    """Change the amount of one payment history entry."""
    index: int = Field(..., ge=0)
    amount: Money = Field(..., ge=0)
    note: Optional[str] = None


class PaymentEntryStatusUpdate(BaseModel):
    payment_status: Optional[PaymentStatus] = None
    promise_date: Optional[date] = None
    clear_promise: bool = False


class MemberStatusUpdate(BaseModel):
    member_status: MemberStatus
    fresh_cycle: bool = False
    forgive_dues: bool = True
    start_date: Optional[date] = None
    fee: Optional[Money] = Field(None, ge=0)
    duration: Optional[Any] = None


class MembershipRestart(BaseModel):
    start_date: Optional[date] = None
    fee: Optional[Money] = Field(None, ge=0)
    duration: Optional[Any] = None
    forgive_dues: bool = True


class CycleExtend(BaseModel):
    days: int = Field(..., gt=0)
    note: Optional[str] = None


class ActorRef(BaseModel):
    id: Optional[str] = None
    name: str


class AllocationResponse(BaseModel):
    start_date: date
    end_date: date
    amount: Money
    cycle_index: Optional[int] = None


class CycleResponse(BaseModel):
    """One billing cycle of a member."""
    id: str
    start_date: date
    end_date: date
    cycle_months: int
    fee: Money
    paid_amount: Money
    remaining_amount: Money
    status: PaymentStatus
    payments: List[dict] = []


class PaymentEntryResponse(BaseModel):
    """Payment history entry with the member summary at that moment."""
    index: int
    id: str
    amount: Money
    unapplied_amount: Money
    type: EntryType
    fee: Money
    paid_amount: Money
    remaining_amount: Money
    payment_status: PaymentStatus
    by: ActorRef
    at: datetime
    note: Optional[str] = None
    payment_month: Optional[str] = None
    payment_mode: Optional[str] = None
    promise_date: Optional[date] = None
    allocations: List[AllocationResponse] = []


class ActivityResponse(BaseModel):
    action: str
    by: ActorRef
    at: datetime
    changes: Optional[Any] = None


class MemberResponse(BaseModel):
    """Member summary, as listed."""
    id: str
    name: str
    email: Optional[str] = None
    phone: str
    dob: Optional[date] = None
    gender: Gender
    address: Optional[str] = None
    emergency_name: Optional[str] = None
    emergency_phone: Optional[str] = None
    health_notes: Optional[str] = None
    profile_pic: Optional[str] = None
    membership_type: str
    personal_trainer: PersonalTrainer
    assigned_trainer: Optional[str] = None
    duration: str
    fee: Money
    registration_date: date
    start_date: date
    inactive_since: Optional[datetime] = None
    member_status: MemberStatus
    reminder_status: ReminderStatus
    promised_payment_date: Optional[date] = None
    paid_amount: Money
    remaining_amount: Money
    payment_status: PaymentStatus
    current_cycle_end: Optional[date] = None
    due_now: Money
    overdue_cycles: int = 0
    last_payment: Optional[PaymentEntryResponse] = None
    created_by: Optional[ActorRef] = None
    updated_by: Optional[ActorRef] = None
    created: datetime
    updated: datetime


class MemberDetailResponse(MemberResponse):
    """Member with the full cycle chain, ledger and activity log."""
    payment_cycles: List[CycleResponse] = []
    payment_history: List[PaymentEntryResponse] = []
    activity_history: List[ActivityResponse] = []


class MemberEnvelope(SuccessResponse):
    member: MemberDetailResponse


class PaymentEnvelope(SuccessResponse):
    member: MemberDetailResponse
    entry: PaymentEntryResponse


class MemberListResponse(PaginatedResponse):
    items: List[MemberResponse]
