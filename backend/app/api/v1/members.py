"""
Member endpoints: registration, profile CRUD and billing operations.

Every mutating endpoint loads the member with SELECT ... FOR UPDATE, hands
it to the billing engine and flushes. The request session commits on
success and rolls back on any error, so a failed operation persists
nothing.
"""
import logging
from datetime import date
from typing import Any, Dict, Optional
from decimal import Decimal
from math import ceil
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.db.base import get_db
from app.core.config import settings
from app.core.deps import require_admin, actor_from_user
from app.core.exceptions import ConflictError, NotFoundError
from app.models.user import User
from app.models.member import Member, MemberStatus, PaymentStatus, ReminderStatus
from app.models.member_activity import MemberActivity
from app.models.payment_cycle import PaymentCycle
from app.models.payment_entry import PaymentEntry
from app.schemas.common import SuccessResponse
from app.schemas.member import (
    ActivityResponse,
    ActorRef,
    AllocationResponse,
    CycleExtend,
    CycleResponse,
    MemberCreate,
    MemberDetailResponse,
    MemberEnvelope,
    MemberListResponse,
    MemberResponse,
    MemberStatusUpdate,
    MemberUpdate,
    MembershipRestart,
    PaymentAdjust,
    PaymentCreate,
    PaymentEntryResponse,
    PaymentEntryStatusUpdate,
    PaymentEnvelope,
)
from app.services.billing import (
    MonthPolicy,
    adjust_history_entry,
    apply_manual_adjustment,
    current_cycle,
    delete_history_entry,
    due_now_amount,
    ensure_cycles,
    extend_current_cycle,
    normalize_duration,
    open_membership,
    overdue_cycle_count,
    record_activity,
    record_payment,
    reseed_first_cycle,
    restart_membership,
    set_member_status,
    sync_summary,
    to_money,
    update_history_entry_status,
)
from app.services.billing.dates import utcnow
from app.services.member_query import apply_filters, apply_sort, build_member_filters

logger = logging.getLogger(__name__)

router = APIRouter()

PROFILE_FIELDS = (
    "name",
    "phone",
    "email",
    "dob",
    "gender",
    "address",
    "emergency_name",
    "emergency_phone",
    "health_notes",
    "profile_pic",
    "membership_type",
    "personal_trainer",
    "assigned_trainer",
)


def _actor_ref(actor_id: Optional[str], actor_name: Optional[str]) -> Optional[ActorRef]:
    if actor_id is None and actor_name is None:
        return None
    return ActorRef(id=actor_id, name=actor_name or "System")


def cycle_to_response(cycle: PaymentCycle) -> CycleResponse:
    return CycleResponse(
        id=cycle.id,
        start_date=cycle.start_date,
        end_date=cycle.end_date,
        cycle_months=cycle.cycle_months,
        fee=cycle.fee,
        paid_amount=cycle.paid_amount,
        remaining_amount=cycle.remaining_amount,
        status=cycle.status,
        payments=cycle.payments or [],
    )


def entry_to_response(entry: PaymentEntry, index: int) -> PaymentEntryResponse:
    return PaymentEntryResponse(
        index=index,
        id=entry.id,
        amount=entry.amount,
        unapplied_amount=entry.unapplied_amount,
        type=entry.type,
        fee=entry.fee,
        paid_amount=entry.paid_amount,
        remaining_amount=entry.remaining_amount,
        payment_status=entry.payment_status,
        by=ActorRef(id=entry.by_id, name=entry.by_name or "System"),
        at=entry.at,
        note=entry.note,
        payment_month=entry.payment_month,
        payment_mode=entry.payment_mode,
        promise_date=entry.promise_date,
        allocations=[AllocationResponse(**a) for a in (entry.allocations or [])],
    )


def activity_to_response(activity: MemberActivity) -> ActivityResponse:
    return ActivityResponse(
        action=activity.action,
        by=ActorRef(id=activity.by_id, name=activity.by_name or "System"),
        at=activity.at,
        changes=activity.changes,
    )


def _member_fields(member: Member, today: date) -> Dict[str, Any]:
    history = member.payment_history
    cycle = current_cycle(member)
    return dict(
        id=member.id,
        name=member.name,
        email=member.email,
        phone=member.phone,
        dob=member.dob,
        gender=member.gender,
        address=member.address,
        emergency_name=member.emergency_name,
        emergency_phone=member.emergency_phone,
        health_notes=member.health_notes,
        profile_pic=member.profile_pic,
        membership_type=member.membership_type,
        personal_trainer=member.personal_trainer,
        assigned_trainer=member.assigned_trainer,
        duration=member.duration,
        fee=member.fee,
        registration_date=member.registration_date,
        start_date=member.start_date,
        inactive_since=member.inactive_since,
        member_status=member.member_status,
        reminder_status=member.reminder_status,
        promised_payment_date=member.promised_payment_date,
        paid_amount=member.paid_amount,
        remaining_amount=member.remaining_amount,
        payment_status=member.payment_status,
        current_cycle_end=cycle.end_date if cycle is not None else None,
        due_now=due_now_amount(member, today),
        overdue_cycles=overdue_cycle_count(member, today),
        last_payment=entry_to_response(history[-1], len(history) - 1) if history else None,
        created_by=_actor_ref(member.created_by_id, member.created_by_name),
        updated_by=_actor_ref(member.updated_by_id, member.updated_by_name),
        created=member.created,
        updated=member.updated,
    )


def member_to_response(member: Member, today: Optional[date] = None) -> MemberResponse:
    """Convert Member model to the list item schema."""
    return MemberResponse(**_member_fields(member, today or utcnow().date()))


def member_to_detail(member: Member, today: Optional[date] = None) -> MemberDetailResponse:
    """Convert Member model to the full schema with cycles and ledger."""
    return MemberDetailResponse(
        **_member_fields(member, today or utcnow().date()),
        payment_cycles=[cycle_to_response(c) for c in member.payment_cycles],
        payment_history=[entry_to_response(e, i) for i, e in enumerate(member.payment_history)],
        activity_history=[activity_to_response(a) for a in member.activity_history],
    )


async def get_member_or_404(db: AsyncSession, member_id: str, lock: bool = False) -> Member:
    query = select(Member).where(Member.id == member_id)
    if lock:
        query = query.with_for_update()
    result = await db.execute(query)
    member = result.scalar_one_or_none()
    if member is None:
        raise NotFoundError("Member not found")
    return member


async def check_unique_contact(
    db: AsyncSession,
    phone: Optional[str],
    email: Optional[str],
    exclude_id: Optional[str] = None
) -> None:
    """Phone and email must not belong to another member."""
    checks = []
    if phone:
        checks.append(("phone", Member.phone == phone))
    if email:
        checks.append(("email", func.lower(Member.email) == email.lower()))
    for field_name, condition in checks:
        query = select(Member.id).where(condition)
        if exclude_id is not None:
            query = query.where(Member.id != exclude_id)
        result = await db.execute(query.limit(1))
        if result.scalar_one_or_none() is not None:
            raise ConflictError(f"A member with this {field_name} already exists")


async def _member_envelope(db: AsyncSession, member: Member, message: str) -> MemberEnvelope:
    await db.flush()
    return MemberEnvelope(message=message, member=member_to_detail(member))


@router.get("", response_model=MemberListResponse)
async def list_members(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
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
    start_to: Optional[date] = None,
    sort_by: Optional[str] = "created",
    sort_order: Optional[str] = "desc",
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """List members with filters, sorting and pagination."""
    specs = build_member_filters(
        search=search,
        payment_status=payment_status,
        membership_type=membership_type,
        personal_trainer=personal_trainer,
        member_status=member_status,
        min_remaining=min_remaining,
        max_remaining=max_remaining,
        min_fee=min_fee,
        max_fee=max_fee,
        min_paid=min_paid,
        max_paid=max_paid,
        start_from=start_from,
        start_to=start_to,
    )
    query = apply_filters(select(Member), specs)

    # Count total
    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total_items = total_result.scalar() or 0

    query = apply_sort(query, sort_by, sort_order)
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)
    members = result.scalars().all()

    today = utcnow().date()
    return MemberListResponse(
        page=page,
        limit=limit,
        totalItems=total_items,
        totalPages=ceil(total_items / limit) if total_items > 0 else 1,
        items=[member_to_response(m, today) for m in members],
    )


@router.post("", response_model=MemberEnvelope, status_code=status.HTTP_201_CREATED)
async def create_member(
    member_data: MemberCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """
    Register a member.

    Seeds the first cycle from start_date/duration/fee and books paid_amount
    as the first payment.
    """
    await check_unique_contact(db, member_data.phone, member_data.email)
    duration = normalize_duration(member_data.duration)
    actor = actor_from_user(current_user)
    now = utcnow()

    member = Member(
        name=member_data.name,
        phone=member_data.phone,
        email=member_data.email,
        dob=member_data.dob,
        gender=member_data.gender,
        address=member_data.address,
        emergency_name=member_data.emergency_name,
        emergency_phone=member_data.emergency_phone,
        health_notes=member_data.health_notes,
        profile_pic=member_data.profile_pic,
        membership_type=member_data.membership_type,
        personal_trainer=member_data.personal_trainer,
        assigned_trainer=member_data.assigned_trainer,
        duration=duration,
        fee=to_money(member_data.fee, "fee"),
        registration_date=now.date(),
        start_date=member_data.start_date,
        member_status=MemberStatus.ACTIVE,
        reminder_status=ReminderStatus.NONE,
        paid_amount=to_money(0),
        remaining_amount=to_money(0),
        payment_status=PaymentStatus.PENDING,
    )
    open_membership(
        member,
        actor,
        at=now,
        initial_payment=member_data.paid_amount,
        requested_status=member_data.payment_status,
        note=member_data.payment_note,
        payment_mode=member_data.payment_mode,
    )

    db.add(member)
    await db.flush()
    logger.info("Member %s registered by %s", member.id, actor.name)
    return MemberEnvelope(message="Member created", member=member_to_detail(member))


@router.get("/{member_id}", response_model=MemberEnvelope)
async def get_member(
    member_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Get a member with cycles, payment history and activity."""
    member = await get_member_or_404(db, member_id)
    # Older rows may predate the cycle chain
    if ensure_cycles(member, utcnow().date()):
        sync_summary(member)
        await db.flush()
    return MemberEnvelope(member=member_to_detail(member))


@router.put("/{member_id}", response_model=MemberEnvelope)
async def update_member(
    member_id: str,
    member_data: MemberUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """
    Update a member.

    Profile fields are copied as-is. Plan changes (start_date, duration,
    fee) re-seed the first cycle while it is the only cycle; otherwise they
    apply to cycles created afterwards. adjustment_amount books a manual
    adjustment.
    """
    member = await get_member_or_404(db, member_id, lock=True)
    data = member_data.model_dump(exclude_unset=True)
    actor = actor_from_user(current_user)
    now = utcnow()

    # Validate before touching the member
    if data.get("phone") or data.get("email"):
        await check_unique_contact(db, data.get("phone"), data.get("email"), exclude_id=member.id)
    if "duration" in data:
        data["duration"] = normalize_duration(data["duration"])
    if data.get("fee") is not None:
        data["fee"] = to_money(data["fee"], "fee")

    ensure_cycles(member, now.date())
    changes: Dict[str, Any] = {}

    for field_name in PROFILE_FIELDS:
        if field_name not in data:
            continue
        if field_name in ("name", "phone", "gender", "membership_type", "personal_trainer") \
                and data[field_name] is None:
            continue
        old_value = getattr(member, field_name)
        if old_value != data[field_name]:
            changes[field_name] = {"from": old_value, "to": data[field_name]}
            setattr(member, field_name, data[field_name])

    dates_changed = False
    plan_changed = False
    for field_name in ("start_date", "duration", "fee"):
        new_value = data.get(field_name)
        if new_value is None:
            continue
        old_value = getattr(member, field_name)
        if old_value != new_value:
            changes[field_name] = {"from": old_value, "to": new_value}
            setattr(member, field_name, new_value)
            plan_changed = True
            dates_changed = dates_changed or field_name != "fee"
    if plan_changed:
        reseed_first_cycle(member, dates_changed)

    requested_status = data.get("payment_status")
    if requested_status is not None and requested_status != member.payment_status:
        changes["payment_status"] = {"from": member.payment_status, "to": requested_status}
    sync_summary(member, requested_status)

    if data.get("adjustment_amount") is not None and to_money(data["adjustment_amount"]) != 0:
        apply_manual_adjustment(
            member, data["adjustment_amount"], actor, at=now, note=data.get("adjustment_note")
        )
        changes["adjustment_amount"] = data["adjustment_amount"]

    if changes:
        record_activity(member, "update", actor, now, changes)
    return await _member_envelope(db, member, "Member updated")


@router.delete("/{member_id}", response_model=SuccessResponse)
async def delete_member(
    member_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Delete a member with its cycles and ledger."""
    member = await get_member_or_404(db, member_id, lock=True)
    await db.delete(member)
    await db.flush()
    logger.info("Member %s deleted by %s", member_id, current_user.email)
    return SuccessResponse(message="Member deleted")


@router.post("/{member_id}/pay", response_model=PaymentEnvelope)
async def pay(
    member_id: str,
    payment: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """
    Record a payment.

    With payment_month it funds that month's cycle only, extending the
    chain forward if needed. A partial payment needs a promise_date when
    REQUIRE_PROMISE_FOR_PARTIAL is on.
    """
    member = await get_member_or_404(db, member_id, lock=True)
    entry = record_payment(
        member,
        payment.amount,
        actor_from_user(current_user),
        payment_month=payment.payment_month,
        payment_mode=payment.payment_mode,
        note=payment.note,
        promise_date=payment.promise_date,
        require_promise=settings.REQUIRE_PROMISE_FOR_PARTIAL,
        policy=MonthPolicy(settings.MONTH_ALLOCATION_POLICY),
        max_new_cycles=settings.MAX_CYCLE_EXTENSION,
    )
    await db.flush()
    return PaymentEnvelope(
        message="Payment recorded",
        member=member_to_detail(member),
        entry=entry_to_response(entry, len(member.payment_history) - 1),
    )


@router.put("/{member_id}/payment-history", response_model=PaymentEnvelope)
async def adjust_payment(
    member_id: str,
    adjustment: PaymentAdjust,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Change the amount of a recorded payment."""
    member = await get_member_or_404(db, member_id, lock=True)
    entry = adjust_history_entry(
        member, adjustment.index, adjustment.amount, actor_from_user(current_user),
        note=adjustment.note
    )
    await db.flush()
    return PaymentEnvelope(
        message="Payment adjusted",
        member=member_to_detail(member),
        entry=entry_to_response(entry, adjustment.index),
    )


@router.delete("/{member_id}/payment-history/{index}", response_model=PaymentEnvelope)
async def delete_payment(
    member_id: str,
    index: int,
    note: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """
    Delete a payment. Its allocations are reversed and a compensating
    adjustment entry is returned.
    """
    member = await get_member_or_404(db, member_id, lock=True)
    compensating = delete_history_entry(member, index, actor_from_user(current_user), note=note)
    await db.flush()
    return PaymentEnvelope(
        message="Payment deleted",
        member=member_to_detail(member),
        entry=entry_to_response(compensating, len(member.payment_history) - 1),
    )


@router.put("/{member_id}/payment-history/{index}/status", response_model=PaymentEnvelope)
async def update_payment_status(
    member_id: str,
    index: int,
    status_data: PaymentEntryStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Set the recorded status or promise date of a history entry."""
    member = await get_member_or_404(db, member_id, lock=True)
    entry = update_history_entry_status(
        member,
        index,
        actor_from_user(current_user),
        payment_status=status_data.payment_status,
        promise_date=status_data.promise_date,
        clear_promise=status_data.clear_promise,
    )
    await db.flush()
    return PaymentEnvelope(
        message="Payment status updated",
        member=member_to_detail(member),
        entry=entry_to_response(entry, index),
    )


@router.post("/{member_id}/status", response_model=MemberEnvelope)
async def change_status(
    member_id: str,
    status_data: MemberStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Deactivate, resume, or reactivate a member with a fresh cycle."""
    member = await get_member_or_404(db, member_id, lock=True)
    set_member_status(
        member,
        status_data.member_status,
        actor_from_user(current_user),
        fresh_cycle=status_data.fresh_cycle,
        forgive_dues=status_data.forgive_dues,
        start_date=status_data.start_date,
        fee=status_data.fee,
        duration=status_data.duration,
    )
    return await _member_envelope(db, member, "Member status updated")


@router.post("/{member_id}/restart", response_model=MemberEnvelope)
async def restart(
    member_id: str,
    restart_data: MembershipRestart,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Start a new cycle, optionally waiving old dues."""
    member = await get_member_or_404(db, member_id, lock=True)
    restart_membership(
        member,
        actor_from_user(current_user),
        start_date=restart_data.start_date,
        fee=restart_data.fee,
        duration=restart_data.duration,
        forgive_dues=restart_data.forgive_dues,
    )
    return await _member_envelope(db, member, "Membership restarted")


@router.post("/{member_id}/extend", response_model=MemberEnvelope)
async def extend(
    member_id: str,
    extend_data: CycleExtend,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Push the current cycle's end date forward by a number of days."""
    member = await get_member_or_404(db, member_id, lock=True)
    extend_current_cycle(member, extend_data.days, actor_from_user(current_user), note=extend_data.note)
    return await _member_envelope(db, member, "Cycle extended")
