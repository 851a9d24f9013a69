"""
Low-level ledger writes: per-cycle payment records, history entries and
activity entries.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from fastapi.encoders import jsonable_encoder

from app.models.member import Member
from app.models.member_activity import MemberActivity
from app.models.payment_cycle import PaymentCycle
from app.models.payment_entry import EntryType, PaymentEntry
from app.services.billing.types import Actor, Allocation, ZERO


def record_cycle_payment(
    cycle: PaymentCycle,
    amount: Decimal,
    entry_type: EntryType,
    actor: Actor,
    at: datetime,
    note: Optional[str] = None
) -> dict:
    """Append a low-level allocation record to cycle.payments."""
    record = {
        "amount": str(amount),
        "type": EntryType(entry_type).value,
        "by": actor.as_dict(),
        "at": at.isoformat(),
        "note": note,
    }
    # Reassign so the JSON column is flagged dirty
    cycle.payments = [*(cycle.payments or []), record]
    return record


def append_history_entry(
    member: Member,
    amount: Decimal,
    entry_type: EntryType,
    actor: Actor,
    at: datetime,
    allocations: Iterable[Allocation] = (),
    unapplied_amount: Decimal = ZERO,
    note: Optional[str] = None,
    payment_month: Optional[str] = None,
    payment_mode: Optional[str] = None,
    promise_date: Optional[date] = None
) -> PaymentEntry:
    """Append a payment history entry snapshotting the member summary."""
    entry = PaymentEntry(
        amount=amount,
        unapplied_amount=unapplied_amount,
        type=entry_type,
        fee=member.fee,
        paid_amount=member.paid_amount,
        remaining_amount=member.remaining_amount,
        payment_status=member.payment_status,
        by_id=actor.id,
        by_name=actor.name,
        at=at,
        note=note,
        payment_month=payment_month,
        payment_mode=payment_mode,
        promise_date=promise_date,
        allocations=[a.as_dict() for a in allocations],
    )
    member.payment_history.append(entry)
    return entry


def record_activity(
    member: Member,
    action: str,
    actor: Actor,
    at: datetime,
    changes: Optional[Any] = None
) -> MemberActivity:
    """Append an audit entry to member.activity_history."""
    activity = MemberActivity(
        action=action,
        by_id=actor.id,
        by_name=actor.name,
        at=at,
        changes=jsonable_encoder(changes) if changes is not None else None,
    )
    member.activity_history.append(activity)
    member.updated_by_id = actor.id
    member.updated_by_name = actor.name
    return activity
