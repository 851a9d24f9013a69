"""
Membership lifecycle: opening, status changes, restart and extension.

State machine over MemberStatus:

    Active   -> Inactive   remember inactive_since, cycles untouched
    Inactive -> Active     resume: push the current cycle's end date by
                           the paused time
    Inactive -> Active     fresh cycle: optionally waive old dues and
                           start a new cycle (same as restart)

Every transition logs an activity entry and re-syncs the summary.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional, Tuple, Union

from app.core.exceptions import InvalidOperationError, ValidationError
from app.models.member import Member, MemberStatus, PaymentStatus, ReminderStatus
from app.models.payment_cycle import PaymentCycle
from app.models.payment_entry import EntryType, PaymentEntry
from app.services.billing.allocation import apply_to_cycles
from app.services.billing.cycles import build_cycle, current_cycle, ensure_cycles, refresh_cycle
from app.services.billing.dates import as_date, parse_date, utcnow
from app.services.billing.durations import cycle_months_for, normalize_duration
from app.services.billing.ledger import append_history_entry, record_activity, record_cycle_payment
from app.services.billing.summary import refresh_reminder_state, sync_summary
from app.services.billing.types import Actor, ZERO, to_money

logger = logging.getLogger(__name__)


def open_membership(
    member: Member,
    actor: Actor,
    at: Optional[datetime] = None,
    initial_payment: Union[Decimal, int, float, str] = ZERO,
    requested_status: Optional[PaymentStatus] = None,
    note: Optional[str] = None,
    payment_mode: Optional[str] = None
) -> Optional[PaymentEntry]:
    """
    Seed the first cycle of a newly registered member and book the amount
    paid at registration (FIFO, no promise required).
    """
    at = at or utcnow()
    initial_payment = to_money(initial_payment, "paid_amount")
    if initial_payment < 0:
        raise ValidationError("paid_amount cannot be negative")

    ensure_cycles(member, at.date())
    entry = None
    if initial_payment > 0:
        result = apply_to_cycles(member, initial_payment, actor, note, at)
        sync_summary(member, requested_status)
        entry = append_history_entry(
            member,
            amount=initial_payment,
            entry_type=EntryType.PAYMENT,
            actor=actor,
            at=at,
            allocations=result.allocations,
            unapplied_amount=initial_payment - result.applied,
            note=note,
            payment_mode=payment_mode,
        )
    sync_summary(member, requested_status)
    refresh_reminder_state(member)

    member.created_by_id = actor.id
    member.created_by_name = actor.name
    record_activity(member, "create", actor, at, {
        "fee": member.fee,
        "duration": member.duration,
        "start_date": member.start_date,
        "paid_amount": member.paid_amount,
        "remaining_amount": member.remaining_amount,
        "payment_status": member.payment_status,
    })
    return entry


def _forgive_dues(member: Member, actor: Actor, at: datetime) -> Decimal:
    """
    Waive every outstanding balance by lowering the cycle fee to what was
    paid. Open promises on the history are dropped with it.
    """
    waived_total = ZERO
    for cycle in member.payment_cycles:
        waived = to_money(cycle.remaining_amount)
        if waived <= 0:
            continue
        cycle.fee = to_money(cycle.paid_amount)
        refresh_cycle(cycle)
        record_cycle_payment(cycle, waived, EntryType.ADJUSTMENT, actor, at, "Dues waived")
        waived_total += waived
    # Promises were made against the waived balance
    for entry in member.payment_history:
        entry.promise_date = None
    return waived_total


def _start_fresh_cycle(
    member: Member,
    actor: Actor,
    at: datetime,
    start_date: Optional[Any] = None,
    fee: Optional[Any] = None,
    duration: Optional[Any] = None,
    forgive_dues: bool = True
) -> Tuple[PaymentCycle, Decimal]:
    # Validate everything before the first mutation
    start = parse_date(start_date, "start_date") if start_date else at.date()
    latest = current_cycle(member)
    if latest is not None and start < latest.start_date:
        raise InvalidOperationError(
            f"New cycle cannot start before the current cycle ({latest.start_date.isoformat()})"
        )
    new_duration = normalize_duration(duration, allow_empty=True)
    new_fee = to_money(fee, "fee") if fee is not None else None
    if new_fee is not None and new_fee < 0:
        raise ValidationError("fee cannot be negative")

    if new_duration is not None:
        member.duration = new_duration
    if new_fee is not None:
        member.fee = new_fee

    waived = _forgive_dues(member, actor, at) if forgive_dues else ZERO
    cycle = build_cycle(start, cycle_months_for(member.duration), member.fee)
    member.payment_cycles.append(cycle)

    member.start_date = start
    member.member_status = MemberStatus.ACTIVE
    member.inactive_since = None
    member.reminder_status = ReminderStatus.NONE
    member.promised_payment_date = None
    return cycle, waived


def restart_membership(
    member: Member,
    actor: Actor,
    at: Optional[datetime] = None,
    start_date: Optional[Any] = None,
    fee: Optional[Any] = None,
    duration: Optional[Any] = None,
    forgive_dues: bool = True
) -> PaymentCycle:
    """Append a brand-new cycle and make the member Active."""
    at = at or utcnow()
    ensure_cycles(member, at.date())
    before = {
        "member_status": member.member_status,
        "start_date": member.start_date,
        "fee": member.fee,
        "duration": member.duration,
        "remaining_amount": member.remaining_amount,
    }
    cycle, waived = _start_fresh_cycle(
        member, actor, at, start_date=start_date, fee=fee, duration=duration,
        forgive_dues=forgive_dues
    )
    sync_summary(member)
    refresh_reminder_state(member)

    after = {
        "member_status": member.member_status,
        "start_date": member.start_date,
        "fee": member.fee,
        "duration": member.duration,
        "remaining_amount": member.remaining_amount,
    }
    record_activity(member, "restart", actor, at, {
        **{k: {"from": before[k], "to": after[k]} for k in before if before[k] != after[k]},
        "forgive_dues": forgive_dues,
        "waived_amount": waived,
    })
    logger.info("Restarted member %s with a cycle from %s", member.id, cycle.start_date)
    return cycle


def set_member_status(
    member: Member,
    new_status: Union[MemberStatus, str],
    actor: Actor,
    at: Optional[datetime] = None,
    fresh_cycle: bool = False,
    forgive_dues: bool = True,
    start_date: Optional[Any] = None,
    fee: Optional[Any] = None,
    duration: Optional[Any] = None
) -> Member:
    """Move a member between Active and Inactive."""
    try:
        target = MemberStatus(new_status)
    except ValueError:
        raise ValidationError(
            f"Invalid member status {new_status!r}. "
            f"Allowed values: {', '.join(s.value for s in MemberStatus)}"
        )
    at = at or utcnow()
    ensure_cycles(member, at.date())

    previous = member.member_status
    if target == previous and not (target == MemberStatus.ACTIVE and fresh_cycle):
        return member

    changes: dict = {"member_status": {"from": previous, "to": target}}

    if target == MemberStatus.INACTIVE:
        member.member_status = MemberStatus.INACTIVE
        member.inactive_since = at
        changes["inactive_since"] = at
    elif fresh_cycle:
        cycle, waived = _start_fresh_cycle(
            member, actor, at, start_date=start_date, fee=fee, duration=duration,
            forgive_dues=forgive_dues
        )
        changes.update({
            "fresh_cycle": True,
            "forgive_dues": forgive_dues,
            "waived_amount": waived,
            "cycle_start": cycle.start_date,
        })
    else:
        cycle = current_cycle(member)
        paused_since = as_date(member.inactive_since)
        if paused_since is not None and cycle is not None:
            paused = at.date() - paused_since
            if paused.days > 0:
                old_end = cycle.end_date
                cycle.end_date = old_end + paused
                changes["end_date"] = {"from": old_end, "to": cycle.end_date}
                changes["paused_days"] = paused.days
        member.member_status = MemberStatus.ACTIVE
        member.inactive_since = None

    sync_summary(member)
    refresh_reminder_state(member)
    record_activity(member, "status", actor, at, changes)
    logger.info("Member %s status %s -> %s", member.id, previous.value if previous else None, target.value)
    return member


def extend_current_cycle(
    member: Member,
    days: int,
    actor: Actor,
    at: Optional[datetime] = None,
    note: Optional[str] = None
) -> PaymentCycle:
    """Goodwill extension: move the current cycle's end date forward."""
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise ValidationError("days must be a positive whole number")
    at = at or utcnow()
    ensure_cycles(member, at.date())

    cycle = current_cycle(member)
    old_end = cycle.end_date
    cycle.end_date = old_end + timedelta(days=days)

    sync_summary(member)
    record_activity(member, "extend", actor, at, {
        "end_date": {"from": old_end, "to": cycle.end_date},
        "days": days,
        "note": note,
    })
    return cycle
