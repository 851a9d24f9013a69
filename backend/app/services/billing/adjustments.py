"""
Adjusting and reversing recorded payments.

A history entry only knows the cycles it touched through its
`allocations`. Changing its amount moves money on exactly those cycles,
in the order they were funded. The whole change is planned first and only
applied when it fits, so a failed adjustment leaves the member untouched.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from app.core.exceptions import (
    CycleLimitExceededError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from app.models.member import Member, PaymentStatus
from app.models.payment_cycle import PaymentCycle
from app.models.payment_entry import EntryType, PaymentEntry
from app.services.billing.cycles import refresh_cycle
from app.services.billing.dates import parse_date, utcnow
from app.services.billing.ledger import append_history_entry, record_activity, record_cycle_payment
from app.services.billing.summary import refresh_reminder_state, sync_summary
from app.services.billing.types import Actor, Allocation, ZERO, to_money

logger = logging.getLogger(__name__)


def get_history_entry(member: Member, index: int) -> PaymentEntry:
    if index < 0 or index >= len(member.payment_history):
        raise NotFoundError(f"Payment history entry {index} not found")
    return member.payment_history[index]


def _cycle_for_allocation(member: Member, allocation: Allocation) -> PaymentCycle:
    index = allocation.cycle_index
    if index is not None and 0 <= index < len(member.payment_cycles):
        cycle = member.payment_cycles[index]
        if cycle.start_date == allocation.start_date:
            return cycle

    # End dates move on resume/extend, so fall back to the start date alone
    by_start = None
    for cycle in reversed(member.payment_cycles):
        if cycle.start_date != allocation.start_date:
            continue
        if cycle.end_date == allocation.end_date:
            return cycle
        if by_start is None:
            by_start = cycle
    if by_start is None:
        raise InvalidOperationError(
            f"No cycle starting {allocation.start_date.isoformat()} for this payment"
        )
    return by_start


def _plan_delta(
    member: Member,
    entry: PaymentEntry,
    allocations: List[Allocation],
    delta: Decimal
) -> Tuple[List[Tuple[int, PaymentCycle, Decimal]], Decimal]:
    """
    Work out per-cycle changes for `delta` without touching anything.

    Returns ([(allocation index, cycle, signed change)], unapplied change).
    """
    plan: List[Tuple[int, PaymentCycle, Decimal]] = []
    unapplied_change = ZERO

    if delta > 0:
        left = delta
        for i, allocation in enumerate(allocations):
            if left <= 0:
                break
            cycle = _cycle_for_allocation(member, allocation)
            portion = min(left, to_money(cycle.remaining_amount))
            if portion > 0:
                plan.append((i, cycle, portion))
                left -= portion
        if left > 0:
            raise CycleLimitExceededError(
                f"Cannot add {delta}: the cycles funded by this payment only have "
                f"{delta - left} outstanding"
            )
        return plan, unapplied_change

    left = -delta
    # Money that never reached a cycle goes first
    from_unapplied = min(left, to_money(entry.unapplied_amount))
    unapplied_change = -from_unapplied
    left -= from_unapplied
    for i, allocation in enumerate(allocations):
        if left <= 0:
            break
        cycle = _cycle_for_allocation(member, allocation)
        portion = min(left, allocation.amount, to_money(cycle.paid_amount))
        if portion > 0:
            plan.append((i, cycle, -portion))
            left -= portion
    if left > 0:
        raise CycleLimitExceededError(
            f"Cannot reduce by {-delta}: only {-delta - left} of this payment is still applied"
        )
    return plan, unapplied_change


def adjust_history_entry(
    member: Member,
    index: int,
    new_amount: Union[Decimal, int, float, str],
    actor: Actor,
    note: Optional[str] = None,
    at: Optional[datetime] = None,
    log_activity: bool = True
) -> PaymentEntry:
    """
    Change the recorded amount of a payment entry.

    The difference is topped up on, or pulled back from, the cycles listed
    in the entry's allocations. Raises CycleLimitExceededError when it does
    not fit; nothing is modified in that case.
    """
    entry = get_history_entry(member, index)
    if entry.type != EntryType.PAYMENT:
        raise InvalidOperationError("Only payment entries can be adjusted")
    new_amount = to_money(new_amount)
    if new_amount < 0:
        raise ValidationError("Adjusted amount cannot be negative")
    at = at or utcnow()

    old_amount = to_money(entry.amount)
    delta = new_amount - old_amount
    if delta == 0:
        return entry

    allocations = [Allocation.from_dict(a) for a in (entry.allocations or [])]
    plan, unapplied_change = _plan_delta(member, entry, allocations, delta)

    adjustment_note = note or f"Payment adjusted from {old_amount} to {new_amount}"
    for i, cycle, change in plan:
        cycle.paid_amount = to_money(cycle.paid_amount) + change
        refresh_cycle(cycle)
        record_cycle_payment(cycle, change, EntryType.ADJUSTMENT, actor, at, adjustment_note)
        allocations[i].amount += change

    entry.allocations = [a.as_dict() for a in allocations]
    entry.unapplied_amount = to_money(entry.unapplied_amount) + unapplied_change
    entry.amount = new_amount
    if note:
        entry.note = note

    sync_summary(member)
    refresh_reminder_state(member)
    if log_activity:
        record_activity(member, "payment_adjust", actor, at, {
            "index": index,
            "amount": {"from": old_amount, "to": new_amount},
            "note": note,
        })
    logger.info(
        "Adjusted payment %d of member %s from %s to %s", index, member.id, old_amount, new_amount
    )
    return entry


def delete_history_entry(
    member: Member,
    index: int,
    actor: Actor,
    note: Optional[str] = None,
    at: Optional[datetime] = None
) -> PaymentEntry:
    """
    Reverse a payment, drop it from the history and append the
    compensating adjustment entry, which is returned.
    """
    entry = get_history_entry(member, index)
    if entry.type != EntryType.PAYMENT:
        raise InvalidOperationError("Only payment entries can be deleted")
    at = at or utcnow()

    original_amount = to_money(entry.amount)
    reversed_allocations = [
        Allocation(
            start_date=a.start_date, end_date=a.end_date, amount=-a.amount, cycle_index=a.cycle_index
        )
        for a in (Allocation.from_dict(d) for d in (entry.allocations or []))
        if a.amount != 0
    ]
    recorded_at = entry.at

    adjust_history_entry(
        member, index, ZERO, actor,
        note="Reversed before deletion", at=at, log_activity=False
    )
    member.payment_history.remove(entry)
    sync_summary(member)

    reversal_note = note or f"Reversal of payment of {original_amount} recorded {recorded_at:%Y-%m-%d}"
    compensating = append_history_entry(
        member,
        amount=-original_amount,
        entry_type=EntryType.ADJUSTMENT,
        actor=actor,
        at=at,
        allocations=reversed_allocations,
        note=reversal_note,
        payment_month=entry.payment_month,
        payment_mode=entry.payment_mode,
    )
    refresh_reminder_state(member)
    record_activity(member, "payment_delete", actor, at, {
        "index": index,
        "amount": original_amount,
        "payment_month": entry.payment_month,
    })
    logger.info("Deleted payment %d (%s) of member %s", index, original_amount, member.id)
    return compensating


def update_history_entry_status(
    member: Member,
    index: int,
    actor: Actor,
    payment_status: Optional[Union[PaymentStatus, str]] = None,
    promise_date: Optional[Union[date, str]] = None,
    clear_promise: bool = False,
    at: Optional[datetime] = None
) -> PaymentEntry:
    """
    Change the recorded status or promise date of a history entry, then
    re-derive the member's reminder state from the ledger.
    """
    entry = get_history_entry(member, index)
    at = at or utcnow()

    new_status = None
    if payment_status is not None:
        try:
            new_status = PaymentStatus(payment_status)
        except ValueError:
            raise ValidationError(
                f"Invalid payment status {payment_status!r}. "
                f"Allowed values: {', '.join(s.value for s in PaymentStatus)}"
            )
    new_promise = parse_date(promise_date, "promise_date") if promise_date else None
    if new_promise is not None and new_promise < entry.at.date():
        raise ValidationError("promise_date cannot be before the payment date")

    changes = {}
    if new_status is not None and new_status != entry.payment_status:
        changes["payment_status"] = {"from": entry.payment_status, "to": new_status}
        entry.payment_status = new_status
    if clear_promise and entry.promise_date is not None:
        changes["promise_date"] = {"from": entry.promise_date, "to": None}
        entry.promise_date = None
    elif new_promise is not None and new_promise != entry.promise_date:
        changes["promise_date"] = {"from": entry.promise_date, "to": new_promise}
        entry.promise_date = new_promise

    refresh_reminder_state(member)
    if changes:
        record_activity(member, "payment_status", actor, at, {"index": index, **changes})
    return entry
