"""
Payment allocation.

Incoming money is spread over the cycle chain oldest first (FIFO), or put
on one specific cycle when the payment is tagged with a month. Every piece
that lands on a cycle is returned as an Allocation; the list is stored on
the history entry and is the key for later adjustment or reversal.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from app.core.exceptions import CycleLimitExceededError, InvalidOperationError, ValidationError
from app.models.member import Member, ReminderStatus
from app.models.payment_cycle import PaymentCycle
from app.models.payment_entry import EntryType, PaymentEntry
from app.services.billing.cycles import (
    MonthPolicy,
    current_cycle,
    ensure_cycle_for_month,
    ensure_cycles,
    refresh_cycle,
)
from app.services.billing.dates import month_label, parse_date, parse_month_label, utcnow
from app.services.billing.ledger import append_history_entry, record_activity, record_cycle_payment
from app.services.billing.summary import refresh_reminder_state, sync_summary
from app.services.billing.types import Actor, Allocation, AllocationResult, ZERO, to_money

logger = logging.getLogger(__name__)


def _fund_cycle(
    cycle: PaymentCycle,
    cycle_index: int,
    amount: Decimal,
    entry_type: EntryType,
    actor: Actor,
    at: datetime,
    note: Optional[str]
) -> Allocation:
    cycle.paid_amount = to_money(cycle.paid_amount) + amount
    refresh_cycle(cycle)
    record_cycle_payment(cycle, amount, entry_type, actor, at, note)
    return Allocation(
        start_date=cycle.start_date, end_date=cycle.end_date, amount=amount, cycle_index=cycle_index
    )


def apply_to_cycles(
    member: Member,
    amount: Union[Decimal, int, float, str],
    actor: Actor,
    note: Optional[str] = None,
    at: Optional[datetime] = None,
    entry_type: EntryType = EntryType.PAYMENT
) -> AllocationResult:
    """
    Fill cycles oldest to newest, skipping paid ones.

    `applied` is less than `amount` when the chain runs out of balance;
    the caller records the rest as unapplied.
    """
    amount = to_money(amount)
    at = at or utcnow()
    result = AllocationResult()
    if amount <= 0:
        return result

    left = amount
    for cycle_index, cycle in enumerate(member.payment_cycles):
        if left <= 0:
            break
        if cycle.remaining_amount <= 0:
            continue
        portion = min(left, to_money(cycle.remaining_amount))
        result.allocations.append(_fund_cycle(cycle, cycle_index, portion, entry_type, actor, at, note))
        left -= portion

    result.applied = amount - left
    logger.debug(
        "Allocated %s of %s across %d cycle(s) for member %s",
        result.applied, amount, len(result.allocations), member.id
    )
    return result


def apply_to_single_cycle(
    member: Member,
    cycle_index: int,
    amount: Union[Decimal, int, float, str],
    actor: Actor,
    note: Optional[str] = None,
    at: Optional[datetime] = None,
    entry_type: EntryType = EntryType.PAYMENT
) -> AllocationResult:
    """Pay one cycle only, capped at its remaining balance. No spill-over."""
    if cycle_index < 0 or cycle_index >= len(member.payment_cycles):
        raise InvalidOperationError(f"Cycle {cycle_index} does not exist")
    amount = to_money(amount)
    at = at or utcnow()
    result = AllocationResult()
    if amount <= 0:
        return result

    cycle = member.payment_cycles[cycle_index]
    portion = min(amount, to_money(cycle.remaining_amount))
    if portion > 0:
        result.allocations.append(_fund_cycle(cycle, cycle_index, portion, entry_type, actor, at, note))
    result.applied = portion
    return result


def record_payment(
    member: Member,
    amount: Union[Decimal, int, float, str],
    actor: Actor,
    at: Optional[datetime] = None,
    payment_month: Optional[Union[str, date]] = None,
    payment_mode: Optional[str] = None,
    note: Optional[str] = None,
    promise_date: Optional[Union[str, date]] = None,
    require_promise: bool = False,
    policy: MonthPolicy = MonthPolicy.CYCLE_WINDOW,
    max_new_cycles: int = 240
) -> PaymentEntry:
    """
    Take a payment and write it to the ledger.

    With `payment_month` the money goes to that month's cycle only (the
    chain is extended forward if needed); otherwise it is spread FIFO.
    A payment smaller than what it was meant to settle is partial; it may
    carry a promise_date for the rest, and must when `require_promise`.
    """
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than 0")
    at = at or utcnow()

    promise = parse_date(promise_date, "promise_date") if promise_date else None
    if promise is not None and promise < at.date():
        raise ValidationError("promise_date cannot be before the payment date")

    month_text = None
    if payment_month:
        month = payment_month if isinstance(payment_month, date) else parse_month_label(payment_month)
        month_text = month_label(month)

    ensure_cycles(member, at.date())
    if month_text is not None:
        cycle_index = ensure_cycle_for_month(member, month_text, policy, max_new_cycles)
        outstanding = to_money(member.payment_cycles[cycle_index].remaining_amount)
    else:
        cycle_index = None
        outstanding = sum((to_money(c.remaining_amount) for c in member.payment_cycles), ZERO)

    is_partial = amount < outstanding
    if is_partial and promise is None and require_promise:
        raise ValidationError(
            f"Partial payment of {amount} against {outstanding} due requires a promise_date"
        )
    if not is_partial:
        promise = None

    if cycle_index is not None:
        result = apply_to_single_cycle(member, cycle_index, amount, actor, note, at)
    else:
        result = apply_to_cycles(member, amount, actor, note, at)

    sync_summary(member)
    entry = append_history_entry(
        member,
        amount=amount,
        entry_type=EntryType.PAYMENT,
        actor=actor,
        at=at,
        allocations=result.allocations,
        unapplied_amount=amount - result.applied,
        note=note,
        payment_month=month_text,
        payment_mode=payment_mode,
        promise_date=promise,
    )
    if promise is not None:
        member.reminder_status = ReminderStatus.PROMISED
        member.promised_payment_date = promise
    refresh_reminder_state(member)
    record_activity(member, "payment", actor, at, {
        "amount": amount,
        "payment_month": month_text,
        "payment_mode": payment_mode,
        "promise_date": promise,
    })

    logger.info(
        "Payment of %s recorded for member %s (applied %s, unapplied %s)",
        amount, member.id, result.applied, entry.unapplied_amount
    )
    return entry


def apply_manual_adjustment(
    member: Member,
    amount: Union[Decimal, int, float, str],
    actor: Actor,
    at: Optional[datetime] = None,
    note: Optional[str] = None
) -> PaymentEntry:
    """
    Adjustment not tied to a history entry.

    Positive amounts go through the FIFO allocator. Negative amounts only
    reduce the current cycle's paid amount.
    """
    amount = to_money(amount, "adjustment_amount")
    if amount == 0:
        raise ValidationError("Adjustment amount must not be 0")
    at = at or utcnow()
    ensure_cycles(member, at.date())

    if amount > 0:
        result = apply_to_cycles(member, amount, actor, note, at, EntryType.ADJUSTMENT)
        allocations = result.allocations
        unapplied = amount - result.applied
    else:
        cycle = current_cycle(member)
        reduction = -amount
        if reduction > to_money(cycle.paid_amount):
            raise CycleLimitExceededError(
                f"Cannot reduce the current cycle by {reduction}; only {cycle.paid_amount} is paid"
            )
        cycle.paid_amount = to_money(cycle.paid_amount) - reduction
        refresh_cycle(cycle)
        record_cycle_payment(cycle, amount, EntryType.ADJUSTMENT, actor, at, note)
        allocations = [Allocation(
            start_date=cycle.start_date,
            end_date=cycle.end_date,
            amount=amount,
            cycle_index=len(member.payment_cycles) - 1,
        )]
        unapplied = ZERO

    sync_summary(member)
    entry = append_history_entry(
        member,
        amount=amount,
        entry_type=EntryType.ADJUSTMENT,
        actor=actor,
        at=at,
        allocations=allocations,
        unapplied_amount=unapplied,
        note=note,
    )
    refresh_reminder_state(member)
    return entry
