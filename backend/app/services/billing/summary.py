"""
Member summary fields and due-now figures derived from the cycle chain.
"""
from datetime import date
from decimal import Decimal
from typing import Optional

from app.models.member import Member, MemberStatus, PaymentStatus, ReminderStatus
from app.services.billing.cycles import current_cycle, refresh_cycle
from app.services.billing.dates import add_months
from app.services.billing.durations import cycle_months_for
from app.services.billing.types import ZERO, to_money


def derive_payment_status(
    fee: Decimal,
    remaining: Decimal,
    free_trial: bool = False
) -> PaymentStatus:
    """Free Trial only when asked for and the fee is 0."""
    if free_trial and to_money(fee) == 0:
        return PaymentStatus.FREE_TRIAL
    return PaymentStatus.PAID if remaining <= 0 else PaymentStatus.PENDING


def sync_summary(member: Member, requested_status: Optional[PaymentStatus] = None) -> Member:
    """
    Recompute paid_amount, remaining_amount and payment_status.

    paid_amount mirrors the current cycle, remaining_amount is the sum over
    all cycles. A member keeps "Free Trial" while the fee stays 0.
    """
    cycles = member.payment_cycles
    for cycle in cycles:
        refresh_cycle(cycle)

    current = current_cycle(member)
    member.paid_amount = current.paid_amount if current is not None else ZERO
    member.remaining_amount = sum((c.remaining_amount for c in cycles), ZERO)

    if requested_status is not None:
        free_trial = PaymentStatus(requested_status) == PaymentStatus.FREE_TRIAL
    else:
        free_trial = member.payment_status == PaymentStatus.FREE_TRIAL
    member.payment_status = derive_payment_status(member.fee, member.remaining_amount, free_trial)
    return member


def overdue_cycle_count(member: Member, today: Optional[date] = None) -> int:
    """
    Whole cycle lengths elapsed since the current cycle ended.

    Only Active members accrue. A cycle ending 2024-02-01 with one-month
    cycles has 0 overdue cycles on 2024-02-20 and 1 on 2024-03-01.
    """
    today = today or date.today()
    if member.member_status != MemberStatus.ACTIVE:
        return 0
    cycle = current_cycle(member)
    if cycle is None or cycle.end_date is None or cycle.end_date > today:
        return 0

    months = cycle.cycle_months or cycle_months_for(member.duration)
    count = 0
    # Anchored on end_date so month-end clamping does not drift
    while add_months(cycle.end_date, months * (count + 1)) <= today:
        count += 1
    return count


def due_now_amount(member: Member, today: Optional[date] = None) -> Decimal:
    """Outstanding balance plus elapsed, not yet materialized cycles."""
    remaining = sum((to_money(c.remaining_amount) for c in member.payment_cycles), ZERO)
    if member.member_status != MemberStatus.ACTIVE:
        return remaining
    cycle = current_cycle(member)
    if cycle is None:
        return remaining
    return remaining + overdue_cycle_count(member, today) * to_money(cycle.fee)


def refresh_reminder_state(member: Member) -> Member:
    """Keep reminder_status/promised_payment_date in line with the ledger."""
    if to_money(member.remaining_amount) <= 0:
        member.reminder_status = ReminderStatus.NONE
        member.promised_payment_date = None
        return member

    for entry in reversed(member.payment_history):
        if entry.payment_status == PaymentStatus.PENDING and entry.promise_date is not None:
            member.reminder_status = ReminderStatus.PROMISED
            member.promised_payment_date = entry.promise_date
            return member

    member.reminder_status = ReminderStatus.NONE
    member.promised_payment_date = None
    return member
