"""
Cycle construction and lookup.

Cycles are created lazily: ensure_cycles() seeds the first one, and the
chain only grows when a payment targets a later month
(ensure_cycle_for_month) or the membership is restarted. Nothing advances
the chain just because time passed; see summary.overdue_cycle_count for
how elapsed periods are surfaced instead.
"""
import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from app.core.exceptions import InvalidOperationError, OutOfRangeError
from app.models.member import Member, PaymentStatus
from app.models.payment_cycle import PaymentCycle
from app.services.billing.dates import add_months, month_label, month_start, parse_month_label
from app.services.billing.durations import cycle_months_for
from app.services.billing.types import ZERO, to_money

logger = logging.getLogger(__name__)


class MonthPolicy(str, Enum):
    """How a payment month is matched to a cycle."""
    CYCLE_WINDOW = "cycle_window"
    CALENDAR_MONTH = "calendar_month"


def refresh_cycle(cycle: PaymentCycle) -> PaymentCycle:
    """Recompute remaining_amount and status from fee and paid_amount."""
    fee = to_money(cycle.fee)
    paid = to_money(cycle.paid_amount)
    remaining = fee - paid
    cycle.fee = fee
    cycle.paid_amount = paid
    cycle.remaining_amount = remaining if remaining > 0 else ZERO
    cycle.status = PaymentStatus.PAID if cycle.remaining_amount == 0 else PaymentStatus.PENDING
    return cycle


def build_cycle(start: date, months: int, fee: Union[Decimal, int, float, str]) -> PaymentCycle:
    """New unpaid cycle covering [start, start + months)."""
    fee = to_money(fee)
    cycle = PaymentCycle(
        start_date=start,
        end_date=add_months(start, months),
        cycle_months=months,
        fee=fee,
        paid_amount=ZERO,
        remaining_amount=fee,
        status=PaymentStatus.PENDING,
        payments=[],
    )
    return refresh_cycle(cycle)


def current_cycle(member: Member) -> Optional[PaymentCycle]:
    cycles = member.payment_cycles
    return cycles[-1] if cycles else None


def ensure_cycles(member: Member, today: Optional[date] = None) -> bool:
    """
    Make sure the member has at least one cycle.

    Returns True if anything was created or filled in. Calling it again
    right after is a no-op.
    """
    if not member.payment_cycles:
        start = member.start_date or today or date.today()
        months = cycle_months_for(member.duration)
        member.payment_cycles.append(build_cycle(start, months, member.fee))
        logger.debug("Seeded first cycle for member %s from %s", member.id, start)
        return True

    last = member.payment_cycles[-1]
    if last.end_date is None:
        months = last.cycle_months or cycle_months_for(member.duration)
        last.end_date = add_months(last.start_date, months)
        return True
    return False


def append_next_cycle(member: Member) -> PaymentCycle:
    """Append the cycle that starts where the current one ends."""
    last = current_cycle(member)
    if last is None:
        raise InvalidOperationError("Member has no cycle to continue from")
    cycle = build_cycle(last.end_date, cycle_months_for(member.duration), member.fee)
    member.payment_cycles.append(cycle)
    logger.debug(
        "Appended cycle %s..%s for member %s", cycle.start_date, cycle.end_date, member.id
    )
    return cycle


def cycle_covers(cycle: PaymentCycle, month: date, policy: MonthPolicy) -> bool:
    """
    Whether `cycle` is the cycle for the month starting at `month`.

    cycle_window compares whole months: a cycle running Jan 15 - Feb 15
    covers January, the next one (Feb 15 - Mar 15) covers February.
    """
    if policy == MonthPolicy.CALENDAR_MONTH:
        return month_start(cycle.start_date) == month
    return month_start(cycle.start_date) <= month < month_start(cycle.end_date)


def find_cycle_index_for_month(
    member: Member,
    month: date,
    policy: MonthPolicy = MonthPolicy.CYCLE_WINDOW
) -> Optional[int]:
    """Index of the latest cycle covering `month`, or None."""
    month = month_start(month)
    for index in range(len(member.payment_cycles) - 1, -1, -1):
        if cycle_covers(member.payment_cycles[index], month, policy):
            return index
    return None


def ensure_cycle_for_month(
    member: Member,
    payment_month: Union[str, date],
    policy: MonthPolicy = MonthPolicy.CYCLE_WINDOW,
    max_new_cycles: int = 240
) -> int:
    """
    Find, or create by extending the chain one cycle at a time, the cycle
    for a payment month. Returns its index in member.payment_cycles.
    """
    if isinstance(payment_month, date):
        month = month_start(payment_month)
        label = month_label(month)
    else:
        month = parse_month_label(payment_month)
        label = month_label(month)
    policy = MonthPolicy(policy)

    ensure_cycles(member)
    first = member.payment_cycles[0]
    if month < month_start(first.start_date):
        raise OutOfRangeError(
            f"{label} is before the member's first cycle ({month_label(first.start_date)})"
        )

    index = find_cycle_index_for_month(member, month, policy)
    if index is not None:
        return index

    created = 0
    while month_start(current_cycle(member).end_date) <= month:
        if created >= max_new_cycles:
            raise OutOfRangeError(f"{label} is too far ahead of the member's current cycle")
        cycle = append_next_cycle(member)
        created += 1
        if cycle_covers(cycle, month, policy):
            return len(member.payment_cycles) - 1

    raise OutOfRangeError(f"No cycle of this membership covers {label}")


def reseed_first_cycle(member: Member, dates_changed: bool) -> bool:
    """
    Rebuild the only cycle from the member's current plan fields.

    Used when start date, duration or fee are corrected right after
    registration. Dates can only move while the cycle has no payments;
    the fee can change as long as it stays >= the amount already paid.
    Returns False, changing nothing, once the chain has grown past one cycle.
    """
    if len(member.payment_cycles) != 1:
        return False
    cycle = member.payment_cycles[0]
    fee = to_money(member.fee)
    if fee < to_money(cycle.paid_amount):
        raise InvalidOperationError(
            f"Fee {fee} is lower than the {cycle.paid_amount} already paid for the current cycle"
        )
    if dates_changed and not cycle.payments:
        months = cycle_months_for(member.duration)
        cycle.start_date = member.start_date
        cycle.cycle_months = months
        cycle.end_date = add_months(member.start_date, months)
    cycle.fee = fee
    refresh_cycle(cycle)
    return True
