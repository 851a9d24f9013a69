"""
Tests for payment allocation: FIFO spreading, targeted-month payments,
partial payments with promises and manual adjustments.
"""
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from app.core.exceptions import CycleLimitExceededError, OutOfRangeError, ValidationError
from app.models.member import PaymentStatus, ReminderStatus
from app.models.payment_entry import EntryType
from app.services.billing import (
    MonthPolicy,
    apply_manual_adjustment,
    apply_to_cycles,
    apply_to_single_cycle,
    ensure_cycle_for_month,
    open_membership,
    record_payment,
)

JAN_10 = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


def assert_cycle_invariants(member):
    for cycle in member.payment_cycles:
        assert cycle.paid_amount + cycle.remaining_amount == cycle.fee or (
            cycle.remaining_amount == 0 and cycle.paid_amount >= cycle.fee
        )
        assert cycle.remaining_amount >= 0
    assert member.remaining_amount == sum(c.remaining_amount for c in member.payment_cycles)


class TestFifoAllocation:
    def test_fills_oldest_first(self, make_member, actor):
        member = make_member(fee="1000")
        ensure_cycle_for_month(member, "February 2024")

        result = apply_to_cycles(member, "1500", actor, at=JAN_10)

        assert result.applied == Decimal("1500.00")
        assert [a.amount for a in result.allocations] == [Decimal("1000.00"), Decimal("500.00")]
        assert member.payment_cycles[0].status == PaymentStatus.PAID
        assert member.payment_cycles[1].remaining_amount == Decimal("500.00")

    def test_skips_paid_cycles(self, make_member, actor):
        member = make_member(fee="1000")
        ensure_cycle_for_month(member, "February 2024")
        apply_to_cycles(member, "1000", actor, at=JAN_10)

        result = apply_to_cycles(member, "200", actor, at=JAN_10)

        assert len(result.allocations) == 1
        assert result.allocations[0].start_date == date(2024, 2, 1)

    def test_overflow_is_not_applied(self, make_member, actor):
        member = make_member(fee="1000")
        result = apply_to_cycles(member, "1200", actor, at=JAN_10)
        assert result.applied == Decimal("1000.00")

    def test_low_level_records_written(self, make_member, actor):
        member = make_member(fee="1000")
        apply_to_cycles(member, "250", actor, note="cash", at=JAN_10)
        record = member.payment_cycles[0].payments[0]
        assert record["amount"] == "250.00"
        assert record["type"] == "payment"
        assert record["by"] == {"id": actor.id, "name": actor.name}
        assert record["note"] == "cash"


class TestSingleCycleAllocation:
    def test_capped_at_remaining(self, make_member, actor):
        member = make_member(fee="1000")
        ensure_cycle_for_month(member, "February 2024")

        result = apply_to_single_cycle(member, 0, "1300", actor, at=JAN_10)

        assert result.applied == Decimal("1000.00")
        assert member.payment_cycles[1].paid_amount == Decimal("0.00")


class TestRecordPayment:
    def test_scenario_a_initial_payment(self, make_member, actor):
        member = make_member(fee="1000", start_date=date(2024, 1, 1))
        open_membership(member, actor, at=JAN_10, initial_payment="400")

        assert len(member.payment_cycles) == 1
        cycle = member.payment_cycles[0]
        assert (cycle.start_date, cycle.end_date) == (date(2024, 1, 1), date(2024, 2, 1))
        assert member.paid_amount == Decimal("400.00")
        assert member.remaining_amount == Decimal("600.00")
        assert member.payment_status == PaymentStatus.PENDING
        assert len(member.payment_history) == 1
        assert member.activity_history[0].action == "create"

    def test_scenario_b_settles_targeted_month(self, make_member, actor):
        member = make_member(fee="1000")
        open_membership(member, actor, at=JAN_10, initial_payment="400")

        entry = record_payment(member, "600", actor, at=JAN_10, payment_month="January 2024")

        cycle = member.payment_cycles[0]
        assert cycle.paid_amount == Decimal("1000.00")
        assert cycle.remaining_amount == Decimal("0.00")
        assert cycle.status == PaymentStatus.PAID
        assert member.payment_status == PaymentStatus.PAID
        assert entry.payment_month == "January 2024"
        assert entry.type == EntryType.PAYMENT

    def test_scenario_c_future_month_extends_chain(self, make_member, actor):
        member = make_member(fee="1000")

        entry = record_payment(member, "1000", actor, at=JAN_10, payment_month="March 2024")

        assert len(member.payment_cycles) == 3
        feb, march = member.payment_cycles[1], member.payment_cycles[2]
        assert march.start_date == date(2024, 3, 1)
        assert march.status == PaymentStatus.PAID
        assert feb.remaining_amount == feb.fee
        assert entry.allocations == [
            {"start_date": "2024-03-01", "end_date": "2024-04-01", "amount": "1000.00", "cycle_index": 2}
        ]
        assert_cycle_invariants(member)

    def test_scenario_d_partial_requires_promise(self, make_member, actor):
        member = make_member(fee="1000")
        with pytest.raises(ValidationError):
            record_payment(member, "300", actor, at=JAN_10, require_promise=True)
        # Nothing was booked
        assert member.payment_cycles[0].paid_amount == Decimal("0.00")
        assert member.payment_history == []

    def test_scenario_d_partial_with_promise(self, make_member, actor):
        member = make_member(fee="1000")

        entry = record_payment(
            member, "300", actor, at=JAN_10, promise_date="2024-01-25", require_promise=True
        )

        assert entry.promise_date == date(2024, 1, 25)
        assert member.reminder_status == ReminderStatus.PROMISED
        assert member.promised_payment_date == date(2024, 1, 25)
        assert member.remaining_amount == Decimal("700.00")

    def test_promise_before_payment_rejected(self, make_member, actor):
        member = make_member(fee="1000")
        with pytest.raises(ValidationError):
            record_payment(member, "300", actor, at=JAN_10, promise_date="2024-01-01")

    def test_full_payment_drops_promise(self, make_member, actor):
        member = make_member(fee="1000")
        entry = record_payment(member, "1000", actor, at=JAN_10, promise_date="2024-01-25")
        assert entry.promise_date is None
        assert member.reminder_status == ReminderStatus.NONE

    def test_partial_allowed_without_promise_when_not_required(self, make_member, actor):
        member = make_member(fee="1000")
        record_payment(member, "300", actor, at=JAN_10)
        assert member.reminder_status == ReminderStatus.NONE
        assert member.payment_status == PaymentStatus.PENDING

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount_rejected(self, make_member, actor, amount):
        member = make_member()
        with pytest.raises(ValidationError):
            record_payment(member, amount, actor, at=JAN_10)

    def test_overpayment_recorded_as_unapplied(self, make_member, actor):
        member = make_member(fee="1000")
        entry = record_payment(member, "1250", actor, at=JAN_10)
        assert entry.unapplied_amount == Decimal("250.00")
        assert member.remaining_amount == Decimal("0.00")

    def test_month_before_first_cycle(self, make_member, actor):
        member = make_member(start_date=date(2024, 3, 1))
        with pytest.raises(OutOfRangeError):
            record_payment(member, "100", actor, at=JAN_10, payment_month="January 2024")

    def test_calendar_month_policy_is_injected(self, make_member, actor):
        member = make_member(fee="3000", duration="3 Months")
        with pytest.raises(OutOfRangeError):
            record_payment(
                member, "100", actor, at=JAN_10, payment_month="February 2024",
                policy=MonthPolicy.CALENDAR_MONTH
            )
        entry = record_payment(member, "100", actor, at=JAN_10, payment_month="February 2024")
        assert entry.allocations[0]["start_date"] == "2024-01-01"

    def test_history_snapshot(self, make_member, actor):
        member = make_member(fee="1000")
        entry = record_payment(member, "400", actor, at=JAN_10, payment_mode="UPI")
        assert entry.fee == Decimal("1000.00")
        assert entry.paid_amount == Decimal("400.00")
        assert entry.remaining_amount == Decimal("600.00")
        assert entry.payment_status == PaymentStatus.PENDING
        assert entry.by_name == actor.name
        assert entry.payment_mode == "UPI"
        assert member.activity_history[-1].action == "payment"


class TestManualAdjustment:
    def test_positive_goes_fifo(self, make_member, actor):
        member = make_member(fee="1000")
        entry = apply_manual_adjustment(member, "300", actor, at=JAN_10, note="goodwill")
        assert entry.type == EntryType.ADJUSTMENT
        assert member.payment_cycles[0].paid_amount == Decimal("300.00")
        assert member.payment_cycles[0].payments[-1]["type"] == "adjustment"

    def test_negative_reduces_current_cycle(self, make_member, actor):
        member = make_member(fee="1000")
        record_payment(member, "600", actor, at=JAN_10)
        apply_manual_adjustment(member, "-200", actor, at=JAN_10)
        assert member.payment_cycles[0].paid_amount == Decimal("400.00")
        assert member.remaining_amount == Decimal("600.00")

    def test_negative_beyond_paid_rejected(self, make_member, actor):
        member = make_member(fee="1000")
        record_payment(member, "100", actor, at=JAN_10)
        with pytest.raises(CycleLimitExceededError):
            apply_manual_adjustment(member, "-200", actor, at=JAN_10)
        assert member.payment_cycles[0].paid_amount == Decimal("100.00")

    def test_zero_rejected(self, make_member, actor):
        member = make_member()
        with pytest.raises(ValidationError):
            apply_manual_adjustment(member, "0", actor, at=JAN_10)
