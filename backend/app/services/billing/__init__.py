"""
Billing cycle engine.

Pure functions over a Member's cycle chain, payment history and activity
log. Callers load the member, call one operation and persist the result;
every operation ends with sync_summary().
"""
from app.services.billing.types import Actor, Allocation, AllocationResult, to_money
from app.services.billing.durations import ALLOWED_DURATIONS, normalize_duration, cycle_months_for
from app.services.billing.dates import add_months, parse_month_label, month_label
from app.services.billing.cycles import (
    MonthPolicy,
    build_cycle,
    current_cycle,
    ensure_cycles,
    ensure_cycle_for_month,
    find_cycle_index_for_month,
    reseed_first_cycle,
)
from app.services.billing.summary import (
    sync_summary,
    overdue_cycle_count,
    due_now_amount,
    refresh_reminder_state,
)
from app.services.billing.allocation import (
    apply_to_cycles,
    apply_to_single_cycle,
    record_payment,
    apply_manual_adjustment,
)
from app.services.billing.adjustments import (
    adjust_history_entry,
    delete_history_entry,
    update_history_entry_status,
)
from app.services.billing.lifecycle import (
    open_membership,
    restart_membership,
    set_member_status,
    extend_current_cycle,
)
from app.services.billing.ledger import record_activity

__all__ = [
    "Actor",
    "Allocation",
    "AllocationResult",
    "to_money",
    "ALLOWED_DURATIONS",
    "normalize_duration",
    "cycle_months_for",
    "add_months",
    "parse_month_label",
    "month_label",
    "MonthPolicy",
    "build_cycle",
    "current_cycle",
    "ensure_cycles",
    "ensure_cycle_for_month",
    "find_cycle_index_for_month",
    "reseed_first_cycle",
    "sync_summary",
    "overdue_cycle_count",
    "due_now_amount",
    "refresh_reminder_state",
    "apply_to_cycles",
    "apply_to_single_cycle",
    "record_payment",
    "apply_manual_adjustment",
    "adjust_history_entry",
    "delete_history_entry",
    "update_history_entry_status",
    "open_membership",
    "restart_membership",
    "set_member_status",
    "extend_current_cycle",
    "record_activity",
]
