"""
Value types shared by the billing engine.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional

from app.core.exceptions import ValidationError

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def to_money(value: Any, field_name: str = "amount") -> Decimal:
    """Coerce a number/str to a Decimal rounded to cents."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field_name}: {value!r}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field_name}: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid {field_name}: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Actor:
    """Who performed an operation."""
    id: Optional[str]
    name: str

    @classmethod
    def system(cls) -> "Actor":
        return cls(id=None, name="System")

    def as_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass
class Allocation:
    """
    Part of a history entry applied to one cycle.

    `cycle_index` is the cycle's position in the member's chain, which is
    append-only. Rows written without it are matched by their dates.
    """
    start_date: date
    end_date: date
    amount: Decimal
    cycle_index: Optional[int] = None

    def as_dict(self) -> dict:
        data = {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "amount": str(self.amount),
        }
        if self.cycle_index is not None:
            data["cycle_index"] = self.cycle_index
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Allocation":
        return cls(
            start_date=date.fromisoformat(data["start_date"]),
            end_date=date.fromisoformat(data["end_date"]),
            amount=to_money(data["amount"]),
            cycle_index=data.get("cycle_index"),
        )


@dataclass
class AllocationResult:
    """Outcome of spreading an amount over cycles."""
    applied: Decimal = ZERO
    allocations: List[Allocation] = field(default_factory=list)
