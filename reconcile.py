"""
reconcile.py
Expected-vs-counted cash for a batch. Pure functions, no database access.
"""

from __future__ import annotations

from dataclasses import dataclass

from errors import ValidationError
from models import PaymentMethod, Transaction

# GH₵ notes and coins offered on the count sheet
DENOMINATIONS = (200, 100, 50, 20, 10, 5, 2, 1)

EPSILON = 0.01

SHORTAGE_MSG = "Shortage detected. Please recount or check for missing transaction slips."
OVERAGE_MSG = "Overage detected. Please check for unentered transactions."
BALANCED_MSG = "Balanced."


@dataclass(frozen=True)
class Reconciliation:
    system_cash: float
    physical_cash: float
    variance: float

    @property
    def is_balanced(self) -> bool:
        return abs(self.variance) < EPSILON

    @property
    def message(self) -> str:
        if self.is_balanced:
            return BALANCED_MSG
        return SHORTAGE_MSG if self.variance < 0 else OVERAGE_MSG


def validate_counts(counts: dict) -> dict[float, int]:
    clean: dict[float, int] = {}
    for denom, qty in counts.items():
        try:
            d = float(denom)
        except (TypeError, ValueError):
            raise ValidationError(f"Denomination must be numeric, got {denom!r}.") from None
        if d <= 0:
            raise ValidationError(f"Denomination must be positive, got {denom!r}.")
        if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
            raise ValidationError(f"Count for {denom} must be a whole number >= 0, got {qty!r}.")
        clean[d] = qty
    return clean


def physical_cash(counts: dict) -> float:
    return sum(d * q for d, q in validate_counts(counts).items())


def system_cash(transactions: list[Transaction]) -> float:
    return sum(t.amount for t in transactions if t.method == PaymentMethod.CASH.value)


def reconcile(transactions: list[Transaction], counts: dict) -> Reconciliation:
    """Non-CASH transactions are ignored; variance = counted - recorded."""
    sys_cash = system_cash(transactions)
    phys = physical_cash(counts)
    return Reconciliation(system_cash=sys_cash, physical_cash=phys, variance=phys - sys_cash)
