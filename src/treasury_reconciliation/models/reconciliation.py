'''
Output models of the reconciliation engine. Built fresh on every call, never persisted.
'''
from datetime import date
from decimal import Decimal
from typing import Optional, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, computed_field

ZERO = Decimal(0)


class PeriodBalance(BaseModel):
    """
    One recurring-due period still owed. A partly paid period carries only
    what is left on it.
    """
    period: int
    label: str
    amount_owed: Decimal
    partial: bool = False

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if self.partial:
            return f"{self.label} (parcial: {self.amount_owed:.2f})"
        return self.label


class ActivityBalance(BaseModel):
    """What a student still owes for one activity, after payments and credit."""
    activity_id: int
    activity_name: str
    charge: Decimal
    paid: Decimal = ZERO
    credit_applied: Decimal = ZERO
    balance: Decimal

    model_config = ConfigDict(frozen=True)


class ReconciliationResult(BaseModel):
    """
    The reconciled position of one student as of one date.

    total_owed is always recurring_due_balance plus the sum of the activity
    balances, and none of those amounts is ever negative.
    """
    student_id: int
    as_of: date

    # Recurring dues
    recurring_due_expected: Decimal
    recurring_due_paid: Decimal
    recurring_due_balance: Decimal
    periods_liable: list[str]
    periods_owed: list[PeriodBalance]

    # Activities (only those still owing)
    activity_balances: list[ActivityBalance]

    # Credit
    credit_available: Decimal
    credit_consumed: Decimal

    # Diagnostics
    total_paid: Decimal
    unclassified_payment_ids: list[int] = []
    ambiguous_payment_ids: list[int] = []

    model_config = ConfigDict(frozen=True)

    @computed_field
    @property
    def activity_balance_total(self) -> Decimal:
        return sum((a.balance for a in self.activity_balances), ZERO)

    @computed_field
    @property
    def total_owed(self) -> Decimal:
        return self.recurring_due_balance + self.activity_balance_total

    @computed_field
    @property
    def credit_remaining(self) -> Decimal:
        return max(ZERO, self.credit_available - self.credit_consumed)

    def __str__(self) -> str:
        owed = ", ".join(str(p) for p in self.periods_owed) or "no periods"
        return (
            f"Student {self.student_id} as of {self.as_of.isoformat()}: owes "
            f"{self.total_owed:.2f} ({self.recurring_due_balance:.2f} dues for {owed}; "
            f"{len(self.activity_balances)} activit{'y' if len(self.activity_balances) == 1 else 'ies'})"
        )


class TenantTotals(BaseModel):
    """
    Tenant-wide figures for a roster run. total_paid is summed straight from
    the payments, not derived from the balances, so the two can be compared.
    """
    student_count: int
    students_in_debt: int
    total_owed: Decimal
    total_paid: Decimal
    total_credit_consumed: Decimal
    total_credit_remaining: Decimal

    model_config = ConfigDict(frozen=True)


class RosterReconciliation(BaseModel):
    """Per-student results for a roster plus the tenant totals."""
    tenant_id: Optional[UUID] = None
    as_of: date
    results: dict[int, ReconciliationResult]
    totals: TenantTotals

    model_config = ConfigDict(frozen=True)

    def debtors(self) -> list[ReconciliationResult]:
        """Students that still owe something, largest debt first."""
        owing = [r for r in self.results.values() if r.total_owed > 0]
        return sorted(owing, key=lambda r: (-r.total_owed, r.student_id))

    def as_report(self) -> dict[str, Any]:
        """Plain-dict view with amounts formatted the way the screens print them."""
        return {
            "as_of": self.as_of.isoformat(),
            "debtors": [
                {
                    "student_id": r.student_id,
                    "recurring_due_balance": f"{r.recurring_due_balance:.2f}",
                    "periods_owed": [
                        {"period": p.label, "amount_owed": f"{p.amount_owed:.2f}"}
                        for p in r.periods_owed
                    ],
                    "activities": [
                        {"name": a.activity_name, "amount_owed": f"{a.balance:.2f}"}
                        for a in r.activity_balances
                    ],
                    "total_owed": f"{r.total_owed:.2f}",
                }
                for r in self.debtors()
            ],
            "total_owed": f"{self.totals.total_owed:.2f}",
            "total_paid": f"{self.totals.total_paid:.2f}",
            "students_in_debt": self.totals.students_in_debt,
        }
