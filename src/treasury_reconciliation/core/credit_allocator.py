'''
Applies redirections and standing credit against a student's outstanding balances.
'''
from decimal import Decimal
from typing import Sequence

from pydantic import BaseModel, ConfigDict, computed_field

from ..common.logger import log
from ..models.ledger import CreditLedgerEntry, Redirection, StandingCredit
from ..models.reconciliation import ActivityBalance
from .activity_charges import ActivityCharge

ZERO = Decimal(0)


class AllocationResult(BaseModel):
    """Final balances after allocation, plus how much credit it took."""
    recurring_due_expected: Decimal
    recurring_due_paid: Decimal
    recurring_due_balance: Decimal
    activity_balances: list[ActivityBalance]
    credit_available: Decimal
    credit_consumed: Decimal

    model_config = ConfigDict(frozen=True)

    @computed_field
    @property
    def credit_remaining(self) -> Decimal:
        return self.credit_available - self.credit_consumed


class CreditAllocator:
    """
    The allocation order is a business rule and is not configurable:
      1. Redirections count as recurring-due payments. They never touch activities.
      2. Standing credit pays down the remaining recurring-due balance first.
      3. Whatever credit is left goes to activities, in resolver order.

    Every amount is clamped at zero. A negative standing credit total is bad
    upstream data and is treated as no credit at all.
    """

    @staticmethod
    def split_entries(entries: Sequence[CreditLedgerEntry]) -> tuple[Decimal, Decimal]:
        """Returns (standing credit total, redirected total)."""
        standing = sum((e.amount for e in entries if isinstance(e, StandingCredit)), ZERO)
        redirected = sum((e.amount for e in entries if isinstance(e, Redirection)), ZERO)
        return standing, redirected

    def allocate(
        self,
        recurring_due_expected: Decimal,
        recurring_due_direct_paid: Decimal,
        activity_charges: Sequence[ActivityCharge],
        credit_entries: Sequence[CreditLedgerEntry],
    ) -> AllocationResult:
        standing, redirected = self.split_entries(credit_entries)
        if standing < 0:
            log.warning(f"Negative standing credit {standing} ignored.")

        # Step 1: redirections are recurring-due payments
        recurring_due_paid = recurring_due_direct_paid + redirected
        due_balance = max(ZERO, recurring_due_expected - recurring_due_paid)

        # Step 2: credit pays recurring dues first
        wallet = max(ZERO, standing)
        credit_available = wallet
        applied = min(due_balance, wallet)
        due_balance -= applied
        wallet -= applied

        # Step 3: remaining credit walks the activities in order
        activity_balances = []
        for charge in activity_charges:
            credit_applied = min(charge.balance, wallet)
            wallet -= credit_applied
            balance = max(ZERO, charge.balance - credit_applied)
            if balance > 0:
                activity_balances.append(
                    ActivityBalance(
                        activity_id=charge.activity.id,
                        activity_name=charge.activity.name,
                        charge=charge.charge,
                        paid=charge.paid,
                        credit_applied=credit_applied,
                        balance=balance,
                    )
                )

        return AllocationResult(
            recurring_due_expected=recurring_due_expected,
            recurring_due_paid=recurring_due_paid,
            recurring_due_balance=due_balance,
            activity_balances=activity_balances,
            credit_available=credit_available,
            credit_consumed=credit_available - wallet,
        )
