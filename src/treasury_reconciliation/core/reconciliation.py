'''
This file handles the reconciliation of student debts and credits.

It is the single implementation behind the dashboard, the debt reports and
the student portal. Everything here is pure: it reads one LedgerSnapshot,
never reads the clock, and returns new result objects on every call.
'''
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Union

from ..common.config import settings
from ..common.exceptions import ScheduleConfigurationError, StudentNotFoundError
from ..common.logger import log
from ..models.ledger import LedgerSnapshot, Student
from ..models.reconciliation import ReconciliationResult, RosterReconciliation, TenantTotals
from ..models.schedule import RecurringDueSchedule
from .activity_charges import ActivityChargeResolver
from .credit_allocator import CreditAllocator
from .due_schedule import DueScheduleCalculator
from .payment_matcher import PaymentMatcher, SubstringPaymentMatcher

ZERO = Decimal(0)

StudentRef = Union[Student, int]


class Reconciliation:
    """
    Facade over the due schedule, activity charges, payment matching and
    credit allocation for one ledger snapshot.
    """
    def __init__(
        self,
        snapshot: LedgerSnapshot,
        schedule: Optional[RecurringDueSchedule] = None,
        matcher: Optional[PaymentMatcher] = None,
    ):
        schedule = schedule or snapshot.schedule
        if schedule is None:
            raise ScheduleConfigurationError(
                f"No recurring due schedule available for tenant {snapshot.tenant_id}."
            )
        self.snapshot = snapshot
        self.schedule = schedule
        self.due_calculator = DueScheduleCalculator(schedule)
        self.charge_resolver = ActivityChargeResolver(snapshot.activities)
        self.matcher = matcher or SubstringPaymentMatcher()
        self.allocator = CreditAllocator()

    def _resolve_student(self, student: StudentRef) -> Student:
        if isinstance(student, Student):
            return student
        found = self.snapshot.get_student(student)
        if found is None:
            raise StudentNotFoundError(f"Student {student} is not part of this snapshot.")
        return found

    # --- Single Student ---

    def reconcile(self, student: StudentRef, as_of: date) -> ReconciliationResult:
        """
        Reconciles one student as of the given date.

        Raises:
            StudentNotFoundError: If a student ID is given that the snapshot does not hold.
        """
        student = self._resolve_student(student)
        payments = self.snapshot.payments_for(student.id)

        # 1. Recurring dues owed
        due_schedule = self.due_calculator.calculate(student.enrollment_date, as_of)

        # 2. Classify the student's payments
        matched = self.matcher.match(payments, self.snapshot.ordered_activities)

        # 3. Activity charges net of their matched payments
        activity_charges = self.charge_resolver.resolve(
            student, as_of, matched, self.snapshot.exclusions_for(student.id)
        )

        # 4. Redirections and standing credit
        allocation = self.allocator.allocate(
            recurring_due_expected=due_schedule.expected_total,
            recurring_due_direct_paid=matched.recurring_due_total,
            activity_charges=activity_charges,
            credit_entries=self.snapshot.credit_entries_for(student.id),
        )

        return ReconciliationResult(
            student_id=student.id,
            as_of=as_of,
            recurring_due_expected=allocation.recurring_due_expected,
            recurring_due_paid=allocation.recurring_due_paid,
            recurring_due_balance=allocation.recurring_due_balance,
            periods_liable=due_schedule.labels,
            periods_owed=due_schedule.owed_periods(allocation.recurring_due_balance),
            activity_balances=allocation.activity_balances,
            credit_available=allocation.credit_available,
            credit_consumed=allocation.credit_consumed,
            total_paid=sum((p.amount for p in payments), ZERO),
            unclassified_payment_ids=matched.unclassified_ids,
            ambiguous_payment_ids=matched.ambiguous_ids,
        )

    # --- Roster ---

    def reconcile_roster(
        self,
        students: Optional[Iterable[StudentRef]] = None,
        *,
        as_of: date,
        max_workers: Optional[int] = None,
    ) -> RosterReconciliation:
        """
        Reconciles every student given (or the whole snapshot roster when
        `students` is None). Students are independent of each other, so with
        max_workers > 1 they are spread over a thread pool; the output is the
        same either way.
        """
        roster = [self._resolve_student(s) for s in (self.snapshot.students if students is None else students)]
        max_workers = max_workers or settings.ROSTER_MAX_WORKERS
        log.info(
            f"Reconciling {len(roster)} student(s) for tenant {self.snapshot.tenant_id} "
            f"as of {as_of.isoformat()} (workers={max_workers})."
        )

        if max_workers > 1 and len(roster) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                computed = list(executor.map(lambda s: self.reconcile(s, as_of), roster))
        else:
            computed = [self.reconcile(s, as_of) for s in roster]

        results = {r.student_id: r for r in computed}
        totals = self._tenant_totals(results)
        log.info(
            f"Tenant {self.snapshot.tenant_id}: {totals.students_in_debt}/{totals.student_count} "
            f"student(s) owe {totals.total_owed:.2f}; {totals.total_paid:.2f} paid."
        )
        return RosterReconciliation(
            tenant_id=self.snapshot.tenant_id,
            as_of=as_of,
            results=results,
            totals=totals,
        )

    def _tenant_totals(self, results: dict[int, ReconciliationResult]) -> TenantTotals:
        # Paid is summed from the raw payments, not from the results, so a
        # mismatch between the two shows up as accounting drift.
        total_paid = sum(
            (p.amount for p in self.snapshot.payments if p.student_id in results),
            ZERO,
        )
        return TenantTotals(
            student_count=len(results),
            students_in_debt=sum(1 for r in results.values() if r.total_owed > 0),
            total_owed=sum((r.total_owed for r in results.values()), ZERO),
            total_paid=total_paid,
            total_credit_consumed=sum((r.credit_consumed for r in results.values()), ZERO),
            total_credit_remaining=sum((r.credit_remaining for r in results.values()), ZERO),
        )
