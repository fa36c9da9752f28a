'''
testing the reconciliation facade end to end on in-memory snapshots
'''
import pytest
from datetime import date
from decimal import Decimal
from pprint import pprint

from treasury_reconciliation import (
    LedgerSnapshot, Reconciliation, ScheduleConfigurationError, StudentNotFoundError
)
from treasury_reconciliation.core.payment_matcher import PaymentMatcher, PaymentClassification
from treasury_reconciliation.models.enums import MatchRule, PaymentBucket
from tests.constants import *
from tests.factories import (
    ActivityFactory, ExclusionFactory, PaymentFactory, RedirectionFactory, StandingCreditFactory, StudentFactory
)


class TestScenarios:

    def test_partial_dues_payment(self, monthly_schedule):
        """Enrolled in January, as of June: 12000 expected, 6000 paid, 6000 owed for May and June."""
        student = StudentFactory(id=1, enrollment_date=ENROLLED_JANUARY)
        payments = [
            PaymentFactory(student_id=1, amount=Decimal("3000"), description="Cuota marzo"),
            PaymentFactory(student_id=1, amount=Decimal("3000"), description="Cuota abril"),
        ]
        snapshot = LedgerSnapshot(tenant_id=TEST_TENANT_ID, students=[student], payments=payments)

        result = Reconciliation(snapshot, monthly_schedule).reconcile(1, AS_OF_JUNE)
        print(f"\n--- {result} ---")

        assert result.recurring_due_expected == Decimal("12000")
        assert result.recurring_due_paid == Decimal("6000")
        assert result.recurring_due_balance == Decimal("6000")
        assert [(p.label, p.amount_owed) for p in result.periods_owed] == [
            ("Mayo", Decimal("3000")),
            ("Junio", Decimal("3000")),
        ]
        assert result.total_owed == Decimal("6000")
        assert result.total_paid == Decimal("6000")

    def test_mid_year_enrollment(self, monthly_schedule):
        """Enrolled in May, as of June, nothing paid: 6000 expected and owed."""
        student = StudentFactory(id=1, enrollment_date=ENROLLED_MAY)
        snapshot = LedgerSnapshot(tenant_id=TEST_TENANT_ID, students=[student])

        result = Reconciliation(snapshot, monthly_schedule).reconcile(student, AS_OF_JUNE)

        assert result.recurring_due_expected == Decimal("6000")
        assert result.total_owed == Decimal("6000")
        assert result.periods_liable == ["Mayo", "Junio"]

    def test_credit_covers_activity(self, monthly_schedule):
        """A 5000 activity and 8000 of credit before any due period: nothing owed, 3000 credit left."""
        student = StudentFactory(id=1, enrollment_date=ENROLLED_LAST_YEAR)
        activity = ActivityFactory(id=10, amount=Decimal("5000"), occurrence_date=date(BILLING_YEAR, 1, 20))
        snapshot = LedgerSnapshot(
            tenant_id=TEST_TENANT_ID,
            students=[student],
            activities=[activity],
            credit_entries=[StandingCreditFactory(student_id=1, amount=Decimal("8000"))],
        )

        result = Reconciliation(snapshot, monthly_schedule).reconcile(1, AS_OF_FEBRUARY)

        assert result.recurring_due_expected == Decimal("0")
        assert result.recurring_due_balance == Decimal("0")
        assert result.activity_balances == []
        assert result.total_owed == Decimal("0")
        assert result.credit_consumed == Decimal("5000")
        assert result.credit_remaining == Decimal("3000")

    def test_redirection_reduces_dues(self, monthly_schedule):
        """9000 expected (March to May) and a 4000 redirection: 5000 owed."""
        student = StudentFactory(id=1, enrollment_date=ENROLLED_LAST_YEAR)
        snapshot = LedgerSnapshot(
            tenant_id=TEST_TENANT_ID,
            students=[student],
            credit_entries=[RedirectionFactory(student_id=1, amount=Decimal("-4000"))],
        )

        result = Reconciliation(snapshot, monthly_schedule).reconcile(1, date(BILLING_YEAR, 5, 31))

        assert result.recurring_due_expected == Decimal("9000")
        assert result.recurring_due_balance == Decimal("5000")
        assert result.credit_consumed == Decimal("0")

    def test_partly_paid_month_shows_its_remainder(self, monthly_schedule):
        """7500 paid of 12000 (March to June): 4500 owed, May partly paid with 1500 left."""
        student = StudentFactory(id=1, enrollment_date=ENROLLED_LAST_YEAR)
        snapshot = LedgerSnapshot(
            tenant_id=TEST_TENANT_ID,
            students=[student],
            payments=[PaymentFactory(student_id=1, amount=Decimal("7500"), description="cuota")],
        )

        result = Reconciliation(snapshot, monthly_schedule).reconcile(1, AS_OF_JUNE)
        print(f"\n--- {result} ---")

        assert result.recurring_due_balance == Decimal("4500")
        assert [(p.label, p.amount_owed, p.partial) for p in result.periods_owed] == [
            ("Mayo", Decimal("1500"), True),
            ("Junio", Decimal("3000"), False),
        ]


@pytest.fixture
def busy_snapshot(monthly_schedule) -> LedgerSnapshot:
    """Three students, two activities, exclusions, credit and an unlinked payment."""
    students = [
        StudentFactory(id=1, enrollment_date=ENROLLED_LAST_YEAR),
        StudentFactory(id=2, enrollment_date=ENROLLED_MAY),
        StudentFactory(id=3, enrollment_date=ENROLLED_JANUARY),
    ]
    activities = [
        ActivityFactory(id=10, name="Camp", amount=Decimal("5000"), occurrence_date=date(BILLING_YEAR, 4, 1)),
        ActivityFactory(id=11, name="Play", amount=Decimal("1200"), occurrence_date=date(BILLING_YEAR, 5, 20)),
    ]
    payments = [
        PaymentFactory(id=1, student_id=1, amount=Decimal("12000"), description="cuota marzo-junio"),
        PaymentFactory(id=2, student_id=1, amount=Decimal("5000"), description="CAMP"),
        PaymentFactory(id=6, student_id=1, amount=Decimal("1200"), description="Play ticket"),
        PaymentFactory(id=3, student_id=2, amount=Decimal("600"), description="play"),
        PaymentFactory(id=4, student_id=3, amount=Decimal("250"), description="donation"),
        PaymentFactory(id=5, student_id=None, amount=Decimal("9999"), description="cuota"),
    ]
    return LedgerSnapshot(
        tenant_id=TEST_TENANT_ID,
        students=students,
        activities=activities,
        exclusions=[ExclusionFactory(student_id=3, activity_id=10)],
        payments=payments,
        credit_entries=[
            StandingCreditFactory(student_id=3, amount=Decimal("1000")),
            RedirectionFactory(student_id=2, amount=Decimal("-3000")),
        ],
        schedule=monthly_schedule,
    )


class TestReconcile:

    def test_paid_up_student_owes_nothing(self, busy_snapshot):
        result = Reconciliation(busy_snapshot).reconcile(1, AS_OF_JUNE)

        assert result.total_owed == Decimal("0")
        assert result.periods_owed == []
        assert result.total_paid == Decimal("18200")

    def test_partial_activity_payment_and_redirection(self, busy_snapshot):
        result = Reconciliation(busy_snapshot).reconcile(2, AS_OF_JUNE)

        assert result.recurring_due_balance == Decimal("3000")
        assert [p.label for p in result.periods_owed] == ["Junio"]
        assert [(a.activity_id, a.balance) for a in result.activity_balances] == [(11, Decimal("600"))]
        assert result.total_owed == Decimal("3600")

    def test_exclusion_and_unclassified_payment(self, busy_snapshot):
        result = Reconciliation(busy_snapshot).reconcile(3, AS_OF_JUNE)

        # 12000 dues less 1000 credit, plus the play; the camp is excluded
        assert result.recurring_due_balance == Decimal("11000")
        assert [a.activity_id for a in result.activity_balances] == [11]
        assert result.unclassified_payment_ids == [4]
        assert result.total_paid == Decimal("250")

    def test_reconcile_is_repeatable(self, busy_snapshot):
        reconciliation = Reconciliation(busy_snapshot)
        assert reconciliation.reconcile(2, AS_OF_JUNE) == reconciliation.reconcile(2, AS_OF_JUNE)

    def test_no_amount_is_ever_negative(self, busy_snapshot):
        reconciliation = Reconciliation(busy_snapshot)
        for as_of in (AS_OF_FEBRUARY, AS_OF_JUNE, AS_OF_DECEMBER):
            for student in busy_snapshot.students:
                result = reconciliation.reconcile(student, as_of)
                assert result.recurring_due_balance >= 0
                assert all(a.balance > 0 for a in result.activity_balances)
                assert result.credit_remaining >= 0
                assert result.total_owed == result.recurring_due_balance + result.activity_balance_total

    def test_zero_expected_dues_means_zero_balance(self, busy_snapshot):
        result = Reconciliation(busy_snapshot).reconcile(2, AS_OF_FEBRUARY)

        assert result.recurring_due_expected == Decimal("0")
        assert result.recurring_due_balance == Decimal("0")

    def test_derived_snapshot_uses_its_own_data(self, busy_snapshot):
        """A snapshot derived with model_copy is reconciled against the updated payments."""
        derived = busy_snapshot.model_copy(update={
            "payments": (PaymentFactory(id=50, student_id=3, amount=Decimal("12000"), description="cuota"),),
        })

        assert len(derived.payments) == 1
        assert [p.id for p in derived.payments_for(3)] == [50]
        assert derived.payments_for(1) == []

        result = Reconciliation(derived).reconcile(3, AS_OF_JUNE)
        assert result.recurring_due_balance == Decimal("0")
        assert result.total_paid == Decimal("12000")

        # The original snapshot is untouched
        assert Reconciliation(busy_snapshot).reconcile(3, AS_OF_JUNE).recurring_due_balance == Decimal("11000")

    def test_derived_snapshot_with_new_student(self, busy_snapshot):
        derived = busy_snapshot.model_copy(update={
            "students": busy_snapshot.students + (StudentFactory(id=4, enrollment_date=ENROLLED_MAY),),
        })

        assert derived.get_student(4) is not None
        assert Reconciliation(derived).reconcile(4, AS_OF_JUNE).recurring_due_balance == Decimal("6000")

    def test_unknown_student_raises(self, busy_snapshot):
        with pytest.raises(StudentNotFoundError):
            Reconciliation(busy_snapshot).reconcile(404, AS_OF_JUNE)

    def test_missing_schedule_raises(self):
        snapshot = LedgerSnapshot(tenant_id=TEST_TENANT_ID)
        with pytest.raises(ScheduleConfigurationError):
            Reconciliation(snapshot)

    def test_explicit_schedule_overrides_snapshot_schedule(self, busy_snapshot, full_year_schedule):
        result = Reconciliation(busy_snapshot, full_year_schedule).reconcile(1, AS_OF_JUNE)

        assert result.recurring_due_expected == Decimal("30000")
        assert result.recurring_due_balance == Decimal("18000")

    def test_custom_matcher_is_used(self, busy_snapshot):
        class EverythingIsDues(PaymentMatcher):
            def classify(self, payment, activities):
                return PaymentClassification(
                    payment_id=payment.id,
                    amount=payment.amount,
                    bucket=PaymentBucket.RECURRING_DUE,
                    rule=MatchRule.NONE,
                )

        result = Reconciliation(busy_snapshot, matcher=EverythingIsDues()).reconcile(1, AS_OF_JUNE)

        assert result.recurring_due_paid == Decimal("18200")
        assert [a.activity_id for a in result.activity_balances] == [10, 11]


class TestReconcileRoster:

    def test_roster_totals(self, busy_snapshot):
        roster = Reconciliation(busy_snapshot).reconcile_roster(as_of=AS_OF_JUNE)
        report = roster.as_report()
        print("\n--- Debt report ---")
        pprint(report)

        assert roster.totals.student_count == 3
        assert roster.totals.students_in_debt == 2
        assert roster.totals.total_owed == Decimal("3600") + Decimal("12200")
        # The unlinked payment is not counted
        assert roster.totals.total_paid == Decimal("19050")
        assert roster.totals.total_credit_consumed == Decimal("1000")
        assert roster.totals.total_credit_remaining == Decimal("0")

    def test_debtors_largest_first(self, busy_snapshot):
        roster = Reconciliation(busy_snapshot).reconcile_roster(as_of=AS_OF_JUNE)

        assert [r.student_id for r in roster.debtors()] == [3, 2]

    def test_report_formats_amounts(self, busy_snapshot):
        report = Reconciliation(busy_snapshot).reconcile_roster(as_of=AS_OF_JUNE).as_report()

        assert report["as_of"] == AS_OF_JUNE.isoformat()
        assert report["total_owed"] == "15800.00"
        assert report["debtors"][1]["activities"] == [{"name": "Play", "amount_owed": "600.00"}]
        assert report["debtors"][1]["periods_owed"] == [{"period": "Junio", "amount_owed": "3000.00"}]
        assert report["debtors"][0]["periods_owed"][0] == {"period": "Marzo", "amount_owed": "2000.00"}

    def test_subset_of_students(self, busy_snapshot):
        roster = Reconciliation(busy_snapshot).reconcile_roster([1, 2], as_of=AS_OF_JUNE)

        assert set(roster.results) == {1, 2}
        assert roster.totals.total_paid == Decimal("18800")

    def test_parallel_matches_sequential(self, busy_snapshot):
        reconciliation = Reconciliation(busy_snapshot)
        sequential = reconciliation.reconcile_roster(as_of=AS_OF_JUNE, max_workers=1)
        parallel = reconciliation.reconcile_roster(as_of=AS_OF_JUNE, max_workers=4)

        assert sequential == parallel

    def test_roster_total_is_sum_of_students(self, busy_snapshot):
        reconciliation = Reconciliation(busy_snapshot)
        roster = reconciliation.reconcile_roster(as_of=AS_OF_DECEMBER)

        assert roster.totals.total_owed == sum(
            reconciliation.reconcile(s, AS_OF_DECEMBER).total_owed for s in busy_snapshot.students
        )

    def test_roster_with_unknown_student_raises(self, busy_snapshot):
        with pytest.raises(StudentNotFoundError):
            Reconciliation(busy_snapshot).reconcile_roster([1, 99], as_of=AS_OF_JUNE)
