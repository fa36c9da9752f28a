'''
Decides which activity charges a student is liable for, net of matched payments.
'''
from datetime import date
from decimal import Decimal
from typing import Sequence

from pydantic import BaseModel, ConfigDict

from ..common.logger import log
from ..models.ledger import Activity, Student, activity_sort_key
from .payment_matcher import MatchedPayments

ZERO = Decimal(0)


class ActivityCharge(BaseModel):
    """An activity the student still owes something for, before credit."""
    activity: Activity
    charge: Decimal
    paid: Decimal
    balance: Decimal

    model_config = ConfigDict(frozen=True)


class ActivityChargeResolver:
    """
    Evaluates activities in a stable order (by occurrence date, then id) so
    that credit allocation downstream always walks them the same way.
    """
    def __init__(self, activities: Sequence[Activity]):
        self.activities = tuple(sorted(activities, key=activity_sort_key))

    def liable_activities(self, student: Student, as_of: date, excluded_ids: frozenset[int]) -> list[Activity]:
        """Activities the student must pay for, ignoring payments."""
        liable = []
        for activity in self.activities:
            if not activity.is_chargeable(as_of):
                continue
            # An exclusion wins over everything else.
            if activity.id in excluded_ids:
                continue
            # Not enrolled yet when the activity took place.
            if student.enrollment_date > activity.occurrence_date:
                continue
            liable.append(activity)
        return liable

    def resolve(
        self,
        student: Student,
        as_of: date,
        matched: MatchedPayments,
        excluded_ids: frozenset[int] = frozenset(),
    ) -> list[ActivityCharge]:
        charges = []
        for activity in self.liable_activities(student, as_of, excluded_ids):
            paid = matched.paid_for(activity.id)
            balance = max(ZERO, activity.amount - paid)
            if balance > 0:
                charges.append(ActivityCharge(activity=activity, charge=activity.amount, paid=paid, balance=balance))

        log.debug(f"Student {student.id}: {len(charges)} activity charge(s) outstanding as of {as_of.isoformat()}.")
        return charges
