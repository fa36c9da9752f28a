'''
Works out which recurring-due periods a student is liable for.
'''
import math
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field

from ..common.logger import log
from ..models.enums import CutoffPolicy
from ..models.reconciliation import PeriodBalance
from ..models.schedule import RecurringDueSchedule


class DueSchedule(BaseModel):
    """The periods one student is liable for, and what they add up to."""
    amount_per_period: Decimal
    periods: list[int]

    model_config = ConfigDict(frozen=True)

    @computed_field
    @property
    def first_period(self) -> Optional[int]:
        return self.periods[0] if self.periods else None

    @computed_field
    @property
    def last_period(self) -> Optional[int]:
        return self.periods[-1] if self.periods else None

    @computed_field
    @property
    def expected_total(self) -> Decimal:
        return self.amount_per_period * len(self.periods)

    @computed_field
    @property
    def labels(self) -> list[str]:
        return [RecurringDueSchedule.period_label(p) for p in self.periods]

    def owed_periods(self, balance: Decimal) -> list[PeriodBalance]:
        """
        Renders a remaining balance as the periods still owed.
        Payments are not tied to a period, so the debt is attributed to the
        latest ceil(balance / amount) periods. Every one of them is owed in
        full except the earliest, which carries the remainder when the
        balance is not a whole number of periods.
        """
        if balance <= 0 or not self.periods:
            return []
        count = min(len(self.periods), math.ceil(balance / self.amount_per_period))
        owed = self.periods[-count:]
        earliest = min(self.amount_per_period, balance - self.amount_per_period * (count - 1))

        balances = []
        for period in owed:
            amount = earliest if period == owed[0] else self.amount_per_period
            balances.append(PeriodBalance(
                period=period,
                label=RecurringDueSchedule.period_label(period),
                amount_owed=amount,
                partial=amount < self.amount_per_period,
            ))
        return balances


class DueScheduleCalculator:
    """
    Applies a tenant's RecurringDueSchedule to one student.
    """
    def __init__(self, schedule: RecurringDueSchedule):
        self.schedule = schedule

    def first_billable_period(self, enrollment_date: date, as_of: date) -> int:
        """
        The configured first period, unless the student joined later in the
        billing year, in which case billing starts at the enrollment month.
        """
        first = self.schedule.first_period
        if enrollment_date.year == as_of.year and enrollment_date.month > first:
            return enrollment_date.month
        return first

    def last_billable_period(self, as_of: date) -> int:
        last = self.schedule.last_period
        if self.schedule.cutoff_policy == CutoffPolicy.CURRENT_PERIOD:
            return min(last, as_of.month)
        return last

    def calculate(self, enrollment_date: date, as_of: date) -> DueSchedule:
        if enrollment_date.year > as_of.year:
            # Not enrolled yet in the billing year being reconciled.
            periods = []
        else:
            first = self.first_billable_period(enrollment_date, as_of)
            last = self.last_billable_period(as_of)
            periods = list(range(first, last + 1))

        log.debug(
            f"Due schedule for enrollment {enrollment_date.isoformat()} as of {as_of.isoformat()}: "
            f"{len(periods)} period(s) at {self.schedule.amount_per_period}"
        )
        return DueSchedule(amount_per_period=self.schedule.amount_per_period, periods=periods)
