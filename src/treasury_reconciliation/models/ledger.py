'''
Read-only ledger models consumed by the reconciliation engine.

Every model here is a frozen snapshot of a row owned by the data provider.
The engine classifies and sums them but never changes them.
'''
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Literal, Annotated, Union
from uuid import UUID

from pydantic import (
    BaseModel, ConfigDict, Field, PrivateAttr, TypeAdapter, computed_field, field_validator
)

from .enums import CreditEntryKind
from .schedule import RecurringDueSchedule

# --- 1. Roster & Activities ---

class Student(BaseModel):
    """An enrolled student. The enrollment date is fixed once created."""
    id: int
    tenant_id: Optional[UUID] = None
    enrollment_date: date
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @computed_field
    @property
    def full_name(self) -> str:
        full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full_name or "Unknown Student"

    def __repr__(self) -> str:
        return f"Student(id={self.id!r}, enrollment_date='{self.enrollment_date.isoformat()}')"


class Activity(BaseModel):
    """A one-time charge tied to a dated event. Undated activities are never owed."""
    id: int
    name: str
    amount: Decimal
    occurrence_date: Optional[date] = None

    model_config = ConfigDict(frozen=True, from_attributes=True)

    def is_chargeable(self, as_of: date) -> bool:
        return self.occurrence_date is not None and self.occurrence_date <= as_of


class ActivityExclusion(BaseModel):
    """Marks a student as exempt from one activity's charge."""
    student_id: int
    activity_id: int

    model_config = ConfigDict(frozen=True, from_attributes=True)


# --- 2. Payments ---

class Payment(BaseModel):
    """
    A single income record. `id` is the tenant's receipt sequence number.
    The free-text description is what the matcher falls back on when there
    is no direct activity link.
    """
    id: int
    payment_date: date
    amount: Decimal
    student_id: Optional[int] = None
    description: str = ""
    activity_id: Optional[int] = None
    period_label: Optional[str] = None

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @field_validator('description', mode='before')
    @classmethod
    def _none_as_empty(cls, value: Optional[str]) -> str:
        return value or ""


# --- 3. Credit Ledger (tagged variant) ---

class StandingCredit(BaseModel):
    """Credit the student holds that can offset any obligation."""
    kind: Literal['standing_credit'] = CreditEntryKind.STANDING_CREDIT.value
    student_id: int
    amount: Decimal

    model_config = ConfigDict(frozen=True)


class Redirection(BaseModel):
    """
    A prior payment whose value was reassigned to recurring dues.
    The ledger stores these as negative movements; only the magnitude is kept.
    """
    kind: Literal['redirection'] = CreditEntryKind.REDIRECTION.value
    student_id: int
    amount: Decimal
    source_payment_id: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    @field_validator('amount')
    @classmethod
    def _as_magnitude(cls, value: Decimal) -> Decimal:
        return abs(value)


CreditLedgerEntry = Annotated[
    Union[StandingCredit, Redirection],
    Field(discriminator='kind')
]

# Validates raw dicts (e.g. {"kind": "redirection", ...}) into the right variant.
CreditLedgerEntryValidator = TypeAdapter(CreditLedgerEntry)


# --- 4. The Snapshot ---

def activity_sort_key(activity: Activity) -> tuple:
    """Dated activities by date, then undated ones, ties broken by id."""
    return (
        activity.occurrence_date is None,
        activity.occurrence_date or date.min,
        activity.id,
    )


class LedgerSnapshot(BaseModel):
    """
    Everything the engine needs for one tenant, as of one instant.
    Lookups are indexed once per snapshot so roster runs stay linear.
    """
    tenant_id: Optional[UUID] = None
    students: tuple[Student, ...] = ()
    activities: tuple[Activity, ...] = ()
    exclusions: tuple[ActivityExclusion, ...] = ()
    payments: tuple[Payment, ...] = ()
    credit_entries: tuple[CreditLedgerEntry, ...] = ()
    schedule: Optional[RecurringDueSchedule] = None

    model_config = ConfigDict(frozen=True)

    _students_by_id: dict[int, Student] = PrivateAttr(default_factory=dict)
    _activities_by_id: dict[int, Activity] = PrivateAttr(default_factory=dict)
    _ordered_activities: tuple[Activity, ...] = PrivateAttr(default=())
    _payments_by_student: dict[int, list[Payment]] = PrivateAttr(default_factory=dict)
    _exclusions_by_student: dict[int, set[int]] = PrivateAttr(default_factory=dict)
    _credit_by_student: dict[int, list] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context) -> None:
        self._students_by_id = {s.id: s for s in self.students}
        self._activities_by_id = {a.id: a for a in self.activities}
        self._ordered_activities = tuple(sorted(self.activities, key=activity_sort_key))

        payments_by_student = defaultdict(list)
        for payment in self.payments:
            if payment.student_id is not None:
                payments_by_student[payment.student_id].append(payment)
        self._payments_by_student = dict(payments_by_student)

        exclusions_by_student = defaultdict(set)
        for exclusion in self.exclusions:
            exclusions_by_student[exclusion.student_id].add(exclusion.activity_id)
        self._exclusions_by_student = dict(exclusions_by_student)

        credit_by_student = defaultdict(list)
        for entry in self.credit_entries:
            credit_by_student[entry.student_id].append(entry)
        self._credit_by_student = dict(credit_by_student)

    def model_copy(self, *, update: Optional[dict[str, Any]] = None, deep: bool = False) -> 'LedgerSnapshot':
        """A derived snapshot. The indexes are rebuilt so they match the updated collections."""
        copied = super().model_copy(update=update, deep=deep)
        copied.model_post_init(None)
        return copied

    # --- Lookups ---

    def get_student(self, student_id: int) -> Optional[Student]:
        return self._students_by_id.get(student_id)

    def get_activity(self, activity_id: int) -> Optional[Activity]:
        return self._activities_by_id.get(activity_id)

    @property
    def ordered_activities(self) -> tuple[Activity, ...]:
        """Activities in the stable order used for matching and allocation."""
        return self._ordered_activities

    def payments_for(self, student_id: int) -> list[Payment]:
        return list(self._payments_by_student.get(student_id, ()))

    def exclusions_for(self, student_id: int) -> frozenset[int]:
        return frozenset(self._exclusions_by_student.get(student_id, ()))

    def credit_entries_for(self, student_id: int) -> list[CreditLedgerEntry]:
        return list(self._credit_by_student.get(student_id, ()))

    def __repr__(self) -> str:
        return (
            f"LedgerSnapshot(tenant_id={self.tenant_id!r}, students={len(self.students)}, "
            f"activities={len(self.activities)}, payments={len(self.payments)}, "
            f"credit_entries={len(self.credit_entries)})"
        )
