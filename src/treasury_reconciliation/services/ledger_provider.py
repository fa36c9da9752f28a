'''
Ledger data providers: where reconciliation snapshots come from.
'''
from typing import Iterable, Optional, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..common.exceptions import LedgerProviderError
from ..common.logger import log
from ..database import models as db_models
from ..models.enums import CreditMovementType
from ..models.ledger import (
    Activity, ActivityExclusion, LedgerSnapshot, Payment, Redirection, StandingCredit, Student
)
from ..models.schedule import RecurringDueSchedule


class LedgerDataProvider(Protocol):
    """Anything that can hand the engine a consistent snapshot of one tenant."""
    async def fetch_snapshot(self, tenant_id: UUID) -> LedgerSnapshot:
        ...


class InMemoryLedgerProvider:
    """Serves snapshots the caller already holds."""
    def __init__(self, snapshots: Iterable[LedgerSnapshot] = ()):
        self._snapshots = {s.tenant_id: s for s in snapshots}

    def add(self, snapshot: LedgerSnapshot) -> None:
        self._snapshots[snapshot.tenant_id] = snapshot

    async def fetch_snapshot(self, tenant_id: UUID) -> LedgerSnapshot:
        snapshot = self._snapshots.get(tenant_id)
        if snapshot is None:
            raise LedgerProviderError(f"No ledger snapshot loaded for tenant {tenant_id}.")
        return snapshot


class SqlLedgerProvider:
    """
    Reads a tenant's ledger from the treasury tables.

    All collections are read through the same session, so they come from one
    transaction. Give it a fresh session per snapshot.
    """
    def __init__(self, db: AsyncSession, default_schedule: Optional[RecurringDueSchedule] = None):
        self.db = db
        self.default_schedule = default_schedule

    async def fetch_snapshot(self, tenant_id: UUID) -> LedgerSnapshot:
        log.info(f"Fetching ledger snapshot for tenant {tenant_id}.")
        try:
            students = await self._fetch_students(tenant_id)
            activities = await self._fetch_activities(tenant_id)
            exclusions = await self._fetch_exclusions(tenant_id)
            payments = await self._fetch_payments(tenant_id)
            credit_entries = await self._fetch_credit_entries(tenant_id)
            schedule = await self._fetch_schedule(tenant_id)
        except SQLAlchemyError as e:
            log.error(f"Database error fetching ledger snapshot for tenant {tenant_id}: {e}", exc_info=True)
            raise LedgerProviderError(f"Could not fetch ledger snapshot for tenant {tenant_id}.") from e

        snapshot = LedgerSnapshot(
            tenant_id=tenant_id,
            students=students,
            activities=activities,
            exclusions=exclusions,
            payments=payments,
            credit_entries=credit_entries,
            schedule=schedule,
        )
        log.info(f"Fetched {snapshot!r}")
        return snapshot

    # --- Internal fetchers ---

    async def _fetch_students(self, tenant_id: UUID) -> list[Student]:
        stmt = select(db_models.Students).filter(
            db_models.Students.tenant_id == tenant_id
        ).order_by(db_models.Students.last_name, db_models.Students.id)
        rows = (await self.db.execute(stmt)).scalars().all()
        return [Student.model_validate(row) for row in rows]

    async def _fetch_activities(self, tenant_id: UUID) -> list[Activity]:
        stmt = select(db_models.Activities).filter(db_models.Activities.tenant_id == tenant_id)
        rows = (await self.db.execute(stmt)).scalars().all()
        return [
            Activity(id=row.id, name=row.name, amount=row.amount, occurrence_date=row.activity_date)
            for row in rows
        ]

    async def _fetch_exclusions(self, tenant_id: UUID) -> list[ActivityExclusion]:
        stmt = select(db_models.ActivityExclusions).filter(db_models.ActivityExclusions.tenant_id == tenant_id)
        rows = (await self.db.execute(stmt)).scalars().all()
        return [ActivityExclusion.model_validate(row) for row in rows]

    async def _fetch_payments(self, tenant_id: UUID) -> list[Payment]:
        stmt = select(db_models.Payments).filter(
            db_models.Payments.tenant_id == tenant_id
        ).order_by(db_models.Payments.folio)
        rows = (await self.db.execute(stmt)).scalars().all()
        return [
            Payment(
                id=row.folio,
                payment_date=row.payment_date,
                amount=row.amount,
                student_id=row.student_id,
                description=row.concept,
                activity_id=row.activity_id,
                period_label=row.month_period,
            )
            for row in rows
        ]

    async def _fetch_credit_entries(self, tenant_id: UUID) -> list:
        """
        Standing credit comes from the per-student balance table. Of the
        movements, only negative payment redirects matter here: they are
        payments already moved onto recurring dues. Every other movement is
        already reflected in the balance table.
        """
        credits_stmt = select(db_models.StudentCredits).filter(db_models.StudentCredits.tenant_id == tenant_id)
        credit_rows = (await self.db.execute(credits_stmt)).scalars().all()

        redirects_stmt = select(db_models.CreditMovements).filter(
            db_models.CreditMovements.tenant_id == tenant_id,
            db_models.CreditMovements.type == CreditMovementType.PAYMENT_REDIRECT.value,
            db_models.CreditMovements.amount < 0,
        )
        redirect_rows = (await self.db.execute(redirects_stmt)).scalars().all()

        entries = [StandingCredit(student_id=row.student_id, amount=row.amount) for row in credit_rows]
        entries.extend(
            Redirection(student_id=row.student_id, amount=row.amount, source_payment_id=row.source_payment_id)
            for row in redirect_rows
        )
        return entries

    async def _fetch_schedule(self, tenant_id: UUID) -> RecurringDueSchedule:
        row = await self.db.get(db_models.RecurringDueSchedules, tenant_id)
        if row is None:
            log.info(f"No stored schedule for tenant {tenant_id}; using the configured default.")
            return self.default_schedule or RecurringDueSchedule.from_settings()
        return RecurringDueSchedule.model_validate(row)
