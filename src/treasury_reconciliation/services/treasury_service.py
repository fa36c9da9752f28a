'''
Entry point for the screens that show debts: the dashboard, the debt
reports and the student portal all go through this service.
'''
from datetime import date
from typing import Any, Iterable, Optional
from uuid import UUID

from ..common.logger import log
from ..core.payment_matcher import PaymentMatcher
from ..core.reconciliation import Reconciliation
from ..models.reconciliation import ReconciliationResult, RosterReconciliation
from ..models.schedule import RecurringDueSchedule
from .ledger_provider import LedgerDataProvider


class TreasuryService:
    """
    Fetches a tenant snapshot from the provider and reconciles it.
    `as_of` is always supplied by the caller; nothing here reads the clock.
    """
    def __init__(
        self,
        provider: LedgerDataProvider,
        schedule: Optional[RecurringDueSchedule] = None,
        matcher: Optional[PaymentMatcher] = None,
        max_workers: Optional[int] = None,
    ):
        self.provider = provider
        self.schedule = schedule
        self.matcher = matcher
        self.max_workers = max_workers

    async def _reconciliation_for(self, tenant_id: UUID) -> Reconciliation:
        snapshot = await self.provider.fetch_snapshot(tenant_id)
        return Reconciliation(snapshot, schedule=self.schedule, matcher=self.matcher)

    async def get_student_debt(self, tenant_id: UUID, student_id: int, as_of: date) -> ReconciliationResult:
        """
        The self-service view of one student.

        Raises:
            StudentNotFoundError: If the student does not belong to the tenant.
        """
        log.info(f"Reconciling student {student_id} of tenant {tenant_id} as of {as_of.isoformat()}.")
        reconciliation = await self._reconciliation_for(tenant_id)
        return reconciliation.reconcile(student_id, as_of)

    async def get_roster_debts(
        self,
        tenant_id: UUID,
        as_of: date,
        student_ids: Optional[Iterable[int]] = None,
    ) -> RosterReconciliation:
        """Reconciles the whole roster, or just the given students."""
        reconciliation = await self._reconciliation_for(tenant_id)
        return reconciliation.reconcile_roster(student_ids, as_of=as_of, max_workers=self.max_workers)

    async def get_debt_report(self, tenant_id: UUID, as_of: date) -> dict[str, Any]:
        """Debtors ranked by amount owed, with tenant totals, as a plain dict."""
        roster = await self.get_roster_debts(tenant_id, as_of)
        return roster.as_report()
