"""
Treasury Reconciliation Engine.

Works out what each student owes in recurring dues and activity charges,
and how standing credit and payment redirections reduce it.
"""
from .common.exceptions import ScheduleConfigurationError, StudentNotFoundError, LedgerProviderError
from .core.payment_matcher import PaymentMatcher, SubstringPaymentMatcher
from .core.reconciliation import Reconciliation
from .models.enums import CutoffPolicy
from .models.ledger import (
    Activity, ActivityExclusion, LedgerSnapshot, Payment, Redirection, StandingCredit, Student
)
from .models.reconciliation import PeriodBalance, ReconciliationResult, RosterReconciliation, TenantTotals
from .models.schedule import RecurringDueSchedule
