'''
The per-tenant recurring due schedule value object.
'''
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from ..common.config import Settings, settings as default_settings
from ..common.exceptions import ScheduleConfigurationError
from .enums import CutoffPolicy

SUPPORTED_PERIOD_UNITS = ("month",)

# Fixed labels, independent of the process locale. Index 0 is unused.
PERIOD_LABELS = (
    "", "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
    "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
)


class RecurringDueSchedule(BaseModel):
    """
    Configuration of the recurring due for one tenant.

    A schedule is validated when it is built. Anything the engine cannot bill
    against (a non-positive amount, a missing or out-of-range period, an
    inverted period range) raises ScheduleConfigurationError right here, so no
    student is ever reconciled against a broken schedule.
    """
    period_unit: str = "month"
    amount_per_period: Optional[Decimal] = None
    first_period: Optional[int] = None
    last_period: Optional[int] = None
    cutoff_policy: CutoffPolicy = CutoffPolicy.CURRENT_PERIOD

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @model_validator(mode='after')
    def _check_configuration(self) -> 'RecurringDueSchedule':
        if self.period_unit not in SUPPORTED_PERIOD_UNITS:
            raise ScheduleConfigurationError(
                f"Unsupported period unit '{self.period_unit}'. Supported: {SUPPORTED_PERIOD_UNITS}"
            )
        if self.amount_per_period is None or self.amount_per_period <= 0:
            raise ScheduleConfigurationError(
                f"Amount per period must be positive, got {self.amount_per_period}."
            )
        for name in ('first_period', 'last_period'):
            value = getattr(self, name)
            if value is None:
                raise ScheduleConfigurationError(f"Schedule is missing its {name}.")
            if not 1 <= value <= 12:
                raise ScheduleConfigurationError(f"{name} must be a month number (1-12), got {value}.")
        if self.first_period > self.last_period:
            raise ScheduleConfigurationError(
                f"first_period ({self.first_period}) is after last_period ({self.last_period})."
            )
        return self

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> 'RecurringDueSchedule':
        """Builds the default schedule from the application settings."""
        config = config or default_settings
        try:
            return cls(
                amount_per_period=config.RECURRING_DUE_AMOUNT,
                first_period=config.FIRST_BILLABLE_MONTH,
                last_period=config.LAST_BILLABLE_MONTH,
                cutoff_policy=config.DUE_CUTOFF_POLICY,
            )
        except ValueError as e:
            # pydantic's ValidationError (bad cutoff policy, bad types)
            raise ScheduleConfigurationError(f"Invalid schedule settings: {e}") from e

    @staticmethod
    def period_label(period: int) -> str:
        return PERIOD_LABELS[period]

    @property
    def periods(self) -> list[int]:
        """All billable periods of the year, in order."""
        return list(range(self.first_period, self.last_period + 1))

    def __str__(self) -> str:
        return (
            f"{self.amount_per_period:.2f} per {self.period_unit}, "
            f"{self.period_label(self.first_period)}-{self.period_label(self.last_period)} "
            f"({self.cutoff_policy.value})"
        )
