'''
Static enums shared by the ledger models and the reconciliation core.
'''
import enum

# --- Base Enum Class ---
class ListableEnum(str, enum.Enum):
    """A custom Enum base class that can list all member names."""
    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.value for member in cls]


class CutoffPolicy(ListableEnum):
    """How far into the billing year recurring dues are counted."""
    CURRENT_PERIOD = "current_period"
    FULL_YEAR = "full_year"

class CreditEntryKind(ListableEnum):
    STANDING_CREDIT = "standing_credit"
    REDIRECTION = "redirection"

class PaymentBucket(ListableEnum):
    """Where a payment ends up after classification."""
    RECURRING_DUE = "recurring_due"
    ACTIVITY = "activity"
    UNCLASSIFIED = "unclassified"

class MatchRule(ListableEnum):
    """Which classification rule decided a payment's bucket."""
    DIRECT_REFERENCE = "direct_reference"
    ACTIVITY_NAME = "activity_name"
    DUE_MARKER = "due_marker"
    NONE = "none"

class CreditMovementType(ListableEnum):
    """
    Movement types in the credit_movements table that the engine reads.
    The other types are already reflected in the standing credit balance.
    """
    PAYMENT_REDIRECT = "payment_redirect"
