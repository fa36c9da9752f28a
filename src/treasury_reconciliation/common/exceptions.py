"""
This file contains custom, application-specific exceptions.
"""

class ScheduleConfigurationError(Exception):
    """Raised when a recurring due schedule is missing or malformed."""
    pass

class StudentNotFoundError(Exception):
    """Raised when a student ID is not part of the ledger snapshot."""
    pass

class LedgerProviderError(Exception):
    """Raised when a ledger snapshot could not be fetched from its source."""
    pass
