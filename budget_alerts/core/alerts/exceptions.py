"""
Budget alert processing errors.

DecodeError, MissingFieldError, PersistenceError and QueryError abort the
invocation. NotificationError is logged by the dispatcher and never fails it.
"""


class BudgetAlertError(Exception):
    """Base exception for budget alert processing"""
    pass


class DecodeError(BudgetAlertError):
    """Inbound payload is not valid base64-encoded JSON"""
    pass


class MissingFieldError(BudgetAlertError):
    """A required attribute or payload field is absent"""

    def __init__(self, field_name: str, source: str):
        self.field_name = field_name
        self.source = source
        super().__init__(f"Missing required {source} field: {field_name}")


class PersistenceError(BudgetAlertError):
    """Alert row could not be written to the alert table"""
    pass


class QueryError(BudgetAlertError):
    """A trend query failed"""

    def __init__(self, query_name: str, message: str):
        self.query_name = query_name
        super().__init__(f"Trend query '{query_name}' failed: {message}")


class NotificationError(BudgetAlertError):
    """Chat webhook was unreachable or rejected the card"""
    pass
