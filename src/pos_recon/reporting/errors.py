"""Exceptions raised by the reporting layer."""


class ReconciliationError(Exception):
    """Base exception for report reconciliation."""


class OrderStoreUnavailable(ReconciliationError):
    """Raised when the Order Store cannot supply a snapshot."""


class InvalidReportRequest(ReconciliationError):
    """Raised when a report is requested with an unknown dimension, sort or range."""
