"""Exception hierarchy for statement parsing and reconciliation."""


class StatementReconcileError(Exception):
    """Base exception for all statement_reconcile errors."""


class RowParseError(StatementReconcileError, ValueError):
    """Raised when a single statement row cannot be parsed (bad date, amount or layout)."""


class ValidationError(StatementReconcileError, ValueError):
    """Raised when a transaction is missing a required field."""


class UnknownDialectError(StatementReconcileError, ValueError):
    """Raised when no statement dialect matches a file."""


class FileFormatError(StatementReconcileError, ValueError):
    """Raised when a whole file is unreadable: broken workbook, empty sheet, empty CSV."""


class PayloadError(StatementReconcileError, ValueError):
    """Raised when a transaction cannot be converted into a ledger payload."""
