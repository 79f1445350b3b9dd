"""
Statement Reconcile - A tool for importing Itaú statements into a budgeting ledger.

This package provides functionality to:
- Read statement exports in the Itaú formats (extrato XLS/TXT/OFX, fatura XLS/CSV)
  and re-read its own canonical CSV export
- Standardize every row into a canonical transaction with a deterministic ID
- Export transactions as Date,Payee,Memo,Amount CSV
- Reconcile statement transactions against the ledger and create the missing ones

The canonical transaction format includes:
- Date: Date of the transaction (YYYY/MM/DD)
- Payee: Normalized counterparty name
- Memo: "<id>,<docType>[,<cardType>,<cardNumber>]"
- Amount: Numeric amount (negative for money leaving the account)
"""

from .config import Config
from .exceptions import (
    StatementReconcileError,
    RowParseError,
    ValidationError,
    UnknownDialectError,
    FileFormatError,
    PayloadError
)
from .executors import (
    LedgerClient,
    Statement,
    StatementOutcome,
    plan_statement,
    apply_statement,
    plan_manifest,
    apply_manifest
)
from .export import TransactionFilter, to_csv, write_csv, output_filename
from .formats import Dialect, detect_dialect
from .parsers import (
    parse_bytes,
    import_file,
    process_files,
    parse_itau_extrato_xls,
    parse_itau_fatura_xls,
    parse_itau_extrato_txt,
    parse_itau_fatura_csv,
    parse_itau_extrato_ofx,
    parse_canonical_csv
)
from .reconcile import (
    RemoteTransaction,
    Report,
    Status,
    TransactionPayload,
    build_report,
    format_report_summary
)
from .transaction import (
    DocType,
    Transaction,
    TransactionFields,
    build_transaction,
    standardize_date,
    clean_amount,
    normalize_payee,
    sort_by_date
)

__all__ = [
    'Config',
    'StatementReconcileError',
    'RowParseError',
    'ValidationError',
    'UnknownDialectError',
    'FileFormatError',
    'PayloadError',
    'LedgerClient',
    'Statement',
    'StatementOutcome',
    'plan_statement',
    'apply_statement',
    'plan_manifest',
    'apply_manifest',
    'TransactionFilter',
    'to_csv',
    'write_csv',
    'output_filename',
    'Dialect',
    'detect_dialect',
    'parse_bytes',
    'import_file',
    'process_files',
    'parse_itau_extrato_xls',
    'parse_itau_fatura_xls',
    'parse_itau_extrato_txt',
    'parse_itau_fatura_csv',
    'parse_itau_extrato_ofx',
    'parse_canonical_csv',
    'RemoteTransaction',
    'Report',
    'Status',
    'TransactionPayload',
    'build_report',
    'format_report_summary',
    'DocType',
    'Transaction',
    'TransactionFields',
    'build_transaction',
    'standardize_date',
    'clean_amount',
    'normalize_payee',
    'sort_by_date'
]
