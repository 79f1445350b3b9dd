"""
Canonical CSV export.

The export format is the one the ledger's file importer accepts and the one
the canonical CSV dialect re-imports:

    Date,Payee,Memo,Amount
    2025/03/17,PIX TRANSF ID_A15/03,"1a2b3c4d,extrato",-2327.00
"""

import csv
import io
import logging
import pathlib
from dataclasses import dataclass
from datetime import datetime

import pandas as pd

from .transaction import CANONICAL_DATE_FORMAT

logger = logging.getLogger(__name__)

CANONICAL_COLUMNS = ['Date', 'Payee', 'Memo', 'Amount']
OUTPUT_SUFFIX = '-ynabu.csv'


@dataclass
class TransactionFilter:
    """Optional export filter.

    Dates are inclusive YYYY/MM/DD bounds; amount bounds of 0 are ignored and the
    payee match is a case-insensitive substring.
    """

    start_date: str = ''
    end_date: str = ''
    min_amount: float = 0.0
    max_amount: float = 0.0
    payee: str = ''

    def __post_init__(self):
        # Bounds must be YYYY/MM/DD
        for bound in (self.start_date, self.end_date):
            if bound:
                datetime.strptime(bound, CANONICAL_DATE_FORMAT)

    def __call__(self, transaction):
        if self.start_date and transaction.date < self.start_date:
            return False
        if self.end_date and transaction.date > self.end_date:
            return False
        if self.min_amount and transaction.amount < self.min_amount:
            return False
        if self.max_amount and transaction.amount > self.max_amount:
            return False
        if self.payee and self.payee.lower() not in transaction.payee.lower():
            return False
        return True


def to_dataframe(transactions, transaction_filter=None):
    """Build the canonical Date/Payee/Memo/Amount DataFrame."""
    rows = [t.to_dict() for t in transactions if transaction_filter is None or transaction_filter(t)]
    df = pd.DataFrame(rows, columns=CANONICAL_COLUMNS)
    df['Amount'] = df['Amount'].astype(float)
    return df


def to_csv(transactions, transaction_filter=None):
    """Encode transactions in the canonical CSV format.

    Args:
        transactions (list): Transactions to export, in the order given
        transaction_filter (callable, optional): Predicate selecting rows to keep

    Returns:
        str: CSV text with a Date,Payee,Memo,Amount header
    """
    df = to_dataframe(transactions, transaction_filter)
    buffer = io.StringIO()
    df.to_csv(buffer, index=False, float_format='%.2f', quoting=csv.QUOTE_MINIMAL, lineterminator='\n')
    return buffer.getvalue()


def write_csv(transactions, output_path, transaction_filter=None):
    """Write the canonical CSV to output_path, creating parent directories."""
    output_path = pathlib.Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Writing {len(transactions)} transactions to {output_path}")
    output_path.write_text(to_csv(transactions, transaction_filter), encoding='utf-8')
    return output_path


def output_filename(input_name):
    """Name of the export generated for a statement file."""
    return pathlib.Path(input_name).stem + OUTPUT_SUFFIX
