"""
Canonical transaction records.

Every statement row, whatever its source dialect, ends up as a Transaction:

- date: canonical YYYY/MM/DD string
- payee: normalized counterparty name (upper-case, installment suffixes stripped)
- amount: float, negative for money leaving the account, positive for money entering
- memo: "<id>,<docType>[,<cardType>,<cardNumber>]"
- id: 8 hex characters derived from (date, payee, amount)

The id is content-addressed: two rows with the same date, payee and amount
share an id, which is what makes re-imports idempotent against the ledger.
"""

import hashlib
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

import numpy as np
import pandas as pd

from .exceptions import RowParseError, ValidationError

logger = logging.getLogger(__name__)

DATE_LENGTH = 10
CANONICAL_DATE_FORMAT = '%Y/%m/%d'
ID_LENGTH = 8

# Trailing installment markers such as "LOJA X 03/10"
INSTALLMENT_SUFFIX = re.compile(r'(?:\s+\d{2}/\d{2})+$')

# Noisy acquirer prefixes collapsed to a stable payee
NOISY_PREFIXES = [
    ('MERCADOPAGO*', 'MERCADOPAGO'),
    ('PAYPAL *', 'PAYPAL'),
    ('UBER *', 'UBER'),
    ('UBER*', 'UBER'),
    ('IFD*', 'IFOOD'),
    ('MP*', 'MERCADOPAGO'),
]


class DocType(str, Enum):
    EXTRATO = 'extrato'
    FATURA = 'fatura'


def standardize_date(date_str):
    """
    Convert a DD/MM/YYYY statement date to the canonical YYYY/MM/DD form.

    Only the length is checked; the fields are reordered without calendar
    validation.

    Args:
        date_str (str): Date as found in the statement

    Returns:
        str: Date in YYYY/MM/DD format

    Raises:
        RowParseError: If the date is null, not a string, or not 10 characters long
    """
    if date_str is None or not isinstance(date_str, str):
        raise RowParseError(f"Date must be a string, got {type(date_str)}")

    date_str = date_str.strip().strip('"\'')
    if len(date_str) != DATE_LENGTH:
        raise RowParseError(f"Invalid date format: {date_str!r}")

    return f"{date_str[6:10]}/{date_str[3:5]}/{date_str[0:2]}"


def clean_amount(amount):
    """Clean and standardize a locale-formatted amount.

    Handles "R$ 1.234,56", "-2327,00", "113.98" and numeric spreadsheet cells.
    When a comma is present it is the decimal separator and dots are thousands
    separators; otherwise a dot is the decimal separator.

    Args:
        amount (str or float): Amount to clean

    Returns:
        float: Parsed amount, sign preserved from the source

    Raises:
        RowParseError: If amount cannot be converted to float
    """
    if amount is None or isinstance(amount, bool):
        raise RowParseError(f"Invalid amount format: {amount!r}")
    if isinstance(amount, (int, float, np.number)):
        if pd.isna(amount) or not np.isfinite(amount):
            raise RowParseError(f"Invalid amount format: {amount!r}")
        return float(amount)
    if not isinstance(amount, str):
        raise RowParseError(f"Amount must be string or number, got {type(amount)}")

    cleaned = amount.replace('R$', '').replace('\xa0', '').replace(' ', '').strip()

    # Handle parentheses for negative numbers
    if cleaned.startswith('(') and cleaned.endswith(')'):
        cleaned = '-' + cleaned[1:-1]

    if ',' in cleaned:
        cleaned = cleaned.replace('.', '').replace(',', '.')

    if not cleaned:
        raise RowParseError(f"Invalid amount format: {amount!r}")

    try:
        result = float(cleaned)
    except ValueError:
        raise RowParseError(f"Invalid amount format: {amount!r}")
    if not np.isfinite(result):
        raise RowParseError(f"Invalid amount format: {amount!r}")
    return result


def round_amount(amount):
    """Round to cents, folding negative zero into zero."""
    return float(np.round(amount, 2)) + 0.0


def normalize_payee(payee):
    """
    Normalize a counterparty name so the same payee always hashes the same way.

    Args:
        payee (str): Raw payee text

    Returns:
        str: Upper-cased payee with whitespace collapsed, installment suffixes
        removed and noisy prefixes replaced by their stable token. Empty string
        for null input.
    """
    if payee is None or (not isinstance(payee, str) and pd.isna(payee)):
        return ''

    normalized = ' '.join(str(payee).split()).upper()
    normalized = INSTALLMENT_SUFFIX.sub('', normalized).strip()

    for prefix, token in NOISY_PREFIXES:
        if normalized.startswith(prefix):
            return token
    return normalized


def generate_transaction_id(date, payee, amount):
    """Return the 8-hex custom ID for a canonical (date, payee, amount) triple."""
    key = f"{date}-{payee}-{round_amount(amount):.2f}"
    return hashlib.sha256(key.encode('utf-8')).hexdigest()[:ID_LENGTH]


def format_memo(transaction_id, doc_type, card_type='', card_number=''):
    """Build the memo that carries the custom ID through the ledger."""
    parts = [transaction_id, DocType(doc_type).value]
    if card_type or card_number:
        parts.extend([card_type, card_number])
    return ','.join(parts)


def parse_memo(memo):
    """
    Split a memo back into its tokens.

    Args:
        memo (str): Memo, optionally wrapped in CSV quotes

    Returns:
        dict: id, doc_type, card_type and card_number (empty strings when missing)
    """
    tokens = [] if not memo else memo.strip().strip('"').split(',')
    tokens += [''] * (4 - len(tokens))
    return {
        'id': tokens[0].strip(),
        'doc_type': tokens[1].strip(),
        'card_type': tokens[2].strip(),
        'card_number': tokens[3].strip(),
    }


def extract_custom_id(memo):
    """Return the leading custom ID of a memo, or '' when the memo has none."""
    if not memo:
        return ''
    memo = memo.strip().strip('"')
    idx = memo.find(',')
    if idx > 0:
        return memo[:idx].strip()
    return ''


@dataclass(frozen=True)
class Transaction:
    """A validated, immutable statement transaction."""

    date: str
    payee: str
    amount: float
    memo: str
    id: str
    doc_type: DocType
    card_type: str = ''
    card_number: str = ''
    line_number: Optional[int] = field(default=None, compare=False)

    @property
    def amount_milliunits(self):
        return int(round(self.amount * 1000))

    def api_date(self):
        """Return the date as a datetime.date for the ledger API.

        Raises:
            ValueError: If the canonical date is not a real calendar date
        """
        return datetime.strptime(self.date, CANONICAL_DATE_FORMAT).date()

    @property
    def payee_or_none(self):
        return self.payee or None

    @property
    def memo_or_none(self):
        return self.memo or None

    def to_dict(self):
        return {
            'Date': self.date,
            'Payee': self.payee,
            'Memo': self.memo,
            'Amount': self.amount,
        }


@dataclass
class TransactionFields:
    """Raw values collected from one statement row before validation.

    The sign rule is the caller's: credit-card dialects set negate so card
    charges become outflows.
    """

    date: Optional[str] = None
    payee: Optional[str] = None
    amount: Union[str, float, None] = None
    doc_type: Optional[DocType] = None
    negate: bool = False
    card_type: str = ''
    card_number: str = ''
    line_number: Optional[int] = None


def build_transaction(fields):
    """
    Validate raw row fields and produce a Transaction.

    Steps run in order (date, amount, payee, document type) and the first
    failure is raised; later steps are not attempted.

    Args:
        fields (TransactionFields): Values read from the statement row

    Returns:
        Transaction: The validated record with its id and memo

    Raises:
        RowParseError: If the date or amount cannot be parsed
        ValidationError: If payee or document type is missing
    """
    date = standardize_date(fields.date)

    amount = clean_amount(fields.amount)
    if fields.negate:
        amount = -amount
    amount = round_amount(amount)

    payee = normalize_payee(fields.payee)
    if not payee:
        raise ValidationError("Payee is required")

    if not fields.doc_type:
        raise ValidationError("Document type is required")
    try:
        doc_type = DocType(fields.doc_type)
    except ValueError:
        raise ValidationError(f"Unknown document type: {fields.doc_type}")

    card_type = (fields.card_type or '').strip()
    card_number = (fields.card_number or '').strip()

    transaction_id = generate_transaction_id(date, payee, amount)
    return Transaction(
        date=date,
        payee=payee,
        amount=amount,
        memo=format_memo(transaction_id, doc_type, card_type, card_number),
        id=transaction_id,
        doc_type=doc_type,
        card_type=card_type,
        card_number=card_number,
        line_number=fields.line_number,
    )


def sort_by_date(transactions):
    """Return transactions in chronological order, keeping row order for ties."""
    return sorted(transactions, key=lambda t: t.date)
