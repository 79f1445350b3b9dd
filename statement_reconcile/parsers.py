"""
Statement Parsers

Each dialect parser turns the raw bytes of one statement export into an ordered
list of Transaction records. Parsers are lenient per row: a row with a bad date,
a bad amount, too few fields or a missing payee is logged at DEBUG and skipped.
Only whole-file problems (unreadable workbook, empty sheet, empty CSV) raise.

Dialects and sign rules:
- Itaú extrato XLS: date, payee, -, amount; value as-is; rows start after "lançamentos"
- Itaú fatura XLS: date, payee, -, amount; value negated; card-holder sections
- Itaú extrato TXT: date;payee;amount; value as-is
- Itaú fatura CSV: date(ISO),payee,amount; value negated
- Itaú extrato OFX: <STMTTRN> blocks; value as-is
- Canonical CSV: Date,Payee,Memo,Amount; value as-is (this tool's own export)

Output preserves row order; callers sort by date when exporting.
"""

import csv
import io
import logging
import pathlib
import re
import unicodedata
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import pandas as pd

from .config import Config
from .exceptions import FileFormatError, StatementReconcileError
from .export import output_filename, write_csv
from .formats import Dialect, detect_dialect
from .readers import DEFAULT_MAX_ROWS, read_spreadsheet_rows
from .transaction import DocType, TransactionFields, build_transaction, parse_memo, sort_by_date
from .utils import create_output_directories, decode_bytes

logger = logging.getLogger(__name__)

# Spreadsheet column offsets shared by both Itaú workbook layouts
DATE_COLUMN = 0
PAYEE_COLUMN = 1
AMOUNT_COLUMN = 3
MIN_SPREADSHEET_CELLS = 4

EXTRATO_SECTION_MARKERS = ('lancamentos', 'lanã§amentos')
EXTRATO_SKIP_PAYEE_PREFIX = 'SALDO'
HEADER_CELL = 'data'

FATURA_SKIP_MARKERS = (
    'total',
    'lançamentos',
    'lancamentos',
    'encargos',
    'fees',
    'installments',
    'parcelad',
    'próximas faturas',
    'proximas faturas',
)
CARD_NUMBER = re.compile(r'final (\d+)')
CARD_TYPES = ('titular', 'adicional')
FATURA_ROW_DATE = re.compile(r'^\d{2}/\d{2}')

OFX_TRANSACTION = re.compile(r'<STMTTRN>(.*?)</STMTTRN>', re.IGNORECASE | re.DOTALL)


def _fold(text):
    """Lower-case and strip accents for marker comparisons."""
    decomposed = unicodedata.normalize('NFKD', text.strip().lower())
    return ''.join(c for c in decomposed if not unicodedata.combining(c))


class RowAction(Enum):
    SKIP = 'skip'
    MARKER = 'marker'
    RECORD = 'record'


@dataclass(frozen=True)
class ScanState:
    """Position of the spreadsheet scan: outside any section, or inside one."""

    in_section: bool = False
    card_type: str = ''
    card_number: str = ''


def _card_holder(text):
    """Return (card_type, card_number) for a card-holder marker cell, else None."""
    text = text.strip()
    match = CARD_NUMBER.search(text)
    if not match:
        return None
    for card_type in CARD_TYPES:
        if text.endswith(f"({card_type})"):
            return card_type, match.group(1)
    return None


def _scan_extrato_row(state, cells):
    first = cells[DATE_COLUMN].strip()
    if _fold(first) in EXTRATO_SECTION_MARKERS or first.lower() in EXTRATO_SECTION_MARKERS:
        return ScanState(in_section=True), RowAction.MARKER
    if not state.in_section:
        return state, RowAction.SKIP
    if not first or first.lower() == HEADER_CELL:
        return state, RowAction.SKIP
    if cells[PAYEE_COLUMN].strip().upper().startswith(EXTRATO_SKIP_PAYEE_PREFIX):
        return state, RowAction.SKIP
    return state, RowAction.RECORD


def _scan_fatura_row(state, cells):
    first = cells[DATE_COLUMN].strip()
    holder = _card_holder(first)
    if holder:
        card_type, card_number = holder
        return ScanState(in_section=True, card_type=card_type, card_number=card_number), RowAction.MARKER
    if not state.in_section:
        return state, RowAction.SKIP

    lowered = first.lower()
    if not first or lowered == HEADER_CELL:
        return state, RowAction.SKIP
    if any(marker in lowered for marker in FATURA_SKIP_MARKERS):
        return state, RowAction.SKIP
    if not FATURA_ROW_DATE.match(first):
        return state, RowAction.SKIP
    return state, RowAction.RECORD


def scan_row(state, cells, dialect):
    """
    Advance the spreadsheet scan by one row.

    Args:
        state (ScanState): State before this row
        cells (list): Row cells as strings
        dialect (Dialect): ITAU_EXTRATO_XLS or ITAU_FATURA_XLS

    Returns:
        tuple: (next ScanState, RowAction) where RECORD means the row holds a transaction

    Raises:
        ValueError: If dialect is not a spreadsheet dialect
    """
    if len(cells) < MIN_SPREADSHEET_CELLS:
        return state, RowAction.SKIP
    if dialect == Dialect.ITAU_EXTRATO_XLS:
        return _scan_extrato_row(state, cells)
    if dialect == Dialect.ITAU_FATURA_XLS:
        return _scan_fatura_row(state, cells)
    raise ValueError(f"Not a spreadsheet dialect: {dialect}")


def _build_or_skip(fields, context):
    """Build a transaction, returning None (and logging) when the row is invalid."""
    try:
        return build_transaction(fields)
    except StatementReconcileError as e:
        logger.debug(f"Skipping {context}: {str(e)}")
        return None


def parse_spreadsheet_rows(rows, dialect):
    """Walk spreadsheet rows through the section scanner and build transactions.

    Args:
        rows (list): Rows of string cells
        dialect (Dialect): ITAU_EXTRATO_XLS or ITAU_FATURA_XLS

    Returns:
        list: Transactions in row order
    """
    is_fatura = dialect == Dialect.ITAU_FATURA_XLS
    state = ScanState()
    transactions = []

    for line_number, cells in enumerate(rows):
        state, action = scan_row(state, cells, dialect)
        if action == RowAction.MARKER:
            logger.debug(f"Entering section at row {line_number} (card={state.card_type} {state.card_number})")
            continue
        if action != RowAction.RECORD:
            continue

        fields = TransactionFields(
            date=cells[DATE_COLUMN],
            payee=cells[PAYEE_COLUMN],
            amount=cells[AMOUNT_COLUMN],
            doc_type=DocType.FATURA if is_fatura else DocType.EXTRATO,
            negate=is_fatura,
            card_type=state.card_type,
            card_number=state.card_number,
            line_number=line_number,
        )
        transaction = _build_or_skip(fields, f"row {line_number} {cells}")
        if transaction is not None:
            transactions.append(transaction)

    logger.info(f"Parsed {len(transactions)} transactions from {len(rows)} {dialect.value} rows")
    return transactions


def parse_itau_extrato_xls(data, max_rows=DEFAULT_MAX_ROWS):
    """Parse an Itaú checking-account workbook."""
    rows = read_spreadsheet_rows(data, max_rows=max_rows)
    return parse_spreadsheet_rows(rows, Dialect.ITAU_EXTRATO_XLS)


def parse_itau_fatura_xls(data, max_rows=DEFAULT_MAX_ROWS):
    """Parse an Itaú credit-card workbook; card charges become outflows."""
    rows = read_spreadsheet_rows(data, max_rows=max_rows)
    return parse_spreadsheet_rows(rows, Dialect.ITAU_FATURA_XLS)


def parse_itau_extrato_txt(data, max_rows=None):
    """Parse a ';'-delimited Itaú checking-account export (date;payee;amount)."""
    transactions = []
    lines = decode_bytes(data).splitlines()

    for line_number, line in enumerate(lines):
        if not line.strip():
            continue

        fields = line.split(';')
        if len(fields) < 3:
            logger.debug(f"Skipping line {line_number}: expected 3 fields, got {len(fields)}")
            continue

        transaction = _build_or_skip(
            TransactionFields(
                date=fields[0],
                payee=fields[1],
                amount=fields[2],
                doc_type=DocType.EXTRATO,
                line_number=line_number,
            ),
            f"line {line_number} {line!r}",
        )
        if transaction is not None:
            transactions.append(transaction)

    logger.info(f"Parsed {len(transactions)} transactions from {len(lines)} text lines")
    return transactions


def _read_csv_records(data):
    text = decode_bytes(data)
    try:
        records = list(csv.reader(io.StringIO(text, newline='')))
    except csv.Error as e:
        raise FileFormatError(f"failed to read csv: {str(e)}")
    if not records:
        raise FileFormatError("csv is empty")
    return records


def _iso_to_statement_date(value):
    """Convert YYYY-MM-DD to DD/MM/YYYY, or None if the value is not ISO."""
    parts = value.strip().split('-')
    if len(parts) != 3:
        return None
    return f"{parts[2]}/{parts[1]}/{parts[0]}"


def parse_itau_fatura_csv(data, max_rows=None):
    """Parse an Itaú credit-card CSV (data, lançamento, valor), e.g.

    2025-06-27,IFD*55668457 GABRIEL A,113.98

    Raises:
        FileFormatError: If the CSV is empty or malformed
    """
    records = _read_csv_records(data)
    logger.debug(f"Parsing Itaú fatura CSV: {len(records)} records, first={records[0]}")

    start = 0
    first = records[0]
    if len(first) >= 3 and first[0].strip().lower() in ('data', 'date'):
        start = 1

    transactions = []
    for line_number in range(start, len(records)):
        record = records[line_number]
        if len(record) < 3:
            logger.debug(f"Skipping line {line_number}: less than 3 fields")
            continue

        date = _iso_to_statement_date(record[0])
        if date is None:
            logger.debug(f"Skipping line {line_number}: unsupported date {record[0]!r}")
            continue

        transaction = _build_or_skip(
            TransactionFields(
                date=date,
                payee=record[1],
                amount=record[2].strip(),
                doc_type=DocType.FATURA,
                negate=True,
                line_number=line_number,
            ),
            f"line {line_number} {record}",
        )
        if transaction is not None:
            transactions.append(transaction)

    logger.info(f"Itaú fatura CSV parsing complete: {len(transactions)} transactions from {len(records)} records")
    return transactions


def _ofx_field(block, tag):
    match = re.search(rf'<{tag}>([^<\r\n]*)', block, re.IGNORECASE)
    if match:
        return match.group(1).strip()
    return ''


def _ofx_date(value):
    """Trim an OFX timestamp (YYYYMMDDHHMMSS[-TZ]) to DD/MM/YYYY."""
    if len(value) >= 8 and value[:8].isdigit():
        return f"{value[6:8]}/{value[4:6]}/{value[0:4]}"
    return value


def parse_itau_extrato_ofx(data, max_rows=None):
    """Parse an Itaú OFX export, one transaction per <STMTTRN> block.

    Raises:
        FileFormatError: If the document has no <OFX> element
    """
    text = decode_bytes(data)
    if '<ofx>' not in text.lower():
        raise FileFormatError("Not a valid OFX file (no <OFX> tag found)")

    transactions = []
    blocks = OFX_TRANSACTION.findall(text)
    for index, block in enumerate(blocks):
        payee = _ofx_field(block, 'MEMO') or _ofx_field(block, 'NAME')
        transaction = _build_or_skip(
            TransactionFields(
                date=_ofx_date(_ofx_field(block, 'DTPOSTED')),
                payee=payee,
                amount=_ofx_field(block, 'TRNAMT'),
                doc_type=DocType.EXTRATO,
                line_number=index,
            ),
            f"OFX transaction {index}",
        )
        if transaction is not None:
            transactions.append(transaction)

    logger.info(f"Parsed {len(transactions)} transactions from {len(blocks)} OFX blocks")
    return transactions


def parse_canonical_csv(data, max_rows=None):
    """
    Re-import a CSV previously exported by this tool (Date,Payee,Memo,Amount).

    Document type and card metadata are taken from the memo when it carries
    them; otherwise the row is treated as a bank-statement entry.

    Raises:
        FileFormatError: If the CSV is empty or unreadable
    """
    text = decode_bytes(data)
    try:
        df = pd.read_csv(
            io.StringIO(text),
            header=None,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            on_bad_lines='skip',
        )
    except pd.errors.EmptyDataError:
        raise FileFormatError("csv is empty")
    except pd.errors.ParserError as e:
        raise FileFormatError(f"failed to read csv: {str(e)}")

    if df.empty:
        raise FileFormatError("csv is empty")
    if df.shape[1] < 4:
        raise FileFormatError(f"csv has {df.shape[1]} columns, expected Date,Payee,Memo,Amount")

    start = 1 if str(df.iloc[0, 0]).strip().lower() == 'date' else 0

    transactions = []
    for line_number, row in df.iloc[start:].iterrows():
        date_parts = str(row[0]).strip().split('/')
        if len(date_parts) != 3:
            logger.debug(f"Skipping line {line_number}: invalid date {row[0]!r}")
            continue

        memo = parse_memo(row[2])
        doc_type = memo['doc_type'] if memo['doc_type'] in (DocType.EXTRATO.value, DocType.FATURA.value) else DocType.EXTRATO

        transaction = _build_or_skip(
            TransactionFields(
                date=f"{date_parts[2]}/{date_parts[1]}/{date_parts[0]}",
                payee=row[1],
                amount=row[3],
                doc_type=DocType(doc_type),
                card_type=memo['card_type'],
                card_number=memo['card_number'],
                line_number=int(line_number),
            ),
            f"line {line_number}",
        )
        if transaction is not None:
            transactions.append(transaction)

    logger.info(f"Parsed {len(transactions)} transactions from canonical CSV")
    return transactions


PARSERS = {
    Dialect.ITAU_EXTRATO_XLS: parse_itau_extrato_xls,
    Dialect.ITAU_FATURA_XLS: parse_itau_fatura_xls,
    Dialect.ITAU_EXTRATO_TXT: parse_itau_extrato_txt,
    Dialect.ITAU_FATURA_CSV: parse_itau_fatura_csv,
    Dialect.ITAU_EXTRATO_OFX: parse_itau_extrato_ofx,
    Dialect.CANONICAL_CSV: parse_canonical_csv,
}


def parse_bytes(data, filename, config=None):
    """Detect the dialect of a statement and parse it.

    Args:
        data (bytes): Raw file contents
        filename (str): Original file name, used for dialect detection
        config (Config, optional): Settings; defaults to Config()

    Returns:
        list: Transactions in row order

    Raises:
        UnknownDialectError: If the file matches no dialect
        FileFormatError: If the file itself is unreadable
    """
    config = config or Config()
    dialect = detect_dialect(filename, data)
    logger.debug(f"Detected file type {dialect.value} for {filename}")
    return PARSERS[dialect](data, max_rows=config.max_rows)


def import_file(file_path, config=None):
    """Read and parse a single statement file, failing fast.

    Args:
        file_path (str or Path): Path to the statement

    Returns:
        list: Transactions in row order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the path is a directory, or the file cannot be parsed
    """
    file_path = pathlib.Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    if file_path.is_dir():
        raise ValueError(f"Path is a directory: {file_path}")

    logger.debug(f"Reading file: {file_path}")
    return parse_bytes(file_path.read_bytes(), file_path.name, config)


@dataclass
class FileOutcome:
    """Result of processing one file in a batch."""

    path: pathlib.Path
    transactions: List = field(default_factory=list)
    output_path: Optional[pathlib.Path] = None
    error: Optional[Exception] = None

    @property
    def ok(self):
        return self.error is None


def process_files(paths, output_dir=None, config=None, transaction_filter=None):
    """
    Parse statement files one after the other, isolating failures per file.

    When output_dir is given each parsed file is exported, sorted by date, to
    "<stem>-ynabu.csv" inside it.

    Args:
        paths (iterable): Statement file paths
        output_dir (str or Path, optional): Where to write the exports
        config (Config, optional): Settings; defaults to Config()
        transaction_filter (TransactionFilter, optional): Filter applied to exports

    Returns:
        list: One FileOutcome per input path, in input order
    """
    config = config or Config()
    if output_dir is None and config.output_path is not None:
        output_dir = config.output_path
    if output_dir is not None:
        output_dir = create_output_directories(output_dir)

    outcomes = []
    for path in paths:
        path = pathlib.Path(path)
        outcome = FileOutcome(path=path)
        try:
            outcome.transactions = import_file(path, config)
            if output_dir is not None:
                outcome.output_path = output_dir / output_filename(path.name)
                write_csv(sort_by_date(outcome.transactions), outcome.output_path, transaction_filter)
            logger.info(f"Processed {path}: {len(outcome.transactions)} transactions")
        except (OSError, ValueError) as e:
            logger.error(f"Error processing {path}: {str(e)}")
            outcome.error = e
        outcomes.append(outcome)

    return outcomes
