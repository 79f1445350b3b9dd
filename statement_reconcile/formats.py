"""
Statement dialect detection.

The dialect is chosen from the filename, most specific rule first:

1. "fatura" + spreadsheet extension -> credit-card spreadsheet
2. "fatura" + .csv                  -> credit-card CSV
3. .txt                             -> bank-statement text
4. .ofx                             -> bank-statement markup
5. spreadsheet extension            -> bank-statement spreadsheet
6. .csv                             -> canonical round-trip CSV

Spreadsheets without "fatura" in the name may be promoted to the credit-card
dialect when one of their leading rows is a card-holder marker
("... final NNNN (titular)"). A title cell mentioning "fatura" is not enough.
"""

import logging
import os
import re
from enum import Enum

from .exceptions import FileFormatError, UnknownDialectError
from .readers import read_spreadsheet_rows

logger = logging.getLogger(__name__)

SPREADSHEET_EXTENSIONS = ('.xls', '.xlsx')
FATURA_KEYWORD = 'fatura'
SNIFF_ROWS = 10

CARD_HOLDER_MARKER = re.compile(r'final \d+.*\((titular|adicional)\)\s*$', re.IGNORECASE)


class Dialect(str, Enum):
    ITAU_FATURA_XLS = 'itau_fatura_xls'
    ITAU_FATURA_CSV = 'itau_fatura_csv'
    ITAU_EXTRATO_TXT = 'itau_extrato_txt'
    ITAU_EXTRATO_OFX = 'itau_extrato_ofx'
    ITAU_EXTRATO_XLS = 'itau_extrato_xls'
    CANONICAL_CSV = 'canonical_csv'


def _match_filename(filename):
    name = os.path.basename(str(filename)).lower()
    _, ext = os.path.splitext(name)
    is_fatura = FATURA_KEYWORD in name

    rules = [
        (is_fatura and ext in SPREADSHEET_EXTENSIONS, Dialect.ITAU_FATURA_XLS),
        (is_fatura and ext == '.csv', Dialect.ITAU_FATURA_CSV),
        (ext == '.txt', Dialect.ITAU_EXTRATO_TXT),
        (ext == '.ofx', Dialect.ITAU_EXTRATO_OFX),
        (ext in SPREADSHEET_EXTENSIONS, Dialect.ITAU_EXTRATO_XLS),
        (ext == '.csv', Dialect.CANONICAL_CSV),
    ]
    for matched, dialect in rules:
        if matched:
            return dialect
    return None


def looks_like_fatura(rows):
    """Check whether leading spreadsheet rows hold a card-holder section marker."""
    for row in rows[:SNIFF_ROWS]:
        if not row:
            continue
        first = row[0].strip()
        if CARD_HOLDER_MARKER.search(first):
            return True
    return False


def detect_dialect(filename, data=None):
    """Identify the statement dialect of a file.

    Args:
        filename (str or Path): Name of the statement file
        data (bytes, optional): File contents, used to sniff spreadsheets

    Returns:
        Dialect: The matching dialect

    Raises:
        UnknownDialectError: If no dialect matches the filename
    """
    dialect = _match_filename(filename)
    if dialect is None:
        raise UnknownDialectError(f"Unknown file type: {os.path.basename(str(filename))}")

    if dialect == Dialect.ITAU_EXTRATO_XLS and data is not None:
        try:
            rows = read_spreadsheet_rows(data, max_rows=SNIFF_ROWS)
        except FileFormatError as e:
            logger.debug(f"Could not sniff {filename}: {str(e)}")
            rows = []
        if looks_like_fatura(rows):
            logger.info(f"Spreadsheet {filename} looks like a card bill")
            dialect = Dialect.ITAU_FATURA_XLS

    logger.debug(f"Identified dialect {dialect.value} for {filename}")
    return dialect
