"""
Row/cell readers for spreadsheet statements.

Workbooks are read with pandas (xlrd for legacy .xls, openpyxl for .xlsx) into
plain lists of string cells so the dialect parsers can walk them row by row.
"""

import io
import logging
import re

import pandas as pd

from .exceptions import FileFormatError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 1000

# Date cells rendered by pandas as ISO timestamps
SPREADSHEET_DATE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})(?:[ T]00:00:00)?$')


def normalize_cell(value):
    """Render a spreadsheet cell as a stripped string.

    Args:
        value: Raw cell value from pandas

    Returns:
        str: '' for empty cells, DD/MM/YYYY for native date cells, else the stripped text
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ''
    text = str(value).strip()
    match = SPREADSHEET_DATE.match(text)
    if match:
        year, month, day = match.groups()
        return f"{day}/{month}/{year}"
    return text


def read_spreadsheet_rows(data, max_rows=DEFAULT_MAX_ROWS):
    """Read the first sheet of a workbook into rows of string cells.

    Args:
        data (bytes): Raw .xls/.xlsx contents
        max_rows (int): Maximum number of rows to read

    Returns:
        list: One list of cells per row, padded to the sheet width

    Raises:
        FileFormatError: If the workbook cannot be opened or the sheet is empty
    """
    try:
        df = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, dtype=str, nrows=max_rows)
    except Exception as e:
        raise FileFormatError(f"error creating workbook: {str(e)}")

    if df.empty:
        raise FileFormatError("no data found in sheet")

    logger.debug(f"Read workbook sheet with shape {df.shape}")
    return [[normalize_cell(value) for value in row] for row in df.itertuples(index=False, name=None)]
