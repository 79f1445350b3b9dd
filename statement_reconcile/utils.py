"""
Helpers shared by the statement importers.

Logging setup and output directories, plus decoding of raw statement bytes
whose encoding varies between bank export tools.
"""

import os
import pathlib
import logging

logger = logging.getLogger(__name__)

# Encodings tried, in order, when decoding text exports
TEXT_ENCODINGS = ['utf-8-sig', 'utf-8', 'cp1252']

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_FILE = 'statement_reconcile.log'


def setup_logging(debug=False, log_level='info', log_file=None):
    """Attach file and console handlers to the statement_reconcile logger.

    Calling it again replaces the handlers instead of stacking new ones, and
    the root logger is left alone.

    Args:
        debug (bool): Force DEBUG level, overriding log_level
        log_level (str): Level name used when debug is False
        log_file (str, optional): Log file path; defaults to LOG_FILE or statement_reconcile.log

    Returns:
        str: Path of the log file in use
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)
    log_file = str(log_file or os.getenv('LOG_FILE', DEFAULT_LOG_FILE))

    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    package_logger = logging.getLogger(__package__)
    for handler in package_logger.handlers[:]:
        handler.close()
        package_logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in (logging.FileHandler(log_file, encoding='utf-8'), logging.StreamHandler()):
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
    package_logger.setLevel(level)

    return log_file


def create_output_directories(output_dir):
    """
    Create the output directory used for generated exports.

    Args:
        output_dir (str or pathlib.Path): Base directory for output files

    Returns:
        pathlib.Path: The created directory
    """
    logger.info(f"Creating output directory {output_dir}")

    output_dir = pathlib.Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def decode_bytes(data, encodings=None):
    """Decode raw statement bytes trying each supported encoding in turn.

    Args:
        data (bytes): Raw file contents
        encodings (list, optional): Encodings to try. Defaults to TEXT_ENCODINGS.

    Returns:
        str: Decoded text
    """
    if isinstance(data, str):
        return data
    for encoding in encodings or TEXT_ENCODINGS:
        try:
            text = data.decode(encoding)
            logger.debug(f"Decoded {len(data)} bytes with encoding: {encoding}")
            return text
        except UnicodeDecodeError:
            continue
    # cp1252 leaves a few bytes undefined; latin-1 maps every byte
    return data.decode('latin-1')
