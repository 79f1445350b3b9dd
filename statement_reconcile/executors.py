"""
Plan and apply statements against a ledger.

A statement is a file plus the ledger account (and optionally budget) it
belongs to. Planning parses the file, fetches the account's remote
transactions and reconciles them; applying also creates the missing ones in a
single batch. The ledger itself is a collaborator passed in by the caller.
"""

import logging
import pathlib
from dataclasses import dataclass
from typing import Optional, Protocol

from .config import Config
from .parsers import import_file
from .reconcile import build_report

logger = logging.getLogger(__name__)


class LedgerClient(Protocol):
    """Remote ledger operations the executors depend on."""

    def fetch_transactions(self, budget_id, account_id):
        """Return the account's RemoteTransaction list."""

    def create_transactions(self, budget_id, payloads):
        """Create the given TransactionPayload objects in one call."""


@dataclass
class Statement:
    """One statement file and the ledger account it is reconciled against."""

    file_path: pathlib.Path
    account_id: str = ''
    budget_id: str = ''

    def __post_init__(self):
        self.file_path = pathlib.Path(self.file_path).expanduser()

    def transactions(self, config=None):
        return import_file(self.file_path, config)


@dataclass
class StatementOutcome:
    """Result of planning or applying one statement in a batch."""

    statement: Statement
    report: Optional[object] = None
    created: int = 0
    error: Optional[Exception] = None

    @property
    def ok(self):
        return self.error is None


def _budget_id(statement, config):
    return statement.budget_id or config.budget_id


def plan_statement(statement, ledger, config=None):
    """
    Reconcile one statement without changing the ledger.

    Without an account ID nothing is fetched and every transaction is reported
    as missing.

    Args:
        statement (Statement): Statement to plan
        ledger (LedgerClient): Remote ledger
        config (Config, optional): Settings; defaults to Config()

    Returns:
        Report: Reconciliation report for the statement

    Raises:
        ValueError: If the file cannot be parsed
        Exception: Any error raised by ledger.fetch_transactions, unchanged
    """
    config = config or Config()
    transactions = statement.transactions(config)

    remote = []
    if statement.account_id:
        budget_id = _budget_id(statement, config)
        logger.debug(f"Fetching remote transactions for budget {budget_id} account {statement.account_id}")
        remote = ledger.fetch_transactions(budget_id, statement.account_id)
        logger.debug(f"Fetched {len(remote)} remote transactions")
    else:
        logger.debug(f"No account_id for {statement.file_path}, skipping remote fetch")

    report = build_report(transactions, remote, config.use_custom_id)
    logger.info(
        f"Planned {statement.file_path}: {report.missing_count()} to add, {report.in_sync_count()} in sync"
    )
    return report


def apply_statement(statement, ledger, config=None):
    """
    Create the statement's missing transactions in the ledger.

    Args:
        statement (Statement): Statement to apply
        ledger (LedgerClient): Remote ledger
        config (Config, optional): Settings; defaults to Config()

    Returns:
        int: Number of transactions created

    Raises:
        ValueError: If the statement has no account ID or the file cannot be parsed
        PayloadError: If a transaction cannot be converted into a payload
        Exception: Any error raised by the ledger, unchanged
    """
    config = config or Config()
    logger.debug(f"Applying statement {statement.file_path}")

    if not statement.account_id:
        raise ValueError(f"Statement {statement.file_path} missing account_id")

    report = plan_statement(statement, ledger, config)
    if report.missing_count() == 0:
        logger.info(f"Nothing to create for account {statement.account_id}")
        return 0

    payloads = report.payloads(statement.account_id)
    budget_id = _budget_id(statement, config)
    logger.info(f"Sending {len(payloads)} transactions to account {statement.account_id}")
    ledger.create_transactions(budget_id, payloads)
    logger.info(f"Created {len(payloads)} transactions in account {statement.account_id}")
    return len(payloads)


def plan_manifest(statements, ledger, config=None):
    """Plan every statement, recording failures per statement and continuing.

    Returns:
        list: One StatementOutcome per statement, in input order
    """
    outcomes = []
    for statement in statements:
        outcome = StatementOutcome(statement=statement)
        try:
            outcome.report = plan_statement(statement, ledger, config)
        except Exception as e:
            logger.error(f"Failed to plan {statement.file_path}: {str(e)}")
            outcome.error = e
        outcomes.append(outcome)
    return outcomes


def apply_manifest(statements, ledger, config=None):
    """Apply every statement, recording failures per statement and continuing.

    Returns:
        list: One StatementOutcome per statement, in input order
    """
    outcomes = []
    for statement in statements:
        outcome = StatementOutcome(statement=statement)
        try:
            outcome.created = apply_statement(statement, ledger, config)
        except Exception as e:
            logger.error(f"Failed to apply {statement.file_path}: {str(e)}")
            outcome.error = e
        outcomes.append(outcome)
    return outcomes
