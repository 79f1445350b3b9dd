"""
Transaction Reconciliation

Compares transactions parsed from a statement (local) with the transactions
already present in the ledger (remote) and classifies every local record:

- Synced: already present remotely
- ToAdd: missing, must be created

Matching Strategies:
- Custom ID (default): the 8-hex id embedded as the first memo token is looked
  up directly; insensitive to payee edits and rounding in the ledger.
- Fuzzy: remote records are indexed by "{amount:.2f}|{payee}|{YYYY/MM/DD}"
  (first seen wins); a key hit is re-verified field by field before it counts.

Remote amounts arrive in milliunits (1/1000 of a currency unit).

Reconciliation is pure: no I/O, no mutation of its inputs.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type
from datetime import datetime
from enum import Enum
from typing import Optional

import pandas as pd

from .exceptions import PayloadError
from .transaction import CANONICAL_DATE_FORMAT, extract_custom_id

logger = logging.getLogger(__name__)

MILLIUNITS = 1000
CLEARED = 'cleared'


@dataclass(frozen=True)
class RemoteTransaction:
    """A transaction as returned by the ledger service."""

    id: str
    date: date_type
    amount: int
    payee_name: Optional[str] = None
    memo: Optional[str] = None

    @property
    def custom_id(self):
        return extract_custom_id(self.memo)

    @property
    def date_string(self):
        return self.date.strftime(CANONICAL_DATE_FORMAT)

    @property
    def amount_units(self):
        return self.amount / MILLIUNITS

    @classmethod
    def from_dict(cls, data):
        """Build from a ledger API transaction dict.

        Args:
            data (dict): Must contain id, date (YYYY-MM-DD) and amount (milliunits)

        Returns:
            RemoteTransaction

        Raises:
            ValueError: If the date is malformed or a required key is missing
        """
        try:
            raw_date = data['date']
            amount = int(data['amount'])
            transaction_id = str(data['id'])
        except KeyError as e:
            raise ValueError(f"Remote transaction missing field: {e}")
        if not isinstance(raw_date, date_type):
            raw_date = datetime.strptime(str(raw_date)[:10], '%Y-%m-%d').date()
        return cls(
            id=transaction_id,
            date=raw_date,
            amount=amount,
            payee_name=data.get('payee_name'),
            memo=data.get('memo'),
        )


class Status(Enum):
    SYNCED = 'synced'
    TO_ADD = 'to_add'


@dataclass(frozen=True)
class Entry:
    """A local transaction, its remote match (if any) and the resulting status."""

    local: object
    remote: Optional[RemoteTransaction]
    status: Status

    @property
    def remote_custom_id(self):
        if self.remote is None:
            return ''
        return self.remote.custom_id


@dataclass
class TransactionPayload:
    """Ledger creation payload for one transaction."""

    account_id: str
    date: date_type
    amount: int
    payee_name: Optional[str] = None
    memo: Optional[str] = None
    cleared: str = CLEARED
    approved: bool = True

    def to_dict(self):
        payload = {
            'account_id': self.account_id,
            'date': self.date.isoformat(),
            'amount': self.amount,
            'cleared': self.cleared,
            'approved': self.approved,
        }
        if self.payee_name is not None:
            payload['payee_name'] = self.payee_name
        if self.memo is not None:
            payload['memo'] = self.memo
        return payload


class Report:
    """Read-only outcome of reconciling one local set against one remote set."""

    def __init__(self, entries, to_sync):
        self._entries = tuple(entries)
        self._to_sync = tuple(to_sync)

    @property
    def entries(self):
        return self._entries

    @property
    def to_sync(self):
        return self._to_sync

    def in_sync_count(self):
        """Number of local transactions already present remotely."""
        return len(self._entries) - len(self._to_sync)

    def missing_count(self):
        """Number of local transactions that still need to be created."""
        return len(self._to_sync)

    def transactions_to_sync(self):
        return list(self._to_sync)

    def payloads(self, account_id):
        """Convert the transactions still to sync into ledger payloads.

        Args:
            account_id (str): Ledger account receiving the transactions

        Returns:
            list: TransactionPayload objects, in to_sync order

        Raises:
            PayloadError: If a transaction date cannot be converted; nothing is returned
        """
        payloads = []
        for transaction in self._to_sync:
            try:
                api_date = transaction.api_date()
            except ValueError as e:
                raise PayloadError(f"Invalid date {transaction.date!r} for transaction {transaction.id}: {str(e)}")
            payloads.append(TransactionPayload(
                account_id=account_id,
                date=api_date,
                amount=transaction.amount_milliunits,
                payee_name=transaction.payee_or_none,
                memo=transaction.memo_or_none,
            ))
        return payloads

    def to_dataframe(self):
        """Tabular view of the entries, one row per local transaction."""
        columns = ['Date', 'Payee', 'Amount', 'ID', 'RemoteID', 'Status']
        rows = [{
            'Date': entry.local.date,
            'Payee': entry.local.payee,
            'Amount': entry.local.amount,
            'ID': entry.local.id,
            'RemoteID': entry.remote_custom_id,
            'Status': entry.status.value,
        } for entry in self._entries]
        return pd.DataFrame(rows, columns=columns)


def _fuzzy_key(amount, payee, date):
    return f"{amount:.2f}|{payee}|{date}"


def transactions_equal(local, remote):
    """Check that a local and a remote transaction agree on amount, payee and date.

    Amounts are compared at two-decimal precision.
    """
    if local is None or remote is None:
        return False
    if f"{local.amount:.2f}" != f"{remote.amount_units:.2f}":
        return False
    if remote.payee_name is None or local.payee != remote.payee_name:
        return False
    if local.date != remote.date_string:
        return False
    return True


def _index_by_custom_id(remote):
    index = {}
    for rt in remote:
        custom_id = rt.custom_id
        if custom_id:
            index[custom_id] = rt
    return index


def _index_by_content(remote):
    index = {}
    for rt in remote:
        key = _fuzzy_key(rt.amount_units, rt.payee_name or '', rt.date_string)
        if key not in index:
            index[key] = rt
    return index


def build_report(local, remote, use_custom_id=True):
    """
    Reconcile local transactions against remote ledger transactions.

    Args:
        local (list): Transactions parsed from the statement
        remote (list): RemoteTransaction objects fetched from the ledger
        use_custom_id (bool): Match on the memo custom ID (True) or on amount/payee/date

    Returns:
        Report: One entry per local transaction, in input order
    """
    local = list(local)
    remote = list(remote)
    entries = []
    to_sync = []

    if use_custom_id:
        index = _index_by_custom_id(remote)
        for lt in local:
            found = index.get(lt.id)
            status = Status.SYNCED if found is not None else Status.TO_ADD
            entries.append(Entry(local=lt, remote=found, status=status))
            if status == Status.TO_ADD:
                to_sync.append(lt)
    else:
        index = _index_by_content(remote)
        for lt in local:
            found = index.get(_fuzzy_key(lt.amount, lt.payee, lt.date))
            if found is not None and not transactions_equal(lt, found):
                # Same key, different transaction
                found = None
            status = Status.SYNCED if found is not None else Status.TO_ADD
            entries.append(Entry(local=lt, remote=found, status=status))
            if status == Status.TO_ADD:
                to_sync.append(lt)

    report = Report(entries, to_sync)
    logger.debug(
        f"Reconciled {len(entries)} transactions against {len(remote)} remote "
        f"(custom_id={use_custom_id}): in_sync={report.in_sync_count()} to_add={report.missing_count()}"
    )
    return report


def format_report_summary(report):
    """Format a plain-text summary of a reconciliation report.

    Args:
        report (Report): Reconciliation report

    Returns:
        str: Formatted summary text
    """
    lines = []
    for entry in report.entries:
        local = entry.local
        if entry.status == Status.SYNCED:
            lines.append(f"= {local.date} | {local.payee:<30} | {local.id} | {entry.remote_custom_id} | R$ {local.amount:.2f}")
        else:
            lines.append(f"+ {local.date} | {local.payee:<30} | {local.id} | {'x' * 8} | R$ {local.amount:.2f}")

    if report.missing_count() == 0:
        lines.append(f"\nPlan: All {report.in_sync_count()} transaction(s) are in sync")
    else:
        lines.append(
            f"\nPlan: {report.missing_count()} transaction(s) will be added, "
            f"{report.in_sync_count()} already in sync"
        )
    return "\n".join(lines)
