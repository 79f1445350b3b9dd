import io
from datetime import date

import pytest
import pandas as pd

from statement_reconcile.reconcile import RemoteTransaction
from statement_reconcile.transaction import DocType, TransactionFields, build_transaction

# Sample data for each dialect
extrato_txt_sample = (
    "17/03/2025;PIX TRANSF ID_A15/03;-2327,00\n"
    "18/03/2025;SALARIO EMPRESA X;5.000,00\n"
)

extrato_xls_rows = [
    ['Extrato Conta Corrente', None, None, None],
    ['Lançamentos', None, None, None],
    ['data', 'lançamento', 'ag./origem', 'valor (R$)'],
    ['16/03/2025', 'SALDO ANTERIOR', None, '1.000,00'],
    ['17/03/2025', 'PIX TRANSF ID_A15/03', None, '-2.327,00'],
    ['18/03/2025', 'SALARIO EMPRESA X', None, '5.000,00'],
]

fatura_xls_rows = [
    ['Fatura Itaú Cartões', None, None, None],
    ['JOAO S SILVA - final 1234 (titular)', None, None, None],
    ['data', 'lançamento', None, 'valor'],
    ['05/03/2025', 'IFD*55668457 GABRIEL A', None, '113,98'],
    ['06/03/2025', 'LOJA X 03/10', None, 'R$ 16,00'],
    ['total lançamentos atuais', None, None, '129,98'],
    ['MARIA S SILVA - final 9876 (adicional)', None, None, None],
    ['07/03/2025', 'UBER *TRIP', None, '25,50'],
    ['próximas faturas', None, None, None],
    ['1 de abril', 'LOJA Y', None, '50,00'],
]

fatura_csv_sample = (
    "data,lançamento,valor\n"
    "2025-06-27,IFD*55668457 GABRIEL A,113.98\n"
    "2025-06-28,\"LOJA, CENTRO\",\"1.234,56\"\n"
)

extrato_ofx_sample = """OFXHEADER:100
DATA:OFXSGML

<OFX>
<BANKMSGSRSV1><STMTTRNRS><STMTRS>
<BANKTRANLIST>
<STMTTRN>
<TRNTYPE>DEBIT
<DTPOSTED>20250317120000[-3:BRT]
<TRNAMT>-2327.00
<FITID>20250317001
<MEMO>PIX TRANSF ID_A15/03
</STMTTRN>
<STMTTRN>
<TRNTYPE>CREDIT
<DTPOSTED>20250318
<TRNAMT>5000.00
<FITID>20250318001
<NAME>SALARIO EMPRESA X
</STMTTRN>
</BANKTRANLIST>
</STMTRS></STMTTRNRS></BANKMSGSRSV1>
</OFX>
"""


def workbook_bytes(rows):
    """Render rows into an in-memory .xlsx workbook."""
    buffer = io.BytesIO()
    pd.DataFrame(rows).to_excel(buffer, header=False, index=False)
    return buffer.getvalue()


def make_transaction(date_str='17/03/2025', payee='PIX TRANSF ID_A15/03', amount='-2327,00',
                     doc_type=DocType.EXTRATO, **kwargs):
    """Build a Transaction from statement-style raw values."""
    return build_transaction(TransactionFields(
        date=date_str, payee=payee, amount=amount, doc_type=doc_type, **kwargs
    ))


def remote_for(transaction, memo=None, payee_name=None, remote_id=None):
    """Build the RemoteTransaction the ledger would return for a local transaction."""
    year, month, day = (int(part) for part in transaction.date.split('/'))
    return RemoteTransaction(
        id=remote_id or f"remote-{transaction.id}",
        date=date(year, month, day),
        amount=transaction.amount_milliunits,
        payee_name=payee_name if payee_name is not None else transaction.payee,
        memo=transaction.memo if memo is None else memo,
    )


class StubLedger:
    """In-memory ledger recording every call made against it."""

    def __init__(self, remote=None, fetch_error=None, create_error=None):
        self.remote = list(remote or [])
        self.fetch_error = fetch_error
        self.create_error = create_error
        self.fetch_calls = []
        self.create_calls = []

    def fetch_transactions(self, budget_id, account_id):
        self.fetch_calls.append((budget_id, account_id))
        if self.fetch_error:
            raise self.fetch_error
        return list(self.remote)

    def create_transactions(self, budget_id, payloads):
        self.create_calls.append((budget_id, list(payloads)))
        if self.create_error:
            raise self.create_error
        for i, payload in enumerate(payloads):
            self.remote.append(RemoteTransaction(
                id=f"created-{len(self.remote)}-{i}",
                date=payload.date,
                amount=payload.amount,
                payee_name=payload.payee_name,
                memo=payload.memo,
            ))


@pytest.fixture
def sample_transactions():
    """Two bank-statement transactions and one card charge, in row order."""
    return [
        make_transaction(),
        make_transaction('18/03/2025', 'SALARIO EMPRESA X', '5.000,00'),
        make_transaction('05/03/2025', 'IFD*55668457 GABRIEL A', '113,98', DocType.FATURA,
                         negate=True, card_type='titular', card_number='1234'),
    ]


@pytest.fixture
def statement_dir(tmp_path):
    """Directory holding one statement file per dialect."""
    (tmp_path / 'extrato.txt').write_text(extrato_txt_sample, encoding='utf-8')
    (tmp_path / 'fatura-junho.csv').write_text(fatura_csv_sample, encoding='utf-8')
    (tmp_path / 'extrato.ofx').write_text(extrato_ofx_sample, encoding='utf-8')
    (tmp_path / 'extrato.xlsx').write_bytes(workbook_bytes(extrato_xls_rows))
    (tmp_path / 'Fatura-Março.xlsx').write_bytes(workbook_bytes(fatura_xls_rows))
    return tmp_path


@pytest.fixture
def stub_ledger():
    return StubLedger()
