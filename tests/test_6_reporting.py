import pytest
from datetime import date

from statement_reconcile.exceptions import PayloadError
from statement_reconcile.export import TransactionFilter, output_filename, to_csv, write_csv
from statement_reconcile.reconcile import Status, TransactionPayload, build_report, format_report_summary
from statement_reconcile.transaction import DocType

from conftest import make_transaction, remote_for


@pytest.mark.dependency()
class TestPayloads:
    """Test suite for converting pending transactions into ledger payloads."""

    @pytest.mark.dependency()
    def test_payload_fields(self, sample_transactions):
        """Test payload conversion.

        Verifies:
        - Only pending transactions are converted, in order
        - Amounts become integer milliunits
        - Cleared and approved are fixed
        """
        report = build_report(sample_transactions, [remote_for(sample_transactions[1])])
        payloads = report.payloads('account-1')

        assert len(payloads) == 2
        first = payloads[0]
        assert first.account_id == 'account-1'
        assert first.date == date(2025, 3, 17)
        assert first.amount == -2327000
        assert first.payee_name == 'PIX TRANSF ID_A15/03'
        assert first.memo == sample_transactions[0].memo
        assert first.cleared == 'cleared'
        assert first.approved is True
        assert payloads[1].amount == -113980

    @pytest.mark.dependency(depends=["TestPayloads::test_payload_fields"])
    def test_to_dict(self):
        payload = TransactionPayload(account_id='a', date=date(2025, 3, 17), amount=-16000)
        assert payload.to_dict() == {
            'account_id': 'a',
            'date': '2025-03-17',
            'amount': -16000,
            'cleared': 'cleared',
            'approved': True,
        }

        payload = TransactionPayload(account_id='a', date=date(2025, 3, 17), amount=1, payee_name='X', memo='m')
        assert payload.to_dict()['payee_name'] == 'X'
        assert payload.to_dict()['memo'] == 'm'

    def test_invalid_date_fails_whole_batch(self):
        """Test that a calendar-invalid date raises instead of being skipped."""
        good = make_transaction()
        bad = make_transaction('31/02/2025', 'PADARIA', '-1,00')
        report = build_report([good, bad], [])
        with pytest.raises(PayloadError, match="Invalid date"):
            report.payloads('account-1')

    def test_nothing_to_sync(self):
        transaction = make_transaction()
        report = build_report([transaction], [remote_for(transaction)])
        assert report.payloads('account-1') == []


@pytest.mark.dependency()
class TestReportViews:
    """Test suite for report summaries."""

    @pytest.mark.dependency()
    def test_summary_pending(self, sample_transactions):
        report = build_report(sample_transactions, [remote_for(sample_transactions[1])])
        summary = format_report_summary(report)
        lines = summary.splitlines()

        assert lines[0].startswith('+ 2025/03/17 | PIX TRANSF ID_A15/03')
        assert sample_transactions[0].id in lines[0]
        assert 'xxxxxxxx' in lines[0]
        assert lines[0].endswith('R$ -2327.00')
        assert lines[1].startswith('= 2025/03/18 | SALARIO EMPRESA X')
        assert lines[-1] == 'Plan: 2 transaction(s) will be added, 1 already in sync'

    @pytest.mark.dependency(depends=["TestReportViews::test_summary_pending"])
    def test_summary_in_sync(self, sample_transactions):
        report = build_report(sample_transactions, [remote_for(t) for t in sample_transactions])
        assert format_report_summary(report).splitlines()[-1] == 'Plan: All 3 transaction(s) are in sync'

    def test_to_dataframe(self, sample_transactions):
        report = build_report(sample_transactions, [remote_for(sample_transactions[1])])
        df = report.to_dataframe()
        assert list(df.columns) == ['Date', 'Payee', 'Amount', 'ID', 'RemoteID', 'Status']
        assert list(df['Status']) == [Status.TO_ADD.value, Status.SYNCED.value, Status.TO_ADD.value]
        assert list(df['RemoteID']) == ['', sample_transactions[1].id, '']

    def test_empty_report_dataframe(self):
        df = build_report([], []).to_dataframe()
        assert df.empty
        assert 'Status' in df.columns


@pytest.mark.dependency()
class TestExport:
    """Test suite for the canonical CSV export."""

    @pytest.mark.dependency()
    def test_to_csv(self, sample_transactions):
        lines = to_csv(sample_transactions).splitlines()
        assert lines[0] == 'Date,Payee,Memo,Amount'
        assert lines[1] == f'2025/03/17,PIX TRANSF ID_A15/03,"{sample_transactions[0].id},extrato",-2327.00'
        assert lines[2].endswith(',5000.00')
        assert lines[3] == f'2025/03/05,IFOOD,"{sample_transactions[2].id},fatura,titular,1234",-113.98'

    def test_empty_export_has_header(self):
        assert to_csv([]) == 'Date,Payee,Memo,Amount\n'

    @pytest.mark.dependency(depends=["TestExport::test_to_csv"])
    def test_filter(self, sample_transactions):
        """Test export filters.

        Verifies:
        - Inclusive date bounds
        - Amount bounds of zero are ignored
        - Case-insensitive payee substring
        """
        assert len(to_csv(sample_transactions, TransactionFilter(start_date='2025/03/17')).splitlines()) == 3
        assert len(to_csv(sample_transactions, TransactionFilter(end_date='2025/03/17')).splitlines()) == 3
        assert len(to_csv(sample_transactions, TransactionFilter(max_amount=-1000)).splitlines()) == 2
        assert len(to_csv(sample_transactions, TransactionFilter(min_amount=-200, max_amount=-1)).splitlines()) == 2
        assert len(to_csv(sample_transactions, TransactionFilter(payee='salario')).splitlines()) == 2

    def test_filter_rejects_bad_bounds(self):
        with pytest.raises(ValueError):
            TransactionFilter(start_date='17/03/2025')

    def test_write_csv(self, tmp_path, sample_transactions):
        path = write_csv(sample_transactions, tmp_path / 'nested' / 'out.csv')
        assert path.exists()
        assert path.read_text(encoding='utf-8') == to_csv(sample_transactions)

    def test_output_filename(self):
        assert output_filename('Fatura-Março.xls') == 'Fatura-Março-ynabu.csv'
        assert output_filename('/tmp/extrato.txt') == 'extrato-ynabu.csv'

    def test_doc_type_serializes_as_value(self):
        transaction = make_transaction('05/03/2025', 'LOJA', '1,00', DocType.FATURA)
        assert transaction.memo.endswith(',fatura')
