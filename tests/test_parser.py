"""Tests for CSV / JSON transaction file parsing."""

import json
from datetime import datetime
from decimal import Decimal

import pytest

from finance_recon.config import ReconConfig
from finance_recon.models.transaction import (
    AppTransaction,
    BankTransaction,
    TransactionStatus,
    TransactionType,
)
from finance_recon.parsers.transaction_parser import TransactionFileParser, parse_transactions
from finance_recon.utils.exceptions import TransactionParseError


@pytest.fixture
def parser():
    return TransactionFileParser()


class TestCsv:
    def test_bank_file(self, parser, tmp_path):
        path = tmp_path / "bank.csv"
        path.write_text(
            "id,account_id,amount,description,date,type,merchant_name,reference,status\n"
            "b1,acc-1,-100.00,Posto Shell,2024-01-10,debit,POSTO SHELL,REF1,completed\n"
            "b2,acc-1,2500.00,Salario,2024-01-05,credit,,,pending\n"
        )

        txns = parser.parse_bank_file(path)

        assert [t.id for t in txns] == ["b1", "b2"]
        first = txns[0]
        assert isinstance(first, BankTransaction)
        assert first.amount == Decimal("-100.00")
        assert first.date == datetime(2024, 1, 10)
        assert first.type == TransactionType.DEBIT
        assert first.merchant_name == "POSTO SHELL"
        assert first.reference == "REF1"
        assert first.currency == "BRL"
        assert txns[1].merchant_name is None
        assert txns[1].status == TransactionStatus.PENDING

    def test_type_inferred_from_sign(self, parser, tmp_path):
        path = tmp_path / "app.csv"
        path.write_text("amount,date,description\n-45.90,2024-02-01,Padaria\n12.00,2024-02-02,Pix\n")

        txns = parser.parse_app_file(path)

        assert [t.type for t in txns] == [TransactionType.DEBIT, TransactionType.CREDIT]
        assert [t.id for t in txns] == ["APP-00000", "APP-00001"]
        assert all(isinstance(t, AppTransaction) for t in txns)

    def test_currency_symbols_are_stripped(self, parser, tmp_path):
        path = tmp_path / "app.csv"
        path.write_text('amount,date\n"R$ 1,234.56",2024-02-01\n')

        assert parser.parse_app_file(path)[0].amount == Decimal("1234.56")

    def test_brazilian_decimal_comma(self, parser, tmp_path):
        path = tmp_path / "bank.csv"
        path.write_text(
            "amount,date\n"
            '"R$ 1.234,56",2024-02-01\n'
            '"100,50",2024-02-02\n'
            '"-1.234.567,00",2024-02-03\n'
            '"1,234",2024-02-04\n'
        )

        amounts = [t.amount for t in parser.parse_bank_file(path)]

        assert amounts == [
            Decimal("1234.56"),
            Decimal("100.50"),
            Decimal("-1234567.00"),
            Decimal("1234"),
        ]

    def test_configured_separators(self, tmp_path):
        config = ReconConfig()
        config.input.delimiter = ";"
        config.input.decimal_separator = ","
        config.input.thousands_separator = "."
        path = tmp_path / "bank.csv"
        path.write_text("amount;date\n1.234;2024-02-01\n-7,5;2024-02-02\n")

        amounts = [t.amount for t in TransactionFileParser(config).parse_bank_file(path)]

        assert amounts == [Decimal("1234"), Decimal("-7.5")]

    def test_offset_dates_are_normalized_to_utc(self, parser, tmp_path):
        path = tmp_path / "bank.csv"
        path.write_text("amount,date\n10.00,2024-01-10T12:00:00-03:00\n")

        txn = parser.parse_bank_file(path)[0]

        assert txn.date == datetime(2024, 1, 10, 15, 0)
        assert txn.date.tzinfo is None

    def test_bad_rows_are_skipped(self, parser, tmp_path):
        path = tmp_path / "bank.csv"
        path.write_text(
            "id,amount,date\n"
            "b1,abc,2024-01-10\n"
            "b2,10.00,not a date\n"
            "b3,10.00,\n"
            "b4,10.00,2024-01-11\n"
        )

        assert [t.id for t in parser.parse_bank_file(path)] == ["b4"]

    def test_missing_required_column(self, parser, tmp_path):
        path = tmp_path / "bank.csv"
        path.write_text("id,description\nb1,Posto\n")

        with pytest.raises(TransactionParseError, match="amount, date"):
            parser.parse_bank_file(path)

    def test_column_mappings_and_date_format(self, tmp_path):
        config = ReconConfig()
        config.input.delimiter = ";"
        config.input.date_format = "%d/%m/%Y"
        config.input.column_mappings.update({"amount": "valor", "date": "data"})
        path = tmp_path / "bank.csv"
        path.write_text("id;valor;data\nb1;-7.50;31/01/2024\n")

        txns = TransactionFileParser(config).parse_bank_file(path)

        assert txns[0].amount == Decimal("-7.50")
        assert txns[0].date == datetime(2024, 1, 31)


class TestJson:
    def test_app_file(self, parser, tmp_path):
        path = tmp_path / "app.json"
        path.write_text(
            json.dumps(
                [
                    {
                        "id": "a1",
                        "amount": "-100.00",
                        "date": "2024-01-10T12:00:00",
                        "description": "Posto Shell",
                        "category": "Transport",
                    },
                    {"id": "a2", "amount": "30.10", "date": "2024-01-11"},
                ]
            )
        )

        txns = parser.parse_app_file(path)

        assert [t.id for t in txns] == ["a1", "a2"]
        assert txns[0].amount == Decimal("-100.00")
        assert txns[0].date == datetime(2024, 1, 10, 12)
        assert txns[0].category == "Transport"
        assert txns[1].category is None
        assert txns[1].description == ""

    def test_unreadable_file(self, parser, tmp_path):
        path = tmp_path / "bank.json"
        path.write_text("{broken")

        with pytest.raises(TransactionParseError):
            parser.parse_bank_file(path)


def test_parse_transactions_dispatches_on_source(tmp_path):
    path = tmp_path / "bank.csv"
    path.write_text("id,amount,date\nb1,10.00,2024-01-11\n")

    assert isinstance(parse_transactions(path, "bank")[0], BankTransaction)
    assert isinstance(parse_transactions(path, "app")[0], AppTransaction)
    with pytest.raises(ValueError):
        parse_transactions(path, "ledger")
