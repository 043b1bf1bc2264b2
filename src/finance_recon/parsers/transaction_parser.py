"""
CSV / JSON transaction file parser.
Loads bank or app transaction exports into the engine's models.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Optional, Union
import logging

import pandas as pd

from ..config import ReconConfig
from ..models.transaction import (
    AppTransaction,
    BankTransaction,
    TransactionStatus,
    TransactionType,
    normalize_datetime,
)
from ..utils.exceptions import TransactionParseError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("amount", "date")


class TransactionFileParser:
    """
    Parser for transaction exports.

    Files ending in ``.json`` are read as a list of records, anything else as
    delimited text. Column names are resolved through the configured mappings.
    """

    def __init__(self, config: Optional[ReconConfig] = None):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config or ReconConfig()
        self.input_config = self.config.input
        self.column_mappings = self.input_config.column_mappings

    def parse_bank_file(self, file_path: Path) -> list[BankTransaction]:
        """
        Parse a bank transaction export.

        Raises:
            TransactionParseError: If the file cannot be read or lacks required columns
        """
        df = self._read(file_path)
        transactions = self._rows(df, "BANK", self._bank_from_row)
        logger.info(f"Extracted {len(transactions)} bank transactions from {file_path.name}")
        return transactions

    def parse_app_file(self, file_path: Path) -> list[AppTransaction]:
        """
        Parse an application transaction export.

        Raises:
            TransactionParseError: If the file cannot be read or lacks required columns
        """
        df = self._read(file_path)
        transactions = self._rows(df, "APP", self._app_from_row)
        logger.info(f"Extracted {len(transactions)} app transactions from {file_path.name}")
        return transactions

    def _read(self, file_path: Path) -> pd.DataFrame:
        logger.info(f"Parsing transaction file: {file_path}")

        try:
            if file_path.suffix.lower() == ".json":
                df = pd.read_json(
                    file_path,
                    orient="records",
                    dtype=False,
                    convert_dates=False,
                    encoding=self.input_config.encoding,
                )
            else:
                df = pd.read_csv(
                    file_path,
                    encoding=self.input_config.encoding,
                    delimiter=self.input_config.delimiter,
                    dtype=str,
                )
        except Exception as e:
            logger.error(f"Failed to read transaction file: {e}")
            raise TransactionParseError(f"Failed to read {file_path}: {e}") from e

        missing = [
            self._column(name) for name in REQUIRED_FIELDS if self._column(name) not in df.columns
        ]
        if missing:
            raise TransactionParseError(
                f"{file_path.name} is missing required column(s): {', '.join(missing)}"
            )

        return df

    def _rows(self, df: pd.DataFrame, id_prefix: str, build: Callable) -> list:
        transactions = []

        for idx, row in df.iterrows():
            try:
                txn = build(row, f"{id_prefix}-{int(idx):05d}")
            except (InvalidOperation, ValueError, TypeError) as e:
                logger.warning(f"Failed to process row {idx}: {e}")
                continue
            transactions.append(txn)

        return transactions

    def _bank_from_row(self, row: pd.Series, fallback_id: str) -> BankTransaction:
        amount = self._parse_amount(self._value(row, "amount"))
        status = self._value(row, "status")

        return BankTransaction(
            id=self._value(row, "id") or fallback_id,
            account_id=self._value(row, "account_id") or "",
            amount=amount,
            description=self._value(row, "description") or "",
            date=self._parse_date(self._value(row, "date")),
            type=self._parse_type(self._value(row, "type"), amount),
            currency=self._value(row, "currency") or "BRL",
            merchant_name=self._value(row, "merchant_name"),
            category=self._value(row, "category"),
            reference=self._value(row, "reference"),
            status=TransactionStatus(status.lower()) if status else TransactionStatus.COMPLETED,
        )

    def _app_from_row(self, row: pd.Series, fallback_id: str) -> AppTransaction:
        amount = self._parse_amount(self._value(row, "amount"))

        return AppTransaction(
            id=self._value(row, "id") or fallback_id,
            amount=amount,
            description=self._value(row, "description") or "",
            date=self._parse_date(self._value(row, "date")),
            type=self._parse_type(self._value(row, "type"), amount),
            category=self._value(row, "category"),
            merchant_name=self._value(row, "merchant_name"),
            reference=self._value(row, "reference"),
        )

    def _column(self, field_name: str) -> str:
        return self.column_mappings.get(field_name, field_name)

    def _value(self, row: pd.Series, field_name: str) -> Optional[str]:
        value = row.get(self._column(field_name))
        if value is None or (not isinstance(value, (list, dict)) and pd.isna(value)):
            return None
        text = str(value).strip()
        return text or None

    def _parse_date(self, date_value: Optional[str]) -> datetime:
        """
        Parse a date value using the configured format, falling back to pandas.

        Raises:
            ValueError: If the value is missing or unparseable
        """
        if date_value is None:
            raise ValueError("missing date")

        if self.input_config.date_format:
            try:
                return normalize_datetime(
                    datetime.strptime(date_value, self.input_config.date_format)
                )
            except ValueError:
                pass

        parsed = pd.to_datetime(date_value)
        if pd.isna(parsed):
            raise ValueError(f"invalid date {date_value!r}")
        return normalize_datetime(parsed.to_pydatetime())

    def _parse_amount(self, amount_value: Optional[str]) -> Decimal:
        """
        Parse a signed amount, tolerating currency symbols and thousands separators.

        Both "1,234.56" and the Brazilian "1.234,56" are accepted. When
        ``input.decimal_separator`` is not configured, the separator is
        inferred per value.

        Raises:
            ValueError: If the value is missing
            InvalidOperation: If the value is not numeric
        """
        if amount_value is None:
            raise ValueError("missing amount")

        cleaned = "".join(amount_value.replace("R$", "").replace("$", "").split())
        decimal_sep = self.input_config.decimal_separator or self._detect_decimal_separator(
            cleaned
        )
        thousands_sep = self.input_config.thousands_separator or (
            "." if decimal_sep == "," else ","
        )

        cleaned = cleaned.replace(thousands_sep, "")
        if decimal_sep != ".":
            cleaned = cleaned.replace(decimal_sep, ".")
        return Decimal(cleaned)

    @staticmethod
    def _detect_decimal_separator(text: str) -> str:
        last_comma = text.rfind(",")
        last_dot = text.rfind(".")

        if last_comma >= 0 and last_dot >= 0:
            return "," if last_comma > last_dot else "."
        if last_comma >= 0:
            # A lone comma followed by exactly three digits ("1,234") groups thousands
            if text.count(",") == 1 and len(text) - last_comma - 1 != 3:
                return ","
            return "."
        if text.count(".") > 1:
            return ","
        return "."

    @staticmethod
    def _parse_type(type_value: Optional[str], amount: Decimal) -> TransactionType:
        if type_value:
            return TransactionType(type_value.lower())
        return TransactionType.DEBIT if amount < 0 else TransactionType.CREDIT


def parse_transactions(
    file_path: Union[str, Path], source: str, config: Optional[ReconConfig] = None
) -> Union[list[BankTransaction], list[AppTransaction]]:
    """Parse ``file_path`` as ``"bank"`` or ``"app"`` transactions."""
    parser = TransactionFileParser(config)
    path = Path(file_path)
    if source == "bank":
        return parser.parse_bank_file(path)
    if source == "app":
        return parser.parse_app_file(path)
    raise ValueError(f"Unknown transaction source: {source!r}")
