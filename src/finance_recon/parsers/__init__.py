"""Parsers for bank and app transaction exports."""

from .transaction_parser import TransactionFileParser, parse_transactions

__all__ = ["TransactionFileParser", "parse_transactions"]
