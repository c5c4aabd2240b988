"""Utility functions for cashflow."""

from cashflow.utils.date_parser import parse_date, parse_calendar_date
from cashflow.utils.amount_parser import parse_amount, to_decimal
from cashflow.utils.document_io import read_document, write_document

__all__ = [
    "parse_date",
    "parse_calendar_date",
    "parse_amount",
    "to_decimal",
    "read_document",
    "write_document",
]
