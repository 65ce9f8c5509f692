"""Utility functions for finance_engine."""

from finance_engine.utils.date_parser import parse_date, days_between
from finance_engine.utils.amount_parser import parse_amount, format_amount
from finance_engine.utils.normalize import normalize_description, contains_token

__all__ = [
    "parse_date",
    "days_between",
    "parse_amount",
    "format_amount",
    "normalize_description",
    "contains_token",
]
