"""Utility functions for moneymate."""

from moneymate.utils.parsing import (
    format_amount,
    parse_amount,
    parse_date,
    parse_timestamp,
)

__all__ = ["parse_date", "parse_timestamp", "parse_amount", "format_amount"]
