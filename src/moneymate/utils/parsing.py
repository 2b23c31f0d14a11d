"""Parsing utilities for user input and backend rows."""

import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation


def parse_date(date_str: str) -> date | None:
    """
    Parse various date formats to date object.

    Supported formats:
    - YYYY-MM-DD (2026-01-30)
    - DD/MM/YYYY (30/01/2026)
    - DD MMM YYYY (30 Jan 2026)
    - DD-MM-YYYY (30-01-2026)

    Args:
        date_str: Date string to parse

    Returns:
        date object if successful, None otherwise
    """
    date_str = date_str.strip().strip('"').strip()

    if not date_str:
        return None

    formats = [
        "%Y-%m-%d",  # 2026-01-30
        "%d/%m/%Y",  # 30/01/2026
        "%d %b %Y",  # 30 Jan 2026
        "%d-%m-%Y",  # 30-01-2026
        "%d %B %Y",  # 30 January 2026
    ]

    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    return None


def parse_timestamp(value: str) -> datetime | None:
    """
    Parse an ISO 8601 timestamp as returned by the backend.

    Accepts a trailing 'Z' and date-only values. Naive timestamps are
    assumed to be UTC.
    """
    value = value.strip()
    if not value:
        return None

    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_amount(amount_str: str) -> Decimal | None:
    """
    Parse amount string to Decimal.

    Handles:
    - Currency symbols and codes ($, USD, etc.)
    - Exponent notation (1e3), as produced for large backend numbers
    - Thousands separators (commas)
    - Negative values (both -123 and (123))
    - Quoted values

    Args:
        amount_str: Amount string to parse

    Returns:
        Decimal if successful, None otherwise
    """
    if not amount_str or not amount_str.strip():
        return None

    # Remove quotes and whitespace
    amount_str = amount_str.strip().strip('"').strip()

    if not amount_str:
        return None

    # Check for parentheses (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols and whitespace, then a leading or trailing ISO code
    amount_str = re.sub(r"[$€£\s]", "", amount_str)
    amount_str = re.sub(r"^[A-Z]{3}|[A-Z]{3}$", "", amount_str)

    # Handle thousands separator (comma)
    amount_str = amount_str.replace(",", "")

    # Check for negative sign
    if amount_str.startswith("-"):
        is_negative = True
        amount_str = amount_str[1:]

    if not amount_str:
        return None

    try:
        value = Decimal(amount_str)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return -value if is_negative else value


def format_amount(amount: Decimal) -> str:
    """Format a Decimal for storage without exponent notation."""
    return format(amount, "f")
