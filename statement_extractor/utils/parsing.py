"""
Shared parsing helpers for extracted statement text.
"""

from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal, InvalidOperation
from typing import Optional
import re

# Amounts at or above this are treated as unreadable
MAX_ABS_AMOUNT = Decimal("1e15")


_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%m-%d-%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%m.%d.%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d-%b-%Y",
    "%d %b %Y",
)


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a date string into a date object."""
    if not value:
        return None

    cleaned = value.strip()
    if not cleaned:
        return None

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue

    return None


def normalize_date(value: str) -> str:
    """ISO form of a date string, or the stripped input when it does not parse."""
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else value.strip()


def parse_amount(value: Optional[str]) -> Optional[Decimal]:
    """Parse a currency string into a Decimal."""
    if not value:
        return None

    cleaned = value.strip()
    if not cleaned:
        return None

    upper = cleaned.upper()
    suffix_sign = None
    for token in ("CR", "CREDIT"):
        if upper.endswith(token):
            suffix_sign = 1
            cleaned = cleaned[:-len(token)]
            break

    if suffix_sign is None:
        for token in ("DR", "DEBIT"):
            if upper.endswith(token):
                suffix_sign = -1
                cleaned = cleaned[:-len(token)]
                break

    cleaned = re.sub(r"[\s$€£¥₹]", "", cleaned)

    is_negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        is_negative = True
        cleaned = cleaned[1:-1]
    elif cleaned.startswith("-"):
        is_negative = True
        cleaned = cleaned[1:]
    elif cleaned.startswith("+"):
        cleaned = cleaned[1:]

    if suffix_sign == -1:
        is_negative = True

    if "," in cleaned and "." in cleaned and cleaned.rfind(",") > cleaned.rfind("."):
        cleaned = cleaned.replace(".", "").replace(",", ".")
    elif "," in cleaned and "." not in cleaned:
        if re.search(r",\d{2}$", cleaned):
            cleaned = cleaned.replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    else:
        cleaned = cleaned.replace(",", "")

    try:
        amount = Decimal(cleaned)
    except (InvalidOperation, ValueError):
        return None

    if not amount.is_finite() or abs(amount) >= MAX_ABS_AMOUNT:
        return None

    return -amount if is_negative else amount


def find_json_object(text: Optional[str]) -> Optional[str]:
    """
    Return the first balanced {...} span in free text.

    Braces inside JSON string literals are ignored, so nested objects and
    descriptions containing braces do not truncate the span.
    """
    if not text:
        return None

    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        char = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:idx + 1]

    return None
