"""
Value Parsers

Lenient parsers for the values found in marketplace and ERP exports:
- Currency amounts with symbols and thousands separators
- Percentages written as "31.45%" or as fractions (0.3145)
- Dates in ISO, ERP timestamp and UK day-first formats
"""

import math
import re
from datetime import date, datetime
from typing import Any, Optional

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%d/%m/%Y",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d-%m-%Y",
    "%d-%m-%Y %H:%M:%S",
]

_NUMERIC_NOISE = re.compile(r"[^\d.\-]")


def is_blank(value: Any) -> bool:
    """True for None, NaN and empty / whitespace strings"""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def parse_number(value: Any, default: float = 0.0) -> float:
    """Parse a numeric cell, stripping currency symbols and separators"""
    if is_blank(value):
        return default
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = _NUMERIC_NOISE.sub("", str(value)).strip()
    try:
        result = float(cleaned)
    except ValueError:
        return default
    return default if math.isnan(result) else result


def parse_percent(value: Any, default: float = 0.0) -> float:
    """
    Parse a percentage cell into percent units.
    
    Spreadsheet percentage cells arrive as fractions, so a bare number in
    (-1, 1] other than 0 is scaled by 100; strings keep their face value.
    """
    if is_blank(value):
        return default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
        if number != 0 and abs(number) <= 1.0:
            return number * 100
        return number
    return parse_number(str(value).replace("%", ""), default)


def parse_date(value: Any) -> date:
    """
    Parse a date-like cell.
    
    Raises:
        ValueError: if the value cannot be interpreted as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if is_blank(value):
        raise ValueError("empty date")
    
    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValueError(f"unparseable date: {text!r}") from None


def parse_optional_date(value: Any) -> Optional[date]:
    """Parse a date cell, returning None for blanks and unparseable values"""
    if is_blank(value):
        return None
    try:
        return parse_date(value)
    except ValueError:
        return None


def clean_text(value: Any) -> str:
    """Trimmed string form, empty for blanks"""
    if is_blank(value):
        return ""
    return str(value).strip().strip('"').strip()
