"""Pure value normalizers used on every imported cell.

Every function here is total: any input produces a string (or int for
parse_cost) and nothing raises.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

# Full-width A-Z, a-z and 0-9 sit exactly 0xFEE0 above their ASCII forms
_FULL_WIDTH_ALNUM = re.compile("[Ａ-Ｚａ-ｚ０-９]")
_FULL_WIDTH_OFFSET = 0xFEE0

_LEADING_INT = re.compile(r"^([0-9]+)")
_NON_DIGIT = re.compile(r"\D")

# Day 25569 in spreadsheet serial numbering is 1970-01-01
_EXCEL_EPOCH_OFFSET_DAYS = 25569
# Serial of 9999-12-31, the last day a spreadsheet can show
MAX_DATE_SERIAL = 2958465
_SECONDS_PER_DAY = 86400
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def cell_text(value: Any) -> str:
    """Render a raw cell as trimmed text.

    openpyxl hands back integral numbers as float when the cell is
    formatted as a number, so 12.0 becomes "12".
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def to_half_width(value: Any) -> str:
    """Map full-width ASCII letters and digits to their half-width forms."""
    if not isinstance(value, str):
        value = cell_text(value)
    if not value:
        return ""
    return _FULL_WIDTH_ALNUM.sub(
        lambda m: chr(ord(m.group(0)) - _FULL_WIDTH_OFFSET), value
    )


def normalize_text(value: Any) -> str:
    return to_half_width(value).strip()


def normalize_phone(value: Any) -> str:
    """Canonical identity form of a phone or SIM number.

    Only used for comparison, never stored.
    """
    return normalize_text(value).replace("-", "")


def format_phone_number(value: Any) -> str:
    """Render an 11-digit mobile number as NNN-NNNN-NNNN.

    Anything else is returned unchanged.
    """
    if not isinstance(value, str):
        value = cell_text(value)
    if not value:
        return ""
    digits = _NON_DIGIT.sub("", value)
    if len(digits) == 11:
        return f"{digits[:3]}-{digits[3:7]}-{digits[7:]}"
    return value


def normalize_contract_year(value: Any) -> str:
    """Render a contract length as "<n>年".

    "2", "2年" and "２年間" all become "2年". Input without a leading
    integer becomes "".
    """
    text = normalize_text(cell_text(value))
    match = _LEADING_INT.match(text)
    if not match:
        return ""
    return f"{match.group(1).lstrip('0') or '0'}年"


def is_date_serial(value: Any) -> bool:
    """True for a number a spreadsheet would show as a date (1 to 9999-12-31)."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return 1 <= value < MAX_DATE_SERIAL + 1


def excel_serial_to_iso_date(value: Any) -> str:
    """Render a date cell as YYYY-MM-DD where possible.

    A number outside the date range (20240401 typed without separators,
    a negative amount) is kept as its text.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if is_date_serial(value):
        seconds = (value - _EXCEL_EPOCH_OFFSET_DAYS) * _SECONDS_PER_DAY
        return (_UNIX_EPOCH + timedelta(seconds=seconds)).date().isoformat()
    text = cell_text(value)
    if not text:
        return ""
    return text.replace("/", "-")


def format_zip_code(value: str) -> str:
    """Render a 7-digit postal code as NNN-NNNN."""
    text = normalize_text(value)
    if re.fullmatch(r"\d{7}", text):
        return f"{text[:3]}-{text[3:]}"
    return text


def format_address_code(value: str) -> str:
    """Render a 6-digit address code as NNNN-NN."""
    text = normalize_text(value)
    if re.fullmatch(r"\d{6}", text):
        return f"{text[:4]}-{text[4:]}"
    return text


def parse_cost(value: Any) -> int:
    """Parse a cost cell. Anything that is not a plain integer becomes 0."""
    text = normalize_text(cell_text(value)).replace(",", "")
    # 18 digits always fit a bigint column
    if re.fullmatch(r"[0-9]{1,18}", text):
        return int(text)
    return 0
