"""
Input validators and normalizers.

Every function here is pure: it returns the normalized value or raises a
``ValidationError`` subclass naming the offending field. Nothing touches storage.
"""

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import NamedTuple

from locadora.exceptions import (
    InvalidFormatError,
    InvalidRangeError,
    InvalidValueError,
    ValidationError,
)
from locadora.utils.constants import (
    CNPJ_LENGTH,
    CPF_LENGTH,
    DATE_FMT,
    DEFAULT_LIMIT,
    DISPLAY_DATE_FMT,
    MAX_LIMIT,
    PLATE_LEGACY,
    PLATE_MERCOSUL,
)

_NON_DIGITS = re.compile(r"\D")
_PLATE_SEPARATORS = re.compile(r"[\s.\-]")
CENTS = Decimal("0.01")


class DateRange(NamedTuple):
    start: date
    end: date


_CNPJ_WEIGHTS = (6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)


def _cpf_digit(digits: str) -> str:
    total = sum(int(d) * w for d, w in zip(digits, range(len(digits) + 1, 1, -1)))
    rest = 11 - total % 11
    return "0" if rest >= 10 else str(rest)


def _cnpj_digit(digits: str) -> str:
    weights = _CNPJ_WEIGHTS[-len(digits):]
    rest = sum(int(d) * w for d, w in zip(digits, weights)) % 11
    return "0" if rest < 2 else str(11 - rest)


def _has_valid_check_digits(digits: str) -> bool:
    if len(set(digits)) == 1:
        return False
    check = _cpf_digit if len(digits) == CPF_LENGTH else _cnpj_digit
    body = digits[:-2]
    first = check(body)
    return digits[-2:] == first + check(body + first)


def validate_tax_id(value, field: str = "clientId") -> str:
    """
    Strip formatting from a CPF (11 digits) or CNPJ (14 digits) and verify
    both check digits. Only strings and ints are accepted.
    """
    if value is None or value == "":
        raise InvalidFormatError("Error: tax id is required", field=field)
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise InvalidFormatError("Error: tax id must be a string", field=field)
    digits = _NON_DIGITS.sub("", str(value))
    if len(digits) not in (CPF_LENGTH, CNPJ_LENGTH):
        raise InvalidFormatError(
            "Error: tax id must have 11 (CPF) or 14 (CNPJ) digits", field=field)
    if not _has_valid_check_digits(digits):
        kind = "CPF" if len(digits) == CPF_LENGTH else "CNPJ"
        raise InvalidFormatError(f"Error: invalid {kind}", field=field)
    return digits


def validate_plate(value, field: str = "plate") -> str:
    """Normalize a plate to 'ABC1234' or Mercosul 'ABC1D23'."""
    if not isinstance(value, str):
        raise InvalidFormatError("Error: plate is required", field=field)
    plate = _PLATE_SEPARATORS.sub("", value).upper()
    if not (PLATE_LEGACY.match(plate) or PLATE_MERCOSUL.match(plate)):
        raise InvalidFormatError(
            "Error: plate must be in the format ABC1234 or ABC1D23", field=field)
    return plate


def parse_date(value, field: str) -> date:
    """Parse 'DD/MM/YYYY' or ISO 'YYYY-MM-DD' (a trailing time part is ignored)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidRangeError(f"Error: {field} is required", field=field)

    s = value.strip()
    fmt = DISPLAY_DATE_FMT if "/" in s else DATE_FMT
    if fmt == DATE_FMT:
        s = s.split("T", 1)[0].split(" ", 1)[0]
    try:
        return datetime.strptime(s, fmt).date()
    except ValueError:
        raise InvalidRangeError(
            f"Error: {field} must be a valid date (DD/MM/YYYY or YYYY-MM-DD)", field=field)


def validate_date_range(start, end) -> DateRange:
    d1 = parse_date(start, "startDate")
    d2 = parse_date(end, "endDate")
    if d1 >= d2:
        raise InvalidRangeError("Error: end date must be after start date", field="endDate")
    return DateRange(d1, d2)


def validate_positive_amount(value, field: str = "amount") -> float:
    """Return a finite amount rounded to cents; it must be at least 0.01 after rounding."""
    if value is None or isinstance(value, bool):
        raise InvalidValueError("Error: amount is required", field=field)
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidValueError("Error: amount must be a number", field=field)
    if not amount.is_finite():
        raise InvalidValueError("Error: amount must be a number", field=field)
    try:
        cents = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidValueError("Error: amount is too large", field=field)
    if cents <= 0:
        raise InvalidValueError("Error: amount must be greater than zero", field=field)
    return float(cents)


def validate_service_ids(value, field: str = "additionalServiceIds") -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise InvalidValueError("Error: additional services must be a list", field=field)
    out = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (str, int)):
            raise InvalidValueError("Error: additional service ids must be strings", field=field)
        sid = str(item).strip()
        if sid:
            out.append(sid)
    return out


def validate_name(value, field: str = "full_name") -> str:
    """Collapse inner whitespace of a person or company name; blank names are rejected."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Error: name is required", field=field)
    return " ".join(value.split())


def validate_status(value, status_enum, field: str = "status"):
    """Return the enum member for ``value`` (legacy spellings accepted)."""
    try:
        return status_enum.parse(value)
    except ValueError:
        allowed = ", ".join(s.value for s in status_enum)
        raise ValidationError(f"Error: status must be one of: {allowed}", field=field)


def validate_limit(value) -> int:
    """Page size: default 10, must be a positive integer, capped at 100."""
    if value is None or value == "":
        return DEFAULT_LIMIT
    if isinstance(value, bool):
        raise ValidationError("Error: limit must be a positive integer", field="limit")
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Error: limit must be a positive integer", field="limit")
    if limit < 1:
        raise ValidationError("Error: limit must be a positive integer", field="limit")
    return min(limit, MAX_LIMIT)
