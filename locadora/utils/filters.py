"""Date formatting helpers for records returned to callers."""
from datetime import datetime, timezone

import pytz

from locadora.utils.constants import DATE_FMT, DISPLAY_DATE_FMT, DISPLAY_DATETIME_FMT, DISPLAY_TZ


def fmt_date(value) -> str:
    """
    Render a stored 'YYYY-MM-DD' date as 'DD/MM/YYYY'.
    On parse error, returns the original value (so callers never get a blank).
    """
    if value is None:
        return ""
    s = str(value).strip()
    if not s:
        return ""
    try:
        return datetime.strptime(s[:10], DATE_FMT).strftime(DISPLAY_DATE_FMT)
    except ValueError:
        return s


def fmt_iso_local(value, tz_name: str = DISPLAY_TZ) -> str:
    """
    Format an ISO timestamp into local time as 'DD/MM/YYYY HH:MM'.
    Supports:
      - 'YYYY-MM-DDTHH:MM:SS[.ffffff]'
      - Above with 'Z' or timezone offsets like '+00:00'
      - 'YYYY-MM-DD' (rendered date-only)
    Naive values are assumed to be UTC.
    """
    if value is None:
        return ""

    s = str(value).strip()
    if not s:
        return ""

    if len(s) == 10:
        return fmt_date(s)

    s_norm = s.replace("T", " ")
    if s_norm.endswith("Z"):
        s_norm = s_norm[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s_norm)
    except ValueError:
        return s

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    local = dt.astimezone(pytz.timezone(tz_name))
    return local.strftime(DISPLAY_DATETIME_FMT)


def display_rental(doc: dict) -> dict:
    """Copy of a stored rental with dates and timestamps in display format."""
    out = dict(doc)
    for key in ("start_date", "end_date"):
        out[key] = fmt_date(doc.get(key))
    for key in ("created_at", "updated_at"):
        out[key] = fmt_iso_local(doc.get(key))
    return out
