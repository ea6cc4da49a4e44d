from __future__ import annotations

import calendar
from datetime import date, datetime


def utc_today() -> date:
    return datetime.utcnow().date()


def parse_date(s: str | None) -> date | None:
    """Parse YYYY-MM-DD date string."""
    if not s:
        return None
    s = s.strip()
    if not s:
        return None
    return date.fromisoformat(s)


def add_months(start: date, months: int) -> date:
    """
    Add calendar months, clamping the day to the end of the target month
    (Jan 31 + 1 month -> Feb 28/29, Aug 31 + 1 month -> Sep 30).
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    last_day = calendar.monthrange(y, m)[1]
    return date(y, m, min(start.day, last_day))


def calculate_expiry(transfer_date: date, duration_months: int) -> date:
    return add_months(transfer_date, duration_months)


def parse_positive_int(raw: str | None, default: int) -> int:
    try:
        v = int(raw or "")
    except ValueError:
        return default
    return v if v > 0 else default


def format_rupiah(price_in_cents: int) -> str:
    """Rp display string with Indonesian separators: 9000000 -> 'Rp 90.000'."""
    rupiah, cents = divmod(int(price_in_cents), 100)
    whole = f"{rupiah:,}".replace(",", ".")
    if cents:
        return f"Rp {whole},{cents:02d}"
    return f"Rp {whole}"


def iso(value: date | datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()
