from __future__ import annotations

import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional


_LEADING_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
# Magnitudes beyond 1e15 (or below 1e-15) are not amounts; treat them as unreadable.
_MAX_EXPONENT = 15


def _usable(d: Decimal) -> Decimal:
    if not d.is_finite() or abs(d.adjusted()) > _MAX_EXPONENT:
        return Decimal(0)
    return d


def parse_money(x: Any) -> Decimal:
    """Coerce a stored amount or quantity to Decimal.

    Anything that does not read as a finite number of sane magnitude becomes
    0. Strings are read by their leading numeric prefix ("12.5 yards" -> 12.5);
    thousands separators are dropped first, so "1,250" is 1250.
    """
    if isinstance(x, bool) or x is None:
        return Decimal(0)
    if isinstance(x, Decimal):
        return _usable(x)
    if isinstance(x, (int, float)):
        try:
            d = Decimal(str(x))
        except InvalidOperation:
            return Decimal(0)
        return _usable(d)
    s = str(x).strip().replace(",", "")
    if s.startswith("$"):
        s = s[1:]
    m = _LEADING_NUMBER.match(s)
    if not m:
        return Decimal(0)
    try:
        d = Decimal(m.group(0))
    except InvalidOperation:
        return Decimal(0)
    return _usable(d)


# Quantities follow the same rule as money.
parse_quantity = parse_money


def money(amount: Decimal, symbol: str = "$", places: int = 2) -> str:
    q = Decimal(10) ** -places
    val = parse_money(amount).quantize(q, rounding=ROUND_HALF_UP)
    parts = f"{val:.{places}f}".split(".")
    whole = parts[0]
    frac = parts[1] if len(parts) > 1 else "00"
    sign = ""
    if whole.startswith("-"):
        sign = "-"
        whole = whole[1:]
    whole_with_commas = "{:,}".format(int(whole))
    return f"{sign}{symbol}{whole_with_commas}.{frac}"


def percent(value: Decimal, places: int = 1) -> str:
    q = Decimal(10) ** -places
    return f"{parse_money(value).quantize(q, rounding=ROUND_HALF_UP)}%"


def month_key(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


def quarter_key(year: int, month: int) -> str:
    return f"{year}-Q{(month - 1) // 3 + 1}"


def parse_date(value: Any) -> Optional[date]:
    """Read a stored date in any of the shapes order documents carry.

    Accepts date/datetime, ISO strings, epoch seconds and exported Firestore
    timestamps ({"seconds": ...} or {"_seconds": ...}). Returns None when the
    value cannot be read.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, dict):
        secs = value.get("seconds", value.get("_seconds"))
        if secs is None:
            return None
        return parse_date(secs)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    s = str(value).strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None
