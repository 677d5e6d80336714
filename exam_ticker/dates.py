from __future__ import annotations
import re
from datetime import date
from typing import Any, Optional
from dateutil import parser as dtparser
from .utils import RULES

CANONICAL_RE = re.compile(r"^\d{2}\.\d{2}\.\d{4}$")

# tried in this order: 4-digit year, then 2-digit year
_FULL_YEAR_RE = re.compile(r"^(\d{1,2})[./-](\d{1,2})[./-](\d{4})$")
_SHORT_YEAR_RE = re.compile(r"^(\d{1,2})[./-](\d{1,2})[./-](\d{2})$")

EPOCH = date(1970, 1, 1)
SOON_DAYS = int(RULES.get("soon_days", 7))


def _is_structured_date(v: Any) -> bool:
    # datetime.date / datetime.datetime / pandas.Timestamp
    return not isinstance(v, str) and hasattr(v, "year") and hasattr(v, "month") and hasattr(v, "day")


def normalize_exam_date(value: Any) -> str:
    """
    Raw date cell -> "DD.MM.YYYY", or "" when there is no usable date.

    Accepts date/datetime values and D.M.YYYY, D/M/YYYY, D-M-YYYY strings
    (and the same with a 2-digit year, expanded as 20YY). Only the shape is
    checked: 31.02.2025 passes.
    """
    if value is None:
        return ""

    if _is_structured_date(value):
        try:
            return f"{int(value.day):02d}.{int(value.month):02d}.{int(value.year):04d}"
        except (TypeError, ValueError):
            # NaT
            return ""

    if not isinstance(value, str):
        return ""

    txt = value.strip()
    out = ""
    m = _FULL_YEAR_RE.match(txt)
    if m:
        d, mo, y = m.groups()
        out = f"{d.zfill(2)}.{mo.zfill(2)}.{y}"
    else:
        m = _SHORT_YEAR_RE.match(txt)
        if m:
            d, mo, y = m.groups()
            out = f"{d.zfill(2)}.{mo.zfill(2)}.20{y}"

    if not CANONICAL_RE.match(out):
        return ""
    return out


def parse_exam_date(exam_date: str) -> Optional[date]:
    if not exam_date:
        return None
    try:
        return dtparser.parse(exam_date, dayfirst=True).date()
    except (ValueError, OverflowError):
        return None


def exam_date_sort_key(exam_date: str) -> date:
    # unparsable dates sort first
    return parse_exam_date(exam_date) or EPOCH


def days_remaining(exam_date: str, today: Optional[date] = None) -> int:
    d = parse_exam_date(exam_date)
    if d is None:
        return 0
    if today is None:
        today = date.today()
    return max(0, (d - today).days)


def countdown_badge(days: int, soon_days: int = SOON_DAYS) -> Optional[str]:
    if days <= 0:
        return "today"
    if days <= soon_days:
        return "soon"
    return None
