"""Derived state computed from canonical records.

Two overdue predicates live here on purpose: the dashboard counts at
calendar-date granularity, while report rows are flagged against the wall
clock. They disagree for records due earlier today, and that difference is
what the report highlights.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Optional

MAINTENANCE_MARKERS = ("damaged", "maintenance", "maintanance")
STATUS_ACTIVE = "active"
STATUS_RETURNED = "returned"

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")


def parse_qty(value: Any) -> int:
    """Coerce an upstream quantity to a non-negative int.

    Numbers are truncated toward zero, strings are read by their integer
    prefix (so "5.9" is 5), everything else counts as 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return max(0, int(value))
    if isinstance(value, str):
        m = _INT_PREFIX.match(value)
        if not m:
            return 0
        return max(0, int(m.group(1)))
    return 0


def normalize_status(status: Any) -> str:
    if status is None:
        return ""
    return str(status).strip().lower()


def is_active(status: Any) -> bool:
    return normalize_status(status) == STATUS_ACTIVE


def is_returned(status: Any) -> bool:
    return normalize_status(status) == STATUS_RETURNED


def is_under_maintenance(condition: Any) -> bool:
    c = str(condition if condition is not None else "").lower()
    return any(marker in c for marker in MAINTENANCE_MARKERS)


def due_date_part(value: Any) -> str:
    """Date portion of a stored date/datetime string ("2024-05-01 10:00" -> "2024-05-01")."""
    if value is None:
        return ""
    s = str(value).strip().replace("T", " ", 1)
    return s.split()[0] if s else ""


def parse_due_date(value: Any) -> Optional[date]:
    part = due_date_part(value)
    if not part:
        return None
    try:
        return date.fromisoformat(part)
    except ValueError:
        return None


def parse_due_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    # "YYYY-MM-DD HH:MM" is how the borrow form stores it
    s = s.replace(" ", "T", 1)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


# ---------- dashboard (calendar-date) ----------
def is_due_date_past(return_date: Any, *, today: Optional[date] = None) -> bool:
    due = parse_due_date(return_date)
    if due is None:
        return False
    today = today or date.today()
    return due < today


def counts_as_overdue(record: Any, *, today: Optional[date] = None) -> bool:
    """Dashboard rule: active and due strictly before today."""
    if not is_active(getattr(record, "status", None)):
        return False
    return is_due_date_past(getattr(record, "return_date", None), today=today)


# ---------- report rows (wall clock) ----------
def is_row_overdue(record: Any, *, now: Optional[datetime] = None) -> bool:
    if is_returned(getattr(record, "status", None)):
        return False
    due = parse_due_datetime(getattr(record, "return_date", None))
    if due is None:
        return False

    now = now or datetime.now()
    if due.tzinfo is not None and now.tzinfo is None:
        now = now.astimezone()
    elif due.tzinfo is None and now.tzinfo is not None:
        due = due.replace(tzinfo=now.tzinfo)
    return due < now
