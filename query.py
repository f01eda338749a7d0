from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime
from functools import cmp_to_key
from typing import Any, Iterable, Optional, Sequence

from derived import is_active, is_row_overdue, normalize_status
from models import AssetRecord, BorrowRecord, ReportMeta, ReportPage, ReportRow
from settings import PAGE_SIZE_OPTIONS

STATUS_OVERDUE = "overdue"

BORROW_SEARCH_FIELDS = ("borrowID", "item_name", "name", "branch", "department")
ASSET_SEARCH_FIELDS = ("item_name", "category", "condition", "owner", "description")

_CHUNKS = re.compile(r"(\d+)")


@dataclass(frozen=True)
class ReportQuery:
    q: str = ""
    status: Optional[str] = None
    date: Optional[str] = None
    page: int = 1
    page_size: int = PAGE_SIZE_OPTIONS[0]


# ---------- ordering ----------
def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        n = float(str(value).strip())
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def _natural_key(value: Any) -> tuple:
    # "item10" after "item2"; digit runs compare as numbers
    parts = []
    for chunk in _CHUNKS.split(str(value)):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk), ""))
        else:
            parts.append((1, 0, chunk.casefold()))
    return tuple(parts)


def compare_ids(a: Any, b: Any) -> int:
    na, nb = _as_number(a), _as_number(b)
    if na is not None and nb is not None:
        return (na > nb) - (na < nb)
    ka, kb = _natural_key(a), _natural_key(b)
    return (ka > kb) - (ka < kb)


def sort_borrows(records: Iterable[BorrowRecord], *, now: Optional[datetime] = None) -> list[BorrowRecord]:
    """Overdue rows first, then identifier descending; rows without an id go last in their group."""
    now = now or datetime.now()
    decorated = [(is_row_overdue(r, now=now), r) for r in records]

    def cmp(x: tuple[bool, BorrowRecord], y: tuple[bool, BorrowRecord]) -> int:
        (ox, rx), (oy, ry) = x, y
        if ox != oy:
            return -1 if ox else 1
        if rx.id is None or ry.id is None:
            return (rx.id is None) - (ry.id is None)
        return compare_ids(ry.id, rx.id)

    decorated.sort(key=cmp_to_key(cmp))
    return [r for _, r in decorated]


# ---------- filters ----------
def filter_by_status(records: Iterable[BorrowRecord], status: Optional[str], *, now: Optional[datetime] = None) -> list[BorrowRecord]:
    wanted = normalize_status(status)
    if not wanted:
        return list(records)
    if wanted == STATUS_OVERDUE:
        now = now or datetime.now()
        return [r for r in records if is_active(r.status) and is_row_overdue(r, now=now)]
    return [r for r in records if normalize_status(r.status) == wanted]


def filter_by_date(records: Iterable[BorrowRecord], selected: Optional[str]) -> list[BorrowRecord]:
    if not selected:
        return list(records)
    # stored dates are expected to start with YYYY-MM-DD; anything else never matches
    return [r for r in records if (r.date or "")[:10] == selected]


def _matches(record: Any, needle: str, fields: Sequence[str]) -> bool:
    for field in fields:
        value = getattr(record, field, None)
        if value is not None and needle in str(value).lower():
            return True
    return False


def search_borrows(records: Iterable[BorrowRecord], q: Optional[str]) -> list[BorrowRecord]:
    needle = (q or "").strip().lower()
    if not needle:
        return list(records)
    return [r for r in records if _matches(r, needle, BORROW_SEARCH_FIELDS)]


def search_assets(records: Iterable[AssetRecord], q: Optional[str]) -> list[AssetRecord]:
    needle = (q or "").strip().lower()
    if not needle:
        return list(records)
    return [r for r in records if _matches(r, needle, ASSET_SEARCH_FIELDS)]


# ---------- paging ----------
def normalize_page_size(page_size: Optional[int]) -> int:
    if page_size in PAGE_SIZE_OPTIONS:
        return page_size
    return PAGE_SIZE_OPTIONS[0]


def total_pages_for(total: int, page_size: int) -> int:
    return max(1, (total + page_size - 1) // page_size)


def clamp_page(page: int, total: int, page_size: int) -> int:
    last = total_pages_for(total, page_size)
    if page < 1:
        return 1
    if page > last:
        return last
    return page


def filter_report(records: Iterable[BorrowRecord], query: ReportQuery, *, now: Optional[datetime] = None) -> list[BorrowRecord]:
    """Ordered and filtered, but not paginated (CSV export uses this directly)."""
    now = now or datetime.now()
    rows = sort_borrows(records, now=now)
    rows = filter_by_status(rows, query.status, now=now)
    rows = filter_by_date(rows, query.date)
    return search_borrows(rows, query.q)


def run_report_query(records: Iterable[BorrowRecord], query: ReportQuery, *, now: Optional[datetime] = None) -> ReportPage:
    now = now or datetime.now()
    filtered = filter_report(records, query, now=now)

    page_size = normalize_page_size(query.page_size)
    total = len(filtered)
    page = clamp_page(query.page, total, page_size)
    start = (page - 1) * page_size

    rows = [
        ReportRow.model_validate({**r.model_dump(), "overdue": is_row_overdue(r, now=now)})
        for r in filtered[start:start + page_size]
    ]
    meta = ReportMeta(
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages_for(total, page_size),
    )
    return ReportPage(rows=rows, meta=meta)
