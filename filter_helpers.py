from datetime import date
from typing import Optional

from query import ReportQuery, normalize_page_size
from settings import settings


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if value == "":
        return None
    return value


def normalize_status_filter(status: Optional[str]) -> Optional[str]:
    status = blank_to_none(status)
    return status.lower() if status else None


def normalize_date_filter(selected: Optional[str]) -> Optional[str]:
    selected = blank_to_none(selected)
    if not selected:
        return None
    try:
        return date.fromisoformat(selected[:10]).isoformat()
    except ValueError:
        return None


def normalize_page(page: Optional[int]) -> int:
    if page is None or page < 1:
        return 1
    return page


def build_report_query(
    q: Optional[str] = None,
    status: Optional[str] = None,
    date_filter: Optional[str] = None,
    page: Optional[int] = None,
    page_size: Optional[int] = None,
) -> ReportQuery:
    return ReportQuery(
        q=(q or "").strip(),
        status=normalize_status_filter(status),
        date=normalize_date_filter(date_filter),
        page=normalize_page(page),
        page_size=normalize_page_size(page_size or settings.REPORT_DEFAULT_PAGE_SIZE),
    )
