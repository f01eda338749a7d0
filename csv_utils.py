import csv
import io
from typing import Iterable, Any, Sequence, Callable, Optional
from fastapi.responses import StreamingResponse

Column = tuple[str, Callable[[Any], str]]


def _text(attr: str) -> Callable[[Any], str]:
    def getter(row: Any) -> str:
        value = getattr(row, attr, None)
        return "" if value is None else str(value)
    return getter


REPORT_COLUMNS: Sequence[Column] = [
    ("id", _text("borrowingId")),
    ("borrowID", _text("borrowID")),
    ("item_name", _text("item_name")),
    ("qty", _text("qty")),
    ("name", _text("name")),
    ("branch", _text("branch")),
    ("department", _text("department")),
    ("date", _text("date")),
    ("return_date", _text("return_date")),
    ("status", _text("status")),
]


def iter_csv(rows: Iterable[Any], columns: Sequence[Column]):
    """Yield CSV text one line at a time, header first."""
    buf = io.StringIO()
    w = csv.writer(buf)

    w.writerow([h for h, _ in columns])
    yield buf.getvalue()
    buf.seek(0)
    buf.truncate(0)

    for row in rows:
        w.writerow([getter(row) for _, getter in columns])
        yield buf.getvalue()
        buf.seek(0)
        buf.truncate(0)


def records_to_csv_response(
    rows: Iterable[Any],
    *,
    filename: str = "borrow_report.csv",
    columns: Optional[Sequence[Column]] = None,
) -> StreamingResponse:
    """
    Stream rows (anything with attribute access, e.g. BorrowRecord) as a CSV download.
    """
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return StreamingResponse(
        iter_csv(rows, columns or REPORT_COLUMNS),
        media_type="text/csv; charset=utf-8",
        headers=headers,
    )
