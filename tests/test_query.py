from datetime import datetime

from models import AssetRecord, BorrowRecord
from query import (
    ReportQuery,
    compare_ids,
    filter_by_date,
    filter_by_status,
    run_report_query,
    search_assets,
    search_borrows,
    sort_borrows,
)

NOW = datetime(2024, 5, 10, 12, 0)


def _rec(id, **kw):
    kw.setdefault("status", "active")
    kw.setdefault("return_date", "2024-06-01 10:00")
    return BorrowRecord(id=id, borrowingId=id, **kw)


def test_ids_sort_numerically_descending():
    rows = sort_borrows([_rec(3), _rec(2), _rec(10)], now=NOW)
    assert [r.id for r in rows] == [10, 3, 2]


def test_numeric_strings_compare_as_numbers():
    rows = sort_borrows([_rec("3"), _rec("2"), _rec("10")], now=NOW)
    assert [r.id for r in rows] == ["10", "3", "2"]


def test_overdue_rows_come_first():
    rows = sort_borrows(
        [_rec(1, return_date="2024-05-01 08:00"), _rec(7), _rec(5, return_date="2024-05-09 08:00"), _rec(9)],
        now=NOW,
    )
    assert [r.id for r in rows] == [5, 1, 9, 7]


def test_missing_ids_sort_last():
    rows = sort_borrows([_rec(None), _rec(1), _rec(2)], now=NOW)
    assert [r.id for r in rows] == [2, 1, None]


def test_compare_ids_natural_order_for_codes():
    assert compare_ids("item10", "item2") > 0
    assert compare_ids("item2", "item2") == 0
    assert compare_ids(2, "10") < 0


def test_status_filter_is_case_insensitive_and_supports_overdue():
    rows = [
        _rec(1, status="Active"),
        _rec(2, status="returned", return_date="2024-05-01 08:00"),
        _rec(3, status="active", return_date="2024-05-01 08:00"),
        _rec(4, status="lost", return_date="2024-05-01 08:00"),
    ]
    assert [r.id for r in filter_by_status(rows, "ACTIVE")] == [1, 3]
    assert [r.id for r in filter_by_status(rows, "overdue", now=NOW)] == [3]
    assert [r.id for r in filter_by_status(rows, "lost")] == [4]
    assert len(filter_by_status(rows, "")) == 4


def test_date_filter_matches_date_prefix():
    rows = [
        _rec(1, date="2024-05-01 09:00"),
        _rec(2, date="2024-05-01T17:30"),
        _rec(3, date="2024-05-02 09:00"),
        _rec(4, date=None),
        _rec(5, date="01/05/2024"),
    ]
    assert [r.id for r in filter_by_date(rows, "2024-05-01")] == [1, 2]
    assert len(filter_by_date(rows, None)) == 5


def test_search_covers_borrow_fields():
    rows = [
        _rec(1, borrowID="FNA-001", item_name="Tripod", name="Rama", branch="Jakarta", department="Production"),
        _rec(2, borrowID="FNA-002", item_name="Camera", name="Sinta", branch="Bandung", department="Finance"),
    ]
    assert [r.id for r in search_borrows(rows, "tri")] == [1]
    assert [r.id for r in search_borrows(rows, "BANDUNG")] == [2]
    assert [r.id for r in search_borrows(rows, "fna-00")] == [1, 2]
    assert [r.id for r in search_borrows(rows, "  ")] == [1, 2]


def test_search_assets():
    assets = [
        AssetRecord(id=1, item_name="Tripod", category="Grip", condition="Good"),
        AssetRecord(id=2, item_name="Canon", category="Camera", condition="Damaged", owner="Studio A"),
    ]
    assert [a.id for a in search_assets(assets, "studio")] == [2]
    assert [a.id for a in search_assets(assets, "grip")] == [1]


def test_page_past_the_end_is_clamped():
    rows = [_rec(i) for i in range(1, 26)]
    page = run_report_query(rows, ReportQuery(page=4, page_size=10), now=NOW)

    assert page.meta.page == 3
    assert page.meta.total_pages == 3
    assert page.meta.total == 25
    assert [r.id for r in page.rows] == [5, 4, 3, 2, 1]


def test_empty_result_has_one_page():
    page = run_report_query([], ReportQuery(page=2), now=NOW)
    assert page.rows == []
    assert page.meta.page == 1
    assert page.meta.total_pages == 1


def test_unsupported_page_size_falls_back_to_default():
    rows = [_rec(i) for i in range(1, 30)]
    page = run_report_query(rows, ReportQuery(page_size=7), now=NOW)
    assert page.meta.page_size == 10
    assert len(page.rows) == 10


def test_rows_carry_overdue_flag():
    rows = [_rec(1, return_date="2024-05-10 09:00"), _rec(2)]
    page = run_report_query(rows, ReportQuery(), now=NOW)
    assert [(r.id, r.overdue) for r in page.rows] == [(1, True), (2, False)]
