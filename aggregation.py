from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Sequence

from derived import (
    STATUS_ACTIVE,
    STATUS_RETURNED,
    counts_as_overdue,
    due_date_part,
    is_under_maintenance,
    normalize_status,
    parse_qty,
)
from models import (
    AssetRecord,
    BorrowRecord,
    ChartSlice,
    DashboardStats,
    DashboardSummary,
    OverdueEntry,
)


def stock_quantity(assets: Iterable[AssetRecord]) -> int:
    return sum(parse_qty(a.qty_in_stock) for a in assets)


def borrowed_quantity(borrows: Iterable[BorrowRecord]) -> int:
    return sum(parse_qty(b.qty) for b in borrows)


def maintenance_assets(assets: Iterable[AssetRecord]) -> list[AssetRecord]:
    return [a for a in assets if is_under_maintenance(a.condition)]


def serviceable_assets(assets: Iterable[AssetRecord]) -> list[AssetRecord]:
    return [a for a in assets if not is_under_maintenance(a.condition)]


def overdue_borrows(borrows: Iterable[BorrowRecord], *, today: Optional[date] = None) -> list[BorrowRecord]:
    today = today or date.today()
    return [b for b in borrows if counts_as_overdue(b, today=today)]


def quantity_by_status(borrows: Iterable[BorrowRecord], status: str) -> int:
    return sum(parse_qty(b.qty) for b in borrows if normalize_status(b.status) == status)


def non_zero_slices(pairs: Sequence[tuple[str, int]]) -> list[ChartSlice]:
    # a zero-valued category must not show up as an empty slice
    return [ChartSlice(name=name, value=value) for name, value in pairs if value > 0]


def compute_stats(
    assets: Sequence[AssetRecord],
    borrows: Sequence[BorrowRecord],
    *,
    today: Optional[date] = None,
) -> DashboardStats:
    in_stock = stock_quantity(assets)
    borrowed = borrowed_quantity(borrows)
    return DashboardStats(
        total_assets=in_stock + borrowed,
        available=stock_quantity(serviceable_assets(assets)),
        borrowed=borrowed,
        overdue=borrowed_quantity(overdue_borrows(borrows, today=today)),
        maintenance=stock_quantity(maintenance_assets(assets)),
    )


def asset_status_breakdown(stats: DashboardStats) -> list[ChartSlice]:
    return non_zero_slices(
        [
            ("borrowed", stats.borrowed),
            ("available", stats.available),
            ("damaged", stats.maintenance),
        ]
    )


def return_status_breakdown(borrows: Sequence[BorrowRecord]) -> list[ChartSlice]:
    return non_zero_slices(
        [
            (STATUS_RETURNED, quantity_by_status(borrows, STATUS_RETURNED)),
            (STATUS_ACTIVE, quantity_by_status(borrows, STATUS_ACTIVE)),
        ]
    )


def to_overdue_entry(record: BorrowRecord) -> OverdueEntry:
    return OverdueEntry(
        id=record.borrowingId if record.borrowingId is not None else record.id,
        item_name=record.item_name,
        qty=parse_qty(record.qty),
        name=record.name,
        due_date=due_date_part(record.return_date) or "-",
    )


def build_dashboard(
    assets: Sequence[AssetRecord],
    borrows: Sequence[BorrowRecord],
    *,
    today: Optional[date] = None,
) -> DashboardSummary:
    today = today or date.today()
    stats = compute_stats(assets, borrows, today=today)
    return DashboardSummary(
        stats=stats,
        asset_status=asset_status_breakdown(stats),
        return_status=return_status_breakdown(borrows),
        overdue_list=[to_overdue_entry(b) for b in overdue_borrows(borrows, today=today)],
    )
