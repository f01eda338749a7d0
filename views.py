"""View lifetimes.

A view owns the canonical collections it fetched. Every fetch it starts is
tracked; tearing the view down cancels whatever is still in flight, and a
response that lands afterwards is dropped instead of written into state.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Optional, TypeVar
from uuid import uuid4

from aggregation import build_dashboard
from models import (
    AssetRecord,
    BatchResult,
    BorrowRecord,
    BorrowSubmission,
    DashboardSummary,
    Employee,
    RecordId,
    ReportPage,
    ViewHandle,
)
from query import ReportQuery, filter_report, run_report_query
from reconciler import BorrowLedger, DebouncedSearch, EmployeeRoster, change_status, submit_borrow_batch
from settings import settings
from upstream import UpstreamClient, UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ViewClosed(RuntimeError):
    pass


class BaseView:
    kind = ""

    def __init__(self, client: UpstreamClient) -> None:
        self.view_id = str(uuid4())
        self.client = client
        self.closed = False
        self.loaded = False
        self.load_error: Optional[str] = None
        self._tasks: set[asyncio.Future] = set()

    async def _bound(self, work: Awaitable[T]) -> T:
        """Run ``work`` tied to this view's lifetime."""
        if self.closed:
            if asyncio.iscoroutine(work):
                work.close()
            elif isinstance(work, asyncio.Future):
                work.cancel()
            raise ViewClosed(self.view_id)

        task = asyncio.ensure_future(work)
        self._tasks.add(task)
        try:
            await asyncio.wait({task})
        finally:
            self._tasks.discard(task)
            if not task.done():
                task.cancel()

        if task.cancelled() or self.closed:
            if not task.cancelled():
                # a cancelled gather finishes holding CancelledError; mark it retrieved
                task.exception()
            raise ViewClosed(self.view_id)
        return task.result()

    def handle(self) -> ViewHandle:
        return ViewHandle(
            view_id=self.view_id,
            kind=self.kind,  # type: ignore
            loaded=self.loaded,
            load_error=self.load_error,
        )

    async def load(self) -> None:
        raise NotImplementedError

    def teardown(self) -> None:
        self.closed = True
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()


class ReportView(BaseView):
    kind = "report"

    def __init__(self, client: UpstreamClient, *, debounce_seconds: Optional[float] = None) -> None:
        super().__init__(client)
        self.ledger = BorrowLedger()
        self.roster = EmployeeRoster()
        self.roster_error: Optional[str] = None
        if debounce_seconds is None:
            debounce_seconds = settings.EMPLOYEE_SEARCH_DEBOUNCE_MS / 1000
        self.employee_search = DebouncedSearch(self.roster, debounce_seconds)

    async def load(self) -> None:
        await self._load(include_roster=True)

    async def refresh(self) -> None:
        await self._load(include_roster=False)

    async def _load(self, *, include_roster: bool) -> None:
        # the borrow listing degrades to [] inside the client, so only the roster can fail here
        if include_roster and not self.roster.loaded:
            borrows, roster = await self._bound(
                asyncio.gather(self.client.list_borrows(), self.roster.load(self.client), return_exceptions=True)
            )
            if isinstance(borrows, BaseException):
                raise borrows
            self._note_roster(roster)
        else:
            borrows = await self._bound(self.client.list_borrows())

        self.ledger.replace_all(borrows)
        self.loaded = True

    def _note_roster(self, result: Any) -> None:
        if isinstance(result, UpstreamError):
            # lookup is optional; the report still works without it
            self.roster_error = result.message
            logger.warning("employee roster unavailable for view %s: %s", self.view_id, result.message)
        elif isinstance(result, BaseException):
            raise result
        else:
            self.roster_error = None

    def query(self, query: ReportQuery, *, now: Optional[datetime] = None) -> ReportPage:
        return run_report_query(self.ledger.records, query, now=now)

    def export_rows(self, query: ReportQuery, *, now: Optional[datetime] = None) -> list[BorrowRecord]:
        return filter_report(self.ledger.records, query, now=now)

    async def submit(self, submission: BorrowSubmission) -> BatchResult:
        return await self._bound(submit_borrow_batch(self.client, self.ledger, submission))

    async def update_status(self, record_id: RecordId, status: str) -> BorrowRecord:
        return await self._bound(change_status(self.client, self.ledger, record_id, status))

    def set_employee_query(self, name: str) -> None:
        self.employee_search.submit(name)

    def employee_suggestions(self) -> list[Employee]:
        return list(self.employee_search.suggestions)

    def teardown(self) -> None:
        self.employee_search.close()
        super().teardown()
        self.roster.clear()


class DashboardView(BaseView):
    kind = "dashboard"

    def __init__(self, client: UpstreamClient) -> None:
        super().__init__(client)
        self.assets: tuple[AssetRecord, ...] = ()
        self.borrows: tuple[BorrowRecord, ...] = ()

    async def _fetch_both(self) -> tuple[list[AssetRecord], list[BorrowRecord]]:
        assets, borrows = await asyncio.gather(self.client.list_assets(), self.client.list_borrows())
        return assets, borrows

    async def load(self) -> None:
        self.load_error = None
        try:
            assets, borrows = await self._bound(self._fetch_both())
        except UpstreamError as exc:
            logger.warning("dashboard %s load failed: %s", self.view_id, exc.message)
            self.load_error = exc.message
        else:
            # both collections swap together so the summary never mixes fetches
            self.assets, self.borrows = tuple(assets), tuple(borrows)
        self.loaded = True

    refresh = load

    def summary(self, *, today: Optional[date] = None) -> DashboardSummary:
        result = build_dashboard(self.assets, self.borrows, today=today)
        result.load_error = self.load_error
        return result


VIEW_TYPES: dict[str, type[BaseView]] = {
    ReportView.kind: ReportView,
    DashboardView.kind: DashboardView,
}


class ViewRegistry:
    """Mounted views by id.

    Clients that navigate away never send the teardown, so a view nobody has
    looked up for ``idle_seconds`` is torn down on the next access, and once
    ``max_views`` are mounted the least recently used one makes room. Zero
    disables either bound.
    """

    def __init__(
        self,
        *,
        idle_seconds: Optional[float] = None,
        max_views: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.idle_seconds = settings.VIEW_IDLE_SECONDS if idle_seconds is None else idle_seconds
        self.max_views = settings.VIEW_MAX_COUNT if max_views is None else max_views
        self._clock = clock
        self._views: dict[str, BaseView] = {}
        self._last_seen: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._views)

    def evict_idle(self) -> int:
        if self.idle_seconds <= 0:
            return 0
        cutoff = self._clock() - self.idle_seconds
        stale = [view_id for view_id, seen in self._last_seen.items() if seen < cutoff]
        for view_id in stale:
            logger.info("evicting idle view %s", view_id)
            self.close(view_id)
        return len(stale)

    def _make_room(self) -> None:
        while self.max_views > 0 and len(self._views) >= self.max_views:
            oldest = min(self._last_seen, key=self._last_seen.__getitem__)
            logger.info("view limit %s reached, evicting %s", self.max_views, oldest)
            self.close(oldest)

    async def mount(self, kind: str, client: UpstreamClient) -> BaseView:
        self.evict_idle()
        self._make_room()
        view = VIEW_TYPES[kind](client)
        self._views[view.view_id] = view
        self._last_seen[view.view_id] = self._clock()
        logger.info("mounted %s view %s", kind, view.view_id)
        await view.load()
        return view

    def get(self, view_id: str, kind: Optional[str] = None) -> Optional[BaseView]:
        self.evict_idle()
        view = self._views.get(view_id)
        if view is None or (kind and view.kind != kind):
            return None
        self._last_seen[view_id] = self._clock()
        return view

    def close(self, view_id: str) -> bool:
        view = self._views.pop(view_id, None)
        self._last_seen.pop(view_id, None)
        if view is None:
            return False
        view.teardown()
        logger.info("tore down %s view %s", view.kind, view_id)
        return True

    def close_all(self) -> None:
        for view_id in list(self._views):
            self.close(view_id)
