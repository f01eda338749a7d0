from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse

from csv_utils import records_to_csv_response
from dependencies import get_upstream, get_views
from filter_helpers import build_report_query
from models import (
    BatchResult,
    BorrowRecord,
    BorrowSubmission,
    EmployeeQuery,
    EmployeeSuggestions,
    ReportPage,
    StatusUpdate,
    ViewHandle,
)
from upstream import UpstreamClient
from views import ReportView, ViewRegistry

router = APIRouter(prefix="/views/report")


def _report_view(views: ViewRegistry, view_id: str) -> ReportView:
    view = views.get(view_id, ReportView.kind)
    if view is None:
        raise HTTPException(status_code=404, detail="view not found")
    return view  # type: ignore[return-value]


@router.post("", response_model=ViewHandle, status_code=201)
async def mount_report_view(
    upstream: UpstreamClient = Depends(get_upstream),
    views: ViewRegistry = Depends(get_views),
):
    view = await views.mount(ReportView.kind, upstream)
    return view.handle()


@router.get("/{view_id}", response_model=ReportPage)
async def report_page(
    view_id: str,
    q: Optional[str] = None,
    status: Optional[str] = None,
    date_filter: Optional[str] = Query(None, alias="date"),
    page: int = 1,
    page_size: Optional[int] = None,
    views: ViewRegistry = Depends(get_views),
):
    view = _report_view(views, view_id)
    query = build_report_query(q, status, date_filter, page, page_size)
    return view.query(query)


@router.post("/{view_id}/refresh", response_model=ViewHandle)
async def refresh_report_view(view_id: str, views: ViewRegistry = Depends(get_views)):
    view = _report_view(views, view_id)
    await view.refresh()
    return view.handle()


@router.get("/{view_id}/export")
async def export_report(
    view_id: str,
    q: Optional[str] = None,
    status: Optional[str] = None,
    date_filter: Optional[str] = Query(None, alias="date"),
    views: ViewRegistry = Depends(get_views),
):
    view = _report_view(views, view_id)
    query = build_report_query(q, status, date_filter)
    return records_to_csv_response(view.export_rows(query), filename="borrow_report.csv")


@router.post("/{view_id}/borrows", response_model=BatchResult, status_code=201)
async def submit_borrows(
    view_id: str,
    body: BorrowSubmission,
    views: ViewRegistry = Depends(get_views),
):
    view = _report_view(views, view_id)
    result = await view.submit(body)
    if result.error is not None:
        # lines created before the failure are kept and reported alongside it
        return JSONResponse(status_code=502, content=result.model_dump(mode="json"))
    return result


@router.patch("/{view_id}/borrows/{borrow_id}/status", response_model=BorrowRecord)
async def update_borrow_status(
    view_id: str,
    borrow_id: str,
    body: StatusUpdate,
    views: ViewRegistry = Depends(get_views),
):
    view = _report_view(views, view_id)
    try:
        return await view.update_status(borrow_id, body.status)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail="borrow record not found") from exc


@router.put("/{view_id}/employee-query", status_code=202)
async def set_employee_query(
    view_id: str,
    body: EmployeeQuery,
    views: ViewRegistry = Depends(get_views),
):
    view = _report_view(views, view_id)
    view.set_employee_query(body.name)
    return {"query": body.name, "pending": True}


@router.get("/{view_id}/employee-suggestions", response_model=EmployeeSuggestions)
async def employee_suggestions(view_id: str, views: ViewRegistry = Depends(get_views)):
    view = _report_view(views, view_id)
    return EmployeeSuggestions(
        query=view.employee_search.query,
        pending=view.employee_search.pending,
        employees=view.employee_suggestions(),
        roster_error=view.roster_error,
    )


@router.delete("/{view_id}", status_code=204)
async def teardown_report_view(view_id: str, views: ViewRegistry = Depends(get_views)):
    if views.get(view_id, ReportView.kind) is None or not views.close(view_id):
        raise HTTPException(status_code=404, detail="view not found")
    return Response(status_code=204)
