from fastapi import APIRouter, Depends, HTTPException, Response

from dependencies import get_upstream, get_views
from models import DashboardSummary, ViewHandle
from upstream import UpstreamClient
from views import DashboardView, ViewRegistry

router = APIRouter(prefix="/views/dashboard")


def _dashboard_view(views: ViewRegistry, view_id: str) -> DashboardView:
    view = views.get(view_id, DashboardView.kind)
    if view is None:
        raise HTTPException(status_code=404, detail="view not found")
    return view  # type: ignore[return-value]


@router.post("", response_model=ViewHandle, status_code=201)
async def mount_dashboard_view(
    upstream: UpstreamClient = Depends(get_upstream),
    views: ViewRegistry = Depends(get_views),
):
    view = await views.mount(DashboardView.kind, upstream)
    return view.handle()


@router.get("/{view_id}", response_model=DashboardSummary)
async def dashboard_summary(view_id: str, views: ViewRegistry = Depends(get_views)):
    return _dashboard_view(views, view_id).summary()


@router.post("/{view_id}/refresh", response_model=ViewHandle)
async def refresh_dashboard_view(view_id: str, views: ViewRegistry = Depends(get_views)):
    view = _dashboard_view(views, view_id)
    await view.refresh()
    return view.handle()


@router.delete("/{view_id}", status_code=204)
async def teardown_dashboard_view(view_id: str, views: ViewRegistry = Depends(get_views)):
    if views.get(view_id, DashboardView.kind) is None or not views.close(view_id):
        raise HTTPException(status_code=404, detail="view not found")
    return Response(status_code=204)
