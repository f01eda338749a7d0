from fastapi import Request

from upstream import UpstreamClient
from views import ViewRegistry


def get_upstream(request: Request) -> UpstreamClient:
    return request.app.state.upstream


def get_views(request: Request) -> ViewRegistry:
    return request.app.state.views
