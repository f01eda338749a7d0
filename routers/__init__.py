from .assets_api import router as assets_api_router
from .dashboard_api import router as dashboard_api_router
from .employees_api import router as employees_api_router
from .report_api import router as report_api_router

ALL_ROUTERS = (
    assets_api_router,
    employees_api_router,
    report_api_router,
    dashboard_api_router,
)
