from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

import logging
import time

from routers import ALL_ROUTERS
from upstream import UpstreamClient, UpstreamError
from views import ViewClosed, ViewRegistry

# -----------------------
# Logging
# -----------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # views still mounted at shutdown must not outlive the loop
    app.state.views.close_all()


app = FastAPI(title="Borrow Ledger API", lifespan=lifespan)
app.state.upstream = UpstreamClient()
app.state.views = ViewRegistry()

for router in ALL_ROUTERS:
    app.include_router(router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    elapsed_ms = int((time.time() - start) * 1000)
    logger.info(
        "method=%s path=%s status=%s elapsed_ms=%s",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    logger.warning("upstream failure on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=502, content={"error": exc.message})


@app.exception_handler(ViewClosed)
async def view_closed_handler(request: Request, exc: ViewClosed):
    return JSONResponse(status_code=410, content={"detail": "view closed"})


@app.get("/")
def root():
    return {
        "message": "Borrow Ledger API",
        "docs": "/docs",
        "report": "/views/report",
        "dashboard": "/views/dashboard",
    }
