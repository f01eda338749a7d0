from typing import Any

from fastapi import APIRouter, Depends

from dependencies import get_upstream
from upstream import UpstreamClient

router = APIRouter()


@router.get("/employees")
async def list_employees_api(
    name: str = "",
    upstream: UpstreamClient = Depends(get_upstream),
) -> Any:
    # keeps the upstream envelope; resigned employees are already gone
    return await upstream.employee_payload(name.strip())
