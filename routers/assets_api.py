from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import ValidationError

from dependencies import get_upstream
from filter_helpers import blank_to_none
from models import AssetIn, AssetRecord, AssetSaveResult
from query import search_assets
from upstream import Picture, UpstreamClient

router = APIRouter()


def _asset_body(
    item_name: str,
    category: Optional[str],
    condition: Optional[str],
    qty_in_stock: Optional[str],
    owner: Optional[str],
    description: Optional[str],
) -> AssetIn:
    try:
        return AssetIn(
            item_name=item_name,
            category=blank_to_none(category),
            condition=blank_to_none(condition),
            qty_in_stock=qty_in_stock or 0,
            owner=blank_to_none(owner),
            description=blank_to_none(description),
        )
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors()[0]["msg"]) from exc


async def _picture(upload: Optional[UploadFile]) -> Optional[Picture]:
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return (upload.filename, content, upload.content_type or "application/octet-stream")


@router.get("/assets", response_model=list[AssetRecord])
async def list_assets_api(
    q: Optional[str] = None,
    upstream: UpstreamClient = Depends(get_upstream),
):
    assets = await upstream.list_assets()
    return search_assets(assets, q)


@router.post("/assets", response_model=AssetSaveResult, status_code=201)
async def create_asset_api(
    item_name: str = Form(""),
    category: Optional[str] = Form(None),
    condition: Optional[str] = Form(None),
    qty_in_stock: Optional[str] = Form(None),
    owner: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    picture: Optional[UploadFile] = File(None),
    upstream: UpstreamClient = Depends(get_upstream),
):
    body = _asset_body(item_name, category, condition, qty_in_stock, owner, description)
    result = await upstream.create_asset(body, await _picture(picture))
    # the asset table reloads after a save rather than patching locally
    return AssetSaveResult(upstream=result, assets=await upstream.list_assets())


@router.put("/assets/{asset_id}", response_model=AssetSaveResult)
async def update_asset_api(
    asset_id: str,
    item_name: str = Form(""),
    category: Optional[str] = Form(None),
    condition: Optional[str] = Form(None),
    qty_in_stock: Optional[str] = Form(None),
    owner: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    picture: Optional[UploadFile] = File(None),
    upstream: UpstreamClient = Depends(get_upstream),
):
    body = _asset_body(item_name, category, condition, qty_in_stock, owner, description)
    result = await upstream.update_asset(asset_id, body, await _picture(picture))
    return AssetSaveResult(upstream=result, assets=await upstream.list_assets())
