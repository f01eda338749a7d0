"""HTTP access to the upstream asset, borrow and employee services.

Calls go through a shared ``requests.Session``; the async methods push the
blocking call onto a worker thread so the event loop stays free while a view
waits on several resources at once.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import requests

from models import AssetIn, AssetRecord, BorrowRecord, Employee, RecordId
from normalizer import filter_resigned, normalize_assets, normalize_borrows, normalize_employees, unwrap_borrow_listing
from settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

# (filename, content, content_type)
Picture = tuple[str, bytes, str]


class UpstreamError(RuntimeError):
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


def error_message_from(body: Any, status: int) -> str:
    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return f"Request failed: {status}"


def extract_created_id(body: Any) -> Optional[RecordId]:
    if not isinstance(body, dict):
        return None
    for key in ("borrowingId", "id"):
        value = body.get(key)
        if isinstance(value, (int, str)) and not isinstance(value, bool):
            return value
    data = body.get("data")
    if isinstance(data, dict):
        value = data.get("id")
        if isinstance(value, (int, str)) and not isinstance(value, bool):
            return value
    return None


def join_url(base: str, path: str) -> str:
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def _form_value(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class UpstreamClient:
    def __init__(self, config: Settings | None = None, session: requests.Session | None = None) -> None:
        self.config = config or default_settings
        self.session = session or requests.Session()

    # ---------- plumbing ----------
    def _require(self, name: str) -> str:
        value = getattr(self.config, name, "") or ""
        if not value:
            raise UpstreamError(f"Missing env: {name}")
        return value

    def _headers(self, token: str) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if token:
            # backends disagree on the header; send both
            headers["Authorization"] = f"Bearer {token}"
            headers["x-api-token"] = token
        return headers

    def _send(
        self,
        method: str,
        url: str,
        token: str,
        *,
        params: Optional[dict[str, str]] = None,
        data: Optional[dict[str, str]] = None,
        files: Optional[dict[str, Picture]] = None,
    ) -> Any:
        try:
            resp = self.session.request(
                method,
                url,
                headers=self._headers(token),
                params=params,
                data=data,
                files=files,
                timeout=self.config.UPSTREAM_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            raise UpstreamError(f"Upstream connection error: {exc}") from exc

        text = resp.text or ""
        body: Any = None
        if text.strip():
            try:
                body = json.loads(text)
            except ValueError as exc:
                if resp.ok:
                    raise UpstreamError("Upstream returned invalid JSON", resp.status_code) from exc

        if not resp.ok:
            raise UpstreamError(error_message_from(body, resp.status_code), resp.status_code)
        return body

    # ---------- assets ----------
    def _asset_form(self, body: AssetIn) -> dict[str, str]:
        return {
            "item_name": body.item_name,
            "category": _form_value(body.category),
            "condition": _form_value(body.condition),
            "qty_in_stock": str(body.qty_in_stock),
            "owner": _form_value(body.owner),
            "description": _form_value(body.description),
        }

    def _list_assets(self) -> list[AssetRecord]:
        url = self._require("ASSET_API_URL")
        return normalize_assets(self._send("GET", url, self.config.ASSET_API_TOKEN))

    def _save_asset(self, body: AssetIn, asset_id: Optional[RecordId], picture: Optional[Picture]) -> Any:
        base = self._require("ASSET_API_URL")
        url = base if asset_id is None else join_url(base, quote(str(asset_id), safe=""))
        files = {"picture": picture} if picture else None
        return self._send(
            "POST" if asset_id is None else "PUT",
            url,
            self.config.ASSET_API_TOKEN,
            data=self._asset_form(body),
            files=files,
        )

    async def list_assets(self) -> list[AssetRecord]:
        return await asyncio.to_thread(self._list_assets)

    async def create_asset(self, body: AssetIn, picture: Optional[Picture] = None) -> Any:
        return await asyncio.to_thread(self._save_asset, body, None, picture)

    async def update_asset(self, asset_id: RecordId, body: AssetIn, picture: Optional[Picture] = None) -> Any:
        return await asyncio.to_thread(self._save_asset, body, asset_id, picture)

    # ---------- borrows ----------
    def _list_borrows(self) -> list[BorrowRecord]:
        try:
            url = self._require("BORROW_API_URL")
            payload = self._send("GET", url, self.config.BORROW_API_TOKEN)
        except UpstreamError as exc:
            # the report and dashboard degrade to empty on this resource
            logger.warning("borrow listing unavailable, using empty list: %s", exc.message)
            return []
        return normalize_borrows(unwrap_borrow_listing(payload))

    def _create_borrow(self, fields: dict[str, Any]) -> Any:
        url = self._require("BORROW_API_URL")
        data = {k: _form_value(v) for k, v in fields.items()}
        if not data.get("status"):
            data["status"] = "active"
        return self._send("POST", url, self.config.BORROW_API_TOKEN, data=data)

    def _update_borrow(self, borrow_id: RecordId, fields: dict[str, Any]) -> Any:
        url = join_url(self._require("BORROW_API_URL"), quote(str(borrow_id), safe=""))
        data = {k: _form_value(v) for k, v in fields.items()}
        return self._send("PUT", url, self.config.BORROW_API_TOKEN, data=data)

    async def list_borrows(self) -> list[BorrowRecord]:
        return await asyncio.to_thread(self._list_borrows)

    async def create_borrow(self, fields: dict[str, Any]) -> Any:
        return await asyncio.to_thread(self._create_borrow, fields)

    async def update_borrow(self, borrow_id: RecordId, fields: dict[str, Any]) -> Any:
        return await asyncio.to_thread(self._update_borrow, borrow_id, fields)

    # ---------- employees ----------
    def _employee_payload(self, name: str = "") -> Any:
        url = self._require("EMPLOYEE_API_URL")
        params = {"name": name} if name else None
        return filter_resigned(self._send("GET", url, self.config.EMPLOYEE_API_TOKEN, params=params))

    async def employee_payload(self, name: str = "") -> Any:
        return await asyncio.to_thread(self._employee_payload, name)

    async def list_employees(self, name: str = "") -> list[Employee]:
        return normalize_employees(await self.employee_payload(name))
