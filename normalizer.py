"""Turn upstream payloads into canonical records.

Upstream responses arrive in a handful of envelope shapes. Each shape is
recognized by ``classify_*`` and converted by its own function; anything
unrecognized normalizes to an empty list. Nothing in this module raises on
bad input: a malformed row degrades to defaults or is skipped so one bad
record never blanks a whole listing.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

from pydantic import ValidationError

from models import AssetRecord, BorrowRecord, Employee

logger = logging.getLogger(__name__)

RESIGNED_STATUS = "Resign"


class AssetShape(str, Enum):
    BARE_LIST = "bare_list"
    DATA_ENVELOPE = "data_envelope"
    ASSET_WRAPPERS = "asset_wrappers"
    UNRECOGNIZED = "unrecognized"


class BorrowShape(str, Enum):
    WRAPPER_LIST = "wrapper_list"
    UNRECOGNIZED = "unrecognized"


class EmployeeShape(str, Enum):
    BARE_LIST = "bare_list"
    DATA_ENVELOPE = "data_envelope"
    EMPLOYEES_ENVELOPE = "employees_envelope"
    RESULTS_ENVELOPE = "results_envelope"
    UNRECOGNIZED = "unrecognized"


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _build(model: type, row: dict[str, Any]):
    try:
        return model.model_validate(row)
    except ValidationError:
        # field validators coerce everything they know about, so this only
        # trips on exotic extras; keep the row with known fields only
        logger.warning("dropping unknown fields from malformed %s row", model.__name__)
        known = {k: v for k, v in row.items() if k in model.model_fields}
        return model.model_validate(known)


# ---------- assets ----------
def classify_asset_payload(payload: Any) -> AssetShape:
    if isinstance(payload, list):
        return AssetShape.BARE_LIST
    if isinstance(payload, dict):
        if isinstance(payload.get("data"), list):
            return AssetShape.DATA_ENVELOPE
        if isinstance(payload.get("asset"), list):
            return AssetShape.ASSET_WRAPPERS
    return AssetShape.UNRECOGNIZED


def _assets_from_rows(rows: list[Any]) -> list[AssetRecord]:
    return [_build(AssetRecord, row) for row in rows if isinstance(row, dict)]


def _assets_from_bare_list(payload: Any) -> list[AssetRecord]:
    return _assets_from_rows(payload)


def _assets_from_data_envelope(payload: Any) -> list[AssetRecord]:
    return _assets_from_rows(payload["data"])


def _assets_from_wrappers(payload: Any) -> list[AssetRecord]:
    out: list[AssetRecord] = []
    for wrapper in payload["asset"]:
        wrapper = _as_dict(wrapper)
        # {id, **data}: a nested id, when present, wins
        flat = {"id": wrapper.get("id"), **_as_dict(wrapper.get("data"))}
        out.append(_build(AssetRecord, flat))
    return out


_ASSET_CONVERTERS: dict[AssetShape, Callable[[Any], list[AssetRecord]]] = {
    AssetShape.BARE_LIST: _assets_from_bare_list,
    AssetShape.DATA_ENVELOPE: _assets_from_data_envelope,
    AssetShape.ASSET_WRAPPERS: _assets_from_wrappers,
    AssetShape.UNRECOGNIZED: lambda payload: [],
}


def normalize_assets(payload: Any) -> list[AssetRecord]:
    return _ASSET_CONVERTERS[classify_asset_payload(payload)](payload)


# ---------- borrows ----------
def classify_borrow_payload(payload: Any) -> BorrowShape:
    if isinstance(payload, list):
        return BorrowShape.WRAPPER_LIST
    return BorrowShape.UNRECOGNIZED


def _borrows_from_wrappers(payload: Any) -> list[BorrowRecord]:
    out: list[BorrowRecord] = []
    for wrapper in payload:
        wrapper = _as_dict(wrapper)
        wrapper_id = wrapper.get("id")
        flat = {**_as_dict(wrapper.get("data")), "id": wrapper_id, "borrowingId": wrapper_id}
        out.append(_build(BorrowRecord, flat))
    return out


_BORROW_CONVERTERS: dict[BorrowShape, Callable[[Any], list[BorrowRecord]]] = {
    BorrowShape.WRAPPER_LIST: _borrows_from_wrappers,
    BorrowShape.UNRECOGNIZED: lambda payload: [],
}


def normalize_borrows(payload: Any) -> list[BorrowRecord]:
    return _BORROW_CONVERTERS[classify_borrow_payload(payload)](payload)


def unwrap_borrow_listing(payload: Any) -> list[Any]:
    """Strip the listing envelope some borrow backends add ({borrowing: [...]} or {data: [...]})."""
    if isinstance(payload, dict) and "borrowing" in payload:
        raw = payload["borrowing"]
    elif isinstance(payload, list):
        raw = payload
    elif isinstance(payload, dict) and isinstance(payload.get("data"), list):
        raw = payload["data"]
    else:
        raw = []
    return raw if isinstance(raw, list) else []


# ---------- employees ----------
_EMPLOYEE_ENVELOPE_KEYS = {
    EmployeeShape.DATA_ENVELOPE: "data",
    EmployeeShape.EMPLOYEES_ENVELOPE: "employees",
    EmployeeShape.RESULTS_ENVELOPE: "results",
}


def classify_employee_payload(payload: Any) -> EmployeeShape:
    if isinstance(payload, list):
        return EmployeeShape.BARE_LIST
    if isinstance(payload, dict):
        for shape, key in _EMPLOYEE_ENVELOPE_KEYS.items():
            if isinstance(payload.get(key), list):
                return shape
    return EmployeeShape.UNRECOGNIZED


def is_resigned(entry: Any) -> bool:
    return isinstance(entry, dict) and entry.get("employee_status") == RESIGNED_STATUS


def filter_resigned(payload: Any) -> Any:
    """Drop resigned employees while keeping whatever envelope the payload came in."""
    shape = classify_employee_payload(payload)
    if shape is EmployeeShape.BARE_LIST:
        return [e for e in payload if not is_resigned(e)]
    if shape is EmployeeShape.UNRECOGNIZED:
        return payload
    key = _EMPLOYEE_ENVELOPE_KEYS[shape]
    return {**payload, key: [e for e in payload[key] if not is_resigned(e)]}


def normalize_employees(payload: Any) -> list[Employee]:
    shape = classify_employee_payload(payload)
    if shape is EmployeeShape.UNRECOGNIZED:
        return []
    rows = payload if shape is EmployeeShape.BARE_LIST else payload[_EMPLOYEE_ENVELOPE_KEYS[shape]]
    return [_build(Employee, row) for row in rows if isinstance(row, dict) and not is_resigned(row)]
