from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Literal, Optional, Union

from derived import parse_qty

RecordId = Union[int, str]
ViewKind = Literal["report", "dashboard"]


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _as_record_id(value: Any) -> Optional[RecordId]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return value
    return None


# ---------- canonical records ----------
class AssetRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[RecordId] = None
    item_name: Optional[str] = None
    category: Optional[str] = None
    condition: Optional[str] = None
    qty_in_stock: int = 0
    owner: Optional[str] = None
    picture: Optional[str] = None
    description: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Optional[RecordId]:
        return _as_record_id(v)

    @field_validator("item_name", "category", "condition", "owner", "picture", "description", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> Optional[str]:
        return _as_text(v)

    @field_validator("qty_in_stock", mode="before")
    @classmethod
    def _coerce_qty(cls, v: Any) -> int:
        return parse_qty(v)


class BorrowRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[RecordId] = None
    borrowingId: Optional[RecordId] = None
    borrowID: Optional[str] = None
    assetID: Optional[RecordId] = None
    item_name: Optional[str] = None
    qty: int = 0
    name: Optional[str] = None
    branch: Optional[str] = None
    department: Optional[str] = None
    date: Optional[str] = None
    return_date: Optional[str] = None
    status: Optional[str] = None

    @field_validator("id", "borrowingId", "assetID", mode="before")
    @classmethod
    def _coerce_ids(cls, v: Any) -> Optional[RecordId]:
        return _as_record_id(v)

    @field_validator(
        "borrowID", "item_name", "name", "branch", "department", "date", "return_date", "status",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, v: Any) -> Optional[str]:
        return _as_text(v)

    @field_validator("qty", mode="before")
    @classmethod
    def _coerce_qty(cls, v: Any) -> int:
        return parse_qty(v)


class Employee(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    employee_status: Optional[str] = None
    branch: Optional[str] = None
    department: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _fill_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name"):
            for key in ("employee_name", "full_name", "fullname"):
                if isinstance(data.get(key), str) and data[key].strip():
                    return {**data, "name": data[key]}
        return data

    @field_validator("name", "employee_status", "branch", "department", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> Optional[str]:
        return _as_text(v)


# ---------- inputs ----------
class AssetIn(BaseModel):
    item_name: str
    category: Optional[str] = None
    condition: Optional[str] = None
    qty_in_stock: int = 0
    owner: Optional[str] = None
    description: Optional[str] = None

    @field_validator("item_name")
    @classmethod
    def _require_item_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("item_name is required")
        return v

    @field_validator("qty_in_stock", mode="before")
    @classmethod
    def _coerce_qty(cls, v: Any) -> int:
        return parse_qty(v)


class BorrowLine(BaseModel):
    assetID: str
    qty: int = Field(..., ge=1)
    item_name: Optional[str] = None

    @field_validator("assetID", mode="before")
    @classmethod
    def _require_asset_id(cls, v: Any) -> str:
        text = (_as_text(v) or "").strip()
        if not text:
            raise ValueError("assetID is required")
        return text


class BorrowSubmission(BaseModel):
    borrowID: str
    name: Optional[str] = None
    branch: Optional[str] = None
    department: Optional[str] = None
    date: Optional[str] = None
    return_date: Optional[str] = None
    status: Optional[str] = None
    lines: list[BorrowLine] = Field(..., min_length=1)

    @field_validator("borrowID")
    @classmethod
    def _require_borrow_id(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("borrowID is required")
        return v


class StatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def _require_status(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("status is required")
        return v


class EmployeeQuery(BaseModel):
    name: str = ""


# ---------- outputs ----------
class ReportRow(BorrowRecord):
    overdue: bool = False


class ReportMeta(BaseModel):
    total: int
    page: int
    page_size: int
    total_pages: int


class ReportPage(BaseModel):
    rows: list[ReportRow]
    meta: ReportMeta


class ChartSlice(BaseModel):
    name: str
    value: int


class DashboardStats(BaseModel):
    total_assets: int = 0
    available: int = 0
    borrowed: int = 0
    overdue: int = 0
    maintenance: int = 0


class OverdueEntry(BaseModel):
    id: Optional[RecordId] = None
    item_name: Optional[str] = None
    qty: int = 0
    name: Optional[str] = None
    due_date: str = "-"


class DashboardSummary(BaseModel):
    stats: DashboardStats
    asset_status: list[ChartSlice]
    return_status: list[ChartSlice]
    overdue_list: list[OverdueEntry]
    load_error: Optional[str] = None


class BatchLineError(BaseModel):
    line: int
    assetID: str
    message: str


class BatchResult(BaseModel):
    created: list[BorrowRecord]
    error: Optional[BatchLineError] = None


class ViewHandle(BaseModel):
    view_id: str
    kind: ViewKind
    loaded: bool
    load_error: Optional[str] = None


class AssetSaveResult(BaseModel):
    upstream: Any = None
    assets: list[AssetRecord]


class EmployeeSuggestions(BaseModel):
    query: str
    pending: bool
    employees: list[Employee]
    roster_error: Optional[str] = None
