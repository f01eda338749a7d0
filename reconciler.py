"""Fold the outcome of writes back into a view's in-memory collections.

A create or status change must show up immediately without refetching the
whole borrow list. Every change replaces the ledger's tuple with a new one,
so readers never see a half-applied update.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Optional

from derived import STATUS_ACTIVE
from models import BatchLineError, BatchResult, BorrowLine, BorrowRecord, BorrowSubmission, Employee, RecordId
from upstream import UpstreamClient, UpstreamError, extract_created_id

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 10


def _same_id(a: Optional[RecordId], b: RecordId) -> bool:
    return a is not None and str(a) == str(b)


def _form_datetime(value: Optional[str]) -> str:
    # datetime-local inputs send "YYYY-MM-DDTHH:MM"; upstream stores a space
    value = (value or "").strip()
    return value.replace("T", " ", 1) if value else ""


class BorrowLedger:
    def __init__(self, records: Iterable[BorrowRecord] = ()) -> None:
        self._records: tuple[BorrowRecord, ...] = tuple(records)

    @property
    def records(self) -> tuple[BorrowRecord, ...]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def replace_all(self, records: Iterable[BorrowRecord]) -> None:
        self._records = tuple(records)

    def find(self, record_id: RecordId) -> Optional[BorrowRecord]:
        for record in self._records:
            if _same_id(record.id, record_id):
                return record
        return None

    def append_created(self, server_id: Optional[RecordId], fields: dict[str, Any]) -> BorrowRecord:
        """Append a record built from form fields; the server-assigned id wins."""
        record = BorrowRecord.model_validate({**fields, "id": server_id, "borrowingId": server_id})
        self._records = (*self._records, record)
        return record

    def replace_status(self, record_id: RecordId, status: str) -> Optional[BorrowRecord]:
        replaced: Optional[BorrowRecord] = None
        records = []
        for record in self._records:
            if replaced is None and _same_id(record.id, record_id):
                replaced = record.model_copy(update={"status": status})
                records.append(replaced)
            else:
                records.append(record)
        if replaced is not None:
            self._records = tuple(records)
        return replaced


def borrow_fields(submission: BorrowSubmission, line: BorrowLine) -> dict[str, Any]:
    """Upstream create payload for one asset line of a submission."""
    return {
        "assetID": line.assetID,
        "borrowID": submission.borrowID,
        "qty": line.qty,
        "name": (submission.name or "").strip(),
        "branch": (submission.branch or "").strip(),
        "department": (submission.department or "").strip(),
        "date": _form_datetime(submission.date),
        "return_date": _form_datetime(submission.return_date),
        "status": (submission.status or "").strip() or STATUS_ACTIVE,
    }


async def submit_borrow_batch(
    client: UpstreamClient,
    ledger: BorrowLedger,
    submission: BorrowSubmission,
) -> BatchResult:
    """Create one borrow per asset line, in order, appending each success as it lands.

    The first failing line stops the batch; lines already created stay in the
    ledger (no rollback).
    """
    created: list[BorrowRecord] = []
    for index, line in enumerate(submission.lines, start=1):
        fields = borrow_fields(submission, line)
        try:
            body = await client.create_borrow(fields)
        except UpstreamError as exc:
            logger.warning(
                "borrow batch %s stopped at line %s/%s: %s",
                submission.borrowID, index, len(submission.lines), exc.message,
            )
            return BatchResult(
                created=created,
                error=BatchLineError(line=index, assetID=line.assetID, message=exc.message),
            )
        record = ledger.append_created(extract_created_id(body), {**fields, "item_name": line.item_name})
        created.append(record)
    return BatchResult(created=created)


async def change_status(
    client: UpstreamClient,
    ledger: BorrowLedger,
    record_id: RecordId,
    status: str,
) -> BorrowRecord:
    record = ledger.find(record_id)
    if record is None:
        raise LookupError(f"borrow record {record_id} not found")

    fields = {
        "assetID": record.assetID,
        "borrowID": record.borrowID,
        "qty": record.qty,
        "name": record.name,
        "branch": record.branch,
        "department": record.department,
        "date": record.date,
        "return_date": record.return_date,
        "status": status,
    }
    # raises UpstreamError before anything local changes
    await client.update_borrow(record_id, fields)

    updated = ledger.replace_status(record_id, status)
    if updated is None:
        # a refresh dropped the row while the update was in flight
        raise LookupError(f"borrow record {record_id} not found")
    return updated


# ---------- employee lookup ----------
class EmployeeRoster:
    """Employees fetched once for a view; searches never hit the network."""

    def __init__(self) -> None:
        self._employees: tuple[Employee, ...] = ()
        self.loaded = False

    @property
    def employees(self) -> tuple[Employee, ...]:
        return self._employees

    async def load(self, client: UpstreamClient, *, force: bool = False) -> None:
        if self.loaded and not force:
            return
        self._employees = tuple(await client.list_employees())
        self.loaded = True

    def search(self, query: str, *, limit: int = SUGGESTION_LIMIT) -> list[Employee]:
        needle = (query or "").strip().lower()
        if not needle:
            return []
        hits = [e for e in self._employees if e.name and needle in e.name.lower()]
        return hits[:limit]

    def clear(self) -> None:
        self._employees = ()
        self.loaded = False


class DebouncedSearch:
    def __init__(self, roster: EmployeeRoster, delay_seconds: float) -> None:
        self.roster = roster
        self.delay_seconds = delay_seconds
        self.query = ""
        self.suggestions: tuple[Employee, ...] = ()
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, query: str) -> None:
        """Schedule a search; a newer query cancels the one still waiting."""
        if self._closed:
            return
        if self._task is not None:
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(query))

    async def _run(self, query: str) -> None:
        await asyncio.sleep(self.delay_seconds)
        self.query = query
        self.suggestions = tuple(self.roster.search(query))

    async def settle(self) -> None:
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    def close(self) -> None:
        self._closed = True
        if self._task is not None:
            self._task.cancel()
            self._task = None
