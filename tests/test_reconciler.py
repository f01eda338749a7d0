import asyncio

import pytest

from conftest import BORROW_URL, EMPLOYEE_URL, FakeResponse
from models import BorrowRecord, BorrowSubmission
from query import search_borrows
from reconciler import (
    BorrowLedger,
    DebouncedSearch,
    EmployeeRoster,
    borrow_fields,
    change_status,
    submit_borrow_batch,
)
from upstream import UpstreamError


def _submission(*asset_ids, **kw):
    kw.setdefault("borrowID", "FNA-010")
    kw.setdefault("name", "Rama")
    kw.setdefault("branch", "Jakarta")
    kw.setdefault("department", "Production")
    kw.setdefault("date", "2024-05-10T09:00")
    kw.setdefault("return_date", "2024-05-12T17:00")
    lines = [{"assetID": a, "qty": 1, "item_name": f"Item {a}"} for a in asset_ids]
    return BorrowSubmission(lines=lines, **kw)


def test_borrow_fields_normalize_form_values():
    sub = _submission("A1", status="")
    fields = borrow_fields(sub, sub.lines[0])

    assert fields["date"] == "2024-05-10 09:00"
    assert fields["return_date"] == "2024-05-12 17:00"
    assert fields["status"] == "active"
    assert fields["assetID"] == "A1"
    assert "item_name" not in fields


def test_created_record_is_searchable_immediately(upstream, fake_session):
    fake_session.add("POST", BORROW_URL, FakeResponse(201, {"borrowingId": 501}))
    ledger = BorrowLedger([BorrowRecord(id=1, borrowingId=1, borrowID="OLD-1", status="returned")])

    result = asyncio.run(submit_borrow_batch(upstream, ledger, _submission("A1", borrowID="FNA-777")))

    assert result.error is None
    hits = search_borrows(ledger.records, "fna-777")
    assert len(hits) == 1
    assert hits[0].id == hits[0].borrowingId == 501
    assert hits[0].item_name == "Item A1"
    assert hits[0].status == "active"


def test_batch_stops_at_first_failure(upstream, fake_session):
    fake_session.add(
        "POST",
        BORROW_URL,
        FakeResponse(201, {"borrowingId": 101}),
        FakeResponse(500, {"error": "stock exhausted"}),
        FakeResponse(201, {"borrowingId": 103}),
    )
    ledger = BorrowLedger()

    result = asyncio.run(submit_borrow_batch(upstream, ledger, _submission("A1", "A2", "A3")))

    assert [r.id for r in result.created] == [101]
    assert result.error.line == 2
    assert result.error.assetID == "A2"
    assert result.error.message == "stock exhausted"
    assert [r.id for r in ledger.records] == [101]
    assert len(fake_session.calls_to("POST", BORROW_URL)) == 2


def test_created_id_falls_back_to_nested_data(upstream, fake_session):
    fake_session.add("POST", BORROW_URL, FakeResponse(201, {"data": {"id": "B-9"}}))
    ledger = BorrowLedger()

    asyncio.run(submit_borrow_batch(upstream, ledger, _submission("A1")))

    assert ledger.records[0].id == "B-9"


def test_status_change_replaces_exactly_one_record(upstream, fake_session):
    fake_session.add("PUT", f"{BORROW_URL}/2", FakeResponse(200, {"ok": True}))
    original = [
        BorrowRecord(id=1, borrowingId=1, assetID="A1", borrowID="X", qty=1, status="active"),
        BorrowRecord(id=2, borrowingId=2, assetID="A2", borrowID="Y", qty=3, status="active"),
    ]
    ledger = BorrowLedger(original)
    before = ledger.records

    updated = asyncio.run(change_status(upstream, ledger, 2, "returned"))

    assert updated.status == "returned"
    assert [r.status for r in ledger.records] == ["active", "returned"]
    assert ledger.records[0] is before[0]
    # the previous snapshot is untouched
    assert before[1].status == "active"

    sent = fake_session.calls_to("PUT", f"{BORROW_URL}/2")[0]["data"]
    assert sent["status"] == "returned"
    assert sent["assetID"] == "A2"
    assert sent["qty"] == "3"


def test_failed_status_change_leaves_ledger_alone(upstream, fake_session):
    fake_session.add("PUT", f"{BORROW_URL}/1", FakeResponse(422, {"message": "cannot return"}))
    ledger = BorrowLedger([BorrowRecord(id=1, borrowingId=1, status="active")])

    with pytest.raises(UpstreamError) as exc:
        asyncio.run(change_status(upstream, ledger, 1, "returned"))

    assert exc.value.message == "cannot return"
    assert ledger.records[0].status == "active"


def test_status_change_on_unknown_record(upstream):
    with pytest.raises(LookupError):
        asyncio.run(change_status(upstream, BorrowLedger(), 99, "returned"))


def _roster_session(fake_session):
    fake_session.add(
        "GET",
        EMPLOYEE_URL,
        FakeResponse(200, {"data": [
            {"name": "Rama Putra", "employee_status": "Active"},
            {"name": "Ramadhan", "employee_status": "Resign"},
            {"name": "Sinta", "employee_status": "Active"},
        ]}),
    )


def test_roster_loads_once_and_searches_locally(upstream, fake_session):
    _roster_session(fake_session)
    roster = EmployeeRoster()

    async def scenario():
        await roster.load(upstream)
        await roster.load(upstream)

    asyncio.run(scenario())

    assert len(fake_session.calls_to("GET", EMPLOYEE_URL)) == 1
    assert [e.name for e in roster.search("RAMA")] == ["Rama Putra"]
    assert roster.search("") == []


def test_debounce_keeps_only_latest_query(upstream, fake_session):
    _roster_session(fake_session)
    roster = EmployeeRoster()

    async def scenario():
        await roster.load(upstream)
        search = DebouncedSearch(roster, 0.05)
        search.submit("ra")
        search.submit("sin")
        assert search.pending
        await search.settle()
        return search

    search = asyncio.run(scenario())

    assert search.query == "sin"
    assert [e.name for e in search.suggestions] == ["Sinta"]
    assert not search.pending


def test_closed_search_never_publishes(upstream, fake_session):
    _roster_session(fake_session)
    roster = EmployeeRoster()

    async def scenario():
        await roster.load(upstream)
        search = DebouncedSearch(roster, 0.05)
        search.submit("sin")
        search.close()
        await asyncio.sleep(0.1)
        search.submit("rama")
        return search

    search = asyncio.run(scenario())

    assert search.query == ""
    assert search.suggestions == ()
    assert not search.pending
