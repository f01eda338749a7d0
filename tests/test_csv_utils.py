from conftest import BORROW_URL, EMPLOYEE_URL, FakeResponse, borrow_wrapper
from csv_utils import REPORT_COLUMNS, iter_csv
from models import BorrowRecord


def test_iter_csv_header_and_quoting():
    rows = [
        BorrowRecord(id=1, borrowingId=1, borrowID="FNA-1", item_name='Cable, "HDMI"', qty=2, status="active"),
        BorrowRecord(id=2, borrowingId=2, borrowID="FNA-2", name=None),
    ]
    lines = list(iter_csv(rows, REPORT_COLUMNS))

    assert lines[0].strip() == "id,borrowID,item_name,qty,name,branch,department,date,return_date,status"
    assert lines[1].strip() == '1,FNA-1,"Cable, ""HDMI""",2,,,,,,active'
    assert lines[2].strip() == "2,FNA-2,,0,,,,,,"


def test_export_respects_filters(client, fake_session):
    fake_session.add("GET", BORROW_URL, FakeResponse(200, [
        borrow_wrapper(1, borrowID="FNA-001", item_name="Tripod", qty=1, status="active",
                       date="2024-05-01 09:00", return_date="2099-01-01 00:00"),
        borrow_wrapper(2, borrowID="FNA-002", item_name="Canon", qty=2, status="returned",
                       date="2024-05-02 09:00", return_date="2024-05-03 00:00"),
        borrow_wrapper(3, borrowID="FNA-003", item_name="Tripod", qty=1, status="returned",
                       date="2024-05-02 10:00", return_date="2024-05-03 00:00"),
    ]))
    fake_session.add("GET", EMPLOYEE_URL, FakeResponse(200, []))
    view_id = client.post("/views/report").json()["view_id"]

    r = client.get(f"/views/report/{view_id}/export", params={"status": "returned", "q": "tripod"})
    assert r.status_code == 200, r.text
    assert r.headers["content-type"].startswith("text/csv")
    assert "borrow_report.csv" in r.headers["content-disposition"]

    lines = r.text.strip().splitlines()
    assert lines[0].startswith("id,borrowID,item_name")
    assert len(lines) == 2
    assert lines[1].startswith("3,FNA-003,Tripod,1")


def test_export_is_not_paginated(client, fake_session):
    fake_session.add("GET", BORROW_URL, FakeResponse(200, [
        borrow_wrapper(i, borrowID=f"FNA-{i:03d}", status="active") for i in range(1, 16)
    ]))
    fake_session.add("GET", EMPLOYEE_URL, FakeResponse(200, []))
    view_id = client.post("/views/report").json()["view_id"]

    lines = client.get(f"/views/report/{view_id}/export").text.strip().splitlines()
    assert len(lines) == 16
    assert lines[1].startswith("15,FNA-015")
