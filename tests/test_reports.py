# tests/test_reports.py
import io
from datetime import datetime, timezone

from openpyxl import load_workbook

from app.report.services import cell_text, report_names, strip_html_tags


def test_strip_html_tags():
    assert strip_html_tags("<b>x</b>") == "x"
    assert strip_html_tags("<p>line <i>one</i></p><br/>") == "line one"
    assert strip_html_tags(None) == ""


def test_report_names_use_all_placeholder():
    assert report_names(None, None) == ("all-all-report.xlsx", "all-all support details")
    filename, title = report_names("Acme/West", "2026-03")
    assert filename == "Acme/West-2026-03-report.xlsx"
    assert "/" not in title
    assert len(title) <= 31


def test_reports_require_admin(client):
    assert client.get("/api/admin/reports/summary").status_code == 401
    assert client.get("/api/admin/reports/excel").status_code == 401


def test_summary_counts_by_status_and_month(client, create_ticket, admin_headers):
    ids = [create_ticket(customer_name=name)["id"] for name in ("Acme", "Acme", "Globex")]
    client.put(f"/api/admin/requests/{ids[0]}", json={"status": "RESOLVED"}, headers=admin_headers)
    this_month = datetime.now(timezone.utc).strftime("%Y-%m")

    r = client.get("/api/admin/reports/summary", headers=admin_headers)
    assert r.status_code == 200
    data = r.json()
    assert {row["status"]: row["count"] for row in data["status"]} == {"OPEN": 2, "RESOLVED": 1}
    assert data["monthly"] == [{"month": this_month, "count": 3}]

    r = client.get(
        "/api/admin/reports/summary",
        params={"customerName": "Acme", "month": this_month},
        headers=admin_headers,
    )
    data = r.json()
    assert {row["status"]: row["count"] for row in data["status"]} == {"OPEN": 1, "RESOLVED": 1}
    assert data["monthly"] == []


def test_excel_export_strips_markup(client, create_ticket, admin_headers):
    created = create_ticket(content="<b>x</b>")
    client.put(
        f"/api/admin/requests/{created['id']}",
        json={"status": "IN_PROGRESS", "comment": "<p>first</p>"},
        headers=admin_headers,
    )
    client.put(f"/api/admin/requests/{created['id']}", json={"comment": "second"}, headers=admin_headers)

    r = client.get("/api/admin/reports/excel", headers=admin_headers)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert r.headers["content-disposition"].startswith('attachment; filename="all-all-report.xlsx"')

    sheet = load_workbook(io.BytesIO(r.content)).active
    assert sheet.title == "all-all support details"
    rows = list(sheet.iter_rows(values_only=True))
    assert rows[0] == ("ID", "Created At", "Customer", "Submitter", "Status", "Content", "Remarks")
    assert sheet["A1"].font.bold
    assert len(rows) == 2
    ticket_id, created_at, customer, submitter, status, content, remarks = rows[1]
    assert ticket_id == created["id"]
    assert len(created_at) == len("2026-01-01 00:00:00")
    assert (customer, submitter, status) == ("Acme", "bob", "IN_PROGRESS")
    assert content == "x"
    assert remarks == "first\nsecond"


def test_excel_export_applies_filters(client, create_ticket, admin_headers):
    create_ticket(customer_name="Acme")
    other = create_ticket(customer_name="Globex")
    client.put(f"/api/admin/requests/{other['id']}", json={"status": "RESOLVED"}, headers=admin_headers)

    r = client.get("/api/admin/reports/excel", params={"customerName": "Acme"}, headers=admin_headers)
    assert 'filename="Acme-all-report.xlsx"' in r.headers["content-disposition"]
    sheet = load_workbook(io.BytesIO(r.content)).active
    assert sheet.title == "Acme-all support details"
    assert [row[2] for row in sheet.iter_rows(min_row=2, values_only=True)] == ["Acme"]

    r = client.get("/api/admin/reports/excel", params={"status": "RESOLVED"}, headers=admin_headers)
    sheet = load_workbook(io.BytesIO(r.content)).active
    assert [row[0] for row in sheet.iter_rows(min_row=2, values_only=True)] == [other["id"]]


def test_cell_text_drops_control_characters():
    assert cell_text("line\x1bone\x00") == "lineone"
    assert cell_text("tab\tand\nnewline") == "tab\tand\nnewline"
    assert cell_text(None) == ""


def test_excel_export_keeps_formula_like_text_as_strings(client, create_ticket, admin_headers):
    created = create_ticket(customer_name='=HYPERLINK("http://x")', content="<p>=1+2</p>")
    client.put(f"/api/admin/requests/{created['id']}", json={"comment": "=SUM(A1:A2)"}, headers=admin_headers)

    r = client.get("/api/admin/reports/excel", headers=admin_headers)
    assert r.status_code == 200
    row = load_workbook(io.BytesIO(r.content)).active[2]
    customer, content, remarks = row[2], row[5], row[6]
    assert (customer.data_type, content.data_type, remarks.data_type) == ("s", "s", "s")
    assert customer.value == '=HYPERLINK("http://x")'
    assert content.value == "=1+2"
    assert remarks.value == "=SUM(A1:A2)"


def test_excel_export_survives_control_characters(client, create_ticket, admin_headers):
    create_ticket(content="line\x1bone")

    r = client.get("/api/admin/reports/excel", headers=admin_headers)
    assert r.status_code == 200
    sheet = load_workbook(io.BytesIO(r.content)).active
    assert sheet["F2"].value == "lineone"
