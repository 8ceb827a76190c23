# tests/test_admin.py
from datetime import datetime, timedelta, timezone

import pytest

from app.core.security import create_access_token
from conftest import image_part


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_login_issues_token(client):
    r = client.post("/api/admin/login", json={"id": "admin", "password": "admin-pass"})
    assert r.status_code == 200
    assert r.json()["token"]


def test_login_rejects_bad_credentials(client):
    r = client.post("/api/admin/login", json={"id": "admin", "password": "nope"})
    assert r.status_code == 401
    r = client.post("/api/admin/login", json={"id": "root", "password": "admin-pass"})
    assert r.status_code == 401


def test_admin_routes_require_a_valid_admin_token(client):
    assert client.get("/api/admin/requests").status_code == 401
    assert client.get("/api/admin/requests", headers=_bearer("garbage")).status_code == 401

    forged = create_access_token("admin", secret="another-signing-secret-0123456789abcdef")
    assert client.get("/api/admin/requests", headers=_bearer(forged)).status_code == 401

    expired = create_access_token(
        "admin", secret="test-signing-secret-0123456789abcdef", expires_delta=timedelta(seconds=-5)
    )
    assert client.get("/api/admin/customers", headers=_bearer(expired)).status_code == 401

    viewer = create_access_token("someone", secret="test-signing-secret-0123456789abcdef", role="viewer")
    assert client.get("/api/admin/customers", headers=_bearer(viewer)).status_code == 403


def test_list_sorted_by_status_mirrors_between_directions(client, create_ticket, admin_headers):
    ids = [create_ticket(content=f"t{i}")["id"] for i in range(4)]
    client.put(f"/api/admin/requests/{ids[1]}", json={"status": "RESOLVED"}, headers=admin_headers)
    client.put(f"/api/admin/requests/{ids[2]}", json={"status": "IN_PROGRESS"}, headers=admin_headers)

    asc = client.get("/api/admin/requests?_sort=status&_order=asc", headers=admin_headers).json()
    desc = client.get("/api/admin/requests?_sort=status&_order=DESC", headers=admin_headers).json()
    assert [t["id"] for t in asc] == [t["id"] for t in reversed(desc)]
    assert [t["status"] for t in asc] == ["IN_PROGRESS", "OPEN", "OPEN", "RESOLVED"]


def test_list_falls_back_to_newest_first(client, create_ticket, admin_headers):
    ids = [create_ticket(content=f"t{i}")["id"] for i in range(3)]
    r = client.get("/api/admin/requests?_sort=password_hash&_order=sideways", headers=admin_headers)
    assert r.status_code == 200
    assert [t["id"] for t in r.json()] == list(reversed(ids))


def test_list_filters_by_customer_and_month(client, create_ticket, admin_headers):
    create_ticket(customer_name="Acme")
    create_ticket(customer_name="Globex")
    this_month = datetime.now(timezone.utc).strftime("%Y-%m")

    r = client.get("/api/admin/requests", params={"customerName": "Acme"}, headers=admin_headers)
    assert [t["customer_name"] for t in r.json()] == ["Acme"]

    r = client.get("/api/admin/requests", params={"month": this_month}, headers=admin_headers)
    assert len(r.json()) == 2

    r = client.get("/api/admin/requests", params={"month": "1999-01"}, headers=admin_headers)
    assert r.json() == []

    r = client.get("/api/admin/requests", params={"month": "January"}, headers=admin_headers)
    assert r.status_code == 400


def test_customers_are_distinct_and_sorted(client, create_ticket, admin_headers):
    for name in ("Globex", "Acme", "Globex", "Initech"):
        create_ticket(customer_name=name)
    r = client.get("/api/admin/customers", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == ["Acme", "Globex", "Initech"]


def test_update_status_and_comment_notifies_on_change(client, create_ticket, admin_headers, mailer):
    created = create_ticket(email="bob@example.com")
    mailer.sent.clear()

    r = client.put(
        f"/api/admin/requests/{created['id']}",
        json={"status": "IN_PROGRESS", "comment": "<p>looking into it</p>"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "IN_PROGRESS"
    assert [c["comment"] for c in data["comments"]] == ["<p>looking into it</p>"]
    assert mailer.sent == [("status", "bob@example.com", "IN_PROGRESS")]

    r = client.put(
        f"/api/admin/requests/{created['id']}",
        json={"status": "IN_PROGRESS", "comment": "second note"},
        headers=admin_headers,
    )
    assert [c["comment"] for c in r.json()["comments"]] == ["<p>looking into it</p>", "second note"]
    assert len(mailer.sent) == 1


def test_update_ignores_blank_comment_and_empty_body(client, create_ticket, admin_headers, mailer):
    created = create_ticket()
    r = client.put(f"/api/admin/requests/{created['id']}", json={"comment": "   "}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["comments"] == []

    r = client.put(f"/api/admin/requests/{created['id']}", json={}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "OPEN"


def test_status_change_without_email_sends_nothing(client, create_ticket, admin_headers, mailer):
    created = create_ticket()
    mailer.sent.clear()
    client.put(f"/api/admin/requests/{created['id']}", json={"status": "RESOLVED"}, headers=admin_headers)
    assert mailer.sent == []


def test_update_rejects_unknown_status_and_missing_ticket(client, create_ticket, admin_headers):
    created = create_ticket()
    r = client.put(f"/api/admin/requests/{created['id']}", json={"status": "CLOSED"}, headers=admin_headers)
    assert r.status_code == 400

    r = client.put("/api/admin/requests/9999", json={"status": "RESOLVED"}, headers=admin_headers)
    assert r.status_code == 404


def test_admin_delete_cascades_without_secret(client, create_ticket, admin_headers, store):
    created = create_ticket(images=[image_part()])
    client.put(f"/api/admin/requests/{created['id']}", json={"comment": "note"}, headers=admin_headers)

    r = client.delete(f"/api/admin/requests/{created['id']}", headers=admin_headers)
    assert r.status_code == 204
    assert client.get(f"/api/requests/{created['id']}").status_code == 404
    assert client.get("/api/admin/requests", headers=admin_headers).json() == []

    from app.core.database import SessionLocal
    from app.ticket.models import Comment

    with SessionLocal() as db:
        assert db.query(Comment).count() == 0
    with pytest.raises(FileNotFoundError):
        store.read(created["images"][0])

    r = client.delete(f"/api/admin/requests/{created['id']}", headers=admin_headers)
    assert r.status_code == 404
