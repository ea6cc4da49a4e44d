from datetime import date, timedelta

import pytest

from app.awass.auth import create_admin, hash_pin
from app.awass.db import session_scope
from app.awass.errors import Conflict, ValidationError
from app.awass.models import Admin, AuditEvent
from app.awass.modules.members.models import Member
from app.awass.utils import utc_today

from conftest import ADMIN_PIN, SUPER_PIN, VERIFIER_PIN, login, make_member


def test_verify_pin_sets_session(client):
    r = client.post("/api/admin/verify-pin", json={"pin": ADMIN_PIN})
    assert r.status_code == 200
    data = r.json["data"]
    assert data["admin"] == {"id": "admin1", "role": "admin"}
    assert data["csrfToken"]

    me = client.get("/api/admin/me")
    assert me.status_code == 200
    assert me.json["data"]["admin"]["role"] == "admin"
    assert me.json["data"]["csrfToken"] == data["csrfToken"]


def test_verify_pin_wrong(client):
    r = client.post("/api/admin/verify-pin", json={"pin": "0000"})
    assert r.status_code == 401
    assert r.json["error"] == "PIN salah"
    assert client.get("/api/admin/me").status_code == 401


def test_verify_pin_empty(client):
    r = client.post("/api/admin/verify-pin", json={"pin": ""})
    assert r.status_code == 400


def test_verify_pin_rate_limited(client):
    for _ in range(5):
        assert client.post("/api/admin/verify-pin", json={"pin": "0000"}).status_code == 401
    r = client.post("/api/admin/verify-pin", json={"pin": ADMIN_PIN})
    assert r.status_code == 401
    assert "Terlalu banyak" in r.json["error"]


def test_login_is_audited(app, client):
    login(client, VERIFIER_PIN)
    with session_scope(app) as s:
        ev = s.query(AuditEvent).filter(AuditEvent.action == "admin.login").one()
        assert ev.actor_admin_id == "verifier1"
        assert ev.request_id


def test_logout(client):
    headers = login(client)
    r = client.post("/api/admin/logout", headers=headers)
    assert r.status_code == 200
    assert client.get("/api/admin/me").status_code == 401


def test_stats(app, client):
    today = utc_today()
    with session_scope(app) as s:
        make_member(s, active_until=today + timedelta(days=5))
        make_member(s, active_until=today - timedelta(days=5))
        make_member(s, status="pending", active_until=today + timedelta(days=30))
    login(client)
    r = client.get("/api/admin/stats")
    assert r.status_code == 200
    assert r.json["data"] == {"total": 3, "active": 1, "expired": 1, "pending": 1}


def test_sweep_endpoint(app, client):
    today = utc_today()
    with session_scope(app) as s:
        lapsed = make_member(s, active_until=today - timedelta(days=1)).id
        make_member(s, active_until=today)
    headers = login(client)
    r = client.post("/api/admin/sweep-expired", headers=headers)
    assert r.status_code == 200
    assert r.json["data"] == {"expired": 1}
    with session_scope(app) as s:
        assert s.get(Member, lapsed).status == "expired"


def test_sweep_endpoint_forbidden_for_verifier(client):
    headers = login(client, VERIFIER_PIN)
    r = client.post("/api/admin/sweep-expired", headers=headers)
    assert r.status_code == 403


def test_super_admin_passes_role_checks(app, client):
    with session_scope(app) as s:
        member_id = make_member(s, status="pending", active_until=date(2030, 1, 1)).id
    headers = login(client, SUPER_PIN)
    r = client.post(f"/api/members/{member_id}/activate", headers=headers)
    assert r.status_code == 200


def test_seed_pin_only_when_no_admin(app, client):
    r = client.post("/api/admin/seed-pin", json={"pin": "1234", "secret": "seed-secret"})
    assert r.status_code == 400
    assert r.json["error"] == "Admin sudah ada"


def test_seed_pin_bootstrap(app, client):
    with session_scope(app) as s:
        s.query(Admin).delete()

    r = client.post("/api/admin/seed-pin", json={"pin": "1234", "secret": "wrong"})
    assert r.status_code == 403

    r = client.post("/api/admin/seed-pin", json={"pin": "1234", "secret": "seed-secret"})
    assert r.status_code == 201
    assert r.json["data"]["admin"]["role"] == "super_admin"

    assert client.post("/api/admin/verify-pin", json={"pin": "1234"}).status_code == 200


def test_create_admin_rules(app):
    with session_scope(app) as s:
        with pytest.raises(ValidationError):
            create_admin(s, "12", "admin")
        with pytest.raises(ValidationError):
            create_admin(s, "5555", "owner")
        with pytest.raises(Conflict):
            create_admin(s, ADMIN_PIN, "verifier")
        admin = create_admin(s, "5555", "verifier")
        assert admin.role == "verifier"
        assert admin.pin_hash != "5555"


def test_session_for_deleted_admin_is_dropped(app, client):
    with session_scope(app) as s:
        s.add(Admin(id="temp1", pin_hash=hash_pin("2468"), role="admin"))
    login(client, "2468")
    with session_scope(app) as s:
        s.query(Admin).filter(Admin.id == "temp1").delete()
    assert client.get("/api/admin/me").status_code == 401
