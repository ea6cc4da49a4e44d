import io
import itertools
from datetime import date, datetime

import pytest

from app.awass import create_app
from app.awass.auth import hash_pin, reset_login_attempts
from app.awass.db import session_scope
from app.awass.models import Admin, Base
from app.awass.modules.members.models import Member
from app.awass.modules.plans.service import seed_default_plans

ADMIN_PIN = "4321"
VERIFIER_PIN = "8765"
SUPER_PIN = "9999"

# Smallest valid PNG header is enough; content is never decoded.
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

_emails = itertools.count(1)


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("ADMIN_SEED_SECRET", "seed-secret")
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        seed_default_plans(s)
        s.add_all(
            [
                Admin(id="admin1", pin_hash=hash_pin(ADMIN_PIN), role="admin"),
                Admin(id="verifier1", pin_hash=hash_pin(VERIFIER_PIN), role="verifier"),
                Admin(id="super1", pin_hash=hash_pin(SUPER_PIN), role="super_admin"),
            ]
        )

    reset_login_attempts()
    yield app
    reset_login_attempts()


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, pin=ADMIN_PIN) -> dict:
    """Log in via PIN and return headers carrying the CSRF token for later writes."""
    r = client.post("/api/admin/verify-pin", json={"pin": pin})
    assert r.status_code == 200, r.json
    return {"X-CSRF-Token": r.json["data"]["csrfToken"]}


def proof_file(content: bytes = PNG_BYTES, name: str = "bukti.png", mimetype: str = "image/png"):
    return (io.BytesIO(content), name, mimetype)


def registration_form(**overrides) -> dict:
    form = {
        "memberType": "ahass",
        "name": "Budi Santoso",
        "email": "budi@example.com",
        "ahassNumber": "AH-001",
        "dealerCode": "D-77",
        "dealerName": "Sinar Motor",
        "dealerCity": "Bandung",
        "picPhoneNumber": "081234567890",
        "membershipPlanId": "monthly",
        "transferDate": "2024-01-31",
    }
    form.update(overrides)
    if "transferProof" not in form:
        form["transferProof"] = proof_file()
    return {k: v for k, v in form.items() if v is not None}


def make_member(s, **overrides) -> Member:
    now = datetime(2024, 1, 1, 8, 0, 0)
    fields = {
        "member_type": "dealer",
        "name": "Member",
        "email": f"member{next(_emails)}@example.com",
        "ahass_number": "AH-000",
        "dealer_name": "Dealer",
        "dealer_city": "Jakarta",
        "pic_phone_number": "0811",
        "membership_plan_id": "monthly",
        "active_until": date(2024, 3, 1),
        "status": "active",
        "joined_at": now,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    m = Member(**fields)
    s.add(m)
    s.flush()
    return m
