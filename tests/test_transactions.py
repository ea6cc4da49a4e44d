from datetime import date

from app.awass.db import session_scope
from app.awass.modules.transactions.models import Transaction

from conftest import VERIFIER_PIN, login, make_member


def _member_with_tx(app, **tx_fields):
    with session_scope(app) as s:
        m = make_member(s, status="pending")
        tx = Transaction(
            member_id=m.id,
            type="registration",
            plan_id="monthly",
            amount_in_cents=9_000_000,
            transfer_date=date(2024, 1, 10),
            transfer_proof_url="/uploads/abc.png",
            status="pending",
            **tx_fields,
        )
        s.add(tx)
        s.flush()
        return m.id, tx.id


def test_list_member_transactions(app, client):
    member_id, tx_id = _member_with_tx(app)
    login(client)
    r = client.get(f"/api/transactions/member/{member_id}")
    assert r.status_code == 200
    rows = r.json["data"]
    assert [t["id"] for t in rows] == [tx_id]
    assert rows[0]["amountInCents"] == 9_000_000
    assert rows[0]["plan"]["label"] == "Bulanan"


def test_verify_transaction_stamps_verifier(app, client):
    member_id, tx_id = _member_with_tx(app)
    headers = login(client, VERIFIER_PIN)
    r = client.patch(f"/api/transactions/{tx_id}/verify", headers=headers)
    assert r.status_code == 200, r.json
    data = r.json["data"]
    assert data["status"] == "verified"
    assert data["verifiedBy"] == "verifier1"
    assert data["verifiedAt"]


def test_verify_does_not_touch_member(app, client):
    member_id, tx_id = _member_with_tx(app)
    headers = login(client)
    client.patch(f"/api/transactions/{tx_id}/verify", headers=headers)
    r = client.get(f"/api/members/{member_id}")
    assert r.json["data"]["status"] == "pending"


def test_reject_transaction(app, client):
    _, tx_id = _member_with_tx(app)
    headers = login(client, VERIFIER_PIN)
    r = client.patch(f"/api/transactions/{tx_id}/reject", headers=headers)
    assert r.status_code == 200
    assert r.json["data"]["status"] == "rejected"


def test_verify_unknown_transaction(client):
    headers = login(client)
    r = client.patch("/api/transactions/missing/verify", headers=headers)
    assert r.status_code == 404
    assert r.json["error"] == "Transaksi tidak ditemukan"


def test_verify_requires_admin(app, client):
    _, tx_id = _member_with_tx(app)
    r = client.patch(f"/api/transactions/{tx_id}/verify")
    assert r.status_code == 401
