from app.awass.db import session_scope
from app.awass.modules.plans.models import MembershipPlan
from app.awass.modules.plans.service import DEFAULT_PLANS, seed_default_plans


def test_list_plans_ordered_by_duration(client):
    r = client.get("/api/plans")
    assert r.status_code == 200
    assert r.json["success"] is True
    plans = r.json["data"]
    assert [p["id"] for p in plans] == ["monthly", "quarterly", "semiannual", "annual"]
    monthly = plans[0]
    assert monthly["durationMonths"] == 1
    assert monthly["priceInCents"] == 9_000_000
    assert monthly["price"] == "Rp 90.000"


def test_inactive_plan_hidden_from_list(app, client):
    with session_scope(app) as s:
        s.get(MembershipPlan, "quarterly").is_active = False

    ids = [p["id"] for p in client.get("/api/plans").json["data"]]
    assert "quarterly" not in ids


def test_get_plan(client):
    r = client.get("/api/plans/annual")
    assert r.status_code == 200
    assert r.json["data"]["durationMonths"] == 12


def test_get_unknown_plan_404(client):
    r = client.get("/api/plans/weekly")
    assert r.status_code == 404
    assert r.json["error"] == "Membership plan weekly not found"


def test_seed_is_idempotent_and_keeps_edits(app):
    with session_scope(app) as s:
        s.get(MembershipPlan, "monthly").price_in_cents = 1
    with session_scope(app) as s:
        assert seed_default_plans(s) == []
        assert s.query(MembershipPlan).count() == len(DEFAULT_PLANS)
        assert s.get(MembershipPlan, "monthly").price_in_cents == 1
