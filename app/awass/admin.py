from __future__ import annotations

from flask import Blueprint, current_app, request, session

from app.awass.audit import record_event
from app.awass.auth import seed_first_admin, verify_pin
from app.awass.db import db_session
from app.awass.modules.members.service import member_stats, sweep_expired
from app.awass.rbac import current_admin, require_admin
from app.awass.responses import ok
from app.awass.security import ensure_csrf_token

bp = Blueprint("admin", __name__)


def _admin_json(admin) -> dict:
    return {"id": admin.id, "role": admin.role}


def _body() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


@bp.post("/verify-pin")
def verify_pin_post():
    s = db_session()
    pin = str(_body().get("pin") or "").strip()
    ip = request.remote_addr or "unknown"

    admin = verify_pin(s, pin, ip)

    session.clear()
    session["admin_id"] = admin.id
    session.permanent = True
    record_event(s, actor_id=admin.id, action="admin.login", entity_type="Admin", entity_id=admin.id)
    s.commit()
    return ok(
        {"admin": _admin_json(admin), "csrfToken": ensure_csrf_token()},
        message="Akses admin berhasil",
    )


@bp.post("/logout")
@require_admin()
def logout():
    s = db_session()
    admin = current_admin()
    record_event(s, actor_id=admin.id, action="admin.logout", entity_type="Admin", entity_id=admin.id)
    s.commit()
    session.clear()
    return ok(message="Logout berhasil")


@bp.get("/me")
@require_admin()
def me():
    return ok({"admin": _admin_json(current_admin()), "csrfToken": ensure_csrf_token()})


@bp.get("/stats")
@require_admin()
def stats():
    s = db_session()
    return ok(member_stats(s))


@bp.post("/sweep-expired")
@require_admin("admin")
def sweep_expired_post():
    s = db_session()
    count = sweep_expired(s, actor_id=current_admin().id)
    s.commit()
    return ok({"expired": count}, message=f"{count} member ditandai expired")


@bp.post("/seed-pin")
def seed_pin():
    s = db_session()
    body = _body()
    admin = seed_first_admin(
        s,
        pin=str(body.get("pin") or "").strip(),
        secret=body.get("secret"),
        expected_secret=current_app.config.get("ADMIN_SEED_SECRET"),
    )
    record_event(s, actor_id=admin.id, action="admin.seed", entity_type="Admin", entity_id=admin.id)
    s.commit()
    current_app.logger.warning("Initial super_admin %s created via seed-pin", admin.id)
    return ok({"admin": _admin_json(admin)}, message="Admin PIN berhasil dibuat", status=201)
