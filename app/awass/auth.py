from __future__ import annotations

import re
import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import current_app, g, request, session
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from app.awass.db import db_session
from app.awass.errors import Conflict, Forbidden, Unauthorized, ValidationError
from app.awass.models import ADMIN_ROLES, Admin

_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds
MIN_PIN_LENGTH = 4
# Client-supplied X-Request-Id is only trusted when it fits audit_events.request_id.
_REQUEST_ID_RE = re.compile(r"[A-Za-z0-9-]{1,64}")


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def reset_login_attempts() -> None:
    _login_attempts.clear()


def hash_pin(pin: str) -> str:
    return generate_password_hash(pin)


def request_id_from_header(raw: str | None) -> str:
    if raw and _REQUEST_ID_RE.fullmatch(raw):
        return raw
    return uuid.uuid4().hex


def load_current_admin() -> None:
    """
    Loads g.current_admin from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = request_id_from_header(request.headers.get("X-Request-Id"))
    g.current_admin = None
    if request.path.startswith(("/health", "/healthz")):
        return

    admin_id = session.get("admin_id")
    if not admin_id:
        return

    try:
        admin = db_session().get(Admin, str(admin_id))
    except Exception as e:
        current_app.logger.error("load_current_admin DB error (clearing session): %s", e)
        admin = None
    if not admin:
        session.pop("admin_id", None)
        return
    g.current_admin = admin


def find_admin_by_pin(s: Session, pin: str) -> Admin | None:
    # PIN hashes are salted, so every admin row has to be checked.
    for admin in s.query(Admin).order_by(Admin.created_at.asc()).all():
        if check_password_hash(admin.pin_hash, pin):
            return admin
    return None


def verify_pin(s: Session, pin: str, ip: str) -> Admin:
    if not pin:
        raise ValidationError("PIN wajib diisi")
    if _check_rate_limit(ip):
        raise Unauthorized("Terlalu banyak percobaan. Coba lagi dalam 5 menit.")
    _record_attempt(ip)

    admin = find_admin_by_pin(s, pin)
    if not admin:
        current_app.logger.warning("Admin PIN rejected (ip=%s request_id=%s)", ip, getattr(g, "request_id", None))
        raise Unauthorized("PIN salah")

    _login_attempts[ip].clear()
    return admin


def create_admin(s: Session, pin: str, role: str = "admin") -> Admin:
    if not pin or len(pin) < MIN_PIN_LENGTH:
        raise ValidationError(f"PIN minimal {MIN_PIN_LENGTH} karakter")
    if role not in ADMIN_ROLES:
        raise ValidationError(f"Role harus salah satu dari: {', '.join(ADMIN_ROLES)}")
    if find_admin_by_pin(s, pin) is not None:
        raise Conflict("PIN sudah digunakan admin lain")
    admin = Admin(pin_hash=hash_pin(pin), role=role, created_at=datetime.utcnow())
    s.add(admin)
    s.flush()
    return admin


def seed_first_admin(s: Session, pin: str, secret: str | None, expected_secret: str | None) -> Admin:
    """One-time bootstrap: only works with the configured seed secret and while no admin exists."""
    if not expected_secret or secret != expected_secret:
        raise Forbidden("Akses ditolak")
    if s.query(Admin.id).first() is not None:
        raise Conflict("Admin sudah ada")
    return create_admin(s, pin, role="super_admin")
