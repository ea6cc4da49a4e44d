"""
CSRF protection for the admin API.

Admin identity rides on a session cookie, so every state-changing request
made with that cookie must echo the per-session token in X-CSRF-Token.
Anonymous requests (registration, renewal submission) carry no cookie
identity and are not checked.
"""
import secrets

from flask import Request, request, session

from app.awass.errors import Forbidden

CSRF_HEADER = "X-CSRF-Token"
_SAFE_METHODS = ("GET", "HEAD", "OPTIONS")
# Endpoints that establish the session in the first place.
_EXEMPT_ENDPOINTS = ("admin.verify_pin_post", "admin.seed_pin")


def ensure_csrf_token() -> str:
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token


def validate_csrf(req: Request) -> bool:
    token = req.headers.get(CSRF_HEADER) or req.form.get("csrf_token")
    expected = session.get("csrf_token")
    return bool(token and expected and secrets.compare_digest(str(token), str(expected)))


def csrf_protect() -> None:
    """before_request hook."""
    if request.method in _SAFE_METHODS or not session.get("admin_id"):
        return None
    if (request.endpoint or "") in _EXEMPT_ENDPOINTS:
        return None
    if not validate_csrf(request):
        raise Forbidden("CSRF token missing or invalid.")
    return None
