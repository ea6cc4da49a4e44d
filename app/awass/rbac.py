from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import g

from app.awass.errors import Forbidden, Unauthorized
from app.awass.models import Admin


def admin_has_role(admin: Admin | None, roles: tuple[str, ...]) -> bool:
    if not admin:
        return False
    # super_admin can do everything a narrower role can.
    return not roles or admin.role == "super_admin" or admin.role in roles


def require_admin(*roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Guard a view behind an authenticated admin session.
    Without roles any admin passes; with roles the admin's role must be listed.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            admin: Admin | None = getattr(g, "current_admin", None)
            if not admin:
                raise Unauthorized("Akses admin diperlukan")
            if not admin_has_role(admin, roles):
                g.missing_role = ",".join(roles)
                raise Forbidden("Peran admin tidak mencukupi")
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def current_admin() -> Admin:
    admin = getattr(g, "current_admin", None)
    if not admin:
        raise Unauthorized("Akses admin diperlukan")
    return admin
