import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.awass.models import AuditEvent


def _client_ip() -> str | None:
    # First hop of X-Forwarded-For when behind the platform proxy.
    forwarded = request.headers.get("X-Forwarded-For", "")
    return forwarded.split(",")[0].strip() or request.remote_addr


def record_event(
    s: Session,
    *,
    actor_id: str | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Add an audit row to the caller's session; it commits or rolls back with
    the change it describes. Dates in metadata are stored as ISO strings.
    Outside a request (scripts, boot) request id and client ip stay empty.
    """
    in_request = has_request_context()
    ev = AuditEvent(
        request_id=request_id or (g.get("request_id") if in_request else None),
        actor_admin_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
        client_ip=_client_ip() if in_request else None,
    )
    s.add(ev)
    return ev
