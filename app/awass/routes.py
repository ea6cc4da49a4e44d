from flask import Blueprint, current_app, send_file

from app.awass.errors import NotFound
from app.awass.storage import content_type_for_key, storage_from_config

bp = Blueprint("routes", __name__)


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True, "status": "ok"}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container probes. No DB access, minimal overhead.
    """
    return "ok", 200


@bp.get("/uploads/<path:key>")
def uploaded_proof(key: str):
    """Serve a stored proof-of-transfer image by its storage key."""
    storage = storage_from_config(current_app.config)
    if not storage.exists(key):
        raise NotFound("File tidak ditemukan")
    return send_file(storage.open(key), mimetype=content_type_for_key(key), download_name=key.rsplit("/", 1)[-1])
