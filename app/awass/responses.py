from __future__ import annotations

from typing import Any

from flask import jsonify


def ok(data: Any = None, message: str = "OK", status: int = 200):
    """Standard success envelope."""
    return jsonify({"success": True, "message": message, "data": data}), status


def error_response(message: str, status: int, **extra: Any):
    body: dict[str, Any] = {"error": message}
    body.update({k: v for k, v in extra.items() if v})
    return jsonify(body), status
