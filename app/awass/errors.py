"""
Error taxonomy for the membership API.

Services raise these; the handlers registered in create_app() turn them into
the `{"error": ...}` envelope with the matching status code.
"""
from __future__ import annotations


class AppError(Exception):
    status_code = 500
    default_message = "Terjadi kesalahan pada server"

    def __init__(self, message: str | None = None, *, details: list[str] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details or []
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Data tidak valid"

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationError":
        return cls("; ".join(errors), details=errors)


class NotFound(AppError):
    status_code = 404
    default_message = "Data tidak ditemukan"


class PlanNotFound(NotFound):
    def __init__(self, plan_id: str | None = None) -> None:
        msg = f"Membership plan {plan_id} not found" if plan_id else "Plan not found"
        super().__init__(msg)
        self.plan_id = plan_id


class Unauthorized(AppError):
    status_code = 401
    default_message = "Autentikasi diperlukan"


class Forbidden(AppError):
    status_code = 403
    default_message = "Akses admin diperlukan"


class Conflict(AppError):
    # Surfaced as 400 so clients treat it like any other rejected submission.
    status_code = 400
    default_message = "Permintaan bertentangan dengan data yang ada"


class AlreadyProcessed(Conflict):
    default_message = "Renewal request already processed"
