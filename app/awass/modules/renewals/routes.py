from __future__ import annotations

from flask import Blueprint, current_app, request

from app.awass.db import db_session
from app.awass.errors import ValidationError
from app.awass.modules.renewals.service import (
    approve_renewal,
    list_pending_renewals,
    reject_renewal,
    renewal_to_dict,
    submit_renewal,
    validate_renewal_payload,
)
from app.awass.rbac import current_admin, require_admin
from app.awass.responses import ok
from app.awass.storage import save_transfer_proof, storage_from_config

bp = Blueprint("renewals", __name__)


@bp.post("/renewals")
def renewals_submit():
    s = db_session()
    payload = {
        "member_id": request.form.get("memberId"),
        "requested_plan_id": request.form.get("membershipPlanId"),
        "transfer_date": request.form.get("transferDate"),
    }
    errors = validate_renewal_payload(payload)
    if errors:
        raise ValidationError.from_errors(errors)

    proof_url = save_transfer_proof(storage_from_config(current_app.config), request.files.get("transferProof"))
    renewal = submit_renewal(s, payload, proof_url)
    s.commit()
    return ok(
        renewal_to_dict(renewal),
        message="Pengajuan perpanjangan berhasil dikirim. Menunggu verifikasi admin.",
        status=201,
    )


@bp.get("/renewals")
@require_admin()
def renewals_pending():
    s = db_session()
    return ok([renewal_to_dict(r) for r in list_pending_renewals(s)])


@bp.patch("/renewals/<renewal_id>/approve")
@require_admin("admin", "verifier")
def renewal_approve(renewal_id: str):
    s = db_session()
    result = approve_renewal(s, renewal_id, current_admin().id)
    s.commit()
    return ok(
        {"newActiveUntil": result.new_active_until.isoformat(), "transactionId": result.transaction_id},
        message="Perpanjangan berhasil disetujui",
    )


@bp.patch("/renewals/<renewal_id>/reject")
@require_admin("admin", "verifier")
def renewal_reject(renewal_id: str):
    s = db_session()
    renewal = reject_renewal(s, renewal_id, current_admin().id)
    s.commit()
    return ok(renewal_to_dict(renewal), message="Pengajuan ditolak")
