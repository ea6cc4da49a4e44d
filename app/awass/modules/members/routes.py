from __future__ import annotations

from flask import Blueprint, Response, current_app, request

from app.awass.db import db_session
from app.awass.errors import ValidationError
from app.awass.modules.members.service import (
    activate_member,
    delete_member,
    export_members_csv,
    get_member,
    list_members,
    member_to_dict,
    parse_filters,
    register_member,
    reject_member,
    update_member,
    validate_registration_payload,
)
from app.awass.rbac import current_admin, require_admin
from app.awass.responses import ok
from app.awass.storage import save_transfer_proof, storage_from_config
from app.awass.utils import utc_today

bp = Blueprint("members", __name__)

# camelCase wire names -> service payload keys
_FORM_FIELDS = {
    "memberType": "member_type",
    "name": "name",
    "email": "email",
    "ahassNumber": "ahass_number",
    "dealerCode": "dealer_code",
    "dealerName": "dealer_name",
    "dealerCity": "dealer_city",
    "picPhoneNumber": "pic_phone_number",
    "membershipPlanId": "membership_plan_id",
    "transferDate": "transfer_date",
}


def _payload_from(source: dict) -> dict:
    return {key: source.get(wire) for wire, key in _FORM_FIELDS.items() if wire in source}


# ---------- Public registration ----------
@bp.post("/members/register")
def members_register():
    s = db_session()
    payload = _payload_from(request.form.to_dict())

    errors = validate_registration_payload(payload)
    if errors:
        raise ValidationError.from_errors(errors)

    proof_url = save_transfer_proof(storage_from_config(current_app.config), request.files.get("transferProof"))
    member = register_member(s, payload, proof_url)
    s.commit()

    return ok(
        member_to_dict(member),
        message="Registrasi berhasil dikirim. Menunggu verifikasi admin.",
        status=201,
    )


# ---------- Admin list / export ----------
@bp.get("/members")
@require_admin()
def members_list():
    s = db_session()
    filters = parse_filters(request.args)
    page = list_members(s, filters)
    page["data"] = [member_to_dict(m) for m in page["data"]]
    return ok(page)


@bp.get("/members/export/csv")
@require_admin()
def members_export_csv():
    s = db_session()
    filters = parse_filters(request.args)
    csv_text = export_members_csv(s, filters)
    filename = f"Awass_Members_{utc_today().isoformat()}.csv"
    return Response(
        csv_text,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------- Detail / edit ----------
@bp.get("/members/<member_id>")
@require_admin()
def member_detail(member_id: str):
    s = db_session()
    return ok(member_to_dict(get_member(s, member_id), include_transactions=True))


@bp.patch("/members/<member_id>")
@require_admin("admin")
def member_update(member_id: str):
    s = db_session()
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Body JSON diperlukan")
    member = update_member(s, member_id, _payload_from(body), current_admin().id)
    s.commit()
    return ok(member_to_dict(member), message="Data member berhasil diubah")


@bp.delete("/members/<member_id>")
@require_admin("super_admin")
def member_delete(member_id: str):
    s = db_session()
    delete_member(s, member_id, current_admin().id)
    s.commit()
    return ok(message="Member berhasil dihapus")


# ---------- Lifecycle ----------
@bp.post("/members/<member_id>/activate")
@require_admin("admin")
def member_activate(member_id: str):
    s = db_session()
    member = activate_member(s, member_id, current_admin().id)
    s.commit()
    return ok(member_to_dict(member), message="Member berhasil diaktifkan")


@bp.post("/members/<member_id>/reject")
@require_admin("admin")
def member_reject(member_id: str):
    s = db_session()
    member = reject_member(s, member_id, current_admin().id)
    s.commit()
    return ok(member_to_dict(member), message="Registrasi member ditolak")
