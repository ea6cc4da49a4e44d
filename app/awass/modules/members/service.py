from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError

from app.awass.audit import record_event
from app.awass.errors import Conflict, NotFound, ValidationError
from app.awass.modules.members.models import MEMBER_TYPES, Member
from app.awass.modules.plans.service import get_plan
from app.awass.modules.transactions.models import Transaction
from app.awass.utils import calculate_expiry, iso, parse_date, parse_positive_int, utc_today

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session

logger = logging.getLogger(__name__)

LIST_STATUS_FILTERS = ("all", "active", "expired", "pending")
DEFAULT_PAGE_SIZE = 20
MAX_EXPORT_ROWS = 10_000

REQUIRED_FIELDS = {
    "member_type": "Tipe member wajib diisi.",
    "name": "Nama wajib diisi.",
    "email": "Email wajib diisi.",
    "ahass_number": "No AHASS wajib diisi.",
    "dealer_name": "Nama dealer wajib diisi.",
    "dealer_city": "Kota dealer wajib diisi.",
    "pic_phone_number": "No HP PIC wajib diisi.",
}
PROFILE_FIELDS = (
    "member_type",
    "name",
    "email",
    "ahass_number",
    "dealer_code",
    "dealer_name",
    "dealer_city",
    "pic_phone_number",
)

CSV_HEADERS = [
    "ID",
    "Nama Member",
    "Email",
    "Tipe",
    "No AHASS",
    "Kode Dealer",
    "Nama Dealer",
    "Kota",
    "No HP PIC",
    "Paket",
    "Berlaku Hingga",
    "Status",
    "Tanggal Bergabung",
]


@dataclass(frozen=True)
class MemberFilters:
    status: str = "all"
    search: str = ""
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE


def _clean(v: Any) -> str:
    if v is None:
        return ""
    return str(v).strip()


def _validate_profile(payload: dict, *, partial: bool) -> list[str]:
    errors: list[str] = []
    for field, message in REQUIRED_FIELDS.items():
        if partial and field not in payload:
            continue
        if not _clean(payload.get(field)):
            errors.append(message)
    member_type = _clean(payload.get("member_type"))
    if member_type and member_type not in MEMBER_TYPES:
        errors.append(f"Tipe member harus salah satu dari: {', '.join(MEMBER_TYPES)}.")
    email = _clean(payload.get("email"))
    if email and "@" not in email:
        errors.append("Format email tidak valid.")
    return errors


def validate_registration_payload(payload: dict) -> list[str]:
    """Validate registration payload. Returns list of errors."""
    errors = _validate_profile(payload, partial=False)
    if not _clean(payload.get("membership_plan_id")):
        errors.append("Paket membership wajib dipilih.")
    raw_date = _clean(payload.get("transfer_date"))
    if not raw_date:
        errors.append("Tanggal transfer wajib diisi.")
    else:
        try:
            parse_date(raw_date)
        except ValueError:
            errors.append("Tanggal transfer harus berformat YYYY-MM-DD.")
    return errors


def _ensure_email_available(s: "Session", email: str, *, exclude_id: str | None = None) -> None:
    q = s.query(Member.id).filter(func.lower(Member.email) == email.lower())
    if exclude_id:
        q = q.filter(Member.id != exclude_id)
    if q.first() is not None:
        raise Conflict("Email sudah terdaftar")


def avatar_url_for(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote(name)}&background=0ea5e9&color=fff"


def register_member(s: "Session", payload: dict, transfer_proof_url: str) -> Member:
    """
    Create a pending member plus its pending registration transaction.
    Both rows are added to the caller's session; the caller commits once.
    """
    errors = validate_registration_payload(payload)
    if errors:
        raise ValidationError.from_errors(errors)

    plan = get_plan(s, _clean(payload.get("membership_plan_id")))
    email = _clean(payload.get("email")).lower()
    _ensure_email_available(s, email)

    transfer_date: date = parse_date(_clean(payload.get("transfer_date")))  # type: ignore[assignment]
    now = datetime.utcnow()
    name = _clean(payload.get("name"))

    member = Member(
        member_type=_clean(payload.get("member_type")),
        name=name,
        email=email,
        avatar_url=avatar_url_for(name),
        ahass_number=_clean(payload.get("ahass_number")),
        dealer_code=_clean(payload.get("dealer_code")) or None,
        dealer_name=_clean(payload.get("dealer_name")),
        dealer_city=_clean(payload.get("dealer_city")),
        pic_phone_number=_clean(payload.get("pic_phone_number")),
        membership_plan_id=plan.id,
        active_until=calculate_expiry(transfer_date, plan.duration_months),
        status="pending",
        joined_at=now,
        created_at=now,
        updated_at=now,
    )
    s.add(member)
    try:
        s.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email.
        s.rollback()
        logger.warning("Duplicate registration for %s rejected by unique constraint", email)
        raise Conflict("Email sudah terdaftar")

    s.add(
        Transaction(
            member_id=member.id,
            type="registration",
            plan_id=plan.id,
            amount_in_cents=plan.price_in_cents,
            transfer_date=transfer_date,
            transfer_proof_url=transfer_proof_url,
            status="pending",
            created_at=now,
        )
    )
    s.flush()

    record_event(
        s,
        actor_id=None,
        action="member.register",
        entity_type="Member",
        entity_id=member.id,
        metadata={"email": member.email, "plan_id": plan.id, "active_until": member.active_until},
    )
    logger.info("Registered member %s (plan=%s active_until=%s)", member.id, plan.id, member.active_until)
    return member


def get_member(s: "Session", member_id: str) -> Member:
    member = s.get(Member, member_id)
    if not member:
        raise NotFound("Member tidak ditemukan")
    return member


def _set_status(s: "Session", member_id: str, status: str, admin_id: str, action: str) -> Member:
    member = get_member(s, member_id)
    old_status = member.status
    member.status = status
    member.updated_at = datetime.utcnow()
    record_event(
        s,
        actor_id=admin_id,
        action=action,
        entity_type="Member",
        entity_id=member.id,
        metadata={"status": {"old": old_status, "new": status}},
    )
    return member


def activate_member(s: "Session", member_id: str, admin_id: str) -> Member:
    """Mark a member active. Independent of whether its registration transaction is verified."""
    return _set_status(s, member_id, "active", admin_id, "member.activate")


def reject_member(s: "Session", member_id: str, admin_id: str) -> Member:
    return _set_status(s, member_id, "rejected", admin_id, "member.reject")


def update_member(s: "Session", member_id: str, payload: dict, admin_id: str) -> Member:
    """
    Update profile fields. Expiry, status and plan are owned by the lifecycle
    operations and are ignored here.
    """
    member = get_member(s, member_id)
    present = {k: payload[k] for k in PROFILE_FIELDS if k in payload}
    errors = _validate_profile(present, partial=True)
    if errors:
        raise ValidationError.from_errors(errors)

    changes = {}
    for field, raw in present.items():
        new = _clean(raw) or None
        if field == "email" and new:
            new = new.lower()
            if new != member.email:
                _ensure_email_available(s, new, exclude_id=member.id)
        old = getattr(member, field)
        if new != old:
            changes[field] = {"old": old, "new": new}
            setattr(member, field, new)

    if changes:
        member.updated_at = datetime.utcnow()
        try:
            s.flush()
        except IntegrityError:
            s.rollback()
            raise Conflict("Email sudah terdaftar")
        record_event(
            s,
            actor_id=admin_id,
            action="member.edit",
            entity_type="Member",
            entity_id=member.id,
            metadata={"changes": changes},
        )
    return member


def delete_member(s: "Session", member_id: str, admin_id: str) -> None:
    member = get_member(s, member_id)
    record_event(
        s,
        actor_id=admin_id,
        action="member.delete",
        entity_type="Member",
        entity_id=member.id,
        metadata={"email": member.email, "name": member.name},
    )
    s.delete(member)
    s.flush()


def parse_filters(args: Any) -> MemberFilters:
    status = _clean(args.get("status")) or "all"
    if status not in LIST_STATUS_FILTERS:
        raise ValidationError(f"Status filter harus salah satu dari: {', '.join(LIST_STATUS_FILTERS)}.")
    return MemberFilters(
        status=status,
        search=_clean(args.get("search")),
        page=parse_positive_int(args.get("page"), 1),
        limit=parse_positive_int(args.get("limit"), DEFAULT_PAGE_SIZE),
    )


def _like_pattern(term: str) -> str:
    """Substring pattern for ilike with a backslash escape, so % and _ match literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _filtered_query(s: "Session", filters: MemberFilters, today: date) -> "Query":
    q = s.query(Member)

    # "active" and "expired" are derived from the date, not only from the stored status.
    if filters.status == "active":
        q = q.filter(Member.status == "active").filter(Member.active_until >= today)
    elif filters.status == "expired":
        q = q.filter(Member.active_until < today)
    elif filters.status == "pending":
        q = q.filter(Member.status == "pending")

    if filters.search:
        like = _like_pattern(filters.search)
        q = q.filter(
            or_(
                Member.name.ilike(like, escape="\\"),
                Member.dealer_code.ilike(like, escape="\\"),
                Member.dealer_name.ilike(like, escape="\\"),
                Member.ahass_number.ilike(like, escape="\\"),
            )
        )
    return q


def list_members(s: "Session", filters: MemberFilters, *, today: date | None = None) -> dict[str, Any]:
    today = today or utc_today()
    q = _filtered_query(s, filters, today)
    total = q.count()
    rows = (
        q.order_by(Member.created_at.desc(), Member.id.desc())
        .offset((filters.page - 1) * filters.limit)
        .limit(filters.limit)
        .all()
    )
    return {
        "data": rows,
        "total": total,
        "page": filters.page,
        "limit": filters.limit,
        "totalPages": math.ceil(total / filters.limit) if filters.limit else 0,
    }


def sweep_expired(s: "Session", *, today: date | None = None, actor_id: str | None = None) -> int:
    """
    Flip active members whose active_until has passed to expired.
    Pending, rejected and already-expired members are left alone.
    """
    today = today or utc_today()
    result = s.execute(
        update(Member)
        .where(Member.status == "active")
        .where(Member.active_until < today)
        .values(status="expired", updated_at=datetime.utcnow())
        .execution_options(synchronize_session="fetch")
    )
    count = result.rowcount or 0
    if count:
        record_event(
            s,
            actor_id=actor_id,
            action="member.sweep_expired",
            entity_type="Member",
            metadata={"count": count, "today": today},
        )
    logger.info("Expiry sweep for %s marked %s member(s) expired", today, count)
    return count


def export_members_csv(s: "Session", filters: MemberFilters, *, today: date | None = None) -> str:
    today = today or utc_today()
    members = (
        _filtered_query(s, filters, today)
        .order_by(Member.created_at.desc(), Member.id.desc())
        .limit(MAX_EXPORT_ROWS)
        .all()
    )

    out = io.StringIO()
    w = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
    w.writerow(CSV_HEADERS)
    for m in members:
        w.writerow(
            [
                m.id,
                m.name,
                m.email,
                m.member_type,
                m.ahass_number,
                m.dealer_code or "",
                m.dealer_name,
                m.dealer_city,
                m.pic_phone_number,
                m.membership_plan_id or "",
                m.active_until.isoformat(),
                m.status,
                m.joined_at.date().isoformat() if m.joined_at else "",
            ]
        )
    return out.getvalue()


def member_stats(s: "Session", *, today: date | None = None) -> dict[str, int]:
    today = today or utc_today()

    def _count(*criteria) -> int:
        return s.query(func.count(Member.id)).filter(*criteria).scalar() or 0

    return {
        "total": _count(),
        "active": _count(Member.status == "active", Member.active_until >= today),
        "expired": _count(Member.active_until < today),
        "pending": _count(Member.status == "pending"),
    }


def member_to_dict(m: Member, *, include_transactions: bool = False) -> dict[str, Any]:
    from app.awass.modules.plans.service import plan_to_dict
    from app.awass.modules.transactions.service import transaction_to_dict

    d: dict[str, Any] = {
        "id": m.id,
        "memberType": m.member_type,
        "name": m.name,
        "email": m.email,
        "avatarUrl": m.avatar_url,
        "ahassNumber": m.ahass_number,
        "dealerCode": m.dealer_code,
        "dealerName": m.dealer_name,
        "dealerCity": m.dealer_city,
        "picPhoneNumber": m.pic_phone_number,
        "membershipPlanId": m.membership_plan_id,
        "activeUntil": iso(m.active_until),
        "status": m.status,
        "joinedAt": iso(m.joined_at),
        "createdAt": iso(m.created_at),
        "updatedAt": iso(m.updated_at),
        "plan": plan_to_dict(m.plan) if m.plan else None,
    }
    if include_transactions:
        d["transactions"] = [transaction_to_dict(t) for t in m.transactions]
    return d
