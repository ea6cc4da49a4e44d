"""
Renewal workflow.

A request moves pending -> approved or pending -> rejected and never leaves a
terminal state. Approval extends the member's subscription, switches the
member to the requested plan and books a verified renewal transaction; the
three writes share the caller's DB transaction, which commits once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import update
from sqlalchemy.orm.attributes import set_committed_value

from app.awass.audit import record_event
from app.awass.errors import AlreadyProcessed, Conflict, NotFound, ValidationError
from app.awass.modules.members.models import Member
from app.awass.modules.plans.service import get_plan
from app.awass.modules.renewals.models import RenewalRequest
from app.awass.modules.transactions.models import Transaction
from app.awass.utils import calculate_expiry, iso, parse_date, utc_today

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApprovalResult:
    renewal_id: str
    member_id: str
    transaction_id: str
    new_active_until: date


def validate_renewal_payload(payload: dict) -> list[str]:
    errors: list[str] = []
    if not (payload.get("member_id") or "").strip():
        errors.append("Member wajib diisi.")
    if not (payload.get("requested_plan_id") or "").strip():
        errors.append("Paket membership wajib dipilih.")
    raw_date = (payload.get("transfer_date") or "").strip()
    if not raw_date:
        errors.append("Tanggal transfer wajib diisi.")
    else:
        try:
            parse_date(raw_date)
        except ValueError:
            errors.append("Tanggal transfer harus berformat YYYY-MM-DD.")
    return errors


def submit_renewal(s: "Session", payload: dict, transfer_proof_url: str) -> RenewalRequest:
    """
    Record a pending renewal request. A member may have several pending
    requests at once; each is processed independently.
    """
    errors = validate_renewal_payload(payload)
    if errors:
        raise ValidationError.from_errors(errors)

    member = s.get(Member, payload["member_id"].strip())
    if not member:
        raise NotFound("Member tidak ditemukan")
    plan = get_plan(s, payload["requested_plan_id"].strip())

    renewal = RenewalRequest(
        member_id=member.id,
        requested_plan_id=plan.id,
        transfer_date=parse_date(payload["transfer_date"]),
        transfer_proof_url=transfer_proof_url,
        status="pending",
        created_at=datetime.utcnow(),
    )
    s.add(renewal)
    s.flush()

    record_event(
        s,
        actor_id=None,
        action="renewal.submit",
        entity_type="RenewalRequest",
        entity_id=renewal.id,
        metadata={"member_id": member.id, "plan_id": plan.id},
    )
    return renewal


def get_renewal(s: "Session", renewal_id: str) -> RenewalRequest:
    renewal = s.get(RenewalRequest, renewal_id)
    if not renewal:
        raise NotFound("Renewal request not found")
    return renewal


def renewal_base_date(active_until: date, transfer_date: date, today: date) -> date:
    """
    Date the renewed duration is counted from.

    A member still inside their subscription keeps the unused time (extend from
    active_until); a lapsed member starts over from the renewal's transfer date.
    """
    if today > active_until:
        return transfer_date
    return active_until


def _close_pending(s: "Session", renewal: RenewalRequest, status: str, admin_id: str, now: datetime) -> None:
    # Conditional update: of two concurrent processors only one matches status='pending'.
    result = s.execute(
        update(RenewalRequest)
        .where(RenewalRequest.id == renewal.id)
        .where(RenewalRequest.status == "pending")
        .values(status=status, processed_by=admin_id, processed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AlreadyProcessed()
    # Mirror the row into the loaded object without scheduling a second UPDATE.
    set_committed_value(renewal, "status", status)
    set_committed_value(renewal, "processed_by", admin_id)
    set_committed_value(renewal, "processed_at", now)


def _extend_member(s: "Session", member: Member, plan_id: str, new_active_until: date, now: datetime) -> None:
    # Guarded on the active_until the new date was computed from, so two approvals
    # for one member can never both extend from the same starting point.
    result = s.execute(
        update(Member)
        .where(Member.id == member.id)
        .where(Member.active_until == member.active_until)
        .values(active_until=new_active_until, membership_plan_id=plan_id, status="active", updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise Conflict("Data member berubah saat diproses, silakan coba lagi")
    set_committed_value(member, "active_until", new_active_until)
    set_committed_value(member, "membership_plan_id", plan_id)
    set_committed_value(member, "status", "active")
    set_committed_value(member, "updated_at", now)


def approve_renewal(s: "Session", renewal_id: str, admin_id: str, *, today: date | None = None) -> ApprovalResult:
    today = today or utc_today()
    renewal = get_renewal(s, renewal_id)
    if renewal.status != "pending":
        raise AlreadyProcessed()

    plan = get_plan(s, renewal.requested_plan_id)
    # Fresh, locked read: another approval for this member may have committed since
    # the renewal (and its member) were loaded into this session.
    member = s.get(Member, renewal.member_id, with_for_update=True, populate_existing=True)
    if member is None:
        raise NotFound("Member tidak ditemukan")

    base = renewal_base_date(member.active_until, renewal.transfer_date, today)
    new_active_until = calculate_expiry(base, plan.duration_months)
    now = datetime.utcnow()

    _close_pending(s, renewal, "approved", admin_id, now)

    old_active_until = member.active_until
    old_plan_id = member.membership_plan_id
    _extend_member(s, member, plan.id, new_active_until, now)

    # Approval doubles as verification of the renewal payment.
    tx = Transaction(
        member_id=member.id,
        type="renewal",
        plan_id=plan.id,
        amount_in_cents=plan.price_in_cents,
        transfer_date=renewal.transfer_date,
        transfer_proof_url=renewal.transfer_proof_url,
        status="verified",
        verified_at=now,
        verified_by=admin_id,
        created_at=now,
    )
    s.add(tx)
    s.flush()

    record_event(
        s,
        actor_id=admin_id,
        action="renewal.approve",
        entity_type="RenewalRequest",
        entity_id=renewal.id,
        metadata={
            "member_id": member.id,
            "transaction_id": tx.id,
            "plan": {"old": old_plan_id, "new": plan.id},
            "active_until": {"old": old_active_until, "new": new_active_until},
            "base_date": base,
        },
    )
    logger.info(
        "Approved renewal %s for member %s: active_until %s -> %s",
        renewal.id,
        member.id,
        old_active_until,
        new_active_until,
    )
    return ApprovalResult(
        renewal_id=renewal.id,
        member_id=member.id,
        transaction_id=tx.id,
        new_active_until=new_active_until,
    )


def reject_renewal(s: "Session", renewal_id: str, admin_id: str) -> RenewalRequest:
    renewal = get_renewal(s, renewal_id)
    if renewal.status != "pending":
        raise AlreadyProcessed()

    now = datetime.utcnow()
    _close_pending(s, renewal, "rejected", admin_id, now)

    record_event(
        s,
        actor_id=admin_id,
        action="renewal.reject",
        entity_type="RenewalRequest",
        entity_id=renewal.id,
        metadata={"member_id": renewal.member_id},
    )
    return renewal


def list_pending_renewals(s: "Session") -> list[RenewalRequest]:
    return (
        s.query(RenewalRequest)
        .filter(RenewalRequest.status == "pending")
        .order_by(RenewalRequest.created_at.desc(), RenewalRequest.id.desc())
        .all()
    )


def renewal_to_dict(r: RenewalRequest) -> dict[str, Any]:
    from app.awass.modules.members.service import member_to_dict
    from app.awass.modules.plans.service import plan_to_dict

    return {
        "id": r.id,
        "memberId": r.member_id,
        "requestedPlanId": r.requested_plan_id,
        "transferDate": iso(r.transfer_date),
        "transferProofUrl": r.transfer_proof_url,
        "status": r.status,
        "processedBy": r.processed_by,
        "processedAt": iso(r.processed_at),
        "createdAt": iso(r.created_at),
        "member": member_to_dict(r.member) if r.member else None,
        "plan": plan_to_dict(r.plan) if r.plan else None,
    }
