from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.awass.audit import record_event
from app.awass.errors import NotFound
from app.awass.modules.transactions.models import Transaction
from app.awass.utils import iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def get_transaction(s: "Session", transaction_id: str) -> Transaction:
    tx = s.get(Transaction, transaction_id)
    if not tx:
        raise NotFound("Transaksi tidak ditemukan")
    return tx


def _resolve(s: "Session", transaction_id: str, status: str, verifier_id: str) -> Transaction:
    # No guard on already-resolved rows: a second call overwrites the stamp.
    tx = get_transaction(s, transaction_id)
    old_status = tx.status
    tx.status = status
    tx.verified_at = datetime.utcnow()
    tx.verified_by = verifier_id
    record_event(
        s,
        actor_id=verifier_id,
        action=f"transaction.{'verify' if status == 'verified' else 'reject'}",
        entity_type="Transaction",
        entity_id=tx.id,
        metadata={"member_id": tx.member_id, "status": {"old": old_status, "new": status}},
    )
    return tx


def verify_transaction(s: "Session", transaction_id: str, verifier_id: str) -> Transaction:
    return _resolve(s, transaction_id, "verified", verifier_id)


def reject_transaction(s: "Session", transaction_id: str, verifier_id: str) -> Transaction:
    return _resolve(s, transaction_id, "rejected", verifier_id)


def list_member_transactions(s: "Session", member_id: str) -> list[Transaction]:
    return (
        s.query(Transaction)
        .filter(Transaction.member_id == member_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .all()
    )


def transaction_to_dict(tx: Transaction) -> dict[str, Any]:
    from app.awass.modules.plans.service import plan_to_dict

    return {
        "id": tx.id,
        "memberId": tx.member_id,
        "type": tx.type,
        "planId": tx.plan_id,
        "amountInCents": tx.amount_in_cents,
        "transferDate": iso(tx.transfer_date),
        "transferProofUrl": tx.transfer_proof_url,
        "status": tx.status,
        "verifiedAt": iso(tx.verified_at),
        "verifiedBy": tx.verified_by,
        "createdAt": iso(tx.created_at),
        "plan": plan_to_dict(tx.plan) if tx.plan else None,
    }
