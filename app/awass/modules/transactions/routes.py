from __future__ import annotations

from flask import Blueprint

from app.awass.db import db_session
from app.awass.modules.transactions.service import (
    list_member_transactions,
    reject_transaction,
    transaction_to_dict,
    verify_transaction,
)
from app.awass.rbac import current_admin, require_admin
from app.awass.responses import ok

bp = Blueprint("transactions", __name__)


@bp.get("/transactions/member/<member_id>")
@require_admin()
def transactions_for_member(member_id: str):
    s = db_session()
    return ok([transaction_to_dict(t) for t in list_member_transactions(s, member_id)])


@bp.patch("/transactions/<transaction_id>/verify")
@require_admin("admin", "verifier")
def transaction_verify(transaction_id: str):
    s = db_session()
    tx = verify_transaction(s, transaction_id, current_admin().id)
    s.commit()
    return ok(transaction_to_dict(tx), message="Transaksi berhasil diverifikasi")


@bp.patch("/transactions/<transaction_id>/reject")
@require_admin("admin", "verifier")
def transaction_reject(transaction_id: str):
    s = db_session()
    tx = reject_transaction(s, transaction_id, current_admin().id)
    s.commit()
    return ok(transaction_to_dict(tx), message="Transaksi ditolak")
