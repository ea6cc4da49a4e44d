from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.awass.models import Base, new_id

if TYPE_CHECKING:
    from app.awass.modules.members.models import Member
    from app.awass.modules.plans.models import MembershipPlan


TRANSACTION_TYPES = ("registration", "renewal")
TRANSACTION_STATUSES = ("pending", "verified", "rejected")


class Transaction(Base):
    """
    A payment claim backed by a proof-of-transfer image.
    Only the status/verification columns change after insert.
    """

    __tablename__ = "transactions"
    __table_args__ = (Index("idx_transactions_member_id", "member_id"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    member_id: Mapped[str] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)  # registration, renewal
    plan_id: Mapped[str] = mapped_column(ForeignKey("membership_plans.id"), nullable=False)

    # Snapshot of the plan price at creation time.
    amount_in_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    transfer_date: Mapped[date] = mapped_column(Date, nullable=False)
    transfer_proof_url: Mapped[str] = mapped_column(String(512), nullable=False)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    verified_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    member: Mapped["Member"] = relationship("Member", back_populates="transactions")
    plan: Mapped["MembershipPlan"] = relationship("MembershipPlan", lazy="selectin")
