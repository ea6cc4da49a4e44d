from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.awass.models import Base, new_id

if TYPE_CHECKING:
    from app.awass.modules.members.models import Member
    from app.awass.modules.plans.models import MembershipPlan


RENEWAL_STATUSES = ("pending", "approved", "rejected")


class RenewalRequest(Base):
    __tablename__ = "renewal_requests"
    __table_args__ = (
        Index("idx_renewal_requests_status", "status"),
        Index("idx_renewal_requests_member_id", "member_id"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    member_id: Mapped[str] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    requested_plan_id: Mapped[str] = mapped_column(ForeignKey("membership_plans.id"), nullable=False)
    transfer_date: Mapped[date] = mapped_column(Date, nullable=False)
    transfer_proof_url: Mapped[str] = mapped_column(String(512), nullable=False)

    # pending -> approved | rejected (both terminal)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    processed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    member: Mapped["Member"] = relationship("Member", back_populates="renewal_requests", lazy="selectin")
    plan: Mapped["MembershipPlan"] = relationship("MembershipPlan", lazy="selectin")
