from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.awass.models import Base, new_id

if TYPE_CHECKING:
    from app.awass.modules.plans.models import MembershipPlan
    from app.awass.modules.renewals.models import RenewalRequest
    from app.awass.modules.transactions.models import Transaction


MEMBER_TYPES = ("dealer", "ahass")
MEMBER_STATUSES = ("pending", "active", "expired", "rejected")


class Member(Base):
    __tablename__ = "members"
    __table_args__ = (
        Index("idx_members_status", "status"),
        Index("idx_members_active_until", "active_until"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)

    member_type: Mapped[str] = mapped_column(String(16), nullable=False)  # dealer, ahass
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    ahass_number: Mapped[str] = mapped_column(String(64), nullable=False)
    dealer_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    dealer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    dealer_city: Mapped[str] = mapped_column(String(128), nullable=False)
    pic_phone_number: Mapped[str] = mapped_column(String(32), nullable=False)

    membership_plan_id: Mapped[str | None] = mapped_column(ForeignKey("membership_plans.id"), nullable=True)
    active_until: Mapped[date] = mapped_column(Date, nullable=False)
    # pending -> active -> expired; pending -> rejected
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")

    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    plan: Mapped["MembershipPlan | None"] = relationship("MembershipPlan", lazy="selectin")
    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction",
        back_populates="member",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Transaction.created_at.desc()",
    )
    renewal_requests: Mapped[list["RenewalRequest"]] = relationship(
        "RenewalRequest",
        back_populates="member",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
