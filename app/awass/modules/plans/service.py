from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from app.awass.errors import PlanNotFound
from app.awass.modules.plans.models import MembershipPlan
from app.awass.utils import format_rupiah

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


# Reference catalog; prices are in minor units (sen).
DEFAULT_PLANS = (
    {"id": "monthly", "label": "Bulanan", "duration": "1 Bulan", "duration_months": 1, "price_in_cents": 9_000_000},
    {"id": "quarterly", "label": "Triwulan", "duration": "3 Bulan", "duration_months": 3, "price_in_cents": 25_000_000},
    {"id": "semiannual", "label": "Semester", "duration": "6 Bulan", "duration_months": 6, "price_in_cents": 55_000_000},
    {"id": "annual", "label": "Tahunan", "duration": "1 Tahun", "duration_months": 12, "price_in_cents": 75_000_000},
)


def list_active_plans(s: "Session") -> list[MembershipPlan]:
    return (
        s.query(MembershipPlan)
        .filter(MembershipPlan.is_active.is_(True))
        .order_by(MembershipPlan.duration_months.asc(), MembershipPlan.id.asc())
        .all()
    )


def get_plan(s: "Session", plan_id: str | None) -> MembershipPlan:
    plan = s.get(MembershipPlan, plan_id) if plan_id else None
    if not plan:
        raise PlanNotFound(plan_id)
    return plan


def seed_default_plans(s: "Session") -> list[str]:
    """
    Insert the reference plans that are missing. Existing rows are never touched,
    so this is safe to run on every boot. Returns the ids that were created.
    """
    created: list[str] = []
    for row in DEFAULT_PLANS:
        if s.get(MembershipPlan, row["id"]) is not None:
            continue
        s.add(MembershipPlan(is_active=True, **row))
        created.append(row["id"])
        logger.info("Seeded membership plan: %s", row["label"])
    if created:
        s.flush()
    return created


def plan_to_dict(plan: MembershipPlan) -> dict[str, Any]:
    return {
        "id": plan.id,
        "label": plan.label,
        "duration": plan.duration,
        "durationMonths": plan.duration_months,
        "price": format_rupiah(plan.price_in_cents),
        "priceInCents": plan.price_in_cents,
        "isActive": plan.is_active,
    }
