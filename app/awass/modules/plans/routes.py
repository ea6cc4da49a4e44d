from __future__ import annotations

from flask import Blueprint

from app.awass.db import db_session
from app.awass.modules.plans.service import get_plan, list_active_plans, plan_to_dict
from app.awass.responses import ok

bp = Blueprint("plans", __name__)


@bp.get("/plans")
def plans_list():
    s = db_session()
    return ok([plan_to_dict(p) for p in list_active_plans(s)])


@bp.get("/plans/<plan_id>")
def plan_detail(plan_id: str):
    s = db_session()
    return ok(plan_to_dict(get_plan(s, plan_id)))
