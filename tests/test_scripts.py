from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from app.awass.models import Admin, Base
from app.awass.modules.members.models import Member
from app.awass.modules.plans.models import MembershipPlan
from scripts import init_db, sweep_expired

from conftest import make_member


def _fresh_db(tmp_path) -> str:
    url = f"sqlite:///{tmp_path/'script.db'}"
    engine = create_engine(url)
    Base.metadata.create_all(bind=engine)
    engine.dispose()
    return url


def test_seed_only_is_idempotent(tmp_path, monkeypatch):
    url = _fresh_db(tmp_path)
    monkeypatch.setenv("ADMIN_PIN", "2580")

    init_db.seed_only(database_url=url)
    init_db.seed_only(database_url=url)

    engine = create_engine(url)
    with Session(engine) as s:
        assert s.query(MembershipPlan).count() == 4
        admins = s.query(Admin).all()
        assert [a.role for a in admins] == ["super_admin"]
    engine.dispose()


def test_seed_only_without_pin_creates_no_admin(tmp_path, monkeypatch):
    url = _fresh_db(tmp_path)
    monkeypatch.delenv("ADMIN_PIN", raising=False)
    init_db.seed_only(database_url=url)

    engine = create_engine(url)
    with Session(engine) as s:
        assert s.query(Admin).count() == 0
    engine.dispose()


def test_sweep_script(tmp_path, monkeypatch, capsys):
    url = _fresh_db(tmp_path)
    init_db.seed_only(database_url=url)
    engine = create_engine(url)
    with Session(engine) as s:
        lapsed = make_member(s, active_until=date(2024, 4, 30)).id
        current = make_member(s, active_until=date(2024, 5, 1)).id
        s.commit()

    assert sweep_expired.main(["--database-url", url, "--today", "2024-05-01"]) == 0
    assert "Expired 1 member(s)." in capsys.readouterr().out

    with Session(engine) as s:
        assert s.get(Member, lapsed).status == "expired"
        assert s.get(Member, current).status == "active"
    engine.dispose()


def test_sweep_script_bad_date(tmp_path):
    url = _fresh_db(tmp_path)
    assert sweep_expired.main(["--database-url", url, "--today", "01/05/2024"]) == 2


def test_release_migrates_and_seeds(tmp_path, monkeypatch):
    from scripts import release

    url = f"sqlite:///{tmp_path/'release.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("ADMIN_PIN", "1357")

    release.run_release()
    release.run_release()

    engine = create_engine(url)
    with Session(engine) as s:
        assert [p.id for p in s.query(MembershipPlan).order_by(MembershipPlan.duration_months)] == [
            "monthly",
            "quarterly",
            "semiannual",
            "annual",
        ]
        assert s.query(Admin).count() == 1
    engine.dispose()


def test_release_requires_database_url(monkeypatch):
    from scripts import release

    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        release.run_release()
