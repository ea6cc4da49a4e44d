import os
import sys
from datetime import datetime
from pathlib import Path

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.awass.auth import hash_pin
from app.awass.models import Admin
from app.awass.modules.plans.service import seed_default_plans
from scripts._db_utils import script_session


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed membership plans and the first super_admin in an idempotent way.
    Existing plans are left untouched; no admin is created once any admin exists.
    """
    admin_pin = (os.environ.get("ADMIN_PIN") or "").strip()

    # Direct engine/session so this can run in release without importing app.wsgi.
    with script_session(database_url) as s:
        created = seed_default_plans(s)

        admin_created = False
        if admin_pin and s.query(Admin.id).first() is None:
            s.add(Admin(pin_hash=hash_pin(admin_pin), role="super_admin", created_at=datetime.utcnow()))
            admin_created = True

    print("Initialized database (seed_only).")
    print(f"Plans created: {', '.join(created) if created else '(none, already seeded)'}")
    if admin_created:
        print("Super admin created (PIN from ADMIN_PIN).")
    elif not admin_pin:
        print("ADMIN_PIN not set; no admin seeded. Use POST /api/admin/seed-pin instead.")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
