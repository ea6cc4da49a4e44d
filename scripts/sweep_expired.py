"""
Mark active members whose subscription has lapsed as expired.

Meant for a daily scheduled job. Safe to re-run: members already expired,
pending or rejected are never touched.

Usage:
  python scripts/sweep_expired.py
  python scripts/sweep_expired.py --today 2024-05-01
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.awass.modules.members.service import sweep_expired
from app.awass.utils import parse_date
from scripts._db_utils import script_session


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Expire members whose active_until has passed.")
    parser.add_argument("--database-url", help="Defaults to $DATABASE_URL")
    parser.add_argument("--today", help="Override today's date (YYYY-MM-DD)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        today = parse_date(args.today)
    except ValueError:
        print(f"ERROR: --today must be YYYY-MM-DD, got {args.today!r}", file=sys.stderr)
        return 2

    with script_session(args.database_url) as s:
        count = sweep_expired(s, today=today)

    print(f"Expired {count} member(s).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
