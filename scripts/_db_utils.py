from __future__ import annotations

import os
from contextlib import contextmanager

from sqlalchemy.orm import Session

from app.awass.db import build_engine, make_sessionmaker


def resolve_database_url(explicit: str | None = None) -> str:
    return (explicit or os.environ.get("DATABASE_URL") or "sqlite:///awass.db").strip()


@contextmanager
def script_session(db_url: str | None = None):
    """
    Standalone session for release/cron scripts, without building the Flask app.
    Commits on success; the engine is disposed on exit.
    """
    engine = build_engine(resolve_database_url(db_url))
    s: Session = make_sessionmaker(engine)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
