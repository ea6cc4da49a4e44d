import os
from dataclasses import dataclass
from datetime import timedelta

PRODUCTION_ENVS = ("prod", "production")


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    # proof-of-transfer storage
    storage_backend: str
    upload_dir: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    # admin bootstrap
    admin_seed_secret: str
    admin_session_hours: int

    @property
    def is_production(self) -> bool:
        return self.env.lower() in PRODUCTION_ENVS

    def problems(self) -> list[str]:
        """Settings that must not reach production as-is."""
        if not self.is_production:
            return []
        found = []
        if not self.database_url or self.database_url.startswith("sqlite"):
            found.append("DATABASE_URL must be Postgres in production (not sqlite).")
        if self.secret_key in ("", "change-me"):
            found.append("SECRET_KEY must be set to a strong value in production (not default).")
        return found


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getint(name: str, default: int) -> int:
    raw = _getenv(name)
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///awass.db"),
        storage_backend=_getenv("STORAGE_BACKEND", "local").lower(),
        upload_dir=_getenv("UPLOAD_DIR", "uploads"),
        s3_endpoint=_getenv("S3_ENDPOINT"),
        s3_region=_getenv("S3_REGION", "ap-southeast-1"),
        s3_bucket=_getenv("S3_BUCKET"),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID"),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY"),
        admin_seed_secret=_getenv("ADMIN_SEED_SECRET"),
        admin_session_hours=_getint("ADMIN_SESSION_HOURS", 8),
    )


def load_config(s: Settings | None = None) -> dict:
    s = s or load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "UPLOAD_DIR": s.upload_dir,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "ADMIN_SEED_SECRET": s.admin_seed_secret,
        # admin session cookie
        "PERMANENT_SESSION_LIFETIME": timedelta(hours=s.admin_session_hours),
        "SESSION_REFRESH_EACH_REQUEST": True,
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": s.is_production,
        # proof images are capped at 5MB; leave headroom for the other form fields
        "MAX_CONTENT_LENGTH": 6 * 1024 * 1024,
    }
