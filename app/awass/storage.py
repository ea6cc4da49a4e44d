from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from werkzeug.datastructures import FileStorage

from app.awass.errors import ValidationError


class StorageError(RuntimeError):
    status_code = 500


# Proof-of-transfer images only.
ALLOWED_PROOF_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}
MAX_PROOF_BYTES = 5 * 1024 * 1024
PUBLIC_PREFIX = "/uploads/"


class Storage:
    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> BinaryIO:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path

    def _path(self, key: str) -> Path:
        safe_key = key.lstrip("/").replace("\\", "/")
        p = (self.root / safe_key).resolve()
        if self.root.resolve() not in p.parents:
            raise StorageError(f"Storage key escapes root: {key!r}")
        return p

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        p = self._path(key)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

    def open(self, key: str) -> BinaryIO:
        p = self._path(key)
        return p.open("rb")

    def exists(self, key: str) -> bool:
        try:
            return self._path(key).is_file()
        except StorageError:
            return False


@dataclass(frozen=True)
class S3Storage(Storage):
    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str
    prefix: str = "uploads/"

    def _client(self):
        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        extra: dict[str, object] = {}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self._client().put_object(Bucket=self.bucket, Key=self.prefix + key, Body=data, **extra)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to upload {key} to S3: {e}") from e

    def open(self, key: str) -> BinaryIO:
        obj = self._client().get_object(Bucket=self.bucket, Key=self.prefix + key)
        return obj["Body"]  # type: ignore[return-value]

    def exists(self, key: str) -> bool:
        try:
            self._client().head_object(Bucket=self.bucket, Key=self.prefix + key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(f"Failed to look up {key} in S3: {e}") from e
        return True


def storage_from_config(config: dict) -> Storage:
    backend = (config.get("STORAGE_BACKEND") or "local").strip().lower()
    if backend == "s3":
        return S3Storage(
            endpoint=(config.get("S3_ENDPOINT") or "").strip(),
            region=(config.get("S3_REGION") or "ap-southeast-1").strip(),
            bucket=(config.get("S3_BUCKET") or "").strip(),
            access_key_id=(config.get("S3_ACCESS_KEY_ID") or "").strip(),
            secret_access_key=(config.get("S3_SECRET_ACCESS_KEY") or "").strip(),
        )
    # default local
    root = Path(config.get("UPLOAD_DIR") or "uploads").resolve()
    return LocalStorage(root=root)


def validate_proof_upload(file: FileStorage | None, data: bytes) -> str:
    """Check type and size of a proof image; returns the file extension to store it under."""
    if file is None or not file.filename:
        raise ValidationError("Bukti transfer wajib dilampirkan")
    ext = ALLOWED_PROOF_TYPES.get((file.mimetype or "").lower())
    if ext is None:
        raise ValidationError("Invalid file type. Only JPEG, PNG, GIF, and WebP are allowed.")
    if not data:
        raise ValidationError("Bukti transfer kosong")
    if len(data) > MAX_PROOF_BYTES:
        raise ValidationError("File too large. Maximum size is 5MB.")
    return ext


def save_transfer_proof(storage: Storage, file: FileStorage | None) -> str:
    """
    Persist an uploaded proof image and return its public reference (/uploads/<key>).
    The write is not part of any DB transaction; a later DB failure leaves an orphaned file.
    """
    data = file.read() if file is not None else b""
    ext = validate_proof_upload(file, data)
    key = f"{uuid.uuid4().hex}{ext}"
    storage.put_bytes(key, data, content_type=file.mimetype)  # type: ignore[union-attr]
    return PUBLIC_PREFIX + key


def content_type_for_key(key: str) -> str:
    suffix = Path(key).suffix.lower()
    for mime, ext in ALLOWED_PROOF_TYPES.items():
        if ext == suffix:
            return mime
    return "application/octet-stream"
