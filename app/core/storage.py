# app/core/storage.py
import os
import uuid
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path

import structlog
from google.cloud import storage as gcs

from app.core.config import Settings, get_settings
from app.core.errors import UpstreamError
from app.core.images import OUTPUT_CONTENT_TYPE, OUTPUT_EXTENSION

log = structlog.get_logger(__name__)


def new_attachment_name() -> str:
    return f"{uuid.uuid4().hex}{OUTPUT_EXTENSION}"


class AttachmentStore(ABC):
    """Opaque name -> image bytes."""

    @abstractmethod
    def save(self, name: str, data: bytes) -> None: ...

    @abstractmethod
    def read(self, name: str) -> bytes: ...

    @abstractmethod
    def delete(self, name: str) -> None: ...

    def store(self, data: bytes) -> str:
        name = new_attachment_name()
        self.save(name, data)
        return name


class LocalAttachmentStore(AttachmentStore):
    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        # names are generated, never caller-supplied paths
        if not name or os.sep in name or "/" in name or name in {".", ".."}:
            raise ValueError(f"invalid attachment name: {name!r}")
        return self.root / name

    def save(self, name: str, data: bytes) -> None:
        self._path(name).write_bytes(data)

    def read(self, name: str) -> bytes:
        return self._path(name).read_bytes()

    def delete(self, name: str) -> None:
        self._path(name).unlink()


class GCSAttachmentStore(AttachmentStore):
    def __init__(self, bucket_name: str, client: gcs.Client | None = None):
        self.bucket_name = bucket_name
        self._client = client or gcs.Client()
        self._bucket = self._client.bucket(bucket_name)

    def save(self, name: str, data: bytes) -> None:
        self._bucket.blob(name).upload_from_string(data, content_type=OUTPUT_CONTENT_TYPE)

    def read(self, name: str) -> bytes:
        return self._bucket.blob(name).download_as_bytes()

    def delete(self, name: str) -> None:
        self._bucket.blob(name).delete()


def build_attachment_store(settings: Settings, gcs_client: gcs.Client | None = None) -> AttachmentStore:
    if settings.uses_bucket:
        log.info("storage.backend_selected", backend="gcs", bucket=settings.GCS_BUCKET_NAME)
        return GCSAttachmentStore(settings.GCS_BUCKET_NAME, client=gcs_client)
    log.info("storage.backend_selected", backend="local", root=settings.UPLOAD_DIR)
    return LocalAttachmentStore(settings.UPLOAD_DIR)


@lru_cache
def get_attachment_store() -> AttachmentStore:
    return build_attachment_store(get_settings())


def store_all(store: AttachmentStore, images: list[bytes]) -> list[str]:
    names: list[str] = []
    try:
        for data in images:
            names.append(store.store(data))
    except Exception as exc:
        delete_best_effort(store, names)
        raise UpstreamError(f"Could not store attachment: {exc}") from exc
    return names


def delete_best_effort(store: AttachmentStore, names: list[str]) -> None:
    """Delete each attachment; failures are logged and skipped."""
    for name in names:
        try:
            store.delete(name)
        except Exception as exc:
            log.warning("storage.delete_failed", attachment=name, error=str(exc))
        else:
            log.info("storage.deleted", attachment=name)
