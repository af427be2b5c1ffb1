"""Screenshot storage: bytes in, public URL out.

Objects are written under UPLOAD_DIR and served by the app's /uploads mount.
"""
from __future__ import annotations

import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Optional

from designflow.core.config import settings

logger = logging.getLogger(__name__)


class LocalObjectStorage:
    def __init__(self, base_dir: str | Path | None = None, base_url: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.UPLOAD_DIR).expanduser().resolve()
        self.base_url = (base_url or settings.UPLOAD_BASE_URL).rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if self.base_dir not in path.parents:
            raise ValueError(f"Invalid object key: {key!r}")
        return path

    def put(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_bytes(data)
        tmp.replace(path)
        logger.info("Stored %d bytes (%s) at %s", len(data), content_type, key)
        return f"{self.base_url}/{key}"


def screenshot_key(user_id: str, media_type: str) -> str:
    ext = mimetypes.guess_extension(media_type) or ".bin"
    return f"screenshots/{user_id}/{uuid.uuid4().hex}{ext}"


_storage: Optional[LocalObjectStorage] = None


def get_storage() -> LocalObjectStorage:
    global _storage
    if _storage is None:
        _storage = LocalObjectStorage()
    return _storage
