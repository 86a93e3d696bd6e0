"""
Blob Storage

Filesystem-backed object store for course covers, lesson videos and
materials. Objects are written under ``UPLOAD_DIR`` and served by the
``/static`` mount.

Keys follow ``{namespace}/{timestamp}_{filename}``.
"""

import asyncio
import logging
import os
import re
import time
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from fastapi import HTTPException, status

from app.core.config import settings


logger = logging.getLogger(__name__)

MB = 1024 * 1024


@dataclass(frozen=True)
class UploadPolicy:
    """Size and content-type limits for one kind of upload."""
    max_size: int
    accepted_types: Tuple[str, ...]
    label: str

    def check(self, size: int, content_type: Optional[str]) -> None:
        if size > self.max_size:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{self.label} exceeds the {self.max_size // MB}MB limit",
            )
        if self.accepted_types and content_type not in self.accepted_types:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported {self.label.lower()} type: {content_type}",
            )


IMAGE_POLICY = UploadPolicy(
    max_size=10 * MB,
    accepted_types=("image/jpeg", "image/png", "image/gif", "image/webp"),
    label="Image",
)

VIDEO_POLICY = UploadPolicy(
    max_size=500 * MB,
    accepted_types=("video/mp4", "video/webm", "video/ogg"),
    label="Video",
)

MATERIAL_POLICY = UploadPolicy(
    max_size=100 * MB,
    accepted_types=(),
    label="Material",
)


@dataclass(frozen=True)
class StoredBlob:
    """Result of an upload."""
    key: str
    url: str
    size: int
    content_type: Optional[str]


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str) -> str:
    """Strip directories and characters that don't belong in a key."""
    name = os.path.basename(filename.replace("\\", "/")).strip()
    name = _UNSAFE_CHARS.sub("_", name)
    return name or "file"


class BlobStore:
    """
    Local object store.

    Args:
        root: Directory objects are written to.
        url_prefix: Public URL prefix the root is served under.
    """

    def __init__(self, root: str, url_prefix: str):
        self._root = Path(root)
        self._url_prefix = url_prefix.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def build_key(self, namespace: str, filename: str, timestamp: Optional[int] = None) -> str:
        if timestamp is None:
            timestamp = int(time.time() * 1000)
        return f"{namespace.strip('/')}/{timestamp}_{safe_filename(filename)}"

    def url_for(self, key: str) -> str:
        return f"{self._url_prefix}/{key}"

    def _path_for(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root.resolve() not in path.parents:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid storage key",
            )
        return path

    async def upload(
        self,
        namespace: str,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
        policy: Optional[UploadPolicy] = None,
    ) -> StoredBlob:
        """
        Store ``data`` and return its retrievable URL.

        Raises:
            HTTPException: 400 if the upload violates ``policy``.
        """
        if policy is not None:
            policy.check(len(data), content_type)

        key = self.build_key(namespace, filename)
        path = self._path_for(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.get_running_loop().run_in_executor(None, _write)
        logger.info("Stored blob %s (%d bytes)", key, len(data))

        return StoredBlob(
            key=key,
            url=self.url_for(key),
            size=len(data),
            content_type=content_type,
        )


@lru_cache
def get_blob_store() -> BlobStore:
    """FastAPI dependency returning the configured blob store."""
    prefix = settings.STATIC_URL_PREFIX.rstrip("/")
    return BlobStore(root=settings.UPLOAD_DIR, url_prefix=f"{prefix}/uploads")
