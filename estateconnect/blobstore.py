# Local-disk blob store for listing images and ID documents.
# Files are private: they are only served back through signed, expiring URLs (see routes/uploads.py).
from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from uuid import uuid4

import jwt

logger = logging.getLogger("estateconnect.uploads")


class BlobAccessDenied(Exception):
    """Missing, expired or foreign signature on a blob URL."""


@dataclass(frozen=True)
class StoredBlob:
    path: str  # relative key, "<owner_id>/<uuid>.<ext>"
    url: str


class LocalBlobStore:
    algorithm = "HS256"

    def __init__(
        self,
        root: str,
        secret: str,
        url_ttl_seconds: int,
        public_base: str = "/uploads",
    ) -> None:
        self.root = os.path.abspath(root)
        self.secret = secret
        self.url_ttl_seconds = url_ttl_seconds
        self.public_base = public_base.rstrip("/")
        os.makedirs(self.root, exist_ok=True)

    def put(self, owner_id: str, data: bytes, ext: str) -> StoredBlob:
        """Write bytes under a fresh name in the owner's folder; never overwrites."""
        rel_path = f"{owner_id}/{uuid4()}.{ext.lstrip('.')}"
        disk_path = self.disk_path(rel_path)
        os.makedirs(os.path.dirname(disk_path), exist_ok=True)
        with open(disk_path, "xb") as out:
            out.write(data)
        logger.info("blob.stored", extra={"path": rel_path, "size": len(data)})
        return StoredBlob(path=rel_path, url=self.signed_url(rel_path))

    def disk_path(self, rel_path: str) -> str:
        disk_path = os.path.abspath(os.path.join(self.root, *rel_path.split("/")))
        if os.path.commonpath([self.root, disk_path]) != self.root:
            raise BlobAccessDenied(rel_path)
        return disk_path

    def signed_url(self, rel_path: str) -> str:
        expires = int(time.time()) + self.url_ttl_seconds
        token = jwt.encode({"path": rel_path, "exp": expires}, self.secret, algorithm=self.algorithm)
        return f"{self.public_base}/{rel_path}?token={token}"

    def open_signed(self, rel_path: str, token: str) -> str:
        """Disk path for `rel_path` when `token` was issued for exactly that path and has not expired."""
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError as exc:
            raise BlobAccessDenied(rel_path) from exc
        if claims.get("path") != rel_path:
            raise BlobAccessDenied(rel_path)
        return self.disk_path(rel_path)
