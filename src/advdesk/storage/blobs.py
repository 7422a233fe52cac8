"""
Blob storage with signed-URL retrieval.

The local backend keeps files under a root directory using the same
tenant-prefixed paths as the document store and signs download URLs with
HMAC-SHA256.
"""

import asyncio
import hashlib
import hmac
import mimetypes
import re
import time
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import quote, urlencode

import structlog

from advdesk.config import get_settings
from advdesk.errors import InvalidArgument, NotFound

logger = structlog.get_logger(__name__)


def clean_segment(value: str) -> str:
    """Make a single path segment safe for storage."""
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", value.strip())
    cleaned = cleaned.strip(".")
    return cleaned or "object"


def guess_mime_type(path: str) -> str:
    mime_type, _ = mimetypes.guess_type(path)
    return mime_type or "application/octet-stream"


class BlobStore(Protocol):
    """Protocol for blob storage backends."""

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str: ...
    async def download(self, path: str) -> bytes: ...
    async def exists(self, path: str) -> bool: ...
    async def delete(self, path: str) -> None: ...
    def signed_url(self, path: str, ttl: int | None = None) -> tuple[str, datetime]: ...


class LocalBlobStore:
    """Filesystem blob store."""

    def __init__(
        self,
        root: Path | None = None,
        base_url: str | None = None,
        signing_secret: str | None = None,
        default_ttl: int | None = None,
    ):
        settings = get_settings()
        self.root = Path(root or settings.blob_root)
        self.base_url = (base_url or settings.blob_base_url).rstrip("/")
        self._secret = (signing_secret or settings.blob_signing_secret).encode()
        self.default_ttl = default_ttl or settings.signed_url_ttl

    def _resolve(self, path: str) -> Path:
        parts = PurePosixPath(path).parts
        if not parts or path.startswith("/") or any(p in ("..", ".") for p in parts):
            raise InvalidArgument(f"Caminho de arquivo inválido: {path}")
        return self.root.joinpath(*parts)

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        target = self._resolve(path)

        def write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(write)
        logger.debug("blob_uploaded", path=path, size=len(data))
        return path

    async def download(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise NotFound("Arquivo não encontrado.")
        return await asyncio.to_thread(target.read_bytes)

    async def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        if target.is_file():
            await asyncio.to_thread(target.unlink)

    # =========================================================================
    # Signed URLs
    # =========================================================================

    def _signature(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode()
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def signed_url(self, path: str, ttl: int | None = None) -> tuple[str, datetime]:
        """Return a download URL valid for `ttl` seconds and its expiry."""
        self._resolve(path)
        expires = int(time.time()) + (ttl or self.default_ttl)
        query = urlencode({"expires": expires, "signature": self._signature(path, expires)})
        url = f"{self.base_url}/{quote(path)}?{query}"
        return url, datetime.fromtimestamp(expires, tz=timezone.utc)

    def verify_signature(self, path: str, expires: int, signature: str) -> bool:
        if expires < int(time.time()):
            return False
        return hmac.compare_digest(self._signature(path, expires), signature)


@lru_cache()
def get_blob_store() -> LocalBlobStore:
    """Get blob store instance."""
    return LocalBlobStore()
