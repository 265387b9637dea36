"""Filesystem-backed blob store with HMAC-signed URLs.

Each container is a directory under ``root_dir``; blob names may contain
``/`` and map to nested paths. The content type given at upload is kept in
a sidecar file under ``root_dir/.meta``. Signed URLs point at the service's own
``/api/blobs/{container}/{blob}`` route and carry three query parameters:

- ``sp``: granted permissions (``r`` read, ``c`` create, ``w`` write)
- ``se``: ISO-8601 expiry
- ``sig``: urlsafe base64 HMAC-SHA256 over permissions, expiry and path
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
from datetime import UTC, datetime, timedelta
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING
from urllib.parse import quote, urlencode

import structlog

from pdf_annotator_jobs.jobs.exceptions import TransportError
from pdf_annotator_jobs.storage.contracts import SasUrl


if TYPE_CHECKING:
    from pdf_annotator_jobs.config import StorageConfig


__all__ = ["LocalBlobStore"]


_VALID_PERMISSIONS = frozenset("rcw")

_META_DIR = ".meta"


class LocalBlobStore:
    """Blob store writing containers as directories on local disk.

    Example:
        ```python
        store = LocalBlobStore.from_config(settings.storage)
        await store.upload_buffer("pdf-export", "a@b.c/doc/job.pdf", data)
        sas = store.build_blob_sas_url("pdf-export", "a@b.c/doc/job.pdf", "r", 60)
        ```
    """

    def __init__(
        self,
        root_dir: Path | str,
        *,
        public_base_url: str,
        signing_secret: str,
    ) -> None:
        self._root = Path(root_dir)
        self._base_url = public_base_url.rstrip("/")
        self._secret = signing_secret.encode("utf-8")
        self._logger = structlog.get_logger(__name__)

    @classmethod
    def from_config(cls, config: StorageConfig) -> LocalBlobStore:
        """Create a store from the ``storage`` settings section."""
        return cls(
            config.root_dir,
            public_base_url=config.public_base_url,
            signing_secret=config.signing_secret,
        )

    # -------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------

    def _blob_path(self, container: str, blob_name: str) -> Path:
        """Resolve a blob to its file, refusing names that escape the root."""
        parts = PurePosixPath(blob_name).parts
        if (
            not container
            or "/" in container
            or container.startswith(".")
            or not parts
            or PurePosixPath(blob_name).is_absolute()
            or any(part in {".", ".."} for part in parts)
        ):
            msg = f"Invalid blob name: {container}/{blob_name}"
            raise TransportError(msg, operation="resolve")
        return self._root.joinpath(container, *parts)

    def _content_type_path(self, container: str, blob_name: str) -> Path:
        """Return the sidecar file holding a blob's content type."""
        blob_path = self._blob_path(container, blob_name)
        relative = blob_path.relative_to(self._root)
        return self._root / _META_DIR / relative.parent / f"{relative.name}.content-type"

    # -------------------------------------------------------------------
    # Bytes
    # -------------------------------------------------------------------

    async def download_to_buffer(self, container: str, blob_name: str) -> bytes:
        """Read a blob into memory.

        Raises:
            TransportError: The blob does not exist or cannot be read.
        """
        path = self._blob_path(container, blob_name)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            msg = f"Blob not found: {container}/{blob_name}"
            raise TransportError(msg, operation="download") from exc
        except OSError as exc:
            self._logger.warning(
                "blob_download_failed",
                container=container,
                blob_name=blob_name,
                error=str(exc),
            )
            msg = f"Failed to download blob: {container}/{blob_name}"
            raise TransportError(msg, operation="download") from exc

    async def upload_buffer(
        self,
        container: str,
        blob_name: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Create or overwrite a blob.

        Raises:
            TransportError: The blob cannot be written.
        """
        path = self._blob_path(container, blob_name)
        meta_path = self._content_type_path(container, blob_name)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            meta_path.parent.mkdir(parents=True, exist_ok=True)
            meta_path.write_text(content_type, encoding="utf-8")

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            self._logger.warning(
                "blob_upload_failed",
                container=container,
                blob_name=blob_name,
                error=str(exc),
            )
            msg = f"Failed to upload blob: {container}/{blob_name}"
            raise TransportError(msg, operation="upload") from exc

        self._logger.debug(
            "blob_uploaded",
            container=container,
            blob_name=blob_name,
            size=len(data),
            content_type=content_type,
        )

    async def exists(self, container: str, blob_name: str) -> bool:
        """Return True if the blob exists."""
        path = self._blob_path(container, blob_name)
        return await asyncio.to_thread(path.is_file)

    async def get_content_type(self, container: str, blob_name: str) -> str | None:
        """Return the content type recorded at upload, or None if unknown."""
        meta_path = self._content_type_path(container, blob_name)
        try:
            content_type = await asyncio.to_thread(meta_path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            self._logger.warning(
                "blob_content_type_unreadable",
                container=container,
                blob_name=blob_name,
                error=str(exc),
            )
            return None
        return content_type.strip() or None

    # -------------------------------------------------------------------
    # Signed URLs
    # -------------------------------------------------------------------

    def _sign(
        self,
        container: str,
        blob_name: str,
        permissions: str,
        expires_on: str,
    ) -> str:
        string_to_sign = f"{permissions}\n{expires_on}\n/{container}/{blob_name}"
        digest = hmac.new(
            self._secret,
            string_to_sign.encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")

    def build_blob_sas_url(
        self,
        container: str,
        blob_name: str,
        permissions: str,
        ttl_minutes: int = 30,
    ) -> SasUrl:
        """Mint a signed URL for one blob.

        Args:
            container: Container name.
            blob_name: Blob name inside the container.
            permissions: Granted permissions, a combination of ``r``, ``c``
                and ``w``.
            ttl_minutes: Minutes until the URL expires.

        Returns:
            The URL and its ISO-8601 expiry.

        Raises:
            ValueError: ``permissions`` is empty or contains unknown letters.
        """
        if not permissions or not set(permissions) <= _VALID_PERMISSIONS:
            msg = f"Unsupported SAS permissions: {permissions!r}"
            raise ValueError(msg)

        self._blob_path(container, blob_name)
        expires = datetime.now(UTC) + timedelta(minutes=ttl_minutes)
        expires_on = expires.isoformat(timespec="seconds").replace("+00:00", "Z")
        query = urlencode(
            {
                "sp": permissions,
                "se": expires_on,
                "sig": self._sign(container, blob_name, permissions, expires_on),
            },
        )
        path = f"/api/blobs/{quote(container)}/{quote(blob_name, safe='/@')}"
        return SasUrl(url=f"{self._base_url}{path}?{query}", expires_on=expires_on)

    def verify_sas(  # noqa: PLR0913
        self,
        container: str,
        blob_name: str,
        *,
        required: str,
        permissions: str,
        expires_on: str,
        signature: str,
    ) -> bool:
        """Check a signed URL's query parameters.

        Args:
            container: Container from the URL path.
            blob_name: Blob name from the URL path.
            required: Permission the caller needs (e.g. ``"r"``).
            permissions: ``sp`` query parameter.
            expires_on: ``se`` query parameter.
            signature: ``sig`` query parameter.

        Returns:
            True if the signature matches, has not expired and grants
            ``required``.
        """
        if not set(required) <= set(permissions):
            return False

        try:
            expires = datetime.fromisoformat(expires_on.replace("Z", "+00:00"))
        except ValueError:
            return False
        if expires.tzinfo is None or expires <= datetime.now(UTC):
            return False

        expected = self._sign(container, blob_name, permissions, expires_on)
        return hmac.compare_digest(expected, signature)
