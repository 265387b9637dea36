"""Signed blob download endpoint.

Serves the URLs minted by :meth:`LocalBlobStore.build_blob_sas_url` with the
content type recorded at upload. The signature in the query string is the
only credential.
"""

from __future__ import annotations

import mimetypes
from typing import TYPE_CHECKING

from fastapi import APIRouter, Query, Request
from fastapi.responses import Response

from pdf_annotator_jobs.jobs.exceptions import (
    ForbiddenError,
    NotFoundError,
    TransportError,
)
from pdf_annotator_jobs.storage.blobs import LocalBlobStore


if TYPE_CHECKING:
    from pdf_annotator_jobs.web.app import Collaborators


__all__ = ["router"]

router = APIRouter(prefix="/api", tags=["blobs"])


@router.get("/blobs/{container}/{blob_name:path}")
async def download_blob(
    request: Request,
    container: str,
    blob_name: str,
    sp: str = Query(default=""),
    se: str = Query(default=""),
    sig: str = Query(default=""),
) -> Response:
    """Return a blob's bytes if the signed URL grants read access.

    Args:
        request: The incoming HTTP request.
        container: Container name.
        blob_name: Blob name, possibly containing ``/``.
        sp: Granted permissions.
        se: Expiry timestamp.
        sig: URL signature.

    Returns:
        The blob content.
    """
    collaborators: Collaborators = request.app.state.collaborators
    store = collaborators.blob_store
    if not isinstance(store, LocalBlobStore):
        msg = "Blob not found"
        raise NotFoundError(msg)

    if not store.verify_sas(
        container,
        blob_name,
        required="r",
        permissions=sp,
        expires_on=se,
        signature=sig,
    ):
        msg = "Invalid or expired signature"
        raise ForbiddenError(msg)

    try:
        data = await store.download_to_buffer(container, blob_name)
    except TransportError as exc:
        msg = "Blob not found"
        raise NotFoundError(msg) from exc

    media_type = (
        await store.get_content_type(container, blob_name)
        or mimetypes.guess_type(blob_name)[0]
        or "application/octet-stream"
    )
    return Response(content=data, media_type=media_type)
