"""
File routes: case-file upload, signed download links and blob delivery.
"""

from pathlib import PurePosixPath

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response

from advdesk.api.deps import get_auth, get_blobs, get_orchestrator
from advdesk.errors import InvalidArgument, PermissionDenied
from advdesk.models.api import DownloadUrlRequest, DownloadUrlResponse, UploadResponse
from advdesk.models.tenant import AuthContext
from advdesk.pipeline.orchestrator import PipelineOrchestrator
from advdesk.services.attachments import media_type
from advdesk.storage.blobs import LocalBlobStore, guess_mime_type

router = APIRouter()


@router.post("/uploads", response_model=UploadResponse, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> UploadResponse:
    """Store a case file under the caller's tenant."""
    if not file.filename:
        raise InvalidArgument("Arquivo sem nome.")
    content = await file.read()
    path = await orchestrator.upload_attachment(auth, file.filename, content, file.content_type)
    return UploadResponse(path=path, size=len(content), mime_type=media_type(path)[0])


@router.post("/downloads", response_model=DownloadUrlResponse)
async def get_download_url(
    request: DownloadUrlRequest,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> DownloadUrlResponse:
    url, expires_at = await orchestrator.get_download_url(auth, request.path)
    return DownloadUrlResponse(url=url, expires_at=expires_at)


@router.get("/blobs/{path:path}")
async def download_blob(
    path: str,
    expires: int = Query(...),
    signature: str = Query(...),
    blobs: LocalBlobStore = Depends(get_blobs),
) -> Response:
    """Serve a blob addressed by a signed URL."""
    if not blobs.verify_signature(path, expires, signature):
        raise PermissionDenied("Link de download inválido ou expirado.")
    content = await blobs.download(path)
    filename = PurePosixPath(path).name
    return Response(
        content=content,
        media_type=guess_mime_type(path),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
