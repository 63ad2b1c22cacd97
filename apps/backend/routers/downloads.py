"""
Downloads Router
================
The signed-in user's download history.

Endpoints:
- GET    /api/v1/downloads        - List, newest first
- POST   /api/v1/downloads        - Record a download (pending)
- PATCH  /api/v1/downloads/{id}   - Update status and progress
- DELETE /api/v1/downloads/{id}   - Remove a record
"""

from typing import List

from fastapi import APIRouter, Depends

from database.models import DownloadModel, DownloadStatus
from exceptions import NotFoundError
from logging_config import get_logger
from routers.deps import get_current_user, get_download_service
from schemas import AuthUser, CreateDownloadRequest, DownloadResponse, UpdateDownloadRequest
from services.downloads import DownloadService, format_size

logger = get_logger(__name__)

router = APIRouter()


def _to_response(download: DownloadModel) -> DownloadResponse:
    return DownloadResponse(**download.to_dict(), size_label=format_size(download.size))


@router.get("", response_model=List[DownloadResponse])
async def list_downloads(
    user: AuthUser = Depends(get_current_user),
    downloads: DownloadService = Depends(get_download_service),
):
    return [_to_response(download) for download in await downloads.list_downloads(user.id)]


@router.post("", response_model=DownloadResponse, status_code=201)
async def create_download(
    request: CreateDownloadRequest,
    user: AuthUser = Depends(get_current_user),
    downloads: DownloadService = Depends(get_download_service),
):
    download = await downloads.create_download(
        user_id=user.id,
        filename=request.filename,
        url=request.url,
        size=request.size,
    )
    return _to_response(download)


@router.patch("/{download_id}", response_model=DownloadResponse)
async def update_download(
    download_id: str,
    request: UpdateDownloadRequest,
    user: AuthUser = Depends(get_current_user),
    downloads: DownloadService = Depends(get_download_service),
):
    """``error`` is kept only when the status is ``error``."""
    download = await downloads.update_status(
        user.id,
        download_id,
        DownloadStatus(request.status),
        progress=request.progress,
        error=request.error,
    )
    if download is None:
        raise NotFoundError("download", download_id)
    return _to_response(download)


@router.delete("/{download_id}", status_code=204)
async def delete_download(
    download_id: str,
    user: AuthUser = Depends(get_current_user),
    downloads: DownloadService = Depends(get_download_service),
):
    if not await downloads.delete_download(user.id, download_id):
        raise NotFoundError("download", download_id)
