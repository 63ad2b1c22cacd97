"""
LinguaLens - Downloads
======================
The ``downloads`` table and streaming file retrieval with progress.
"""

from typing import Any, Callable, Optional
from uuid import UUID

import httpx
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import DownloadModel, DownloadStatus
from exceptions import ExternalServiceError
from logging_config import get_logger

logger = get_logger(__name__)

SIZE_UNITS = ("B", "KB", "MB", "GB")


def format_size(size: int) -> str:
    """1536 -> '1.5 KB'. Stops at GB."""
    value = float(size or 0)
    unit_index = 0
    while value >= 1024 and unit_index < len(SIZE_UNITS) - 1:
        value /= 1024
        unit_index += 1
    return f"{value:.1f} {SIZE_UNITS[unit_index]}"


def _as_uuid(value: Any) -> Optional[UUID]:
    try:
        return value if isinstance(value, UUID) else UUID(str(value))
    except (TypeError, ValueError):
        return None


async def fetch_file(
    url: str,
    on_progress: Optional[Callable[[float], None]] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> bytes:
    """
    Stream ``url`` into memory.

    ``on_progress`` receives a percentage after each chunk when the server
    sends ``content-length``.

    Raises:
        ExternalServiceError: "Download failed" on non-2xx or transport error
    """
    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=httpx.Timeout(60.0, connect=10.0), follow_redirects=True)
    chunks: list[bytes] = []
    try:
        async with client.stream("GET", url) as response:
            if not response.is_success:
                raise ExternalServiceError("Download failed", service="download")

            total = int(response.headers.get("content-length") or 0)
            loaded = 0
            async for chunk in response.aiter_bytes():
                chunks.append(chunk)
                loaded += len(chunk)
                if total and on_progress is not None:
                    on_progress(loaded / total * 100)
    except httpx.HTTPError as e:
        logger.error("download_failed", url=url, error=str(e))
        raise ExternalServiceError("Download failed", service="download", original_error=e) from e
    finally:
        if owns_client:
            await client.aclose()

    return b"".join(chunks)


class DownloadService:
    """Per-user download records."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_downloads(self, user_id: str) -> list[DownloadModel]:
        stmt = (
            select(DownloadModel)
            .where(DownloadModel.user_id == user_id)
            .order_by(DownloadModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_download(self, user_id: str, download_id: Any) -> Optional[DownloadModel]:
        download_uuid = _as_uuid(download_id)
        if download_uuid is None:
            return None
        stmt = select(DownloadModel).where(
            DownloadModel.id == download_uuid,
            DownloadModel.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_download(
        self,
        user_id: str,
        filename: str,
        url: str,
        size: int = 0,
        status: DownloadStatus = DownloadStatus.PENDING,
    ) -> DownloadModel:
        download = DownloadModel(
            user_id=user_id,
            filename=filename,
            url=url,
            size=size,
            status=status,
            progress=100.0 if status == DownloadStatus.COMPLETED else None,
        )
        self._session.add(download)
        await self._session.flush()
        logger.info("download_created", download_id=str(download.id), filename=filename, status=status.value)
        return download

    async def update_status(
        self,
        user_id: str,
        download_id: Any,
        status: DownloadStatus,
        progress: Optional[float] = None,
        error: Optional[str] = None,
    ) -> Optional[DownloadModel]:
        """Returns the updated row, or None if the user has no such download."""
        download = await self.get_download(user_id, download_id)
        if download is None:
            return None

        download.status = status
        if progress is not None:
            download.progress = progress
        elif status == DownloadStatus.COMPLETED:
            download.progress = 100.0
        download.error = error if status == DownloadStatus.ERROR else None

        await self._session.flush()
        logger.info("download_updated", download_id=str(download.id), status=status.value)
        return download

    async def delete_download(self, user_id: str, download_id: Any) -> bool:
        download_uuid = _as_uuid(download_id)
        if download_uuid is None:
            return False
        result = await self._session.execute(
            delete(DownloadModel).where(
                DownloadModel.id == download_uuid,
                DownloadModel.user_id == user_id,
            )
        )
        return result.rowcount > 0
