"""
功能描述：系统状态 API
"""
from fastapi import APIRouter

from media_ingest import __version__
from media_ingest.core.config import settings

router = APIRouter()


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "version": __version__,
        "env": settings.app_env,
        "storage_backend": settings.storage_backend,
        "mock_storage": settings.storage_mock_mode,
    }
