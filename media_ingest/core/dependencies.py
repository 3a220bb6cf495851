"""
FastAPI Dependencies
"""
from media_ingest.cdn import CdnUrlResolver, get_cdn_resolver
from media_ingest.core.config import settings
from media_ingest.core.storage import get_storage_backend
from media_ingest.media.orchestrator import MediaOrchestrator


def get_resolver() -> CdnUrlResolver:
    return get_cdn_resolver()


def get_orchestrator() -> MediaOrchestrator:
    return MediaOrchestrator.from_settings(get_storage_backend(), settings)
