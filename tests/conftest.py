"""
Pytest Fixtures for media-ingest Tests
"""
import os
from io import BytesIO
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image

# 导入 app/settings 之前设置测试环境：不写日志文件，使用内存存储
os.environ["LOG_DIR"] = ""
os.environ["LOG_FORMAT"] = "text"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["STORAGE_MOCK_MODE"] = "false"

from media_ingest.cdn import CdnEndpoints, CdnUrlResolver
from media_ingest.core.dependencies import get_orchestrator, get_resolver
from media_ingest.core.storage import InMemoryStorageBackend
from media_ingest.main import app
from media_ingest.media import (
    ImageProcessingOptions,
    ImageTranscoder,
    MediaOrchestrator,
    OrchestratorOptions,
    ThumbnailGenerator,
)

MOCK_STORAGE_URL = "http://127.0.0.1:10000/devstoreaccount1"

TEST_ENDPOINTS = CdnEndpoints(
    documents="https://documents.test",
    images="https://images.test",
    videos="https://videos.test",
    media="https://media.test",
    music="https://music.test",
)

EXIF_ORIENTATION = 0x0112


def make_image_bytes(
    width: int,
    height: int,
    fmt: str = "JPEG",
    *,
    mode: str = "RGB",
    color=(200, 30, 30),
    orientation: Optional[int] = None,
    exif_tags: Optional[dict] = None,
) -> bytes:
    """生成测试图片；orientation 写入 EXIF 方向标签"""
    im = Image.new(mode, (width, height), color)
    save_kwargs = {}
    if orientation is not None or exif_tags:
        exif = Image.Exif()
        for tag, value in (exif_tags or {}).items():
            exif[tag] = value
        if orientation is not None:
            exif[EXIF_ORIENTATION] = orientation
        save_kwargs["exif"] = exif.tobytes()
    out = BytesIO()
    im.save(out, format=fmt, **save_kwargs)
    return out.getvalue()


def make_split_image_bytes(width: int, height: int, *, orientation: Optional[int] = None) -> bytes:
    """左半红、右半蓝的 JPEG，用于检查方向校正"""
    im = Image.new("RGB", (width, height), (220, 0, 0))
    im.paste((0, 0, 220), (width // 2, 0, width, height))
    save_kwargs = {}
    if orientation is not None:
        exif = Image.Exif()
        exif[EXIF_ORIENTATION] = orientation
        save_kwargs["exif"] = exif.tobytes()
    out = BytesIO()
    im.save(out, format="JPEG", quality=95, **save_kwargs)
    return out.getvalue()


@pytest.fixture
def image_bytes():
    """图片工厂 fixture"""
    return make_image_bytes


@pytest.fixture
def resolver() -> CdnUrlResolver:
    return CdnUrlResolver(TEST_ENDPOINTS, MOCK_STORAGE_URL)


@pytest.fixture
def store() -> InMemoryStorageBackend:
    return InMemoryStorageBackend()


@pytest.fixture
def image_options() -> ImageProcessingOptions:
    return ImageProcessingOptions()


@pytest.fixture
def orchestrator(store, resolver, image_options) -> MediaOrchestrator:
    return MediaOrchestrator(
        store,
        transcoder=ImageTranscoder(image_options),
        thumbnails=ThumbnailGenerator(image_options),
        cdn=resolver,
        options=OrchestratorOptions(),
    )


@pytest.fixture(scope="function")
async def client(orchestrator, resolver) -> AsyncGenerator[AsyncClient, None]:
    """Provide an AsyncClient bound to the app with in-memory storage"""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_resolver] = lambda: resolver
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
    finally:
        app.dependency_overrides.clear()
