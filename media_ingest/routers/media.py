"""
功能描述：媒体上传与分发 URL API
包含：上传处理（转码+缩略图）、CDN URL 解析
调用方式：PUT 请求体即原始文件内容，blob 名放在路径中
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from media_ingest.cdn import CdnUrlResolver
from media_ingest.core.dependencies import get_orchestrator, get_resolver
from media_ingest.core.logging import logger
from media_ingest.media.imaging import file_too_large
from media_ingest.media.orchestrator import MediaOrchestrator
from media_ingest.models import NamingContext
from media_ingest.schemas import CdnUrlOut, ErrorOut, MediaReferenceOut, to_media_reference_out

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorOut},
    422: {"model": ErrorOut},
    502: {"model": ErrorOut},
    504: {"model": ErrorOut},
}


async def read_body_limited(request: Request, max_bytes: Optional[int]) -> bytes:
    """读取请求体，超过 max_bytes 时在读完之前拒绝"""
    if max_bytes is None:
        return await request.body()

    content_length = request.headers.get("content-length", "")
    if content_length.isdigit() and int(content_length) > max_bytes:
        raise file_too_large(int(content_length), max_bytes)

    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > max_bytes:
            raise file_too_large(size, max_bytes)
        chunks.append(chunk)
    return b"".join(chunks)


@router.put("/media/{section}/{asset_type}/{blob_name:path}", response_model=MediaReferenceOut, responses=_ERROR_RESPONSES)
async def upload_media(
    section: str,
    asset_type: str,
    blob_name: str,
    request: Request,
    orchestrator: MediaOrchestrator = Depends(get_orchestrator),
):
    """
    上传并处理媒体

    Path Parameters:
        section: 内容分区，如 blog / music
        asset_type: 资产类型，如 images / video；'none' 表示无资产类型
        blob_name: 原始 blob 名，可包含目录前缀
    """
    body = await read_body_limited(request, orchestrator.max_input_bytes(blob_name))
    logger.info("Upload received: {}/{}/{} ({} bytes)", section, asset_type, blob_name, len(body))
    ref = await orchestrator.process(section, asset_type, blob_name, body)
    return to_media_reference_out(ref)


@router.get("/cdn-url", response_model=CdnUrlOut, responses={400: {"model": ErrorOut}, 422: {"model": ErrorOut}})
async def get_cdn_url(
    section: str = Query(...),
    blob_name: str = Query(...),
    asset_type: Optional[str] = Query(None),
    mock: bool = Query(False),
    params: Optional[str] = Query(None),
    resolver: CdnUrlResolver = Depends(get_resolver),
):
    """解析公开分发 URL（纯函数，不访问存储）"""
    naming = NamingContext.parse(section, asset_type)
    url = resolver.resolve(
        naming.section,
        naming.asset_type,
        blob_name,
        query_params=params,
        is_mock_storage=mock,
    )
    return CdnUrlOut(url=url)
