"""
API schema 定义与显式映射函数

领域对象到 schema 的转换逐字段手写，不做基于反射的通用映射。
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from media_ingest.models import MediaReference


class MediaReferenceOut(BaseModel):
    """处理结果"""
    section: str
    asset_type: Optional[str] = None
    kind: str
    container_name: str
    original_blob_name: str
    original_url: str
    processed_blob_name: Optional[str] = None
    cdn_url: str
    thumbnail_blob_name: Optional[str] = None
    thumbnail_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    output_format: Optional[str] = None
    content_type: str
    degraded: bool = False
    thumbnail_error: Optional[str] = None
    mock_storage: bool = False
    created_at: datetime


class CdnUrlOut(BaseModel):
    url: str


class SanitizedNameOut(BaseModel):
    kind: Literal["container", "table", "queue"]
    input: str
    name: str
    was_valid: bool


class ErrorOut(BaseModel):
    detail: str
    error: str


def to_media_reference_out(ref: MediaReference) -> MediaReferenceOut:
    return MediaReferenceOut(
        section=ref.section.value,
        asset_type=ref.asset_type.value if ref.asset_type is not None else None,
        kind=ref.kind.value,
        container_name=ref.container_name,
        original_blob_name=ref.original_blob_name,
        original_url=ref.original_url,
        processed_blob_name=ref.processed_blob_name,
        cdn_url=ref.cdn_url,
        thumbnail_blob_name=ref.thumbnail_blob_name,
        thumbnail_url=ref.thumbnail_url,
        width=ref.width,
        height=ref.height,
        output_format=ref.output_format,
        content_type=ref.content_type,
        degraded=ref.degraded,
        thumbnail_error=ref.thumbnail_error,
        mock_storage=ref.mock_storage,
        created_at=ref.created_at,
    )
