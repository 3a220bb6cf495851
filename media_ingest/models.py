"""
领域模型

所有值对象都是不可变的：MediaReference 一旦生成不会被修改，重试会产生新的引用。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from media_ingest.constants import AssetKind, AssetType, ContentSection
from media_ingest.core.time_utils import utcnow
from media_ingest.errors import ValidationError


def _coerce_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    text = str(value or "").strip().lower()
    for member in enum_cls:
        if text in (member.value, member.name.lower()):
            return member
    raise ValidationError(f"Unknown {field_name}: {value!r}", details={"field": field_name})


@dataclass(frozen=True)
class NamingContext:
    """(分区, 资产类型) 组合，按请求构造，解析后即丢弃"""
    section: ContentSection
    asset_type: Optional[AssetType] = None

    @classmethod
    def parse(cls, section: Union[ContentSection, str], asset_type: Union[AssetType, str, None] = None) -> "NamingContext":
        """从调用方输入构造（不区分大小写；asset_type 为 None/''/'none' 表示无资产类型）"""
        if asset_type is None or (isinstance(asset_type, str) and asset_type.strip().lower() in ("", "none")):
            parsed_asset = None
        else:
            parsed_asset = _coerce_enum(AssetType, asset_type, "asset_type")
        return cls(section=_coerce_enum(ContentSection, section, "section"), asset_type=parsed_asset)


@dataclass(frozen=True)
class ImageConversionResult:
    """转码结果（瞬时值，由编排器立即消费，不直接持久化）"""
    content: bytes
    width: int
    height: int
    format: str
    content_type: str = "image/webp"

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class ThumbnailResult(ImageConversionResult):
    """缩略图生成结果"""


@dataclass(frozen=True)
class BlobReference:
    blob_name: str
    cdn_url: str


@dataclass(frozen=True)
class MediaReference:
    """管道输出

    - cdn_url: 主衍生资产的分发 URL（图片为处理后的副本，其他类型为原样存储的文件）
    - thumbnail_url: 缩略图失败时回退为 cdn_url（degraded=True）
    """
    section: ContentSection
    asset_type: Optional[AssetType]
    kind: AssetKind
    container_name: str
    original_blob_name: str
    original_url: str
    cdn_url: str
    content_type: str
    processed_blob_name: Optional[str] = None
    thumbnail_blob_name: Optional[str] = None
    thumbnail_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    output_format: Optional[str] = None
    degraded: bool = False
    thumbnail_error: Optional[str] = None
    mock_storage: bool = False
    created_at: datetime = field(default_factory=utcnow)
