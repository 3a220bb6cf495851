"""
内容名称解析

将 (ContentSection, AssetType) 映射为规范的容器/表/队列名称。
纯函数，无副作用；输出在返回前经过对应的校验器。
"""
from __future__ import annotations

from typing import Optional

from media_ingest.constants import AssetType, ContentSection
from media_ingest.errors import NamingError
from media_ingest.models import NamingContext
from media_ingest.naming.validators import (
    validate_container_name,
    validate_queue_name,
    validate_table_name,
)


MOCK_CONTAINER_PREFIX = "mock-"
MOCK_TABLE_PREFIX = "mock"

# AssetType -> 容器名后缀
_CONTAINER_SUFFIXES = {
    AssetType.IMAGES: "images",
    AssetType.MEDIA: "media",
    AssetType.VIDEO: "video",
    AssetType.DATA: "data",
    AssetType.COMMENTS: "comments",
    AssetType.AUDIO: "audio",
    AssetType.DOCUMENTS: "documents",
    AssetType.THUMBNAILS: "thumbnails",
    AssetType.ARCHIVES: "archives",
    AssetType.CODE: "code",
}

_TABLE_SUFFIXES = {
    AssetType.IMAGES: "imagesmetadata",
    AssetType.MEDIA: "mediametadata",
    AssetType.VIDEO: "videometadata",
    AssetType.DATA: "datametadata",
    AssetType.COMMENTS: "comments",
}


def _section_base(section: ContentSection) -> str:
    return ContentSection(section).value


def get_blob_container_name(
    section: ContentSection,
    asset_type: Optional[AssetType] = None,
    is_mock_storage: bool = False,
) -> str:
    """
    解析 blob 容器名

    Examples:
        >>> get_blob_container_name(ContentSection.BLOG, AssetType.IMAGES)
        'blog-images'
        >>> get_blob_container_name(ContentSection.BLOG, AssetType.IMAGES, is_mock_storage=True)
        'mock-blog-images'
    """
    base_name = f"{MOCK_CONTAINER_PREFIX if is_mock_storage else ''}{_section_base(section)}"

    if asset_type is None:
        name = base_name
    else:
        name = f"{base_name}-{_CONTAINER_SUFFIXES[AssetType(asset_type)]}"

    validate_container_name(name)
    return name


def get_table_name(
    section: ContentSection,
    asset_type: Optional[AssetType] = None,
    is_mock_storage: bool = False,
) -> str:
    """解析表名，例如 (Blog, Images) -> 'blogimagesmetadata'"""
    base_name = f"{MOCK_TABLE_PREFIX if is_mock_storage else ''}{_section_base(section)}"

    if asset_type is None:
        name = base_name
    else:
        suffix = _TABLE_SUFFIXES.get(AssetType(asset_type))
        if suffix is None:
            raise NamingError(
                f"Asset type {AssetType(asset_type).name} has no metadata table.",
                rule="asset_type",
                name=base_name,
            )
        name = f"{base_name}{suffix}"

    validate_table_name(name)
    return name


def get_queue_name(
    section: ContentSection,
    asset_type: Optional[AssetType] = None,
    is_mock_storage: bool = False,
) -> str:
    """解析队列名，例如 (Blog, Images) -> 'blog-images-queue'"""
    parts = [_section_base(section)]
    if asset_type is not None:
        parts.append(AssetType(asset_type).value)
    parts.append("queue")
    name = f"{MOCK_CONTAINER_PREFIX if is_mock_storage else ''}{'-'.join(parts)}"

    validate_queue_name(name)
    return name


def parse_container_name(container_name: str) -> NamingContext:
    """
    由容器名反推命名上下文（get_blob_container_name 的逆操作）

    支持 'mock-' 前缀；无法识别时抛出 NamingError。
    """
    name = (container_name or "").strip().lower()
    if name.startswith(MOCK_CONTAINER_PREFIX):
        name = name[len(MOCK_CONTAINER_PREFIX):]

    for section in ContentSection:
        if name == section.value:
            return NamingContext(section=section, asset_type=None)
        for asset_type, suffix in _CONTAINER_SUFFIXES.items():
            if name == f"{section.value}-{suffix}":
                return NamingContext(section=section, asset_type=asset_type)

    raise NamingError(
        f"Unable to determine content section for container: {container_name}",
        rule="unknown_container",
        name=container_name,
    )
