"""
资产分类模块

根据文件扩展名推断 MIME 类型与资产种类
"""
import mimetypes
import posixpath

from media_ingest.constants import (
    DEFAULT_CONTENT_TYPE,
    DOCUMENT_MIME_TYPES,
    EXTENSION_MIME_TYPES,
    RASTER_IMAGE_MIME_TYPES,
    AssetKind,
)


def get_file_extension(blob_name: str) -> str:
    return posixpath.splitext(blob_name or "")[1].lower()


def guess_content_type(blob_name: str) -> str:
    """
    扩展名 -> MIME 类型

    优先使用内置映射表，未收录的扩展名回退到 mimetypes，最终为 application/octet-stream
    """
    extension = get_file_extension(blob_name)
    if extension in EXTENSION_MIME_TYPES:
        return EXTENSION_MIME_TYPES[extension]
    guessed, _ = mimetypes.guess_type(f"file{extension}") if extension else (None, None)
    return guessed or DEFAULT_CONTENT_TYPE


def classify_asset(blob_name: str) -> AssetKind:
    """
    推断资产种类

    Examples:
        >>> classify_asset("photos/cat.JPG")
        <AssetKind.IMAGE: 'image'>
        >>> classify_asset("logo.svg")
        <AssetKind.OTHER: 'other'>
    """
    content_type = guess_content_type(blob_name)
    if content_type in RASTER_IMAGE_MIME_TYPES:
        return AssetKind.IMAGE
    if content_type.startswith("video/"):
        return AssetKind.VIDEO
    if content_type in DOCUMENT_MIME_TYPES:
        return AssetKind.DOCUMENT
    return AssetKind.OTHER


def derivative_blob_name(original_blob_name: str, suffix: str, extension: str) -> str:
    """
    规范衍生资产名：<原始名主干><后缀>.<扩展名>，保留目录前缀

    Examples:
        >>> derivative_blob_name("2024/cat.jpg", "_thumb", "webp")
        '2024/cat_thumb.webp'
    """
    stem, _ = posixpath.splitext(original_blob_name)
    return f"{stem}{suffix}.{extension.lstrip('.')}"
