"""
应用常量定义
包含内容分区、资产类型、资产种类等枚举常量，以及扩展名到 MIME 类型的映射
"""
from enum import Enum


class ContentSection(str, Enum):
    """内容分区（顶层内容类别，参与路由优先级判定）"""
    ARTWORK = "artwork"
    AUTHORS = "authors"
    BLOG = "blog"
    BOOKS = "books"
    CONTACT = "contact"
    DOCUMENTS = "documents"
    EVENTS = "events"
    GITHUB = "github"
    LIVESTREAMS = "livestreams"
    MUSIC = "music"
    PORTFOLIO = "portfolio"
    PROJECTS = "projects"
    TAGS = "tags"


class AssetType(str, Enum):
    """资产类型（用于路由与处理分支选择）"""
    IMAGES = "images"
    MEDIA = "media"
    VIDEO = "video"
    DATA = "data"
    COMMENTS = "comments"
    DOCUMENTS = "documents"
    AUDIO = "audio"
    THUMBNAILS = "thumbnails"
    ARCHIVES = "archives"
    CODE = "code"


class AssetKind(str, Enum):
    """按扩展名推断的资产种类，只有 IMAGE 进入转码+缩略图分支"""
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"
    OTHER = "other"


class PipelineStage(str, Enum):
    """单次处理请求的状态机阶段"""
    VALIDATING = "validating"
    CLASSIFYING = "classifying"
    TRANSCODING_PRIMARY = "transcoding_primary"
    UPLOADING_PRIMARY = "uploading_primary"
    GENERATING_THUMBNAIL = "generating_thumbnail"
    UPLOADING_THUMBNAIL = "uploading_thumbnail"
    RESOLVING_URLS = "resolving_urls"
    COMPLETE = "complete"
    FAILED = "failed"


DEFAULT_CONTENT_TYPE = "application/octet-stream"

# 扩展名 -> MIME 类型
EXTENSION_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".svg": "image/svg+xml",
    ".mp4": "video/mp4",
    ".avi": "video/x-msvideo",
    ".mov": "video/quicktime",
    ".mkv": "video/x-matroska",
    ".webm": "video/webm",
    ".flv": "video/x-flv",
    ".wmv": "video/x-ms-wmv",
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".flac": "audio/flac",
    ".ogg": "audio/ogg",
}

# 可以被 Pillow 解码的光栅图片类型；SVG 是矢量格式，按原样存储
RASTER_IMAGE_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "image/tiff",
})

DOCUMENT_MIME_TYPES = frozenset({
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "text/csv",
})

# 输出格式 -> (Pillow 编码器名, 扩展名, MIME 类型)
OUTPUT_FORMATS = {
    "webp": ("WEBP", "webp", "image/webp"),
    "jpeg": ("JPEG", "jpg", "image/jpeg"),
}
