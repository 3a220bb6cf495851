"""
Configuration management.
"""
from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # 运行环境
    app_env: Literal["dev", "prod"] = "dev"
    debug: bool = True

    # 应用配置
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # CORS 允许的来源（逗号分隔），"*" 表示全部允许（仅限开发环境）
    cors_allowed_origins: str = "*"

    # 日志配置
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_dir: Optional[str] = "logs"  # 为空时只输出到终端

    # 存储后端配置
    storage_backend: Literal["local", "memory"] = "local"
    storage_local_root: str = "data/storage"
    storage_mock_mode: bool = False  # 模拟存储模式：绕过 CDN，直接返回存储模拟器 URL
    storage_create_missing_containers: bool = True
    mock_blob_storage_url: str = "http://127.0.0.1:10000/devstoreaccount1"

    # CDN 分发端点（按部署环境配置）
    cdn_endpoint_documents: str = "https://documents.example.com"
    cdn_endpoint_images: str = "https://images.example.com"
    cdn_endpoint_videos: str = "https://videos.example.com"
    cdn_endpoint_media: str = "https://media.example.com"
    cdn_endpoint_music: str = "https://music.example.com"

    # 图片处理安全上限
    image_max_width: int = 8192
    image_max_height: int = 8192
    image_max_file_size_mb: int = 50
    image_processing_timeout_seconds: float = 30.0
    image_auto_orient: bool = True

    # 图片转码策略
    image_min_dimension: int = 600  # 短边不足时放大到该值
    image_output_dpi: int = 96
    image_quality: int = 85
    image_output_format: Literal["webp", "jpeg"] = "webp"
    thumbnail_max_edge: int = 300

    # 衍生资产命名后缀
    processed_blob_suffix: str = "_processed"
    thumbnail_blob_suffix: str = "_thumb"


settings = Settings()


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value or "")
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_settings(config: Optional[Settings] = None) -> None:
    """基础环境校验"""
    config = config or settings

    if config.app_env == "prod" and config.debug:
        raise RuntimeError("DEBUG must be False in production")

    for field in ("image_max_width", "image_max_height", "image_max_file_size_mb", "image_min_dimension",
                  "image_output_dpi", "thumbnail_max_edge"):
        if getattr(config, field) <= 0:
            raise RuntimeError(f"{field.upper()} must be a positive integer")

    if config.image_processing_timeout_seconds <= 0:
        raise RuntimeError("IMAGE_PROCESSING_TIMEOUT_SECONDS must be positive")

    if not 1 <= config.image_quality <= 100:
        raise RuntimeError("IMAGE_QUALITY must be between 1 and 100")

    for field in ("cdn_endpoint_documents", "cdn_endpoint_images", "cdn_endpoint_videos",
                  "cdn_endpoint_media", "cdn_endpoint_music", "mock_blob_storage_url"):
        if not _is_http_url(getattr(config, field)):
            raise RuntimeError(f"{field.upper()} must be an absolute http(s) URL")

    if config.processed_blob_suffix == config.thumbnail_blob_suffix:
        raise RuntimeError("PROCESSED_BLOB_SUFFIX and THUMBNAIL_BLOB_SUFFIX must differ")

    return None
