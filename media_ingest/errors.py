"""Media pipeline error taxonomy.

Every failure the pipeline surfaces is classified so callers can tell a bad request
from a configuration gap, a broken image, a deadline, or a storage fault. None of
them are retried inside the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class MediaPipelineError(Exception):
    """Base class for pipeline errors."""

    message: str
    retryable: bool = False
    details: Optional[dict[str, Any]] = None

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class ValidationError(MediaPipelineError):
    """输入名称或内容形状不合法，直接失败"""

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, retryable=False, details=details)


class NamingError(ValidationError):
    """存储资源命名规则校验失败，rule 标识违反的具体规则"""

    def __init__(self, message: str, *, rule: str, name: Optional[str] = None):
        super().__init__(message, details={"rule": rule, "name": name})
        self.rule = rule
        self.name = name


class UnsupportedRouteError(MediaPipelineError):
    """没有任何 CDN 路由规则匹配 (section, asset_type) 组合"""

    def __init__(self, section: Any, asset_type: Any, *, message: Optional[str] = None):
        section_name = getattr(section, "name", section)
        asset_name = getattr(asset_type, "name", asset_type)
        super().__init__(
            message=message
            or f"No CDN endpoint configured for section {section_name} with asset type {asset_name}",
            retryable=False,
            details={"section": section_name, "asset_type": asset_name},
        )
        self.section = section
        self.asset_type = asset_type


class ConversionError(MediaPipelineError):
    """图片解码/编码失败，原始异常通过 __cause__ 保留"""

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, retryable=False, details=details)


class TranscodeTimeoutError(MediaPipelineError):
    """转码超过截止时间"""

    def __init__(self, message: str, *, timeout_seconds: Optional[float] = None):
        super().__init__(message=message, retryable=False, details={"timeout_seconds": timeout_seconds})
        self.timeout_seconds = timeout_seconds


class StorageError(MediaPipelineError):
    """BlobStore 协作方失败"""

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, retryable=False, details=details)
