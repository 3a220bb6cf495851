"""图片转码器

将任意格式的输入图片规范化为单一分发格式（默认 WebP）：

1. 解码前检查输入上限（字节数 / 像素尺寸）
2. 按 EXIF 方向校正，随后丢弃原始元数据
3. 短边不足 min_dimension 时等比放大（只放大，不缩小）
4. DPI 统一为固定值，按固定质量编码

解码/编码失败抛出 ConversionError（保留原始异常），超时抛出 TranscodeTimeoutError；
内部不做重试。
"""

from __future__ import annotations

from typing import Optional

from media_ingest.core.logging import logger
from media_ingest.media.imaging import (
    ImageProcessingOptions,
    InputSource,
    read_input_bytes,
    render_derivative,
    run_with_deadline,
)
from media_ingest.models import ImageConversionResult


def compute_upscaled_size(width: int, height: int, min_dimension: int) -> tuple[int, int]:
    """短边不足 min_dimension 时按比例放大，各边四舍五入；否则保持原尺寸

    Examples:
        >>> compute_upscaled_size(300, 800, 600)
        (600, 1600)
        >>> compute_upscaled_size(1200, 900, 600)
        (1200, 900)
    """
    shorter = min(width, height)
    if shorter <= 0:
        return width, height
    scale = min_dimension / shorter
    if scale <= 1:
        return width, height
    return max(1, round(width * scale)), max(1, round(height * scale))


class ImageTranscoder:
    def __init__(self, options: Optional[ImageProcessingOptions] = None):
        self.options = options or ImageProcessingOptions()

    def _target_size(self, width: int, height: int) -> tuple[int, int]:
        return compute_upscaled_size(width, height, self.options.min_dimension)

    def transcode_sync(self, source: InputSource, *, deadline: Optional[float] = None) -> ImageConversionResult:
        """同步转码（阻塞），供事件循环之外的调用方使用"""
        data = read_input_bytes(source, self.options.max_file_size_bytes)
        logger.info("Input stream validated. Size: {} bytes", len(data))
        result = render_derivative(data, self.options, self._target_size, deadline=deadline)
        logger.info(
            "{} conversion completed. Size: {} bytes, dimensions: {}x{}",
            result.format.upper(), result.size, result.width, result.height,
        )
        return result

    async def transcode(self, source: InputSource) -> ImageConversionResult:
        """异步转码，阻塞的解码/编码在线程中执行并受截止时间约束"""
        data = read_input_bytes(source, self.options.max_file_size_bytes)
        return await run_with_deadline(self.transcode_sync, data, timeout_seconds=self.options.timeout_seconds)
