"""缩略图生成器

与转码器使用相同的方向校正与编码策略，但尺寸受最长边上限约束，且只缩小不放大。
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
from media_ingest.models import ThumbnailResult


def compute_thumbnail_size(width: int, height: int, max_edge: int) -> tuple[int, int]:
    """最长边超过 max_edge 时等比缩小

    Examples:
        >>> compute_thumbnail_size(1200, 600, 300)
        (300, 150)
        >>> compute_thumbnail_size(200, 100, 300)
        (200, 100)
    """
    longest = max(width, height)
    if longest <= max_edge:
        return width, height
    scale = max_edge / longest
    return max(1, round(width * scale)), max(1, round(height * scale))


class ThumbnailGenerator:
    def __init__(self, options: Optional[ImageProcessingOptions] = None):
        self.options = options or ImageProcessingOptions()

    def _target_size(self, width: int, height: int) -> tuple[int, int]:
        return compute_thumbnail_size(width, height, self.options.thumbnail_max_edge)

    def generate_sync(self, source: InputSource, *, deadline: Optional[float] = None) -> ThumbnailResult:
        data = read_input_bytes(source, self.options.max_file_size_bytes)
        result = render_derivative(
            data,
            self.options,
            self._target_size,
            deadline=deadline,
            result_cls=ThumbnailResult,
        )
        logger.info("Thumbnail generated. Size: {} bytes, dimensions: {}x{}", result.size, result.width, result.height)
        return result

    async def generate(self, source: InputSource) -> ThumbnailResult:
        data = read_input_bytes(source, self.options.max_file_size_bytes)
        return await run_with_deadline(self.generate_sync, data, timeout_seconds=self.options.timeout_seconds)
