"""图片处理公共工具

转码器与缩略图生成器共用同一套策略：
- 解码前的输入上限检查（字节数、头部探测到的像素尺寸）
- EXIF 方向校正，随后丢弃全部原始元数据
- 统一的 DPI 与编码质量
- 协作式截止时间：阻塞工作在线程中运行，各阶段之间检查截止时间
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from io import BytesIO
from typing import Any, BinaryIO, Callable, Optional, TypeVar, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from media_ingest.constants import OUTPUT_FORMATS
from media_ingest.core.config import Settings
from media_ingest.core.logging import logger
from media_ingest.errors import (
    ConversionError,
    MediaPipelineError,
    TranscodeTimeoutError,
    ValidationError,
)
from media_ingest.models import ImageConversionResult


InputSource = Union[bytes, bytearray, memoryview, BinaryIO]
T = TypeVar("T")

_MB = 1024 * 1024

_EXIF_ORIENTATION = 0x0112
# 方向 5-8 需要交换宽高
_TRANSPOSED_ORIENTATIONS = frozenset({5, 6, 7, 8})

# 输出只携带分辨率信息
_EXIF_X_RESOLUTION = 0x011A
_EXIF_Y_RESOLUTION = 0x011B
_EXIF_RESOLUTION_UNIT = 0x0128
_RESOLUTION_UNIT_INCH = 2


@dataclass(frozen=True)
class ImageProcessingOptions:
    """图片处理策略（全部为显式配置，不在算法中内联）

    - max_width / max_height: 解码前允许的最大像素尺寸
    - max_file_size_bytes: 允许的最大输入字节数
    - timeout_seconds: 单次转码的截止时间
    - min_dimension: 主副本短边下限，不足时等比放大
    - thumbnail_max_edge: 缩略图最长边上限
    - dpi / quality / output_format: 编码策略
    """
    max_width: int = 8192
    max_height: int = 8192
    max_file_size_bytes: int = 50 * _MB
    timeout_seconds: float = 30.0
    auto_orient: bool = True
    min_dimension: int = 600
    dpi: int = 96
    quality: int = 85
    output_format: str = "webp"
    thumbnail_max_edge: int = 300
    webp_method: int = 6

    @classmethod
    def from_settings(cls, config: Settings) -> "ImageProcessingOptions":
        return cls(
            max_width=config.image_max_width,
            max_height=config.image_max_height,
            max_file_size_bytes=config.image_max_file_size_mb * _MB,
            timeout_seconds=config.image_processing_timeout_seconds,
            auto_orient=config.image_auto_orient,
            min_dimension=config.image_min_dimension,
            dpi=config.image_output_dpi,
            quality=config.image_quality,
            output_format=config.image_output_format,
            thumbnail_max_edge=config.thumbnail_max_edge,
        )

    @property
    def extension(self) -> str:
        return OUTPUT_FORMATS[self.output_format][1]

    @property
    def content_type(self) -> str:
        return OUTPUT_FORMATS[self.output_format][2]


def read_input_bytes(source: InputSource, max_bytes: Optional[int] = None) -> bytes:
    """读取输入（bytes 或二进制流），超过 max_bytes 时抛出 ValidationError"""
    if source is None:
        raise ValidationError("Input stream cannot be null.", details={"field": "input_stream"})

    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
    else:
        if getattr(source, "seekable", None) and source.seekable():
            source.seek(0)
        data = source.read() if max_bytes is None else source.read(max_bytes + 1)
        if not isinstance(data, (bytes, bytearray)):
            raise ValidationError("Input stream must be opened in binary mode.", details={"field": "input_stream"})
        data = bytes(data)

    check_file_size(data, max_bytes)
    return data


def file_too_large(size: int, max_bytes: int) -> ValidationError:
    logger.warning("Input size {} exceeds maximum allowed size {}", size, max_bytes)
    return ValidationError(
        f"File size exceeds maximum allowed size of {max_bytes} bytes.",
        details={"size": size, "max_size": max_bytes},
    )


def check_file_size(data: bytes, max_bytes: Optional[int]) -> None:
    if max_bytes is not None and len(data) > max_bytes:
        raise file_too_large(len(data), max_bytes)


def check_deadline(deadline: Optional[float], timeout_seconds: float, step: str) -> None:
    if deadline is not None and time.monotonic() > deadline:
        raise TranscodeTimeoutError(
            f"Image processing exceeded {timeout_seconds:g}s (during {step})",
            timeout_seconds=timeout_seconds,
        )


def _upright_size(im: Image.Image, options: ImageProcessingOptions) -> tuple[int, int]:
    """按 EXIF 方向换算显示尺寸（只读取头部元数据，不解码像素）"""
    width, height = im.size
    if options.auto_orient:
        try:
            orientation = im.getexif().get(_EXIF_ORIENTATION, 1)
        except (OSError, ValueError, SyntaxError) as e:
            im.close()
            raise ConversionError(f"Failed to read image metadata: {e}") from e
        if orientation in _TRANSPOSED_ORIENTATIONS:
            return height, width
    return width, height


def open_image(data: bytes, options: ImageProcessingOptions) -> Image.Image:
    """打开图片（仅读取头部），在完整解码前检查像素尺寸上限"""
    try:
        im = Image.open(BytesIO(data))
    except Image.DecompressionBombError as e:
        raise ValidationError(f"Image rejected as decompression bomb: {e}") from e
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        raise ConversionError(f"Failed to decode image: {e}") from e

    width, height = _upright_size(im, options)
    if width > options.max_width or height > options.max_height:
        im.close()
        logger.warning(
            "Image dimensions {}x{} exceed maximum allowed dimensions {}x{}",
            width, height, options.max_width, options.max_height,
        )
        raise ValidationError(
            f"Image dimensions exceed maximum allowed size of {options.max_width}x{options.max_height} pixels.",
            details={"width": width, "height": height},
        )
    return im


def _normalize_mode(im: Image.Image, encoder: str) -> Image.Image:
    has_alpha = im.mode in ("RGBA", "LA", "PA") or (im.mode == "P" and "transparency" in im.info)
    if encoder == "WEBP":
        target = "RGBA" if has_alpha else "RGB"
    else:
        target = "RGB"
    return im if im.mode == target else im.convert(target)


def decode_upright(data: bytes, options: ImageProcessingOptions, deadline: Optional[float] = None) -> Image.Image:
    """解码并按 EXIF 方向校正，返回像素方向正确的图片（动画取第一帧）"""
    with open_image(data, options) as im:
        try:
            if getattr(im, "n_frames", 1) > 1:
                im.seek(0)
            im.load()
            check_deadline(deadline, options.timeout_seconds, "decode")
            upright = ImageOps.exif_transpose(im) if options.auto_orient else im.copy()
        except MediaPipelineError:
            raise
        except Exception as e:
            raise ConversionError(f"Failed to decode image: {e}") from e
    return upright


def resolution_exif(dpi: int) -> bytes:
    exif = Image.Exif()
    exif[_EXIF_X_RESOLUTION] = dpi
    exif[_EXIF_Y_RESOLUTION] = dpi
    exif[_EXIF_RESOLUTION_UNIT] = _RESOLUTION_UNIT_INCH
    return exif.tobytes()


def encode_image(im: Image.Image, options: ImageProcessingOptions) -> bytes:
    """按统一策略编码；编码前清空 info，输出不携带任何原始元数据"""
    encoder = OUTPUT_FORMATS[options.output_format][0]
    im = _normalize_mode(im, encoder)
    im.info = {}

    save_kwargs: dict[str, Any] = {
        "format": encoder,
        "quality": int(options.quality),
        "dpi": (options.dpi, options.dpi),
    }
    if encoder == "WEBP":
        # WebP 编码器不支持 dpi 参数，分辨率通过仅含分辨率标签的 EXIF 写入
        save_kwargs["method"] = options.webp_method
        save_kwargs["exif"] = resolution_exif(options.dpi)
    else:
        save_kwargs["optimize"] = True

    out = BytesIO()
    im.save(out, **save_kwargs)
    return out.getvalue()


def render_derivative(
    data: bytes,
    options: ImageProcessingOptions,
    target_size: Callable[[int, int], tuple[int, int]],
    *,
    deadline: Optional[float] = None,
    result_cls: type[ImageConversionResult] = ImageConversionResult,
) -> ImageConversionResult:
    """解码 -> 方向校正 -> 调整尺寸 -> 编码，尺寸策略由 target_size 决定"""
    check_file_size(data, options.max_file_size_bytes)

    im = decode_upright(data, options, deadline)
    try:
        width, height = im.size
        new_size = target_size(width, height)
        if new_size != (width, height):
            logger.debug("Resizing image {}x{} -> {}x{}", width, height, new_size[0], new_size[1])
            im = im.resize(new_size, Image.Resampling.LANCZOS)
        check_deadline(deadline, options.timeout_seconds, "resize")

        encoded = encode_image(im, options)
        check_deadline(deadline, options.timeout_seconds, "encode")
    except MediaPipelineError:
        raise
    except Exception as e:
        raise ConversionError(f"Failed to encode image as {options.output_format}: {e}") from e
    finally:
        im.close()

    return result_cls(
        content=encoded,
        width=new_size[0],
        height=new_size[1],
        format=options.output_format,
        content_type=options.content_type,
    )


async def run_with_deadline(func: Callable[..., T], *args: Any, timeout_seconds: float, **kwargs: Any) -> T:
    """在线程中执行阻塞的图片处理，超时抛出 TranscodeTimeoutError"""
    deadline = time.monotonic() + timeout_seconds
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args, deadline=deadline, **kwargs),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError as e:
        raise TranscodeTimeoutError(
            f"Image processing exceeded {timeout_seconds:g}s",
            timeout_seconds=timeout_seconds,
        ) from e
