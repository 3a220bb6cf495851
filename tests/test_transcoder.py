"""
图片转码测试

覆盖：放大规则、EXIF 方向校正、元数据剥离、输入上限、解码失败与超时
"""
import time
from io import BytesIO

import pytest
from PIL import Image

from media_ingest.errors import ConversionError, TranscodeTimeoutError, ValidationError
from media_ingest.media.imaging import (
    ImageProcessingOptions,
    check_deadline,
    read_input_bytes,
    run_with_deadline,
)
from media_ingest.media.transcoder import ImageTranscoder, compute_upscaled_size

from conftest import make_image_bytes, make_split_image_bytes

# XResolution, YResolution, ResolutionUnit
RESOLUTION_TAGS = {0x011A, 0x011B, 0x0128}


@pytest.mark.parametrize(
    "size,expected",
    [
        ((300, 800), (600, 1600)),
        ((800, 300), (1600, 600)),
        ((600, 600), (600, 600)),
        ((1200, 900), (1200, 900)),
        ((250, 333), (600, 799)),
        ((100, 100), (600, 600)),
    ],
)
def test_compute_upscaled_size(size, expected):
    assert compute_upscaled_size(*size, 600) == expected


def test_upscale_never_shrinks():
    for size in [(601, 5000), (4000, 3000), (600, 601)]:
        assert compute_upscaled_size(*size, 600) == size


@pytest.mark.asyncio
async def test_small_image_is_upscaled_to_min_dimension():
    result = await ImageTranscoder().transcode(make_image_bytes(300, 800))

    assert (result.width, result.height) == (600, 1600)
    assert result.format == "webp"
    assert result.content_type == "image/webp"
    with Image.open(BytesIO(result.content)) as im:
        assert im.format == "WEBP"
        assert im.size == (600, 1600)


@pytest.mark.asyncio
async def test_large_image_keeps_dimensions():
    result = await ImageTranscoder().transcode(make_image_bytes(1200, 900, "PNG"))
    assert (result.width, result.height) == (1200, 900)


@pytest.mark.asyncio
async def test_exif_orientation_is_applied_before_resize():
    # 存储像素为 800x300，方向 6 表示显示时顺时针旋转 90 度
    data = make_split_image_bytes(800, 300, orientation=6)

    result = await ImageTranscoder().transcode(data)

    assert (result.width, result.height) == (600, 1600)
    with Image.open(BytesIO(result.content)) as im:
        rgb = im.convert("RGB")
        top = rgb.getpixel((300, 100))
        bottom = rgb.getpixel((300, 1500))
    # 原图左半（红）旋转后位于上方
    assert top[0] > top[2]
    assert bottom[2] > bottom[0]


@pytest.mark.asyncio
async def test_source_metadata_is_stripped():
    data = make_image_bytes(700, 700, orientation=1, exif_tags={0x010F: "TestCamera", 0x0131: "Editor 1.0"})
    with Image.open(BytesIO(data)) as src:
        assert len(src.getexif()) > 0

    result = await ImageTranscoder().transcode(data)

    with Image.open(BytesIO(result.content)) as im:
        exif = im.getexif()
        assert set(exif) <= RESOLUTION_TAGS
        assert 0x010F not in exif
        assert 0x0131 not in exif
        assert "icc_profile" not in im.info


@pytest.mark.asyncio
async def test_webp_output_carries_96_dpi():
    result = await ImageTranscoder().transcode(make_image_bytes(700, 700))

    with Image.open(BytesIO(result.content)) as im:
        exif = im.getexif()
        assert set(exif) == RESOLUTION_TAGS
        assert float(exif[0x011A]) == 96
        assert float(exif[0x011B]) == 96
        assert exif[0x0128] == 2


@pytest.mark.asyncio
async def test_transparent_png_keeps_alpha():
    data = make_image_bytes(640, 640, "PNG", mode="RGBA", color=(10, 20, 30, 0))
    result = await ImageTranscoder().transcode(data)
    with Image.open(BytesIO(result.content)) as im:
        assert im.mode == "RGBA"


@pytest.mark.asyncio
async def test_jpeg_output_option():
    options = ImageProcessingOptions(output_format="jpeg")
    result = await ImageTranscoder(options).transcode(make_image_bytes(300, 300, "PNG"))

    assert result.format == "jpeg"
    assert result.content_type == "image/jpeg"
    with Image.open(BytesIO(result.content)) as im:
        assert im.format == "JPEG"
        assert tuple(round(v) for v in im.info["dpi"]) == (96, 96)


def test_sync_and_async_produce_same_dimensions():
    transcoder = ImageTranscoder()
    result = transcoder.transcode_sync(make_image_bytes(200, 400))
    assert (result.width, result.height) == (600, 1200)


def test_accepts_binary_stream():
    stream = BytesIO(make_image_bytes(300, 600))
    stream.seek(10)
    result = ImageTranscoder().transcode_sync(stream)
    assert (result.width, result.height) == (600, 1200)


class TestInputGuards:
    def test_file_size_limit(self):
        options = ImageProcessingOptions(max_file_size_bytes=100)
        with pytest.raises(ValidationError) as exc_info:
            ImageTranscoder(options).transcode_sync(make_image_bytes(300, 300))
        assert "100 bytes" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_file_size_limit_async(self):
        options = ImageProcessingOptions(max_file_size_bytes=100)
        with pytest.raises(ValidationError):
            await ImageTranscoder(options).transcode(BytesIO(make_image_bytes(300, 300)))

    def test_dimension_limit_checked_before_decode(self):
        options = ImageProcessingOptions(max_width=100, max_height=100)
        with pytest.raises(ValidationError) as exc_info:
            ImageTranscoder(options).transcode_sync(make_image_bytes(200, 50))
        assert exc_info.value.details == {"width": 200, "height": 50}

    def test_dimension_limit_uses_upright_orientation(self):
        # 存储像素 400x900，方向 6 校正后为 900x400
        options = ImageProcessingOptions(max_width=1000, max_height=500)
        data = make_image_bytes(400, 900, orientation=6)

        result = ImageTranscoder(options).transcode_sync(data)
        assert result.width > result.height

        with pytest.raises(ValidationError):
            ImageTranscoder(options).transcode_sync(make_image_bytes(400, 900))

    def test_read_input_rejects_none(self):
        with pytest.raises(ValidationError):
            read_input_bytes(None)


class TestConversionFailures:
    def test_garbage_bytes(self):
        with pytest.raises(ConversionError) as exc_info:
            ImageTranscoder().transcode_sync(b"definitely not an image")
        assert exc_info.value.__cause__ is not None

    def test_truncated_image(self):
        data = make_image_bytes(900, 900, "PNG")
        with pytest.raises(ConversionError) as exc_info:
            ImageTranscoder().transcode_sync(data[: len(data) // 2])
        assert exc_info.value.__cause__ is not None


class SlowTranscoder(ImageTranscoder):
    def transcode_sync(self, source, *, deadline=None):
        time.sleep(0.5)
        return super().transcode_sync(source, deadline=deadline)


class TestTimeout:
    @pytest.mark.asyncio
    async def test_transcode_times_out(self):
        options = ImageProcessingOptions(timeout_seconds=0.05)
        with pytest.raises(TranscodeTimeoutError) as exc_info:
            await SlowTranscoder(options).transcode(make_image_bytes(300, 300))
        assert exc_info.value.timeout_seconds == 0.05

    @pytest.mark.asyncio
    async def test_run_with_deadline_passes_deadline(self):
        def work(value, *, deadline):
            return value, deadline

        value, deadline = await run_with_deadline(work, 42, timeout_seconds=5)
        assert value == 42
        assert deadline > time.monotonic()

    def test_expired_deadline_between_steps(self):
        with pytest.raises(TranscodeTimeoutError):
            check_deadline(time.monotonic() - 1, 30.0, "resize")

    def test_expired_deadline_in_sync_transcode(self):
        with pytest.raises(TranscodeTimeoutError):
            ImageTranscoder().transcode_sync(make_image_bytes(300, 300), deadline=time.monotonic() - 1)

    def test_timeout_is_not_builtin_timeout(self):
        assert not issubclass(TranscodeTimeoutError, TimeoutError)
