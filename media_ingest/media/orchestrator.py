"""媒体处理编排器

单次请求的状态机（无跨请求共享状态）：

    VALIDATING -> CLASSIFYING -> [图片: TRANSCODING_PRIMARY -> UPLOADING_PRIMARY
    -> GENERATING_THUMBNAIL -> UPLOADING_THUMBNAIL] -> RESOLVING_URLS -> COMPLETE

- VALIDATING / TRANSCODING_PRIMARY / UPLOADING_PRIMARY 失败进入 FAILED，异常抛给调用方
- 缩略图阶段失败只记录日志，结果降级：thumbnail_url 回退为主副本的 cdn_url
- 不做重试，也不回滚已经上传的 blob
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from media_ingest.cdn import CdnUrlResolver, get_cdn_resolver
from media_ingest.constants import OUTPUT_FORMATS, AssetKind, AssetType, ContentSection, PipelineStage
from media_ingest.core.config import Settings
from media_ingest.core.logging import log_context, logger, set_stage
from media_ingest.core.storage import BlobStore, StoredObject
from media_ingest.core.time_utils import utcnow
from media_ingest.errors import MediaPipelineError, StorageError, ValidationError
from media_ingest.media.classify import classify_asset, derivative_blob_name, guess_content_type
from media_ingest.media.imaging import ImageProcessingOptions, InputSource, read_input_bytes
from media_ingest.media.thumbnail import ThumbnailGenerator
from media_ingest.media.transcoder import ImageTranscoder
from media_ingest.models import BlobReference, MediaReference, NamingContext
from media_ingest.naming import get_blob_container_name


@dataclass(frozen=True)
class OrchestratorOptions:
    processed_suffix: str = "_processed"
    thumbnail_suffix: str = "_thumb"
    is_mock_storage: bool = False
    create_missing_containers: bool = True

    @classmethod
    def from_settings(cls, config: Settings) -> "OrchestratorOptions":
        return cls(
            processed_suffix=config.processed_blob_suffix,
            thumbnail_suffix=config.thumbnail_blob_suffix,
            is_mock_storage=config.storage_mock_mode,
            create_missing_containers=config.storage_create_missing_containers,
        )


class _PipelineRun:
    """记录单次请求所处的阶段，用于日志与失败定位"""

    def __init__(self, blob_name: str):
        self.blob_name = blob_name
        self.stage = PipelineStage.VALIDATING
        self.history: list[PipelineStage] = [PipelineStage.VALIDATING]
        set_stage(self.stage.value)

    def advance(self, stage: PipelineStage) -> None:
        self.stage = stage
        self.history.append(stage)
        set_stage(stage.value)
        logger.debug("Pipeline stage -> {}", stage.value)

    def fail(self, error: MediaPipelineError) -> None:
        failed_at = self.stage
        error.details = {**(error.details or {}), "stage": failed_at.value}
        self.advance(PipelineStage.FAILED)
        logger.warning(
            "Media processing failed at {}: {}: {}",
            failed_at.value,
            type(error).__name__,
            error.message,
        )


def validate_blob_name(blob_name: Optional[str]) -> str:
    """调用方 blob 名校验：非空、不含 'mock'、不允许绝对路径或 '..' 路径段"""
    if blob_name is None or not blob_name.strip():
        raise ValidationError("Blob name cannot be null or empty.", details={"field": "blob_name"})
    if "mock" in blob_name:
        raise ValidationError("Blob name cannot be a mock blob.", details={"field": "blob_name"})
    if blob_name.startswith("/") or "\\" in blob_name or ".." in blob_name.split("/"):
        raise ValidationError("Blob name must be a relative path without '..' segments.", details={"field": "blob_name"})
    return blob_name


class MediaOrchestrator:
    def __init__(
        self,
        store: BlobStore,
        *,
        transcoder: Optional[ImageTranscoder] = None,
        thumbnails: Optional[ThumbnailGenerator] = None,
        cdn: Optional[CdnUrlResolver] = None,
        options: Optional[OrchestratorOptions] = None,
        image_options: Optional[ImageProcessingOptions] = None,
    ):
        image_options = image_options or ImageProcessingOptions()
        self.store = store
        self.transcoder = transcoder or ImageTranscoder(image_options)
        self.thumbnails = thumbnails or ThumbnailGenerator(image_options)
        self.cdn = cdn or get_cdn_resolver()
        self.options = options or OrchestratorOptions()

    @classmethod
    def from_settings(cls, store: BlobStore, config: Settings) -> "MediaOrchestrator":
        image_options = ImageProcessingOptions.from_settings(config)
        return cls(
            store,
            cdn=CdnUrlResolver.from_settings(config),
            options=OrchestratorOptions.from_settings(config),
            image_options=image_options,
        )

    def max_input_bytes(self, blob_name: str) -> Optional[int]:
        """输入字节上限：只有进入转码分支的图片受限，其他资产原样存储"""
        if classify_asset(blob_name) == AssetKind.IMAGE:
            return self.transcoder.options.max_file_size_bytes
        return None

    async def process(
        self,
        section: Union[ContentSection, str],
        asset_type: Union[AssetType, str, None],
        original_blob_name: str,
        input_stream: InputSource,
    ) -> MediaReference:
        """处理一次上传并返回 MediaReference

        Raises:
            ValidationError, UnsupportedRouteError, ConversionError,
            TranscodeTimeoutError, StorageError
        """
        with log_context(blob_name=original_blob_name or "-", stage=PipelineStage.VALIDATING.value):
            run = _PipelineRun(original_blob_name)
            try:
                return await self._process(run, section, asset_type, original_blob_name, input_stream)
            except MediaPipelineError as e:
                run.fail(e)
                raise

    async def _process(
        self,
        run: _PipelineRun,
        section: Union[ContentSection, str],
        asset_type: Union[AssetType, str, None],
        blob_name: str,
        input_stream: InputSource,
    ) -> MediaReference:
        validate_blob_name(blob_name)
        naming = NamingContext.parse(section, asset_type)
        kind = classify_asset(blob_name)
        # 图片输入最多读取 max+1 字节，超限立即拒绝
        data = read_input_bytes(input_stream, self.max_input_bytes(blob_name))
        if not data:
            raise ValidationError("Input stream is empty.", details={"field": "input_stream"})

        run.advance(PipelineStage.CLASSIFYING)
        content_type = guess_content_type(blob_name)
        mock = self.options.is_mock_storage
        container = get_blob_container_name(naming.section, naming.asset_type, is_mock_storage=mock)
        if not mock:
            # 写入任何字节之前确认存在分发路由
            self.cdn.endpoint_for(naming.section, naming.asset_type)
        logger.info(
            "Processing media: kind={} content_type={} container={} size={}",
            kind.value, content_type, container, len(data),
        )

        if kind != AssetKind.IMAGE:
            return await self._store_as_is(run, naming, kind, container, blob_name, data, content_type)

        run.advance(PipelineStage.TRANSCODING_PRIMARY)
        converted = await self.transcoder.transcode(data)

        run.advance(PipelineStage.UPLOADING_PRIMARY)
        await self._ensure_container(container)
        await self._put(container, blob_name, data, content_type)
        processed_name = derivative_blob_name(blob_name, self.options.processed_suffix, self._extension(converted.format))
        await self._put(container, processed_name, converted.content, converted.content_type)

        thumbnail_name, thumbnail_error = await self._thumbnail(run, container, blob_name, data)

        run.advance(PipelineStage.RESOLVING_URLS)
        original_url = self._url(naming, container, blob_name)
        cdn_url = self._url(naming, container, processed_name)
        thumbnail_url = self._url(naming, container, thumbnail_name) if thumbnail_name else cdn_url

        run.advance(PipelineStage.COMPLETE)
        if thumbnail_error:
            logger.warning("Media processed with degraded thumbnail: {}", processed_name)
        else:
            logger.info("Successfully processed image: {}", blob_name)

        return MediaReference(
            section=naming.section,
            asset_type=naming.asset_type,
            kind=kind,
            container_name=container,
            original_blob_name=blob_name,
            original_url=original_url,
            cdn_url=cdn_url,
            content_type=converted.content_type,
            processed_blob_name=processed_name,
            thumbnail_blob_name=thumbnail_name,
            thumbnail_url=thumbnail_url,
            width=converted.width,
            height=converted.height,
            output_format=converted.format,
            degraded=thumbnail_error is not None,
            thumbnail_error=thumbnail_error,
            mock_storage=mock,
            created_at=utcnow(),
        )

    async def _store_as_is(
        self,
        run: _PipelineRun,
        naming: NamingContext,
        kind: AssetKind,
        container: str,
        blob_name: str,
        data: bytes,
        content_type: str,
    ) -> MediaReference:
        # 非图片资产原样存储，元数据提取交由外部协作方
        run.advance(PipelineStage.UPLOADING_PRIMARY)
        await self._ensure_container(container)
        await self._put(container, blob_name, data, content_type)

        run.advance(PipelineStage.RESOLVING_URLS)
        url = self._url(naming, container, blob_name)

        run.advance(PipelineStage.COMPLETE)
        logger.info("Stored {} asset as-is: {}", kind.value, blob_name)
        return MediaReference(
            section=naming.section,
            asset_type=naming.asset_type,
            kind=kind,
            container_name=container,
            original_blob_name=blob_name,
            original_url=url,
            cdn_url=url,
            content_type=content_type,
            mock_storage=self.options.is_mock_storage,
            created_at=utcnow(),
        )

    async def _thumbnail(
        self,
        run: _PipelineRun,
        container: str,
        blob_name: str,
        data: bytes,
    ) -> tuple[Optional[str], Optional[str]]:
        """生成并上传缩略图；失败时返回 (None, 错误描述)，已上传的主副本保持不变"""
        run.advance(PipelineStage.GENERATING_THUMBNAIL)
        try:
            thumbnail = await self.thumbnails.generate(data)
            run.advance(PipelineStage.UPLOADING_THUMBNAIL)
            thumbnail_name = derivative_blob_name(
                blob_name, self.options.thumbnail_suffix, self._extension(thumbnail.format)
            )
            await self._put(container, thumbnail_name, thumbnail.content, thumbnail.content_type)
            return thumbnail_name, None
        except MediaPipelineError as e:
            logger.warning(
                "Thumbnail failed at {}, falling back to primary derivative: {}: {}",
                run.stage.value,
                type(e).__name__,
                e.message,
            )
            return None, f"{type(e).__name__}: {e.message}"

    @staticmethod
    def _extension(output_format: str) -> str:
        return OUTPUT_FORMATS[output_format][1] if output_format in OUTPUT_FORMATS else output_format

    def _url(self, naming: NamingContext, container: str, blob_name: str) -> str:
        return self.cdn.resolve(
            naming.section,
            naming.asset_type,
            blob_name,
            container_name=container,
            is_mock_storage=self.options.is_mock_storage,
        )

    async def _ensure_container(self, container: str) -> None:
        """容器首次使用前检查是否存在，按配置自动创建"""
        try:
            if await self.store.exists(container):
                return
            if not self.options.create_missing_containers:
                raise StorageError(f"Blob container '{container}' does not exist.", details={"container": container})
            await self.store.create_container(container)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to prepare container '{container}': {e}", details={"container": container}) from e

    async def _put(self, container: str, blob_name: str, data: bytes, content_type: str) -> StoredObject:
        logger.info("Uploading blob {} to container {}", blob_name, container)
        try:
            return await self.store.put(container, blob_name, data, content_type)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(
                f"Failed to upload blob '{blob_name}' to container '{container}': {e}",
                details={"container": container, "blob_name": blob_name},
            ) from e

    async def delete_media(self, container: str, blob_name: str) -> bool:
        """尽力删除，存储失败时记录日志并返回 False"""
        try:
            logger.info("Deleting media: {}/{}", container, blob_name)
            return await self.store.delete(container, blob_name)
        except Exception as e:
            logger.error("Error deleting media {}/{}: {}", container, blob_name, e)
            return False

    def resolve_blob_reference(
        self,
        section: Union[ContentSection, str],
        asset_type: Union[AssetType, str, None],
        blob_name: str,
    ) -> BlobReference:
        naming = NamingContext.parse(section, asset_type)
        container = get_blob_container_name(naming.section, naming.asset_type, is_mock_storage=self.options.is_mock_storage)
        return BlobReference(blob_name=blob_name, cdn_url=self._url(naming, container, blob_name))
