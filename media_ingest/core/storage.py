"""存储后端（BlobStore 协作方）

目标：
- 为衍生资产（处理后的图片、缩略图、原样存储的文件）提供简单的容器/blob 抽象
- 管道只依赖 BlobStore 协议；真实的云存储客户端不在本项目范围内

设计说明：
- 异步API接口，本地文件系统通过 asyncio.to_thread 实现阻塞IO的异步调用
- put 覆盖写入（同名重复上传替换内容，last-write-wins）
- exists 只在容器首次使用前检查，而不是每次写入前
"""

from __future__ import annotations

import asyncio
import hashlib
import os
import re
import uuid
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from media_ingest.core.config import settings
from media_ingest.core.logging import logger


@dataclass(frozen=True)
class StoredObject:
    container: str
    blob_name: str
    size: int
    sha256: Optional[str] = None
    content_type: Optional[str] = None


@runtime_checkable
class BlobStore(Protocol):
    """管道消费的最小存储接口"""

    async def put(self, container: str, blob_name: str, data: bytes, content_type: str) -> StoredObject: ...

    async def exists(self, container: str) -> bool: ...

    async def create_container(self, container: str) -> None: ...

    async def delete(self, container: str, blob_name: str) -> bool: ...


def _sha256_bytes(data: bytes) -> str:
    """计算字节数据的SHA256哈希值"""
    return hashlib.sha256(data).hexdigest()


_SAFE_SEGMENT = re.compile(r"^[^\\/\x00]+$")


class LocalStorageBackend:
    """本地文件系统实现：<root>/<container>/<blob_name>"""

    def __init__(self, root_dir: str):
        self.root_dir = os.path.abspath(root_dir)

    def _container_path(self, container: str) -> str:
        if not container or not _SAFE_SEGMENT.match(container) or container in (".", ".."):
            raise ValueError(f"Invalid container name: {container!r}")
        return os.path.join(self.root_dir, container)

    def _full_path(self, container: str, blob_name: str) -> str:
        """将 container/blob 转换为本地路径，拒绝越出容器目录的 key"""
        base = self._container_path(container)
        safe_key = blob_name.lstrip("/")
        path = os.path.realpath(os.path.join(base, safe_key))
        if not path.startswith(os.path.realpath(base) + os.sep):
            raise ValueError(f"Invalid blob name: {blob_name!r}")
        return path

    async def exists(self, container: str) -> bool:
        return os.path.isdir(self._container_path(container))

    async def create_container(self, container: str) -> None:
        path = self._container_path(container)
        await asyncio.to_thread(os.makedirs, path, exist_ok=True)
        logger.info("Container created: {}", container)

    async def get_bytes(self, container: str, blob_name: str) -> bytes:
        """读取 blob 内容（不属于 BlobStore 协议，供运维检查与测试使用）"""
        path = self._full_path(container, blob_name)

        def read_file() -> bytes:
            with open(path, "rb") as f:
                return f.read()

        try:
            return await asyncio.to_thread(read_file)
        except Exception as e:
            logger.error("Read object failed: {}/{}, {}", container, blob_name, e)
            raise

    async def put(self, container: str, blob_name: str, data: bytes, content_type: str) -> StoredObject:
        path = self._full_path(container, blob_name)
        # 每次写入使用独立的临时文件，并发写同名 blob 时以最后一次 replace 为准
        tmp_path = f"{path}.{uuid.uuid4().hex}.tmp"

        def write_atomic() -> None:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            try:
                with open(tmp_path, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, path)
            finally:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)

        await asyncio.to_thread(write_atomic)
        return StoredObject(
            container=container,
            blob_name=blob_name,
            size=len(data),
            sha256=_sha256_bytes(data),
            content_type=content_type,
        )

    async def delete(self, container: str, blob_name: str) -> bool:
        path = self._full_path(container, blob_name)

        def remove() -> bool:
            try:
                os.remove(path)
                return True
            except FileNotFoundError:
                return False

        return await asyncio.to_thread(remove)


class InMemoryStorageBackend:
    """进程内存实现，用于测试与模拟存储模式"""

    def __init__(self, containers: Optional[list[str]] = None):
        self.blobs: dict[tuple[str, str], bytes] = {}
        self.content_types: dict[tuple[str, str], str] = {}
        self.containers: set[str] = set(containers or [])

    async def exists(self, container: str) -> bool:
        return container in self.containers

    async def create_container(self, container: str) -> None:
        self.containers.add(container)

    async def put(self, container: str, blob_name: str, data: bytes, content_type: str) -> StoredObject:
        self.blobs[(container, blob_name)] = bytes(data)
        self.content_types[(container, blob_name)] = content_type
        return StoredObject(
            container=container,
            blob_name=blob_name,
            size=len(data),
            sha256=_sha256_bytes(data),
            content_type=content_type,
        )

    async def get_bytes(self, container: str, blob_name: str) -> bytes:
        """读取 blob 内容（检查辅助方法，不属于 BlobStore 协议）"""
        return self.blobs[(container, blob_name)]

    async def delete(self, container: str, blob_name: str) -> bool:
        self.content_types.pop((container, blob_name), None)
        return self.blobs.pop((container, blob_name), None) is not None


_backend_singleton: Optional[BlobStore] = None


def get_storage_backend() -> BlobStore:
    """获取基于配置的单例存储后端。

    配置项:
    - storage_backend: local | memory
    - storage_local_root
    """

    global _backend_singleton
    if _backend_singleton is not None:
        return _backend_singleton

    backend = getattr(settings, "storage_backend", "local")
    if backend == "memory":
        _backend_singleton = InMemoryStorageBackend()
        logger.info("存储后端: memory")
        return _backend_singleton

    root = getattr(settings, "storage_local_root", "data/storage")
    _backend_singleton = LocalStorageBackend(root_dir=root)
    logger.info("存储后端: local (root_dir={})", os.path.abspath(root))
    return _backend_singleton


def reset_storage_backend() -> None:
    """清除单例（配置变更或测试时使用）"""
    global _backend_singleton
    _backend_singleton = None
