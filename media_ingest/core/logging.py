"""media-ingest 日志模块

提供带有 `request_id`、`blob_name`、`stage` 的结构化日志。

- 使用 loguru。
- 通过 contextvars 注入上下文，使现有的 `logger.info(...)` 调用自动带上这些字段。
"""

from __future__ import annotations

import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from loguru import logger as _base_logger


_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_blob_name: ContextVar[Optional[str]] = ContextVar("blob_name", default=None)
_stage: ContextVar[Optional[str]] = ContextVar("stage", default=None)


def _patch_record(record: dict) -> dict:
    record_extra = record.get("extra")
    if record_extra is None:
        record_extra = {}
        record["extra"] = record_extra

    record_extra.setdefault("request_id", _request_id.get())
    record_extra.setdefault("blob_name", _blob_name.get())
    record_extra.setdefault("stage", _stage.get())
    return record


logger = _base_logger.patch(_patch_record)


def new_request_id() -> str:
    return uuid.uuid4().hex


@contextmanager
def log_context(
    *,
    request_id: Optional[str] = None,
    blob_name: Optional[str] = None,
    stage: Optional[str] = None,
) -> Iterator[None]:
    tokens = []
    if request_id is not None:
        tokens.append((_request_id, _request_id.set(request_id)))
    if blob_name is not None:
        tokens.append((_blob_name, _blob_name.set(blob_name)))
    if stage is not None:
        tokens.append((_stage, _stage.set(stage)))

    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def set_stage(stage: Optional[str]) -> None:
    """更新当前上下文中的处理阶段（由状态机在每次迁移时调用）"""
    _stage.set(stage)


def _format_text(record) -> str:
    """文本格式：只在上下文字段存在时输出 req/blob/stg"""
    extra = record["extra"]
    ids = []
    if extra.get("request_id"):
        ids.append("req={extra[request_id]}")
    if extra.get("blob_name"):
        ids.append("blob={extra[blob_name]}")
    if extra.get("stage"):
        ids.append("stg={extra[stage]}")

    context = f" {' | '.join(ids)} -" if ids else ""
    return "{time:YYYY-MM-DD HH:mm:ss} | {level:<8} |" + context + " {name}:{function} - {message}\n{exception}"


def setup_logging(
    *,
    level: str = "INFO",
    fmt: str = "json",
    debug: bool = False,
    log_dir: Optional[str] = "logs",
) -> None:
    """设置日志配置

    参数:
        level: 日志级别。
        fmt: 'json' 或 'text'。
        debug: 是否启用 loguru 的 backtrace/diagnose。
        log_dir: 日志文件目录，为空时只输出到终端。
    """
    logger.remove()

    json_format = fmt.lower() == "json"
    sink_options = {"level": level.upper(), "backtrace": debug, "diagnose": debug}
    if json_format:
        sink_options["serialize"] = True
    else:
        sink_options["format"] = _format_text

    logger.add(sys.stdout, **sink_options)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        filename = "media_ingest.json.log" if json_format else "media_ingest.log"
        logger.add(
            os.path.join(log_dir, filename),
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            **sink_options,
        )
