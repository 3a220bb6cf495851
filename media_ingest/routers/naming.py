"""
功能描述：存储资源命名 API
包含：容器/表/队列名的尽力修正（不抛错，返回可用名称）
"""
from typing import Literal

from fastapi import APIRouter, Query

from media_ingest.naming import (
    is_valid_container_name,
    is_valid_queue_name,
    is_valid_table_name,
    sanitize_container_name,
    sanitize_queue_name,
    sanitize_table_name,
)
from media_ingest.schemas import SanitizedNameOut

router = APIRouter()

_SANITIZERS = {
    "container": (is_valid_container_name, sanitize_container_name),
    "table": (is_valid_table_name, sanitize_table_name),
    "queue": (is_valid_queue_name, sanitize_queue_name),
}


@router.get("/naming/sanitize", response_model=SanitizedNameOut)
async def sanitize_name(
    name: str = Query(...),
    kind: Literal["container", "table", "queue"] = Query("container"),
):
    is_valid, sanitize = _SANITIZERS[kind]
    return SanitizedNameOut(kind=kind, input=name, name=sanitize(name), was_valid=is_valid(name))
