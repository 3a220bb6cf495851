"""
存储资源命名模块

该模块包含:
- resolver: (分区, 资产类型) -> 容器/表/队列名
- validators: 命名规则校验与尽力修正
"""
from .resolver import get_blob_container_name, get_queue_name, get_table_name, parse_container_name
from .validators import (
    is_valid_container_name,
    is_valid_queue_name,
    is_valid_table_name,
    sanitize_container_name,
    sanitize_queue_name,
    sanitize_table_name,
    validate_container_name,
    validate_queue_name,
    validate_table_name,
)

__all__ = [
    'get_blob_container_name',
    'get_queue_name',
    'get_table_name',
    'parse_container_name',
    'is_valid_container_name',
    'is_valid_queue_name',
    'is_valid_table_name',
    'sanitize_container_name',
    'sanitize_queue_name',
    'sanitize_table_name',
    'validate_container_name',
    'validate_queue_name',
    'validate_table_name',
]
