"""
存储资源命名校验与修正

- validate_*：严格校验，违反规则时抛出 NamingError（rule 字段标识具体规则）
- is_valid_*：校验结果的布尔版本
- sanitize_*：尽力修正，从不抛出异常，输出总能通过对应的 validate_*
"""
from __future__ import annotations

import re
from typing import Optional

from media_ingest.errors import NamingError


MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 63

RULE_EMPTY = "empty"
RULE_LENGTH = "length"
RULE_CHARSET = "charset"
RULE_RESERVED = "reserved"
RULE_CONSECUTIVE_HYPHENS = "consecutive_hyphens"

_CONTAINER_NAME_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")
_TABLE_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]{2,62}$")
_QUEUE_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")

# 保留名（不区分大小写）
RESERVED_CONTAINER_NAMES = frozenset({"containers"})
RESERVED_TABLE_NAMES = frozenset({"tables"})
RESERVED_QUEUE_NAMES = frozenset({"queues"})


def _check_length(name: str, kind: str) -> None:
    if len(name) < MIN_NAME_LENGTH or len(name) > MAX_NAME_LENGTH:
        raise NamingError(
            f"{kind} name must be between {MIN_NAME_LENGTH} and {MAX_NAME_LENGTH} characters long.",
            rule=RULE_LENGTH,
            name=name,
        )


def _check_not_empty(name: Optional[str], kind: str) -> None:
    if name is None or not name.strip():
        raise NamingError(f"{kind} name cannot be null or empty.", rule=RULE_EMPTY, name=name)


def _check_reserved(name: str, kind: str, reserved: frozenset[str]) -> None:
    if name.lower() in reserved:
        raise NamingError(f"{kind} name '{name}' is reserved and cannot be used.", rule=RULE_RESERVED, name=name)


def validate_container_name(name: Optional[str]) -> None:
    _check_not_empty(name, "Container")
    _check_length(name, "Container")
    if not _CONTAINER_NAME_RE.match(name):
        raise NamingError(
            "Container name can only contain lowercase alphanumeric characters and single hyphens, "
            "and must start and end with an alphanumeric character.",
            rule=RULE_CHARSET,
            name=name,
        )
    _check_reserved(name, "Container", RESERVED_CONTAINER_NAMES)


def validate_table_name(name: Optional[str]) -> None:
    _check_not_empty(name, "Table")
    _check_length(name, "Table")
    if not _TABLE_NAME_RE.match(name):
        raise NamingError(
            "Table name must start with a letter and only contain alphanumeric characters.",
            rule=RULE_CHARSET,
            name=name,
        )
    _check_reserved(name, "Table", RESERVED_TABLE_NAMES)


def validate_queue_name(name: Optional[str]) -> None:
    _check_not_empty(name, "Queue")
    _check_length(name, "Queue")
    if not _QUEUE_NAME_RE.match(name):
        raise NamingError(
            "Queue name must start and end with a letter or number, "
            "and can contain only lowercase letters, numbers, and hyphens.",
            rule=RULE_CHARSET,
            name=name,
        )
    if "--" in name:
        raise NamingError("Queue name cannot contain consecutive hyphens.", rule=RULE_CONSECUTIVE_HYPHENS, name=name)
    _check_reserved(name, "Queue", RESERVED_QUEUE_NAMES)


def _is_valid(validator, name: Optional[str]) -> bool:
    try:
        validator(name)
        return True
    except NamingError:
        return False


def is_valid_container_name(name: Optional[str]) -> bool:
    return _is_valid(validate_container_name, name)


def is_valid_table_name(name: Optional[str]) -> bool:
    return _is_valid(validate_table_name, name)


def is_valid_queue_name(name: Optional[str]) -> bool:
    return _is_valid(validate_queue_name, name)


def _fit_length(value: str, pad: str) -> str:
    if len(value) < MIN_NAME_LENGTH:
        value = value.ljust(MIN_NAME_LENGTH, pad)
    return value[:MAX_NAME_LENGTH]


def _append_suffix(value: str, suffix: str) -> str:
    """追加消歧后缀，必要时先截断保证总长度不超限"""
    return value[:MAX_NAME_LENGTH - len(suffix)] + suffix


def sanitize_table_name(name: Optional[str]) -> str:
    """
    尽力修正表名

    - 去除非字母数字字符
    - 结果为空或不以字母开头时补 "Table" 前缀
    - 长度不足补 '0'，超长截断到 63
    - 与保留名冲突时追加 "Data"
    """
    sanitized = re.sub(r"[^a-zA-Z0-9]", "", name or "")

    if not sanitized or not sanitized[0].isalpha():
        sanitized = "Table" + sanitized

    sanitized = _fit_length(sanitized, "0")

    if sanitized.lower() in RESERVED_TABLE_NAMES:
        sanitized = _append_suffix(sanitized, "Data")

    return sanitized


def _sanitize_hyphenated(name: Optional[str], prefix: str, reserved: frozenset[str]) -> str:
    sanitized = (name or "").lower()
    sanitized = re.sub(r"[^a-z0-9-]", "", sanitized)
    sanitized = re.sub(r"-{2,}", "-", sanitized).strip("-")

    if not sanitized:
        sanitized = prefix

    sanitized = _fit_length(sanitized, "0")
    # 截断可能留下结尾连字符
    sanitized = sanitized.rstrip("-")
    sanitized = _fit_length(sanitized, "0")

    if sanitized in reserved:
        sanitized = _append_suffix(sanitized, "-data")

    return sanitized


def sanitize_container_name(name: Optional[str]) -> str:
    """尽力修正容器名：小写、仅保留字母数字与单个连字符，首尾不为连字符"""
    return _sanitize_hyphenated(name, "container", RESERVED_CONTAINER_NAMES)


def sanitize_queue_name(name: Optional[str]) -> str:
    """尽力修正队列名，规则同容器名"""
    return _sanitize_hyphenated(name, "queue", RESERVED_QUEUE_NAMES)
