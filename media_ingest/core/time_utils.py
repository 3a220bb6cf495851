"""
时间工具函数
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """返回带 UTC 时区信息的当前时间戳"""
    return datetime.now(timezone.utc)
