"""
基础模型模块

定义所有模型共用的基础类和工具函数。
"""
from datetime import datetime, timezone

from sqlmodel import SQLModel


def utc_now() -> datetime:
    """
    获取当前 UTC 时间

    Returns:
        当前 UTC 时区的日期时间对象
    """
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """
    统一为带时区的 UTC 时间

    SQLite 等后端读回的 DateTime 不带时区信息，比较前需要补上 UTC。
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_unix(seconds: int | float | str | None) -> datetime | None:
    """Stripe 时间戳（秒）转 UTC datetime，空值或非法值返回 None"""
    if seconds is None or seconds == "":
        return None
    try:
        return datetime.fromtimestamp(int(seconds), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


# 导出 SQLModel 供其他模块使用
__all__ = ["SQLModel", "as_utc", "from_unix", "utc_now"]
