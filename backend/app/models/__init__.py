"""
数据库模型定义模块

模型按功能拆分：
- user.py: 用户权益模型（users）
- stripe_event.py: Stripe 事件账本模型（stripe_events）
"""
from sqlmodel import SQLModel

from .base import as_utc, from_unix, utc_now
from .stripe_event import StripeEvent
from .user import UserEntitlement

__all__ = [
    "SQLModel",
    "as_utc",
    "from_unix",
    "utc_now",
    "UserEntitlement",
    "StripeEvent",
]
