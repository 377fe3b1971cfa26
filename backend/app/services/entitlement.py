"""
用户权益服务

- EntitlementPatch: 局部合并的权益变更（只修改点名的字段）
- is_entitled: 读取时的惰性过期判断
- project: 权益记录的对外视图
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.models import UserEntitlement, as_utc, utc_now

_PATCHABLE_FIELDS = frozenset(
    {
        "premium",
        "premium_since",
        "premium_until",
        "stripe_customer_id",
        "last_subscription_id",
        "cancel_pending",
        "cancel_at",
        "ended_subscription_id",
        "subscription_ended_at",
    }
)


@dataclass(frozen=True)
class EntitlementPatch:
    """
    权益记录的局部变更

    - assign: 无条件覆盖
    - assign_if_absent: 仅当当前值为空时写入（premium_since、stripe_customer_id 只写一次）
    - advance: 时间字段只向后推进，乱序到达的旧事件不会把到期时间改早
    - expected_subscription_id: 若记录里最近的订阅 ID 与之不同，则整个变更不生效
    - skip_if_ended: 事件所属订阅已被删除时整个变更不生效。订阅 ID 未知时，
      周期开始（period_start）早于删除时间的事件同样跳过

    同一变更重复应用得到相同的结果。
    """
    assign: dict[str, Any] = field(default_factory=dict)
    assign_if_absent: dict[str, Any] = field(default_factory=dict)
    advance: dict[str, datetime] = field(default_factory=dict)
    expected_subscription_id: str | None = None
    skip_if_ended: bool = False
    period_start: datetime | None = None

    def __post_init__(self) -> None:
        names = set(self.assign) | set(self.assign_if_absent) | set(self.advance)
        unknown = names - _PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown entitlement fields: {sorted(unknown)}")

    def applies_to(self, record: UserEntitlement) -> bool:
        if (
            self.expected_subscription_id is not None
            and record.last_subscription_id is not None
            and record.last_subscription_id != self.expected_subscription_id
        ):
            return False
        if self.skip_if_ended:
            if self.expected_subscription_id is not None:
                return record.ended_subscription_id != self.expected_subscription_id
            ended_at = as_utc(record.subscription_ended_at)
            if ended_at is not None and self.period_start is not None:
                return as_utc(self.period_start) >= ended_at  # type: ignore[operator]
        return True

    def apply_to(self, record: UserEntitlement) -> bool:
        """
        把变更合并进记录

        Returns:
            False 表示变更被订阅守卫拦截（订阅已被取代或已删除），记录未修改
        """
        if not self.applies_to(record):
            return False
        for name, value in self.assign.items():
            setattr(record, name, value)
        for name, value in self.assign_if_absent.items():
            if getattr(record, name) is None:
                setattr(record, name, value)
        for name, value in self.advance.items():
            current = as_utc(getattr(record, name))
            if current is None or as_utc(value) >= current:  # type: ignore[operator]
                setattr(record, name, value)
        return True


def is_entitled(record: UserEntitlement | None, now: datetime | None = None) -> bool:
    """
    判断用户当前是否享有付费权益

    premium 为 False → 否；premium 为 True 且没有到期时间 → 是；
    否则当且仅当当前时间严格早于 premium_until。纯函数，不修改记录。
    """
    if record is None or not record.premium:
        return False
    until = as_utc(record.premium_until)
    if until is None:
        return True
    return (now or utc_now()) < until


class EntitlementView(BaseModel):
    """GET /user/{user_id} 返回的权益视图（JSON 字段为驼峰命名）"""
    model_config = ConfigDict(populate_by_name=True)

    exists: bool = False
    premium: bool = False
    premium_since: datetime | None = Field(default=None, alias="premiumSince")
    premium_until: datetime | None = Field(default=None, alias="premiumUntil")
    cancel_pending: bool = Field(default=False, alias="cancelPending")
    cancel_at: datetime | None = Field(default=None, alias="cancelAt")


def project(record: UserEntitlement | None, now: datetime | None = None) -> EntitlementView:
    """
    把权益记录投影为对外视图

    不存在的用户返回默认值（exists=False, premium=False），而不是错误。
    premium 是计算结果，不是记录里的原始标记。
    """
    if record is None:
        return EntitlementView()
    return EntitlementView(
        exists=True,
        premium=is_entitled(record, now),
        premium_since=as_utc(record.premium_since),
        premium_until=as_utc(record.premium_until),
        cancel_pending=bool(record.cancel_pending),
        cancel_at=as_utc(record.cancel_at),
    )
