"""
用户权益模型模块

定义用户订阅/付费权益的数据库模型。
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field, SQLModel

from .base import utc_now


class UserEntitlement(SQLModel, table=True):
    """
    用户权益记录模型

    每个用户一条记录，主键为 LINE 用户 ID。
    记录在首次写入时隐式创建，只由 Stripe 事件处理流程修改，从不删除。

    字段说明：
    - id: LINE 用户 ID
    - premium: 是否为付费用户（原始标记，读取时需结合 premium_until 判断）
    - premium_since: 首次开通时间（只写一次）
    - premium_until: 权益到期时间（None 表示不限期）
    - stripe_customer_id: Stripe 客户 ID（只写一次，用于反查用户）
    - last_subscription_id: 最近一次的 Stripe 订阅 ID
    - cancel_pending: 是否已预约取消
    - cancel_at: 预约取消的时间
    - ended_subscription_id / subscription_ended_at: 最近一次被删除的订阅及删除时间
      （迟到的旧事件据此跳过，不会让已取消的用户重新享有权益）
    - created_at / updated_at: 审计时间
    """
    __tablename__ = "users"

    id: str = Field(sa_column=Column(String(64), primary_key=True))

    premium: bool = Field(default=False)
    premium_since: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    premium_until: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    # 不加唯一约束：反查时显式处理多条命中的情况
    stripe_customer_id: str | None = Field(
        default=None, sa_column=Column(String(64), index=True, nullable=True)
    )
    last_subscription_id: str | None = Field(
        default=None, sa_column=Column(String(64), nullable=True)
    )

    cancel_pending: bool | None = Field(default=None)
    cancel_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    ended_subscription_id: str | None = Field(
        default=None, sa_column=Column(String(64), nullable=True)
    )
    subscription_ended_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
