"""
Stripe 事件账本模型模块

定义 Stripe webhook 事件去重/幂等记录的数据库模型。
"""
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String, Text
from sqlmodel import Field, SQLModel

from .base import utc_now


class StripeEvent(SQLModel, table=True):
    """
    Stripe Webhook 事件账本模型

    以 Stripe 事件 ID 为主键，主键唯一性保证“首次插入”是原子操作。
    两阶段状态：locked_at（开始处理前写入）→ processed_at（处理完成后写入）。
    processed_at 一旦写入，该事件不再被处理，记录也不再更新。

    字段说明：
    - event_id: Stripe 事件 ID（主键）
    - event_type: 事件类型（审计用）
    - channel: 接收该事件的 Webhook 通道（production / cli）
    - locked_at: 当前处理尝试的加锁时间，释放后为 None
    - processed_at: 处理完成时间
    - outcome: 处理结果（见 LedgerOutcome）
    - attempts: 领取锁的次数
    - last_error: 最近一次暂时性失败的原因
    - payload: 事件完整数据（用于人工重放）
    """
    __tablename__ = "stripe_events"

    event_id: str = Field(sa_column=Column(String(255), primary_key=True))
    event_type: str = Field(max_length=128)
    channel: str = Field(default="production", max_length=32)

    locked_at: datetime | None = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    processed_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    # 存储 LedgerOutcome 的字符串值
    outcome: str | None = Field(
        default=None, sa_column=Column(String(32), nullable=True)
    )
    attempts: int = Field(default=1)
    last_error: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    payload: dict | None = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
