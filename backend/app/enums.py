"""
枚举类型定义模块

所有枚举都继承自 str 和 Enum，这样既可以用作字符串，又具有枚举的特性。
"""
from enum import Enum


class WebhookChannel(str, Enum):
    """
    Stripe Webhook 接收通道

    - production: Stripe 控制台配置的正式 Webhook
    - cli: Stripe CLI 转发（本地联调）
    """
    production = "production"
    cli = "cli"


class LedgerAcquire(str, Enum):
    """
    事件账本加锁结果

    - fresh: 获得锁，调用方必须处理并标记完成
    - already_processed: 已处理完成，直接返回成功
    - already_locked: 另一次尝试持有锁且未完成，视为已处理
    """
    fresh = "fresh"
    already_processed = "already_processed"
    already_locked = "already_locked"


class LedgerOutcome(str, Enum):
    """
    事件处理结果（写入账本用于审计）

    - applied: 已应用权益变更
    - noop: 未识别的事件类型，或没有可应用的变更
    - identity_not_found: 无法解析出用户
    - ambiguous_identity: 客户 ID 命中多个用户
    - superseded: 事件针对的订阅已被更新的订阅取代，或已经删除
    """
    applied = "applied"
    noop = "noop"
    identity_not_found = "identity_not_found"
    ambiguous_identity = "ambiguous_identity"
    superseded = "superseded"


class MenuVariant(str, Enum):
    """LINE 富菜单（Rich Menu）变体"""
    premium = "premium"
    regular = "regular"


class StripeEventType(str, Enum):
    """需要处理的 Stripe 事件类型"""
    checkout_completed = "checkout.session.completed"
    subscription_updated = "customer.subscription.updated"
    invoice_payment_succeeded = "invoice.payment_succeeded"
    subscription_deleted = "customer.subscription.deleted"
