"""
Stripe 事件 → 权益变更

按事件类型路由到转换函数。每个转换函数返回目标用户、局部变更和要切换的
富菜单变体；返回 None 表示没有可应用的变更。转换函数本身不写库。

| 事件类型                          | 变更                                          | 菜单 |
|-----------------------------------|-----------------------------------------------|------|
| checkout.session.completed        | 开通，记录客户/订阅 ID，清除取消标记          | premium |
| customer.subscription.updated     | 同步取消预约，刷新到期时间                    | 预约取消 → regular，否则 premium |
| invoice.payment_succeeded         | 续费成功，刷新到期时间                        | premium |
| customer.subscription.deleted     | 取消权益                                      | regular |
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.enums import MenuVariant, StripeEventType
from app.models import from_unix
from app.services.entitlement import EntitlementPatch
from app.services.identity import IdentityResolver, SubscriptionLookup, ref_id, subscription_ref
from app.services.stripe_service import DownstreamLookupFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionContext:
    resolver: IdentityResolver
    payments: SubscriptionLookup
    now: datetime


@dataclass(frozen=True)
class Transition:
    user_id: str
    patch: EntitlementPatch
    menu: MenuVariant | None = None


TransitionFn = Callable[[dict[str, Any], TransitionContext], Transition | None]


def subscription_period_end(subscription: dict[str, Any] | None) -> int | None:
    """
    订阅当前周期的结束时间（秒）

    较新的 API 版本把 current_period_end 移到了订阅项（items）上。
    """
    if not isinstance(subscription, dict):
        return None
    if subscription.get("current_period_end"):
        return subscription["current_period_end"]
    items = subscription.get("items")
    data = items.get("data") if isinstance(items, dict) else None
    if isinstance(data, list):
        ends = [i.get("current_period_end") for i in data if isinstance(i, dict)]
        ends = [e for e in ends if e]
        if ends:
            return max(ends)
    return None


def invoice_period_end(invoice: dict[str, Any]) -> int | None:
    """发票首个明细行的周期结束时间，没有时退回发票自身的 period_end"""
    lines = invoice.get("lines")
    data = lines.get("data") if isinstance(lines, dict) else None
    if isinstance(data, list) and data and isinstance(data[0], dict):
        period = data[0].get("period")
        if isinstance(period, dict) and period.get("end"):
            return period["end"]
    return invoice.get("period_end") or None


def invoice_period_start(invoice: dict[str, Any]) -> int | None:
    lines = invoice.get("lines")
    data = lines.get("data") if isinstance(lines, dict) else None
    if isinstance(data, list) and data and isinstance(data[0], dict):
        period = data[0].get("period")
        if isinstance(period, dict) and period.get("start"):
            return period["start"]
    return invoice.get("period_start") or None


def on_checkout_completed(session: dict[str, Any], ctx: TransitionContext) -> Transition:
    # 发起方事件，只认 metadata 里的 userId
    user_id = ctx.resolver.from_metadata(session)
    customer_id = ref_id(session.get("customer"))
    subscription_id = ref_id(session.get("subscription"))

    premium_until: datetime | None = None
    subscription = session.get("subscription")
    if session.get("mode") == "subscription" and subscription:
        if isinstance(subscription, str):
            try:
                subscription = ctx.payments.retrieve_subscription(subscription)
            except DownstreamLookupFailure as e:
                logger.warning(f"Subscription lookup failed, premium_until left unset: {e}")
                subscription = None
        premium_until = from_unix(subscription_period_end(subscription))

    assign: dict[str, Any] = {
        "premium": True,
        "cancel_pending": None,
        "cancel_at": None,
        "subscription_ended_at": None,
    }
    if premium_until is not None:
        assign["premium_until"] = premium_until
    if subscription_id:
        assign["last_subscription_id"] = subscription_id

    assign_if_absent: dict[str, Any] = {"premium_since": ctx.now}
    if customer_id:
        assign_if_absent["stripe_customer_id"] = customer_id

    return Transition(
        user_id=user_id,
        patch=EntitlementPatch(assign=assign, assign_if_absent=assign_if_absent),
        menu=MenuVariant.premium,
    )


def on_subscription_updated(subscription: dict[str, Any], ctx: TransitionContext) -> Transition:
    user_id = ctx.resolver.resolve(subscription)
    will_cancel = bool(subscription.get("cancel_at_period_end")) or bool(subscription.get("cancel_at"))
    period_end = subscription_period_end(subscription)

    if will_cancel:
        assign: dict[str, Any] = {
            "cancel_pending": True,
            "cancel_at": from_unix(subscription.get("cancel_at") or period_end),
        }
    else:
        assign = {"cancel_pending": None, "cancel_at": None}

    advance = {}
    premium_until = from_unix(period_end)
    if premium_until is not None:
        advance["premium_until"] = premium_until

    return Transition(
        user_id=user_id,
        patch=EntitlementPatch(
            assign=assign,
            advance=advance,
            expected_subscription_id=ref_id(subscription.get("id")),
            skip_if_ended=True,
        ),
        menu=MenuVariant.regular if will_cancel else MenuVariant.premium,
    )


def on_invoice_payment_succeeded(invoice: dict[str, Any], ctx: TransitionContext) -> Transition | None:
    premium_until = from_unix(invoice_period_end(invoice))
    if premium_until is None:
        logger.warning(f"Invoice {invoice.get('id')} has no period end, nothing to apply")
        return None
    user_id = ctx.resolver.resolve(invoice)
    return Transition(
        user_id=user_id,
        patch=EntitlementPatch(
            assign={"premium": True},
            advance={"premium_until": premium_until},
            expected_subscription_id=ref_id(subscription_ref(invoice)),
            skip_if_ended=True,
            period_start=from_unix(invoice_period_start(invoice)),
        ),
        menu=MenuVariant.premium,
    )


def on_subscription_deleted(subscription: dict[str, Any], ctx: TransitionContext) -> Transition:
    user_id = ctx.resolver.resolve(subscription)
    subscription_id = ref_id(subscription.get("id"))
    ended_at = from_unix(subscription.get("ended_at")) or ctx.now
    return Transition(
        user_id=user_id,
        patch=EntitlementPatch(
            assign={
                "premium": False,
                "premium_until": None,
                "cancel_pending": None,
                "cancel_at": None,
                "ended_subscription_id": subscription_id,
                "subscription_ended_at": ended_at,
            },
            # 用户已换成更新的订阅时，旧订阅的删除事件不再生效
            expected_subscription_id=subscription_id,
        ),
        menu=MenuVariant.regular,
    )


TRANSITIONS: dict[str, TransitionFn] = {
    StripeEventType.checkout_completed.value: on_checkout_completed,
    StripeEventType.subscription_updated.value: on_subscription_updated,
    StripeEventType.invoice_payment_succeeded.value: on_invoice_payment_succeeded,
    StripeEventType.subscription_deleted.value: on_subscription_deleted,
}


def dispatch(event: dict[str, Any], ctx: TransitionContext) -> Transition | None:
    """
    按事件类型分发

    未识别的事件类型只记日志，返回 None。
    身份解析失败时抛出 IdentityError / DownstreamLookupFailure，由调用方决定账本状态。
    """
    event_type = str(event.get("type") or "")
    handler = TRANSITIONS.get(event_type)
    if handler is None:
        logger.info(f"Unhandled Stripe event type: {event_type}")
        return None
    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        logger.warning(f"Stripe event {event.get('id')} has no data.object")
        return None
    return handler(obj, ctx)
