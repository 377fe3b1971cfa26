"""
Stripe 支付服务

文档: https://docs.stripe.com/api
Webhook: https://docs.stripe.com/webhooks

封装本服务用到的 Stripe API：
- 订阅查询（身份解析、计算到期时间）
- Checkout Session 创建（在 metadata 中写入 userId）
- 客户门户（Billing Portal）Session 创建
"""
import logging
from typing import Any
from urllib.parse import quote

import stripe
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from app.api.errors import AppError
from app.core.config import settings

logger = logging.getLogger(__name__)


class DownstreamLookupFailure(Exception):
    """支付 API 不可达或返回错误（暂时性失败，不应标记事件已处理）"""


class StripeService:
    """Stripe 服务封装"""

    def __init__(self, api_key: str | None, price_id: str | None = None):
        """
        Args:
            api_key: Stripe Secret Key
            price_id: 订阅价格 ID（创建 Checkout 时使用）
        """
        self.api_key = api_key
        self.price_id = price_id

    @retry(
        retry=retry_if_exception_type(stripe.APIConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_fixed(0.5),
        reraise=True,
    )
    def _retrieve_subscription(self, subscription_id: str) -> Any:
        return stripe.Subscription.retrieve(subscription_id, api_key=self.api_key)

    def retrieve_subscription(self, subscription_id: str) -> dict[str, Any]:
        """
        查询订阅对象

        网络错误会重试，最终失败统一转换为 DownstreamLookupFailure。
        """
        if not self.api_key:
            raise DownstreamLookupFailure("STRIPE_SECRET_KEY not configured")
        try:
            subscription = self._retrieve_subscription(subscription_id)
        except stripe.StripeError as e:
            logger.warning(f"Failed to retrieve subscription {subscription_id}: {e}")
            raise DownstreamLookupFailure(f"subscription {subscription_id}: {e}") from e
        return subscription.to_dict()

    def create_checkout_session(self, *, user_id: str) -> str:
        """
        创建订阅模式的 Checkout Session

        userId 同时写入 Session 和订阅的 metadata，Webhook 处理时靠它找回用户。

        Returns:
            Checkout 页面 URL
        """
        if not self.api_key or not self.price_id:
            raise AppError(code=500201, message="Stripe checkout not configured", status_code=500)
        base = settings.PUBLIC_ORIGIN.rstrip("/")
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="subscription",
                line_items=[{"price": self.price_id, "quantity": 1}],
                success_url=f"{base}/success.html?userId={quote(user_id)}",
                cancel_url=f"{base}/cancel.html?userId={quote(user_id)}",
                metadata={"userId": user_id},
                subscription_data={"metadata": {"userId": user_id}},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session error: {e}")
            raise AppError(code=502201, message="Stripe checkout error", status_code=502)
        return session.url

    def create_billing_portal_session(self, *, customer_id: str, return_url: str) -> str:
        """创建客户门户 Session，返回门户 URL"""
        if not self.api_key:
            raise AppError(code=500202, message="Stripe not configured", status_code=500)
        try:
            session = stripe.billing_portal.Session.create(
                api_key=self.api_key,
                customer=customer_id,
                return_url=return_url,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe billing portal error: {e}")
            raise AppError(code=502202, message="portal_error", status_code=502)
        return session.url


# 全局 Stripe 服务实例
_stripe_service: StripeService | None = None


def get_stripe_service() -> StripeService:
    """获取全局 Stripe 服务实例（首次调用时按配置创建）"""
    global _stripe_service
    if _stripe_service is None:
        _stripe_service = StripeService(
            api_key=settings.STRIPE_SECRET_KEY,
            price_id=settings.STRIPE_PRICE_ID,
        )
    return _stripe_service
