"""
安全校验模块

- Stripe Webhook 签名校验（基于原始请求体字节的 HMAC-SHA256）
- LINE Login ID Token 校验（JWKS 公钥 + 签发方/受众校验）
- 管理接口密钥比对
"""
from __future__ import annotations

import hmac
import json
import logging
from functools import lru_cache
from typing import Any

import jwt
import stripe

from app.api.errors import SignatureInvalid, SignatureMissing, invalid_id_token, missing_id_token
from app.core.config import settings

logger = logging.getLogger(__name__)

LINE_ISSUER = "https://access.line.me"
LINE_JWKS_URL = "https://api.line.me/oauth2/v2.1/certs"
# LINE Login 渠道可配置 ES256 或 RS256 签名
LINE_ID_TOKEN_ALGORITHMS = ["ES256", "RS256"]


def verify_stripe_signature(
    payload: bytes,
    signature: str | None,
    secret: str | None,
    *,
    tolerance: int | None = None,
) -> dict[str, Any]:
    """
    校验 Stripe Webhook 签名并返回解析后的事件

    签名必须针对收到的原始字节计算，任何重新序列化（格式化、键重排）都会导致
    合法签名失效，所以这里只接受 bytes，校验通过后才解析 JSON。

    Args:
        payload: 请求体原始字节
        signature: Stripe-Signature 头（t=...,v1=...）
        secret: 该通道的签名密钥（whsec_...）
        tolerance: 时间戳容差（秒），默认取配置

    Returns:
        事件字典（至少包含 id 和 type）

    Raises:
        SignatureMissing: 没有签名头（在解析请求体之前抛出）
        SignatureInvalid: 签名不匹配、签名头格式错误、密钥未配置或请求体不是合法事件
    """
    if not signature:
        raise SignatureMissing()
    if not secret:
        logger.warning("Stripe webhook secret not configured, rejecting request")
        raise SignatureInvalid()

    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError:
        raise SignatureInvalid()

    try:
        stripe.WebhookSignature.verify_header(
            text,
            signature,
            secret,
            tolerance if tolerance is not None else settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
        )
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Stripe signature verification failed: {e}")
        raise SignatureInvalid()

    try:
        event = json.loads(text)
    except ValueError:
        raise SignatureInvalid(message="invalid payload")
    if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
        raise SignatureInvalid(message="invalid payload")
    return event


@lru_cache(maxsize=1)
def _line_jwks_client() -> jwt.PyJWKClient:
    """LINE JWKS 客户端（单例，内部缓存公钥）"""
    return jwt.PyJWKClient(LINE_JWKS_URL)


def verify_line_id_token(id_token: str) -> dict[str, Any]:
    """
    校验 LINE Login 的 ID Token

    Returns:
        Token 载荷，payload["sub"] 即 LINE 用户 ID

    Raises:
        AppError: 未提供 Token（400）；Token 无效、过期、签发方或受众不匹配（401）
    """
    if not id_token:
        raise missing_id_token()
    try:
        signing_key = _line_jwks_client().get_signing_key_from_jwt(id_token)
        payload = jwt.decode(
            id_token,
            signing_key.key,
            algorithms=LINE_ID_TOKEN_ALGORITHMS,
            audience=settings.LINE_LOGIN_CHANNEL_ID,
            issuer=LINE_ISSUER,
        )
    except jwt.PyJWTError as e:
        logger.info(f"LINE ID token rejected: {e}")
        raise invalid_id_token()
    if not payload.get("sub"):
        raise invalid_id_token()
    return payload


def verify_admin_key(key: str | None) -> bool:
    """常量时间比较管理密钥；未配置 ADMIN_KEY 时一律拒绝"""
    if not key or not settings.ADMIN_KEY:
        return False
    return hmac.compare_digest(key, settings.ADMIN_KEY)
