"""
Stripe Webhook 路由

两个通道共用同一个接收流程，只有签名密钥不同：
- POST /stripe/webhook      Stripe 控制台配置的正式 Webhook（STRIPE_WEBHOOK_SECRET）
- POST /stripe/webhook-cli  Stripe CLI 转发（STRIPE_CLI_WEBHOOK_SECRET）

流程：读取原始请求体 → 验签（缺少签名头 403，签名无效 400）→ 立即返回 200 →
后台执行对账处理（见 app.services.reconciler）。
先返回再处理是为了避免 Stripe 超时重试造成并发的重复投递，
重复投递由事件账本去重。
"""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Header, Request

from app.api.deps import EventProcessorDep
from app.api.errors import SignatureMissing
from app.api.schemas import ApiEnvelope
from app.core.config import settings
from app.core.security import verify_stripe_signature
from app.enums import WebhookChannel
from app.services.reconciler import EventProcessor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe", tags=["stripe"])

SignatureHeader = Annotated[str | None, Header(alias="Stripe-Signature")]


def _channel_secret(channel: WebhookChannel) -> str | None:
    if channel is WebhookChannel.cli:
        return settings.STRIPE_CLI_WEBHOOK_SECRET
    return settings.STRIPE_WEBHOOK_SECRET


async def _receive(
    channel: WebhookChannel,
    request: Request,
    signature: str | None,
    background_tasks: BackgroundTasks,
    processor: EventProcessor,
) -> ApiEnvelope:
    if not signature:
        logger.warning(f"Non-Stripe access to {request.url.path}")
        raise SignatureMissing()
    # 必须用原始字节验签，不能先解析再序列化
    payload = await request.body()
    event = verify_stripe_signature(payload, signature, _channel_secret(channel))

    logger.info(f"Stripe webhook received via {channel.value}: {event['type']} {event['id']}")
    background_tasks.add_task(processor.process, event, channel=channel)
    return ApiEnvelope(data={"received": True})


@router.post("/webhook", response_model=ApiEnvelope)
async def webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    processor: EventProcessorDep,
    stripe_signature: SignatureHeader = None,
) -> ApiEnvelope:
    return await _receive(WebhookChannel.production, request, stripe_signature, background_tasks, processor)


@router.post("/webhook-cli", response_model=ApiEnvelope)
async def webhook_cli(
    request: Request,
    background_tasks: BackgroundTasks,
    processor: EventProcessorDep,
    stripe_signature: SignatureHeader = None,
) -> ApiEnvelope:
    return await _receive(WebhookChannel.cli, request, stripe_signature, background_tasks, processor)
