"""
配置路由模块

返回前端（LIFF 页面）需要的公开配置。
"""
from __future__ import annotations

from fastapi import APIRouter

from app.api.schemas import ApiEnvelope, PublicConfigData
from app.core.config import settings

router = APIRouter(tags=["config"])


@router.get("/config", response_model=ApiEnvelope)
def config() -> ApiEnvelope:
    """
    获取 LIFF 配置

    请求路径: GET /api/v1/config

    liffId 优先使用支付页的 LIFF ID，未配置时退回通用 LIFF_ID。
    """
    data = PublicConfigData(
        liff_id=settings.LIFF_ID_PAY or settings.LIFF_ID,
        liff_id_pay=settings.LIFF_ID_PAY,
        liff_id_mypage=settings.LIFF_ID_MYPAGE,
    )
    return ApiEnvelope(data=data.model_dump(by_alias=True))
