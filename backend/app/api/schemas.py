"""
API 请求/响应数据模型（Schema）

定义所有 API 接口的请求和响应数据结构。
前端（LIFF 页面）沿用驼峰命名，字段通过 alias 对应。
"""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# ============================================================
# 通用响应模型
# ============================================================


class ApiEnvelope(BaseModel):
    """
    API 统一响应格式

    - code: 状态码（0 表示成功，非 0 表示错误）
    - message: 消息（成功时为 "success"，错误时为错误描述）
    - data: 数据（成功时返回业务数据，错误时为 None）

    示例响应：
        {"code": 0, "message": "success", "data": {"received": true}}
        {"code": 400101, "message": "bad signature", "data": None}
    """
    code: int = 0
    message: str = "success"
    data: Any | None = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ============================================================
# Checkout / 认证
# ============================================================


class CheckoutSessionRequest(_CamelModel):
    """网页端创建 Checkout（直接传 userId）"""
    user_id: str = Field(default="demo-user", alias="userId", min_length=1, max_length=64)


class IdTokenRequest(_CamelModel):
    """LIFF 端请求，携带 LINE Login 的 ID Token"""
    id_token: str = Field(default="", alias="idToken")


class CheckoutSessionData(BaseModel):
    url: str  # Stripe Checkout 页面地址


class ResolveUserData(_CamelModel):
    user_id: str = Field(alias="userId")


# ============================================================
# 管理接口
# ============================================================


class SwitchRichMenuRequest(_CamelModel):
    """手动切换用户富菜单"""
    user_id: str = Field(alias="userId", min_length=1, max_length=64)
    plan: Literal["premium", "regular"]
    key: str | None = None  # 管理密钥


class SwitchRichMenuData(_CamelModel):
    ok: bool
    linked: str  # 绑定的富菜单 ID
    user_id: str = Field(alias="userId")


# ============================================================
# 公开配置 / 健康检查
# ============================================================


class PublicConfigData(_CamelModel):
    """前端需要的 LIFF 配置"""
    liff_id: str = Field(alias="liffId")
    liff_id_pay: str = Field(alias="liffIdPay")
    liff_id_mypage: str = Field(alias="liffIdMypage")


class HealthData(BaseModel):
    ok: bool = True
    version: str
