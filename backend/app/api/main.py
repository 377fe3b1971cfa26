"""
API 路由聚合模块

将所有业务路由模块聚合到一个统一的 router 中。
这个 router 会被注册到主应用（app/main.py）上。

路由模块说明：
- stripe_webhook: Stripe Webhook（正式 / CLI 两个通道）
- user: 用户权益查询
- checkout: Checkout 与客户门户
- auth: LINE ID Token 换取用户 ID
- admin: 管理工具（手动切换富菜单）
- config: 公开配置
- utils: 工具相关（健康检查等）
"""
from fastapi import APIRouter

from app.api.routes import (
    admin,  # 管理路由
    auth,  # 认证路由
    checkout,  # Checkout 路由
    config,  # 配置路由
    stripe_webhook,  # Stripe Webhook 路由
    user,  # 用户权益路由
    utils,  # 工具路由
)

api_router = APIRouter()

api_router.include_router(stripe_webhook.router)  # /stripe/*
api_router.include_router(user.router)  # /user/*
api_router.include_router(checkout.router)  # /checkout/*, /billing/*
api_router.include_router(auth.router)  # /auth/*
api_router.include_router(admin.router)  # /admin/*
api_router.include_router(config.router)  # /config
api_router.include_router(utils.router)  # /utils/*
