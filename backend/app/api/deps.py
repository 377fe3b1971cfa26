"""
FastAPI 依赖注入模块

提供可复用的依赖项，用于路由处理函数中。
测试通过 app.dependency_overrides 替换这里的依赖：
- get_db / get_session_factory: 换成 SQLite 内存库
- get_payments / get_notifier: 换成假的 Stripe / LINE 客户端
"""
from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlmodel import Session

from app.core.config import settings
from app.core.db import SessionFactory, engine, session_factory
from app.services.line_service import LineMessagingClient, get_line_client
from app.services.reconciler import EventProcessor
from app.services.stripe_service import StripeService, get_stripe_service


def get_db() -> Generator[Session, None, None]:
    """
    获取数据库会话（请求级）

    使用 yield 确保会话在请求结束后自动关闭。
    """
    with Session(engine) as session:
        yield session


def get_session_factory() -> SessionFactory:
    """后台任务使用的会话工厂（响应返回后请求级会话已关闭）"""
    return session_factory


def get_payments() -> StripeService:
    return get_stripe_service()


def get_notifier() -> LineMessagingClient:
    return get_line_client()


SessionDep = Annotated[Session, Depends(get_db)]
SessionFactoryDep = Annotated[SessionFactory, Depends(get_session_factory)]
PaymentsDep = Annotated[StripeService, Depends(get_payments)]
NotifierDep = Annotated[LineMessagingClient, Depends(get_notifier)]


def get_event_processor(
    factory: SessionFactoryDep, payments: PaymentsDep, notifier: NotifierDep
) -> EventProcessor:
    return EventProcessor(
        session_factory=factory,
        payments=payments,
        notifier=notifier,
        lock_ttl_seconds=settings.LEDGER_LOCK_TTL_SECONDS,
    )


EventProcessorDep = Annotated[EventProcessor, Depends(get_event_processor)]
