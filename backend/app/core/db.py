"""
数据库连接模块

管理数据库引擎和会话的创建。

重要提示：
- 表结构通过 Alembic 迁移管理（app/alembic/versions），这里不建表
- Webhook 后台处理在响应返回后运行，不能复用请求级会话，
  因此对外提供会话工厂 session_factory
"""
from collections.abc import Callable

from sqlmodel import Session, create_engine

from app.core.config import settings

# 创建数据库引擎（连接池），连接在首次使用时建立
engine = create_engine(str(settings.SQLALCHEMY_DATABASE_URI), pool_pre_ping=True)

SessionFactory = Callable[[], Session]


def session_factory() -> Session:
    """按需打开一个绑定到全局引擎的新会话"""
    return Session(engine)
