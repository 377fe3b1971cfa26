"""
应用启动前检查脚本

在执行数据库迁移、启动应用之前，等待数据库可以连接。
Docker Compose 启动时数据库容器可能还在初始化，这里用 tenacity 不断重试。
"""
import logging

from sqlalchemy import Engine
from sqlmodel import Session, select
from tenacity import after_log, before_log, retry, stop_after_attempt, wait_fixed

from app.core.db import engine

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60 * 5  # 5 分钟
wait_seconds = 1


@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.INFO),
    after=after_log(logger, logging.WARN),
)
def init(db_engine: Engine) -> None:
    """执行 SELECT 1，失败时交给 tenacity 重试"""
    try:
        with Session(db_engine) as session:
            session.exec(select(1))
    except Exception as e:
        logger.error("Database not ready: %s", e)
        raise


def main() -> None:
    logger.info("Waiting for database (%s)", engine.url.render_as_string(hide_password=True))
    init(engine)
    logger.info("Database ready")


if __name__ == "__main__":  # pragma: no cover
    main()
