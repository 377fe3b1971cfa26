"""
工具路由模块

提供系统工具类的 API 端点，如健康检查等。
"""
from fastapi import APIRouter

from app.api.schemas import HealthData
from app.core.config import settings

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/health-check/", response_model=HealthData)
async def health_check() -> HealthData:
    """
    健康检查端点

    请求路径: GET /api/v1/utils/health-check/

    返回服务状态和部署版本（GIT_COMMIT），供负载均衡器和容器编排探活使用。
    """
    return HealthData(version=settings.GIT_COMMIT)
