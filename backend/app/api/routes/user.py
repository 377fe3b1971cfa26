"""
用户权益路由模块

- GET /user/{user_id}: 查询用户付费状态（LIFF 我的页面使用）

premium 是按到期时间计算后的结果，不是记录里的原始标记。
未出现过的用户返回同样结构的默认值，而不是 404。
"""
from fastapi import APIRouter

from app import crud
from app.api.deps import SessionDep
from app.api.schemas import ApiEnvelope
from app.services.entitlement import project

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/{user_id}", response_model=ApiEnvelope)
def entitlement(user_id: str, session: SessionDep) -> ApiEnvelope:
    record = crud.get_user_entitlement(session=session, user_id=user_id)
    view = project(record)
    return ApiEnvelope(data=view.model_dump(by_alias=True, mode="json"))
