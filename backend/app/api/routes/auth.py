"""
认证路由模块

- POST /auth/resolve-user: 用 LINE ID Token 换取 LINE 用户 ID（LIFF 我的页面使用）
"""
from fastapi import APIRouter

from app.api.schemas import ApiEnvelope, IdTokenRequest, ResolveUserData
from app.core.security import verify_line_id_token

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/resolve-user", response_model=ApiEnvelope)
def resolve_user(body: IdTokenRequest) -> ApiEnvelope:
    payload = verify_line_id_token(body.id_token)
    data = ResolveUserData(user_id=str(payload["sub"]))
    return ApiEnvelope(data=data.model_dump(by_alias=True))
