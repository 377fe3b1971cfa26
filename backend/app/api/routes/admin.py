"""
管理路由模块

- POST /admin/switch-richmenu: 手动切换某个用户的富菜单

只切换菜单，不修改权益记录（权益只由 Stripe 事件修改）。
"""
from fastapi import APIRouter

from app.api.deps import NotifierDep
from app.api.errors import AppError
from app.api.schemas import ApiEnvelope, SwitchRichMenuData, SwitchRichMenuRequest
from app.core.security import verify_admin_key
from app.enums import MenuVariant

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/switch-richmenu", response_model=ApiEnvelope)
def switch_richmenu(body: SwitchRichMenuRequest, notifier: NotifierDep) -> ApiEnvelope:
    if not verify_admin_key(body.key):
        raise AppError(code=403101, message="forbidden", status_code=403)

    rich_menu_id = notifier.menu_id_for(MenuVariant(body.plan))
    if not rich_menu_id:
        raise AppError(code=400301, message="missing richmenu id env", status_code=400)

    if not notifier.link_rich_menu(body.user_id, rich_menu_id):
        raise AppError(code=502301, message="richmenu link failed", status_code=502)
    data = SwitchRichMenuData(ok=True, linked=rich_menu_id, user_id=body.user_id)
    return ApiEnvelope(data=data.model_dump(by_alias=True))
