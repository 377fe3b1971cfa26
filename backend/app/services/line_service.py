"""
LINE Messaging API 集成模块

只封装富菜单（Rich Menu）与用户的绑定：用户付费状态变化后，
把对应的菜单变体（premium / regular）绑定到该用户。

API 文档：
- POST /v2/bot/user/{userId}/richmenu/{richMenuId}
"""
from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from app.core.config import settings
from app.enums import MenuVariant

logger = logging.getLogger(__name__)

_LINK_RICH_MENU_PATH = "/v2/bot/user/{user_id}/richmenu/{rich_menu_id}"


class LineMessagingClient:
    """
    LINE Messaging API 客户端

    绑定失败只记录日志并返回 False，不向调用方抛出异常：
    菜单切换是权益变更之后的附带动作，不能让它影响事件处理结果。
    """

    def __init__(
        self,
        *,
        access_token: str | None,
        base_url: str,
        menu_ids: dict[MenuVariant, str],
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._menu_ids = menu_ids
        self._transport = transport

    def menu_id_for(self, variant: MenuVariant) -> str:
        return self._menu_ids.get(variant, "")

    def link_rich_menu(self, user_id: str, rich_menu_id: str) -> bool:
        """
        把指定富菜单绑定到用户

        Returns:
            是否绑定成功
        """
        if not user_id or not rich_menu_id:
            return False
        if not self._access_token:
            logger.warning("LINE_CHANNEL_ACCESS_TOKEN not configured, skip rich menu link")
            return False

        url = self._base_url + _LINK_RICH_MENU_PATH.format(
            user_id=quote(user_id, safe=""),
            rich_menu_id=quote(rich_menu_id, safe=""),
        )
        try:
            with httpx.Client(timeout=10, transport=self._transport) as client:
                r = client.post(url, headers={"Authorization": f"Bearer {self._access_token}"})
        except httpx.HTTPError as e:
            logger.error(f"RichMenu link exception user={user_id}: {e}")
            return False

        if r.status_code >= 400:
            logger.warning(f"RichMenu link error: {r.status_code} {r.text}")
            return False
        logger.info(f"RichMenu '{rich_menu_id}' linked to user={user_id}")
        return True

    def switch_menu(self, user_id: str, variant: MenuVariant) -> bool:
        """按菜单变体切换用户的富菜单；未配置该变体的菜单 ID 时跳过"""
        return self.link_rich_menu(user_id, self.menu_id_for(variant))


# 全局客户端实例
_line_client: LineMessagingClient | None = None


def get_line_client() -> LineMessagingClient:
    """获取全局 LINE 客户端实例（首次调用时按配置创建）"""
    global _line_client
    if _line_client is None:
        _line_client = LineMessagingClient(
            access_token=settings.LINE_CHANNEL_ACCESS_TOKEN,
            base_url=settings.LINE_API_BASE_URL,
            menu_ids={
                MenuVariant.premium: settings.RICHMENU_ID_PREMIUM,
                MenuVariant.regular: settings.RICHMENU_ID_REGULAR,
            },
        )
    return _line_client
