"""
身份解析

从 Stripe 事件对象中找回内部用户 ID（LINE 用户 ID）。同一类事件里 userId
可能出现在不同层级：早期创建、没有配置 metadata 透传的订阅上根本没有 userId，
只能按 Stripe 客户 ID 反查。

解析顺序（前一步没有结果才尝试下一步）：
1. 对象自身的 metadata.userId
2. 关联订阅的 metadata.userId（只有订阅 ID 时向 Stripe 查询）
3. users.stripe_customer_id 反查，必须恰好命中一条
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlmodel import Session

from app import crud
from app.services.stripe_service import DownstreamLookupFailure

logger = logging.getLogger(__name__)

USER_ID_METADATA_KEY = "userId"


class IdentityError(Exception):
    """无法从事件中确定唯一用户"""


class IdentityNotFound(IdentityError):
    pass


class AmbiguousIdentity(IdentityError):
    """同一个 Stripe 客户 ID 对应多个用户，拒绝猜测"""


class SubscriptionLookup(Protocol):
    def retrieve_subscription(self, subscription_id: str) -> dict[str, Any]: ...


def ref_id(value: Any) -> str | None:
    """Stripe 引用字段可能是 ID 字符串，也可能是展开的对象"""
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        inner = value.get("id")
        return inner if isinstance(inner, str) and inner else None
    return None


def metadata_user_id(obj: Any) -> str | None:
    if not isinstance(obj, dict):
        return None
    metadata = obj.get("metadata")
    if not isinstance(metadata, dict):
        return None
    value = metadata.get(USER_ID_METADATA_KEY)
    return str(value) if value else None


def subscription_ref(obj: dict[str, Any]) -> Any:
    """
    取对象引用的订阅

    较新的 API 版本把发票的订阅放在 parent.subscription_details 下。
    """
    if obj.get("subscription"):
        return obj["subscription"]
    parent = obj.get("parent")
    if isinstance(parent, dict):
        details = parent.get("subscription_details")
        if isinstance(details, dict):
            return details.get("subscription")
    return None


class IdentityResolver:
    def __init__(self, *, session: Session, payments: SubscriptionLookup) -> None:
        self._session = session
        self._payments = payments

    def from_metadata(self, obj: dict[str, Any]) -> str:
        """只看对象自身的 metadata（用于 checkout.session.completed）"""
        user_id = metadata_user_id(obj)
        if user_id is None:
            raise IdentityNotFound(f"no {USER_ID_METADATA_KEY} in metadata of {obj.get('id')}")
        return user_id

    def resolve(self, obj: dict[str, Any]) -> str:
        """
        按完整的回退链解析用户 ID

        Raises:
            IdentityNotFound: 三步都没有结果
            AmbiguousIdentity: 客户 ID 反查命中多条
            DownstreamLookupFailure: 订阅查询失败且反查也没有结果
        """
        user_id = metadata_user_id(obj)
        if user_id:
            return user_id

        lookup_error: DownstreamLookupFailure | None = None
        subscription = subscription_ref(obj)
        if isinstance(subscription, dict):
            user_id = metadata_user_id(subscription)
        elif isinstance(subscription, str) and subscription:
            try:
                user_id = metadata_user_id(self._payments.retrieve_subscription(subscription))
            except DownstreamLookupFailure as e:
                lookup_error = e
        if user_id:
            return user_id

        customer_id = ref_id(obj.get("customer"))
        if customer_id:
            matches = crud.find_ids_by_customer_id(session=self._session, customer_id=customer_id)
            if len(matches) > 1:
                raise AmbiguousIdentity(f"customer {customer_id} matches users {matches}")
            if matches:
                logger.info(f"Resolved customer {customer_id} via reverse lookup")
                return matches[0]

        if lookup_error is not None:
            # 订阅上可能有 userId，只是这次没查到
            raise lookup_error
        raise IdentityNotFound(f"no user for {obj.get('object')} {obj.get('id')}")
