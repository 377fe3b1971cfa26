"""
Stripe 事件对账处理

Webhook 验签并返回 200 之后在后台执行：

    账本加锁 → 已处理则停止 → 分发 → 身份解析 → 应用权益变更 → 切换富菜单 → 标记完成

正确性只依赖账本闸门：同一事件 ID 的状态变更最多执行一次。
响应已经返回，这里的任何失败都不会让 Stripe 重试，所以失败原因必须写进日志和账本，
以便人工重放。
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlmodel import Session

from app import crud
from app.core.db import SessionFactory
from app.enums import LedgerAcquire, LedgerOutcome, MenuVariant, WebhookChannel
from app.models import utc_now
from app.services.identity import AmbiguousIdentity, IdentityNotFound, IdentityResolver, SubscriptionLookup
from app.services.stripe_service import DownstreamLookupFailure
from app.services.transitions import TransitionContext, dispatch

logger = logging.getLogger(__name__)


class MenuSwitcher(Protocol):
    def switch_menu(self, user_id: str, variant: MenuVariant) -> bool: ...


class EventProcessor:
    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        payments: SubscriptionLookup,
        notifier: MenuSwitcher,
        lock_ttl_seconds: int,
    ) -> None:
        self._session_factory = session_factory
        self._payments = payments
        self._notifier = notifier
        self._lock_ttl_seconds = lock_ttl_seconds

    def process(self, event: dict[str, Any], *, channel: WebhookChannel) -> LedgerOutcome | None:
        """
        处理一个已验签的事件

        Returns:
            写入账本的处理结果；事件已被处理、正被处理或本次失败（锁已释放）时返回 None
        """
        event_id = str(event["id"])
        event_type = str(event["type"])

        with self._session_factory() as session:
            state = crud.ledger.acquire(
                session=session,
                event_id=event_id,
                event_type=event_type,
                channel=channel,
                payload=event,
                lock_ttl_seconds=self._lock_ttl_seconds,
            )
            if state is LedgerAcquire.already_processed:
                logger.info(f"Stripe event {event_id} already processed, skip")
                return None
            if state is LedgerAcquire.already_locked:
                logger.warning(
                    f"Stripe event {event_id} ({event_type}) is locked by another attempt, "
                    "treating as handled; reconcile manually if it never completes"
                )
                return None

            try:
                outcome = self._apply(session, event)
            except DownstreamLookupFailure as e:
                session.rollback()
                logger.warning(f"Stripe event {event_id} ({event_type}) deferred: {e}")
                crud.ledger.release(session=session, event_id=event_id, error=f"downstream: {e}")
                return None
            except Exception as e:
                session.rollback()
                logger.exception(f"Stripe event {event_id} ({event_type}) failed via {channel.value}")
                crud.ledger.release(session=session, event_id=event_id, error=repr(e))
                return None

            crud.ledger.mark_processed(session=session, event_id=event_id, outcome=outcome)
            logger.info(f"Stripe event {event_id} ({event_type}) processed: {outcome.value}")
            return outcome

    def _apply(self, session: Session, event: dict[str, Any]) -> LedgerOutcome:
        ctx = TransitionContext(
            resolver=IdentityResolver(session=session, payments=self._payments),
            payments=self._payments,
            now=utc_now(),
        )
        try:
            transition = dispatch(event, ctx)
        except AmbiguousIdentity as e:
            logger.error(f"Ambiguous identity for Stripe event {event['id']} ({event['type']}): {e}; event={event}")
            return LedgerOutcome.ambiguous_identity
        except IdentityNotFound as e:
            logger.error(f"No user for Stripe event {event['id']} ({event['type']}): {e}; event={event}")
            return LedgerOutcome.identity_not_found

        if transition is None:
            return LedgerOutcome.noop

        record = crud.apply_entitlement_patch(
            session=session, user_id=transition.user_id, patch=transition.patch
        )
        if record is None:
            logger.warning(
                f"Stripe event {event['id']} targets a superseded or ended subscription "
                f"of user={transition.user_id}, skip"
            )
            return LedgerOutcome.superseded

        if transition.menu is not None:
            try:
                self._notifier.switch_menu(transition.user_id, transition.menu)
            except Exception:
                logger.warning(
                    f"Rich menu switch to {transition.menu.value} failed for user={transition.user_id}",
                    exc_info=True,
                )
        return LedgerOutcome.applied
