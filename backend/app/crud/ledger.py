"""Stripe 事件账本 CRUD 操作（去重 / 幂等闸门）"""
import logging
from datetime import timedelta
from typing import Any

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.enums import LedgerAcquire, LedgerOutcome, WebhookChannel
from app.models import StripeEvent, utc_now

logger = logging.getLogger(__name__)

_MAX_ERROR_LENGTH = 2000


def acquire(
    *,
    session: Session,
    event_id: str,
    event_type: str,
    channel: WebhookChannel,
    payload: dict[str, Any] | None,
    lock_ttl_seconds: int,
) -> LedgerAcquire:
    """
    为事件加锁

    1. 主键插入（原子的“不存在才创建”），成功即获得锁
    2. 主键冲突时用条件更新回收锁：仅当未完成且锁已释放或已过期
    3. 都失败则读取记录判断是已完成还是正被处理
    """
    now = utc_now()
    session.add(
        StripeEvent(
            event_id=event_id,
            event_type=event_type,
            channel=channel.value,
            locked_at=now,
            payload=payload,
        )
    )
    try:
        session.commit()
        return LedgerAcquire.fresh
    except IntegrityError:
        session.rollback()

    stale_before = now - timedelta(seconds=lock_ttl_seconds)
    stmt = (
        update(StripeEvent)
        .where(
            StripeEvent.event_id == event_id,
            StripeEvent.processed_at.is_(None),  # type: ignore[union-attr]
            or_(
                StripeEvent.locked_at.is_(None),  # type: ignore[union-attr]
                StripeEvent.locked_at < stale_before,  # type: ignore[operator]
            ),
        )
        .values(locked_at=now, attempts=StripeEvent.attempts + 1)
        .execution_options(synchronize_session=False)
    )
    result = session.exec(stmt)  # type: ignore[call-overload]
    if result.rowcount == 1:
        session.commit()
        logger.info(f"Reclaimed ledger lock for event {event_id}")
        return LedgerAcquire.fresh
    session.rollback()

    record = session.get(StripeEvent, event_id)
    if record is not None and record.processed_at is not None:
        return LedgerAcquire.already_processed
    return LedgerAcquire.already_locked


def mark_processed(*, session: Session, event_id: str, outcome: LedgerOutcome) -> bool:
    """写入 processed_at；已完成的记录保持不变"""
    stmt = (
        update(StripeEvent)
        .where(
            StripeEvent.event_id == event_id,
            StripeEvent.processed_at.is_(None),  # type: ignore[union-attr]
        )
        .values(processed_at=utc_now(), outcome=outcome.value)
        .execution_options(synchronize_session=False)
    )
    result = session.exec(stmt)  # type: ignore[call-overload]
    session.commit()
    return result.rowcount == 1


def release(*, session: Session, event_id: str, error: str) -> None:
    """释放未完成事件的锁并记录失败原因，等待 Stripe 重投递时重新领取"""
    stmt = (
        update(StripeEvent)
        .where(
            StripeEvent.event_id == event_id,
            StripeEvent.processed_at.is_(None),  # type: ignore[union-attr]
        )
        .values(locked_at=None, last_error=error[:_MAX_ERROR_LENGTH])
        .execution_options(synchronize_session=False)
    )
    session.exec(stmt)  # type: ignore[call-overload]
    session.commit()


def get(*, session: Session, event_id: str) -> StripeEvent | None:
    return session.get(StripeEvent, event_id)
