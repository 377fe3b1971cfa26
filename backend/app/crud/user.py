"""用户权益 CRUD 操作"""
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.models import UserEntitlement, utc_now
from app.services.entitlement import EntitlementPatch


def get(*, session: Session, user_id: str) -> UserEntitlement | None:
    """根据用户 ID 查询权益记录"""
    return session.get(UserEntitlement, user_id)


def find_ids_by_customer_id(
    *, session: Session, customer_id: str, limit: int = 2
) -> list[str]:
    """按 Stripe 客户 ID 反查用户 ID（默认最多取 2 条，用于识别多条命中）"""
    statement = (
        select(UserEntitlement.id)
        .where(UserEntitlement.stripe_customer_id == customer_id)
        .order_by(UserEntitlement.id)
        .limit(limit)
    )
    return list(session.exec(statement).all())


def apply_patch(
    *, session: Session, user_id: str, patch: EntitlementPatch
) -> UserEntitlement | None:
    """
    在单个事务内对权益记录做读-改-写（行锁），记录不存在时隐式创建

    Returns:
        更新后的记录；变更被订阅 ID 守卫拦截时返回 None
    """
    for attempt in range(2):
        statement = (
            select(UserEntitlement)
            .where(UserEntitlement.id == user_id)
            .with_for_update()
        )
        record = session.exec(statement).first()
        created = record is None
        if record is None:
            record = UserEntitlement(id=user_id)

        if not patch.apply_to(record):
            session.rollback()
            return None

        record.updated_at = utc_now()
        session.add(record)
        try:
            session.commit()
        except IntegrityError:
            # 并发的首次写入抢先建了记录，重读后再合并一次
            session.rollback()
            if not created or attempt:
                raise
            continue
        session.refresh(record)
        return record
    return None
