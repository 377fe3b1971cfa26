"""
Checkout / 客户门户路由模块

- POST /checkout/session        网页端创建订阅 Checkout（请求体直接给 userId）
- POST /checkout/session/liff   LIFF 端创建订阅 Checkout（校验 LINE ID Token）
- GET  /billing/portal          跳转到 Stripe 客户门户

创建 Checkout 时把 userId 写进 Session 和订阅的 metadata，
之后的 Webhook 事件依靠它解析用户。
"""
from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Query
from fastapi.responses import RedirectResponse

from app import crud
from app.api.deps import PaymentsDep, SessionDep
from app.api.errors import AppError, user_not_found
from app.api.schemas import ApiEnvelope, CheckoutSessionData, CheckoutSessionRequest, IdTokenRequest
from app.core.config import settings
from app.core.security import verify_line_id_token

router = APIRouter(tags=["checkout"])


@router.post("/checkout/session", response_model=ApiEnvelope)
def create_checkout_session(body: CheckoutSessionRequest, payments: PaymentsDep) -> ApiEnvelope:
    url = payments.create_checkout_session(user_id=body.user_id)
    return ApiEnvelope(data=CheckoutSessionData(url=url))


@router.post("/checkout/session/liff", response_model=ApiEnvelope)
def create_checkout_session_liff(body: IdTokenRequest, payments: PaymentsDep) -> ApiEnvelope:
    payload = verify_line_id_token(body.id_token)
    url = payments.create_checkout_session(user_id=str(payload["sub"]))
    return ApiEnvelope(data=CheckoutSessionData(url=url))


@router.get("/billing/portal")
def billing_portal(
    session: SessionDep,
    payments: PaymentsDep,
    user_id: str = Query(alias="userId", min_length=1),
) -> RedirectResponse:
    record = crud.get_user_entitlement(session=session, user_id=user_id)
    if record is None:
        raise user_not_found()
    if not record.stripe_customer_id:
        raise AppError(code=400201, message="customer not linked", status_code=400)

    base = settings.PUBLIC_ORIGIN.rstrip("/")
    url = payments.create_billing_portal_session(
        customer_id=record.stripe_customer_id,
        return_url=f"{base}/mypage.html?userId={quote(user_id)}",
    )
    return RedirectResponse(url=url, status_code=302)
