from __future__ import annotations

import hashlib
import hmac
import json
import time
from collections.abc import Callable, Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, delete

from app.api.deps import get_db, get_notifier, get_payments, get_session_factory
from app.core.config import settings
from app.enums import MenuVariant
from app.main import app
from app.models import StripeEvent, UserEntitlement
from app.services.reconciler import EventProcessor
from app.services.stripe_service import DownstreamLookupFailure

WEBHOOK_SECRET = "whsec_test_production"
CLI_WEBHOOK_SECRET = "whsec_test_cli"
ADMIN_KEY = "admin-test-key"


def sign_payload(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """生成 Stripe-Signature 头：t=<ts>,v1=HMAC_SHA256(secret, "<ts>.<payload>")"""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


class FakePayments:
    """替代 StripeService：订阅查询走内存字典，记录 Checkout / Portal 调用"""

    def __init__(self) -> None:
        self.subscriptions: dict[str, dict[str, Any]] = {}
        self.lookups: list[str] = []
        self.fail_lookups = False
        self.checkout_calls: list[str] = []
        self.portal_calls: list[tuple[str, str]] = []

    def retrieve_subscription(self, subscription_id: str) -> dict[str, Any]:
        self.lookups.append(subscription_id)
        if self.fail_lookups:
            raise DownstreamLookupFailure("stripe unavailable")
        if subscription_id not in self.subscriptions:
            raise DownstreamLookupFailure(f"no such subscription: {subscription_id}")
        return self.subscriptions[subscription_id]

    def create_checkout_session(self, *, user_id: str) -> str:
        self.checkout_calls.append(user_id)
        return f"https://checkout.stripe.test/c/{user_id}"

    def create_billing_portal_session(self, *, customer_id: str, return_url: str) -> str:
        self.portal_calls.append((customer_id, return_url))
        return "https://billing.stripe.test/p/session"


class FakeNotifier:
    """替代 LineMessagingClient：记录菜单切换，可模拟失败"""

    def __init__(self) -> None:
        self.menu_ids = {
            MenuVariant.premium: "richmenu-premium",
            MenuVariant.regular: "richmenu-regular",
        }
        self.switches: list[tuple[str, MenuVariant]] = []
        self.links: list[tuple[str, str]] = []
        self.fail = False

    def menu_id_for(self, variant: MenuVariant) -> str:
        return self.menu_ids.get(variant, "")

    def link_rich_menu(self, user_id: str, rich_menu_id: str) -> bool:
        self.links.append((user_id, rich_menu_id))
        return True

    def switch_menu(self, user_id: str, variant: MenuVariant) -> bool:
        if self.fail:
            raise RuntimeError("LINE API unavailable")
        self.switches.append((user_id, variant))
        return True


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(autouse=True)
def _clean_tables(engine) -> Generator[None, None, None]:
    yield
    with Session(engine) as session:
        session.exec(delete(StripeEvent))
        session.exec(delete(UserEntitlement))
        session.commit()


@pytest.fixture(autouse=True)
def _secrets(monkeypatch) -> None:
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(settings, "STRIPE_CLI_WEBHOOK_SECRET", CLI_WEBHOOK_SECRET)
    monkeypatch.setattr(settings, "ADMIN_KEY", ADMIN_KEY)


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def payments() -> FakePayments:
    return FakePayments()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def processor(engine, payments, notifier) -> EventProcessor:
    return EventProcessor(
        session_factory=lambda: Session(engine),
        payments=payments,
        notifier=notifier,
        lock_ttl_seconds=300,
    )


@pytest.fixture(scope="function")
def client(engine, payments, notifier) -> Generator[TestClient, None, None]:
    def _override_get_db() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: (lambda: Session(engine))
    app.dependency_overrides[get_payments] = lambda: payments
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def send_event(client) -> Callable[..., Any]:
    """把事件按 Stripe 的方式签名后投递到 Webhook"""

    def _send(
        event: dict[str, Any],
        *,
        path: str = "/api/v1/stripe/webhook",
        secret: str = WEBHOOK_SECRET,
    ):
        payload = json.dumps(event).encode()
        return client.post(
            path,
            content=payload,
            headers={
                "Stripe-Signature": sign_payload(payload, secret),
                "Content-Type": "application/json",
            },
        )

    return _send


def make_event(event_id: str, event_type: str, obj: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": int(time.time()),
        "data": {"object": obj},
    }


@pytest.fixture
def event() -> Callable[[str, str, dict[str, Any]], dict[str, Any]]:
    return make_event
