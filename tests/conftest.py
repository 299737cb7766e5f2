import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# Le lifespan ne tente pas de joindre Redis pendant les tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from storefront.app_setup.factory import create_app
from storefront.catalog.data import get_package
from storefront.checkout.store import InMemoryCheckoutSessionStore
from storefront.notifications.webhooks import WebhookNotifier
from storefront.orders.store import InMemoryOrderRecordStore
from storefront.pricing import Cart, TrackRef, price
from storefront.utils.security import require_user

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FrozenClock:
    """Horloge contrôlée par le test (UTC)."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_cart(*package_ids: str, addons=None, coupon=None):
    cart = Cart()
    for i, package_id in enumerate(package_ids):
        cart.add(TrackRef(id=f"track-{i}", title=f"Titre {i}", artist="Artiste"), get_package(package_id))
    return price(cart.items, addons, coupon)


@pytest.fixture
def cart_factory():
    return make_cart

@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()

@pytest.fixture
def session_store(clock):
    return InMemoryCheckoutSessionStore(clock=clock)

@pytest.fixture
def order_store(clock):
    return InMemoryOrderRecordStore(clock=clock)

@pytest.fixture
def notifier():
    return WebhookNotifier(url="")

@pytest.fixture
def app(session_store, order_store, notifier):
    return create_app(session_store=session_store, order_store=order_store, notifier=notifier)

@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture
def fake_user() -> Dict[str, Any]:
    return {"id": "test-user", "email": "test@example.com", "name": "Test User"}

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app, fake_user):
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

# Aucun accès Supabase réel
@pytest.fixture(autouse=True)
def mock_supabase(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: client)
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: client)
    return client
