import asyncio

import pytest

from storefront.errors import PaymentNotConfirmedError, SessionAlreadyConsumedError, SessionNotFoundError
from storefront.orders.models import Customer
from storefront.payments import service as payments_service
from storefront.pricing import Coupon

CUSTOMER = Customer("Ada Lovelace", "ada@example.com")


def test_line_items_in_cents_without_coupon(cart_factory):
    from storefront.catalog.data import get_addon

    cart = cart_factory("legendary", "breakthrough", addons=[get_addon("express-launch")])

    lines = payments_service.build_line_items(cart, currency="usd")

    assert [line["price_data"]["unit_amount"] for line in lines] == [47900, 3000, 1400]
    assert sum(line["price_data"]["unit_amount"] for line in lines) == cart.total * 100
    assert lines[0]["price_data"]["product_data"]["name"] == "LEGENDARY - Titre 0"


def test_line_items_collapse_when_coupon_applies(cart_factory):
    cart = cart_factory("legendary", "breakthrough", coupon=Coupon("SAVE", 100))

    lines = payments_service.build_line_items(cart)

    assert len(lines) == 1
    assert lines[0]["price_data"]["unit_amount"] == cart.total * 100
    assert "SAVE" in lines[0]["price_data"]["product_data"]["name"]


def test_finalize_records_once_and_is_idempotent(session_store, order_store, cart_factory):
    async def scenario():
        session_id = await session_store.create(cart_factory("momentum", "momentum"))
        first = await payments_service.finalize_payment(session_store, order_store, session_id, "pi_1", CUSTOMER)
        again = await payments_service.finalize_payment(session_store, order_store, session_id, "pi_1", CUSTOMER)
        return first, again

    first, again = asyncio.run(scenario())
    assert again is first
    assert first.total == 79 + 60


def test_finalize_with_other_payment_ref_on_used_session_fails(
    session_store, order_store, cart_factory, monkeypatch, caplog,
):
    monkeypatch.setattr(payments_service, "RECHECK_DELAY_SECONDS", 0)
    created = []

    async def scenario():
        session_id = await session_store.create(cart_factory("momentum"))
        created.append(session_id)
        await payments_service.finalize_payment(session_store, order_store, session_id, "pi_1", CUSTOMER)
        await payments_service.finalize_payment(session_store, order_store, session_id, "pi_2", CUSTOMER)

    with caplog.at_level("ERROR", logger="storefront.payments.service"):
        with pytest.raises(SessionAlreadyConsumedError):
            asyncio.run(scenario())

    assert len(order_store) == 1
    # Double paiement: signalé en erreur avec la session et la référence du second paiement
    errors = [r for r in caplog.records if r.levelname == "ERROR"]
    assert len(errors) == 1
    assert created[0] in errors[0].getMessage()
    assert "pi_2" in errors[0].getMessage()


def test_concurrent_finalize_returns_same_order(session_store, order_store, cart_factory):
    async def scenario():
        session_id = await session_store.create(cart_factory("momentum"))
        return await asyncio.gather(*(
            payments_service.finalize_payment(session_store, order_store, session_id, "pi_1", CUSTOMER)
            for _ in range(3)
        ))

    orders = asyncio.run(scenario())
    assert {o.order_number for o in orders} == {"FASHO-3001"}


def test_free_order_uses_session_scoped_ref(session_store, order_store, cart_factory):
    async def scenario():
        session_id = await session_store.create(cart_factory("breakthrough", coupon=Coupon("FREE", 100)))
        order = await payments_service.finalize_free_order(session_store, order_store, session_id, CUSTOMER)
        return session_id, order

    session_id, order = asyncio.run(scenario())
    assert order.total == 0
    assert order.payment_ref == f"free:{session_id}"


def _stripe_session(checkout_session_id, **overrides):
    data = {
        "id": "cs_test_1",
        "payment_status": "paid",
        "payment_intent": "pi_123",
        "metadata": {"checkout_session_id": checkout_session_id, "customer_ref": "u1"},
        "customer_details": {"name": "Ada Lovelace", "email": "ada@example.com"},
    }
    data.update(overrides)
    return data


def test_confirm_stripe_session(session_store, order_store, cart_factory, monkeypatch):
    async def scenario():
        session_id = await session_store.create(cart_factory("momentum"))
        monkeypatch.setattr(payments_service.stripe_client, "get_session", lambda sid: _stripe_session(session_id))
        return await payments_service.confirm_stripe_session(session_store, order_store, "cs_test_1")

    order = asyncio.run(scenario())
    assert order.payment_ref == "pi_123"
    assert order.customer_ref == "u1"
    assert (order.customer_name, order.customer_email) == ("Ada Lovelace", "ada@example.com")


def test_payment_ref_falls_back_to_session_id(session_store, order_store, cart_factory):
    async def scenario():
        session_id = await session_store.create(cart_factory("momentum"))
        return await payments_service.finalize_stripe_session(
            session_store, order_store, _stripe_session(session_id, payment_intent=None),
        )

    assert asyncio.run(scenario()).payment_ref == "cs_test_1"


def test_unpaid_session_is_rejected(session_store, order_store):
    with pytest.raises(PaymentNotConfirmedError):
        asyncio.run(payments_service.finalize_stripe_session(
            session_store, order_store, _stripe_session("x", payment_status="unpaid"),
        ))


def test_missing_metadata_is_session_not_found(session_store, order_store):
    with pytest.raises(SessionNotFoundError):
        asyncio.run(payments_service.finalize_stripe_session(
            session_store, order_store, _stripe_session("", metadata={}),
        ))


def test_start_payment_passes_metadata(session_store, cart_factory, monkeypatch):
    captured = {}

    def fake_create_session(**kwargs):
        captured.update(kwargs)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

    monkeypatch.setattr(payments_service.stripe_client, "create_session", fake_create_session)

    async def scenario():
        session_id = await session_store.create(cart_factory("momentum"), customer_ref="u1")
        result = await payments_service.start_payment(session_store, session_id, "https://s", "https://c")
        return session_id, result

    session_id, result = asyncio.run(scenario())
    assert result["url"].endswith("cs_test_1")
    assert captured["metadata"] == {"checkout_session_id": session_id, "customer_ref": "u1"}
    assert captured["client_reference_id"] == "u1"
