import asyncio
import threading
import time

import pytest

from storefront.checkout.service import build_cart, create_checkout_session, price_selection
from storefront.checkout.store import InMemoryCheckoutSessionStore, RedisCheckoutSessionStore
from storefront.errors import EmptyCartError, SessionAlreadyConsumedError, SessionNotFoundError, UnknownPackageError


def test_consume_is_single_use(session_store, cart_factory):
    async def scenario():
        cart = cart_factory("legendary", "breakthrough")
        session_id = await session_store.create(cart, customer_ref="u1")

        first = await session_store.consume(session_id)
        with pytest.raises(SessionAlreadyConsumedError):
            await session_store.consume(session_id)
        return first, cart

    first, cart = asyncio.run(scenario())
    assert first == cart


def test_unknown_session_is_not_found(session_store):
    with pytest.raises(SessionNotFoundError):
        asyncio.run(session_store.consume("does-not-exist"))


def test_session_ids_are_opaque_and_unique(session_store, cart_factory):
    async def scenario():
        cart = cart_factory("momentum")
        return [await session_store.create(cart) for _ in range(50)]

    ids = asyncio.run(scenario())
    assert len(set(ids)) == 50
    assert all(len(sid) >= 40 for sid in ids)


def test_get_does_not_consume(session_store, cart_factory):
    async def scenario():
        session_id = await session_store.create(cart_factory("momentum"), customer_ref="u1")
        session = await session_store.get(session_id)
        await session_store.consume(session_id)
        with pytest.raises(SessionAlreadyConsumedError):
            await session_store.get(session_id)
        return session

    session = asyncio.run(scenario())
    assert session.customer_ref == "u1"


def test_ttl_survives_thirty_minutes_then_expires(clock, cart_factory):
    store = InMemoryCheckoutSessionStore(ttl_seconds=3600, clock=clock)

    async def scenario():
        kept = await store.create(cart_factory("momentum"))
        lost = await store.create(cart_factory("momentum"))
        clock.advance(minutes=30)
        await store.consume(kept)
        clock.advance(minutes=31)
        with pytest.raises(SessionNotFoundError):
            await store.consume(lost)

    asyncio.run(scenario())
    assert len(store) == 1


def test_purge_expired(clock, cart_factory):
    store = InMemoryCheckoutSessionStore(ttl_seconds=1800, clock=clock)

    async def scenario():
        await store.create(cart_factory("momentum"))
        await store.create(cart_factory("momentum"))
        clock.advance(minutes=31)
        return await store.purge_expired()

    assert asyncio.run(scenario()) == 2
    assert len(store) == 0


def test_concurrent_consume_has_one_winner(session_store, cart_factory):
    session_id = asyncio.run(session_store.create(cart_factory("momentum")))
    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        try:
            asyncio.run(session_store.consume(session_id))
            results.append("ok")
        except SessionAlreadyConsumedError:
            results.append("used")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 1
    assert results.count("used") == 7


def test_redis_store_single_use_and_peek(cart_factory):
    pytest.importorskip("lupa")
    from fakeredis import FakeAsyncRedis

    async def scenario():
        store = RedisCheckoutSessionStore(FakeAsyncRedis(decode_responses=True), ttl_seconds=1800)
        cart = cart_factory("legendary", "momentum")
        session_id = await store.create(cart, customer_ref="u1")

        peeked = await store.get(session_id)
        consumed = await store.consume(session_id)
        with pytest.raises(SessionAlreadyConsumedError):
            await store.consume(session_id)
        with pytest.raises(SessionNotFoundError):
            await store.consume("unknown")
        ttl = await store._redis.ttl(store._key(session_id))
        await store.close()
        return cart, peeked, consumed, ttl

    cart, peeked, consumed, ttl = asyncio.run(scenario())
    assert peeked.cart == cart
    assert peeked.customer_ref == "u1"
    assert consumed == cart
    assert 0 < ttl <= 1800


def test_redis_store_concurrent_consume(cart_factory):
    pytest.importorskip("lupa")
    from fakeredis import FakeAsyncRedis

    async def scenario():
        store = RedisCheckoutSessionStore(FakeAsyncRedis(decode_responses=True))
        session_id = await store.create(cart_factory("momentum"))
        return await asyncio.gather(*(store.consume(session_id) for _ in range(5)), return_exceptions=True)

    results = asyncio.run(scenario())
    assert sum(1 for r in results if not isinstance(r, Exception)) == 1
    assert sum(1 for r in results if isinstance(r, SessionAlreadyConsumedError)) == 4


def _selection(*package_ids):
    return [{"track": {"id": f"t{i}", "title": f"T{i}"}, "package_id": p} for i, p in enumerate(package_ids)]


def test_build_cart_positions_follow_list_order():
    cart = build_cart(_selection("legendary", "breakthrough"))
    assert [(it.position_index, it.package.id) for it in cart.items] == [(0, "legendary"), (1, "breakthrough")]


def test_price_selection_errors():
    with pytest.raises(EmptyCartError):
        price_selection([])
    with pytest.raises(UnknownPackageError):
        price_selection(_selection("nope"))


def test_coupon_is_resolved_on_amount_after_discounts(monkeypatch):
    seen = {}

    def fake_resolve(code, amount):
        seen["amount"] = amount
        from storefront.pricing import Coupon
        return Coupon(code.upper(), 1000)

    monkeypatch.setattr("storefront.checkout.service.resolve_coupon", fake_resolve)

    cart = price_selection(_selection("legendary", "breakthrough"), ["express-launch"], "free")

    assert seen["amount"] == 479 + 30 + 14
    assert cart.coupon_discount == 479 + 30 + 14
    assert cart.total == 0


def test_create_checkout_session_stores_snapshot(session_store):
    async def scenario():
        session_id, cart = await create_checkout_session(session_store, _selection("momentum", "momentum"), customer_ref="u1")
        return cart, await session_store.consume(session_id)

    cart, stored = asyncio.run(scenario())
    assert stored == cart
    assert cart.total == 79 + 60


def test_slow_coupon_lookup_does_not_stall_event_loop(session_store, monkeypatch):
    def slow_lookup(code):
        time.sleep(0.5)
        return {"code": code, "discount_type": "flat", "discount_value": 10, "is_active": True}

    monkeypatch.setattr("storefront.coupons.service.repository.get_coupon_by_code", slow_lookup)

    async def scenario():
        stalls = []
        done = asyncio.Event()

        async def ticker():
            last = time.perf_counter()
            while not done.is_set():
                await asyncio.sleep(0.05)
                now = time.perf_counter()
                stalls.append(now - last)
                last = now

        tick = asyncio.ensure_future(ticker())
        try:
            _, cart = await create_checkout_session(session_store, _selection("momentum"), coupon_code="x")
        finally:
            done.set()
            await tick
        return cart, max(stalls)

    cart, worst = asyncio.run(scenario())
    assert cart.coupon_discount == 10
    assert worst < 0.2
