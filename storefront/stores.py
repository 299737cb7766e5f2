"""
Construction et injection des stores partagés.
- build_*: choisis selon la config au démarrage (factory), posés sur app.state
- get_*: dépendances FastAPI lisant app.state (surchargées en tests via app.state)
"""
import logging

from fastapi import Request
import redis.asyncio as aioredis

from storefront.config import (
    CHECKOUT_REDIS_URL,
    CHECKOUT_SESSION_TTL_SECONDS,
    CHECKOUT_STORE_BACKEND,
    ORDER_STORE_BACKEND,
)
from storefront.checkout.store import (
    CheckoutSessionStore,
    InMemoryCheckoutSessionStore,
    RedisCheckoutSessionStore,
)
from storefront.notifications.webhooks import WebhookNotifier
from storefront.orders.store import InMemoryOrderRecordStore, OrderRecordStore, SupabaseOrderRecordStore

logger = logging.getLogger(__name__)

def build_session_store(backend: str = CHECKOUT_STORE_BACKEND) -> CheckoutSessionStore:
    if backend == "redis":
        client = aioredis.from_url(CHECKOUT_REDIS_URL, encoding="utf-8", decode_responses=True)
        return RedisCheckoutSessionStore(client, ttl_seconds=CHECKOUT_SESSION_TTL_SECONDS)
    if backend != "memory":
        logger.warning("Unknown CHECKOUT_STORE_BACKEND=%s, falling back to memory", backend)
    return InMemoryCheckoutSessionStore(ttl_seconds=CHECKOUT_SESSION_TTL_SECONDS)

def build_order_store(backend: str = ORDER_STORE_BACKEND) -> OrderRecordStore:
    if backend == "supabase":
        return SupabaseOrderRecordStore()
    if backend != "memory":
        logger.warning("Unknown ORDER_STORE_BACKEND=%s, falling back to memory", backend)
    return InMemoryOrderRecordStore()

def get_session_store(request: Request) -> CheckoutSessionStore:
    return request.app.state.session_store

def get_order_store(request: Request) -> OrderRecordStore:
    return request.app.state.order_store

def get_notifier(request: Request) -> WebhookNotifier:
    return request.app.state.notifier
