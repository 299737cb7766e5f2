"""
Factory d’application pour les entrypoints (storefront.asgi) et les tests.
Les stores et le notifier sont construits ici (ou injectés) et posés sur app.state.
"""
from typing import Optional

from fastapi import FastAPI

from storefront.checkout.store import CheckoutSessionStore
from storefront.notifications.webhooks import WebhookNotifier
from storefront.orders.store import OrderRecordStore
from storefront.stores import build_order_store, build_session_store
from .exceptions import register_exception_handlers
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_security_middleware
from .routers import register_routers

def create_app(
    session_store: Optional[CheckoutSessionStore] = None,
    order_store: Optional[OrderRecordStore] = None,
    notifier: Optional[WebhookNotifier] = None,
) -> FastAPI:
    """
    Construit l’app FastAPI avec le lifespan et enregistre:
      - middlewares de base et de sécurité
      - gestionnaires d’exceptions métier
      - tous les routers (pages, API, health)
    """
    app = FastAPI(title="Storefront", lifespan=lifespan)
    app.state.session_store = session_store or build_session_store()
    app.state.order_store = order_store or build_order_store()
    app.state.notifier = notifier or WebhookNotifier()
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
