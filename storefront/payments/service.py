"""
Cas d'usage 'payments': relie session de checkout, passerelle Stripe et store des commandes.

Finalisation (webhook Stripe, confirmation par redirection, commande gratuite):
1) commande déjà enregistrée pour ce payment_ref => renvoyée telle quelle (retry, double confirmation)
2) consommation atomique de la session de checkout (usage unique)
3) enregistrement de la commande à partir de l'instantané consommé
Le perdant d'une course sur la consommation relit la commande du gagnant par payment_ref.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from storefront.config import STRIPE_CURRENCY
from storefront.errors import PaymentNotConfirmedError, SessionAlreadyConsumedError, SessionNotFoundError
from storefront.checkout.store import CheckoutSessionStore
from storefront.orders.models import Customer, Order
from storefront.orders.store import OrderRecordStore
from storefront.pricing import PricedCart
from . import stripe_client

logger = logging.getLogger(__name__)

FREE_PREFIX = "free:"
RECHECK_ATTEMPTS = 5
RECHECK_DELAY_SECONDS = 0.1

def _cents(amount: int) -> int:
    return int(amount) * 100

def build_line_items(cart: PricedCart, currency: str = STRIPE_CURRENCY) -> List[Dict[str, Any]]:
    """
    Lignes Stripe (price_data) à partir du panier pricé.
    - sans coupon: une ligne par titre (prix remisé) + une par addon
    - avec coupon: une ligne unique au total, Stripe ne connaissant pas nos remises
    """
    if cart.coupon_discount > 0:
        return [{
            "price_data": {
                "currency": currency,
                "product_data": {"name": f"Commande ({len(cart.line_items)} titre(s), code {cart.coupon_code})"},
                "unit_amount": _cents(cart.total),
            },
            "quantity": 1,
        }]
    lines = []
    for item in cart.line_items:
        name = item.package.display_name
        if item.track.title:
            name = f"{name} - {item.track.title}"
        lines.append({
            "price_data": {
                "currency": currency,
                "product_data": {"name": name},
                "unit_amount": _cents(item.discounted_price),
            },
            "quantity": 1,
        })
    for addon in cart.addon_items:
        lines.append({
            "price_data": {
                "currency": currency,
                "product_data": {"name": addon.name},
                "unit_amount": _cents(addon.price),
            },
            "quantity": 1,
        })
    return lines

async def start_payment(
    session_store: CheckoutSessionStore,
    checkout_session_id: str,
    success_url: str,
    cancel_url: str,
    customer_email: Optional[str] = None,
) -> Dict[str, Any]:
    """Crée la session Stripe pour une session de checkout active (non consommée)."""
    session = await session_store.get(checkout_session_id)
    metadata = {"checkout_session_id": checkout_session_id, "customer_ref": session.customer_ref or ""}
    stripe_session = await run_in_threadpool(
        stripe_client.create_session,
        line_items=build_line_items(session.cart),
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=metadata,
        customer_email=customer_email,
        client_reference_id=session.customer_ref,
    )
    logger.info("payments.start_payment stripe_session=%s total=%s", stripe_session.get("id"), session.cart.total)
    return stripe_session

async def _recheck(order_store: OrderRecordStore, payment_ref: str) -> Optional[Order]:
    for _ in range(RECHECK_ATTEMPTS):
        order = await order_store.get_by_payment_ref(payment_ref)
        if order is not None:
            return order
        await asyncio.sleep(RECHECK_DELAY_SECONDS)
    return None

async def finalize_payment(
    session_store: CheckoutSessionStore,
    order_store: OrderRecordStore,
    checkout_session_id: str,
    payment_ref: str,
    customer: Customer,
    customer_ref: Optional[str] = None,
) -> Order:
    existing = await order_store.get_by_payment_ref(payment_ref)
    if existing is not None:
        logger.info("payments.finalize duplicate payment_ref=%s order=%s", payment_ref, existing.order_number)
        return existing
    try:
        cart = await session_store.consume(checkout_session_id)
    except SessionAlreadyConsumedError:
        order = await _recheck(order_store, payment_ref)
        if order is not None:
            return order
        # Second paiement pour une session déjà payée: remboursement manuel
        logger.error(
            "payments.finalize session already used by another payment checkout_session=%s payment_ref=%s",
            checkout_session_id, payment_ref,
        )
        raise
    try:
        order = await order_store.record_order(cart, customer, payment_ref, customer_ref)
    except Exception:
        logger.exception("payments.finalize record_order failed payment_ref=%s", payment_ref)
        raise
    logger.info("payments.finalize order=%s total=%s", order.order_number, order.total)
    return order

async def finalize_free_order(
    session_store: CheckoutSessionStore,
    order_store: OrderRecordStore,
    checkout_session_id: str,
    customer: Customer,
    customer_ref: Optional[str] = None,
) -> Order:
    """Total nul (coupon couvrant tout): pas de passage par Stripe."""
    return await finalize_payment(
        session_store, order_store, checkout_session_id,
        payment_ref=f"{FREE_PREFIX}{checkout_session_id}",
        customer=customer,
        customer_ref=customer_ref,
    )

def _payment_ref(stripe_session: Dict[str, Any]) -> str:
    intent = stripe_session.get("payment_intent")
    if isinstance(intent, dict):
        intent = intent.get("id")
    return str(intent or stripe_session.get("id") or "")

async def finalize_stripe_session(
    session_store: CheckoutSessionStore,
    order_store: OrderRecordStore,
    stripe_session: Dict[str, Any],
) -> Order:
    """
    Finalise à partir d'une session Stripe (objet du webhook ou session relue).
    - PaymentNotConfirmedError si payment_status n'est pas payé
    - SessionNotFoundError si les métadonnées ne référencent pas de session de checkout
    """
    status = stripe_session.get("payment_status") or ""
    if status not in stripe_client.PAID_STATUSES:
        raise PaymentNotConfirmedError(status)
    metadata = stripe_client.as_dict(stripe_session.get("metadata"))
    checkout_session_id = str(metadata.get("checkout_session_id") or "")
    if not checkout_session_id:
        raise SessionNotFoundError(checkout_session_id)
    details = stripe_client.as_dict(stripe_session.get("customer_details"))
    customer = Customer(
        name=str(details.get("name") or ""),
        email=str(details.get("email") or stripe_session.get("customer_email") or ""),
    )
    return await finalize_payment(
        session_store, order_store, checkout_session_id,
        payment_ref=_payment_ref(stripe_session),
        customer=customer,
        customer_ref=metadata.get("customer_ref") or None,
    )

async def confirm_stripe_session(
    session_store: CheckoutSessionStore,
    order_store: OrderRecordStore,
    stripe_session_id: str,
) -> Order:
    """Alternative sans webhook: relit la session Stripe (redirection success_url) puis finalise."""
    stripe_session = await run_in_threadpool(stripe_client.get_session, stripe_session_id)
    return await finalize_stripe_session(session_store, order_store, stripe_session)
