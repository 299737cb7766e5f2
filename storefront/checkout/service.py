"""
Cas d'usage 'checkout': construit et price le panier, puis crée la session de checkout.
Le panier n'est jamais placé dans l'URL: seul le session_id opaque transite vers la page de paiement.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from starlette.concurrency import run_in_threadpool

from storefront.catalog.data import get_addons, get_package
from storefront.coupons.service import resolve_coupon
from storefront.errors import EmptyCartError
from storefront.pricing import Cart, PricedCart, TrackRef, price
from .store import CheckoutSessionStore

logger = logging.getLogger(__name__)

def build_cart(items: List[Dict[str, Any]]) -> Cart:
    """
    Construit un Cart à partir des sélections [{track: {...}, package_id}, ...].
    - Les positions suivent l'ordre de la liste (ordre d'ajout côté UI).
    - UnknownPackageError si un package est inconnu.
    """
    cart = Cart()
    for entry in items or []:
        cart.add(TrackRef.from_dict(entry.get("track") or {}), get_package(str(entry.get("package_id") or "")))
    return cart

def price_selection(
    items: List[Dict[str, Any]],
    addon_ids: Optional[List[str]] = None,
    coupon_code: Optional[str] = None,
) -> PricedCart:
    """
    Price une sélection complète.
    - Le coupon est validé sur le montant après remises multi-articles et addons,
      puis appliqué en dernier par le moteur (plafonné à ce montant).
    """
    cart = build_cart(items)
    if not cart.items:
        raise EmptyCartError()
    addons = get_addons(addon_ids or [])
    priced = price(cart.items, addons)
    if not coupon_code:
        return priced
    coupon = resolve_coupon(coupon_code, priced.subtotal - priced.discount)
    return price(cart.items, addons, coupon)

async def create_checkout_session(
    store: CheckoutSessionStore,
    items: List[Dict[str, Any]],
    addon_ids: Optional[List[str]] = None,
    coupon_code: Optional[str] = None,
    customer_ref: Optional[str] = None,
) -> Tuple[str, PricedCart]:
    # Lecture du coupon (Supabase, synchrone) hors de la boucle d’événements
    priced = await run_in_threadpool(price_selection, items, addon_ids, coupon_code)
    session_id = await store.create(priced, customer_ref)
    logger.info(
        "checkout.session created items=%s total=%s anonymous=%s",
        len(priced.line_items), priced.total, customer_ref is None,
    )
    return session_id, priced
