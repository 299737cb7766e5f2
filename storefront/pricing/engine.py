"""
Moteur de prix: fonction pure (panier, addons, coupon) -> PricedCart.

Règles:
- l'article en position 0 paie le prix du package; tout article suivant paie
  ceil(prix * 0.75), arrondi toujours vers le haut
- les addons ne sont jamais remisés par position (leur promo est déjà dans `price`)
- le coupon s'applique en dernier, plafonné pour que le total ne soit jamais négatif;
  `coupon_discount` enregistre la remise effective, pas la valeur nominale
Réconciliation: subtotal - discount - coupon_discount == total, total >= 0.
"""
from typing import List, Optional, Sequence

from storefront.catalog.models import Addon
from storefront.errors import EmptyCartError
from .models import CartLineItem, Coupon, PricedCart, PricedLineItem

# Remise multi-articles: 25% (3/4 du prix), en arithmétique entière
DISCOUNT_NUMERATOR = 3
DISCOUNT_DENOMINATOR = 4

# module storefront.pricing.engine
def discounted_price(unit_price: int) -> int:
    """ceil(unit_price * 0.75) sans passer par les flottants."""
    return -(-unit_price * DISCOUNT_NUMERATOR // DISCOUNT_DENOMINATOR)

def price_line_item(item: CartLineItem) -> PricedLineItem:
    original = item.package.unit_price
    is_discounted = item.position_index > 0
    return PricedLineItem(
        track=item.track,
        package=item.package,
        position_index=item.position_index,
        original_price=original,
        discounted_price=discounted_price(original) if is_discounted else original,
        is_discounted=is_discounted,
    )

def price(
    line_items: Sequence[CartLineItem],
    addons: Optional[Sequence[Addon]] = None,
    coupon: Optional[Coupon] = None,
) -> PricedCart:
    """
    Calcule un PricedCart déterministe.
    - Soulève EmptyCartError si aucun article (l'UI ne doit jamais construire un panier vide).
    - L'ordre de la séquence n'influe pas sur le prix: seule `position_index` compte.
    """
    if not line_items:
        raise EmptyCartError()

    priced: List[PricedLineItem] = [price_line_item(it) for it in line_items]
    addon_items = list(addons or [])

    subtotal = sum(li.original_price for li in priced) + sum(a.price for a in addon_items)
    discount = sum(li.markdown for li in priced)
    before_coupon = subtotal - discount

    coupon_discount = min(coupon.discount_amount, before_coupon) if coupon else 0
    total = before_coupon - coupon_discount

    return PricedCart(
        line_items=priced,
        addon_items=addon_items,
        subtotal=subtotal,
        discount=discount,
        coupon_code=coupon.code if coupon else None,
        coupon_discount=coupon_discount,
        total=total,
    )
