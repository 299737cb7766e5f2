"""
Module 'pricing': point d'entrée public.
Réunit les types du panier et le moteur de prix (pur, sans I/O).
"""

from .models import Cart, CartLineItem, Coupon, PricedCart, PricedLineItem, TrackRef
from .engine import discounted_price, price, price_line_item

__all__ = [
    # models
    "Cart",
    "CartLineItem",
    "Coupon",
    "PricedCart",
    "PricedLineItem",
    "TrackRef",
    # engine
    "discounted_price",
    "price",
    "price_line_item",
]
