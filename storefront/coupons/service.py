"""
Validation des coupons et calcul de la remise nominale.
La remise effective (plafonnée au montant de la commande) est fixée par le moteur de prix.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from storefront.errors import InvalidCouponError
from storefront.pricing import Coupon
from storefront.utils.timestamps import parse_timestamp
from . import repository

def normalize_code(code: str) -> str:
    return (code or "").strip().upper()

def _parse_ts(value: Any) -> Optional[datetime]:
    return parse_timestamp(value) if value else None

def compute_discount(row: Dict[str, Any], order_amount: int) -> int:
    """
    Remise nominale d'un coupon:
    - percentage: floor(order_amount * value / 100)
    - flat: value
    """
    discount_type = (row.get("discount_type") or "").lower()
    value = int(row.get("discount_value") or 0)
    if value <= 0:
        raise InvalidCouponError()
    if discount_type == "percentage":
        return order_amount * min(value, 100) // 100
    if discount_type == "flat":
        return value
    raise InvalidCouponError()

def resolve_coupon(code: str, order_amount: int, now: Optional[datetime] = None) -> Coupon:
    """
    Valide un code promo pour un montant de commande (après remises multi-articles).
    - Code normalisé (trim + majuscules).
    - Refuse: inconnu, inactif, expiré, quota atteint, montant minimum non atteint.
    """
    normalized = normalize_code(code)
    if not normalized:
        raise InvalidCouponError("Code promo manquant")
    if order_amount <= 0:
        raise InvalidCouponError("Montant de commande invalide")

    row = repository.get_coupon_by_code(normalized)
    if not row or not row.get("is_active", True):
        raise InvalidCouponError()

    now = now or datetime.now(timezone.utc)
    expires_at = _parse_ts(row.get("expires_at"))
    if expires_at and now > expires_at:
        raise InvalidCouponError("Ce code promo a expiré")

    max_uses = row.get("max_uses")
    if max_uses is not None and int(row.get("current_uses") or 0) >= int(max_uses):
        raise InvalidCouponError("Ce code promo n'est plus disponible")

    min_amount = int(row.get("min_order_amount") or 0)
    if order_amount < min_amount:
        raise InvalidCouponError(f"Montant minimum de {min_amount} requis pour ce code promo")

    return Coupon(code=normalized, discount_amount=compute_discount(row, order_amount))
