from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from storefront.catalog.models import Addon
from storefront.pricing import PricedCart, PricedLineItem
from storefront.utils.timestamps import parse_timestamp


@dataclass(frozen=True)
class Customer:
    name: str
    email: str


@dataclass(frozen=True)
class Order:
    """Commande finalisée: créée une seule fois à la confirmation du paiement, immuable ensuite."""
    order_number: str
    items: List[PricedLineItem]
    addon_items: List[Addon]
    subtotal: int
    discount: int
    coupon_code: Optional[str]
    coupon_discount: int
    total: int
    customer_name: str
    customer_email: str
    created_at: datetime
    payment_ref: str
    customer_ref: Optional[str] = None

    @classmethod
    def from_cart(cls, order_number: str, cart: PricedCart, customer: Customer, payment_ref: str,
                  created_at: datetime, customer_ref: Optional[str] = None) -> "Order":
        return cls(
            order_number=order_number,
            items=list(cart.line_items),
            addon_items=list(cart.addon_items),
            subtotal=cart.subtotal,
            discount=cart.discount,
            coupon_code=cart.coupon_code,
            coupon_discount=cart.coupon_discount,
            total=cart.total,
            customer_name=customer.name,
            customer_email=customer.email,
            created_at=created_at,
            payment_ref=payment_ref,
            customer_ref=customer_ref,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Charge utile publique (page de confirmation). Ne contient ni payment_ref ni customer_ref."""
        return {
            "orderNumber": self.order_number,
            "items": [li.to_dict() for li in self.items],
            "addOnItems": [a.to_dict() for a in self.addon_items],
            "subtotal": self.subtotal,
            "discount": self.discount,
            "couponCode": self.coupon_code,
            "couponDiscount": self.coupon_discount,
            "total": self.total,
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        return cls(
            order_number=str(data["orderNumber"]),
            items=[PricedLineItem.from_dict(li) for li in data.get("items") or []],
            addon_items=[Addon.from_dict(a) for a in data.get("addOnItems") or []],
            subtotal=int(data["subtotal"]),
            discount=int(data["discount"]),
            coupon_code=data.get("couponCode"),
            coupon_discount=int(data.get("couponDiscount") or 0),
            total=int(data["total"]),
            customer_name=str(data.get("customerName") or ""),
            customer_email=str(data.get("customerEmail") or ""),
            created_at=parse_timestamp(data["createdAt"]),
            payment_ref=str(data.get("paymentRef") or ""),
            customer_ref=data.get("customerRef"),
        )


@dataclass(frozen=True)
class Confirmation:
    """Commande visible via son numéro public + temps restant (affichage uniquement)."""
    order: Order
    time_remaining: timedelta

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "orderDetails": self.order.to_dict(),
            "timeRemaining": int(self.time_remaining.total_seconds() * 1000),
        }
