from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from storefront.pricing import PricedCart


@dataclass(frozen=True)
class CheckoutSession:
    """Instantané pré-paiement; jamais modifié après création."""
    session_id: str
    cart: PricedCart
    customer_ref: Optional[str]
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "cart": self.cart.to_dict(),
            "customerRef": self.customer_ref,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckoutSession":
        return cls(
            session_id=str(data["sessionId"]),
            cart=PricedCart.from_dict(data["cart"]),
            customer_ref=data.get("customerRef"),
            created_at=datetime.fromisoformat(data["createdAt"]),
        )
